# -*- coding: utf-8 -*-
"""
Exceptions raised by the basket optimiser.

Solver and decoding failures are separate hierarchies: ``SolverError`` means
the engine could not produce an answer, ``DecodingInvariantError`` means the
answer contradicts the model that was built (a bug, not a business outcome).
"""


class BasketError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(BasketError, ValueError):
    """Raised when the YAML config or the environment is unusable."""


class ProviderError(BasketError):
    """Raised inside a catalog/offer provider when an upstream call fails."""


class UnsatisfiableItemError(BasketError):
    """Raised under the ``abort`` policy when some items have no offers."""

    def __init__(self, items):
        self.items = tuple(items)
        names = ", ".join(f"{item.name} ({item.number})" for item in self.items)
        super().__init__(f"{len(self.items)} item(s) have no candidate offers: {names}")


class SolverError(BasketError):
    """Raised when the optimisation engine fails (not the same as infeasible)."""

    def __init__(self, message, status=None):
        self.status = status
        super().__init__(message)


class DecodingInvariantError(BasketError, AssertionError):
    """The engine's answer contradicts the program that was built."""


class CostMismatchError(DecodingInvariantError):
    """Recomputed basket cost differs from the engine's objective value."""


class CoverageMismatchError(DecodingInvariantError):
    """An item was covered by zero or several chosen offers."""


class ActivationMismatchError(DecodingInvariantError):
    """Chosen offers and activated vendors disagree."""


class InfeasibleModelError(DecodingInvariantError):
    """A program without unsatisfiable items was reported infeasible."""

# -*- coding: utf-8 -*-
"""
Cheapest-basket optimiser for trading cards: one listing per wanted card,
with each seller's shipping paid once.
"""

from .errors import (
    BasketError,
    ConfigurationError,
    DecodingInvariantError,
    SolverError,
    UnsatisfiableItemError,
)
from .models import DecodedSolution, Item, Offer
from .optimization import OptimizationOutcome, run_optimization
from .policy import OptimizationConfig, ShippingPolicy, UnsatisfiablePolicy

__version__ = "0.1.0"

__all__ = [
    # errors
    "BasketError",
    "ConfigurationError",
    "DecodingInvariantError",
    "SolverError",
    "UnsatisfiableItemError",
    # core
    "DecodedSolution",
    "Item",
    "Offer",
    "OptimizationConfig",
    "OptimizationOutcome",
    "ShippingPolicy",
    "UnsatisfiablePolicy",
    "run_optimization",
]

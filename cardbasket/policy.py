from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

from .errors import ConfigurationError
from .models import Offer


class ShippingPolicy(str, Enum):
    # one flat charge per used seller: the max shipping among its offers
    VENDOR_MAX = "vendor_max"
    # shipping paid on every bought listing; activation is structural only
    PER_OFFER = "per_offer"
    # shipping not priced at all
    IGNORE = "ignore"


class UnsatisfiablePolicy(str, Enum):
    EXCLUDE = "exclude"
    ABORT = "abort"


@dataclass
class OptimizationConfig:
    shipping_policy: ShippingPolicy = ShippingPolicy.VENDOR_MAX
    unsatisfiable_policy: UnsatisfiablePolicy = UnsatisfiablePolicy.EXCLUDE

    # seconds; None lets CBC run to proven optimality
    time_limit: Optional[float] = None

    # absolute slack allowed between recomputed cost and solver objective
    tolerance: float = 1e-6

    @classmethod
    def from_dict(cls, section: Optional[dict]) -> "OptimizationConfig":
        section = section or {}
        try:
            shipping = ShippingPolicy(section.get("shipping_policy", ShippingPolicy.VENDOR_MAX.value))
            unsatisfiable = UnsatisfiablePolicy(
                section.get("unsatisfiable_policy", UnsatisfiablePolicy.EXCLUDE.value)
            )
        except ValueError as e:
            raise ConfigurationError(f"Invalid optimization policy: {e}") from e

        time_limit = section.get("time_limit")
        tolerance = float(section.get("tolerance", 1e-6))
        if time_limit is not None and float(time_limit) <= 0:
            raise ConfigurationError("optimization.time_limit must be positive")
        if tolerance < 0:
            raise ConfigurationError("optimization.tolerance must not be negative")

        return cls(
            shipping_policy=shipping,
            unsatisfiable_policy=unsatisfiable,
            time_limit=float(time_limit) if time_limit is not None else None,
            tolerance=tolerance,
        )


def vendor_max_policy() -> OptimizationConfig:
    return OptimizationConfig(shipping_policy=ShippingPolicy.VENDOR_MAX)


def per_offer_policy() -> OptimizationConfig:
    return OptimizationConfig(shipping_policy=ShippingPolicy.PER_OFFER)


def offer_cost_coefficient(offer: Offer, policy: ShippingPolicy) -> float:
    if policy is ShippingPolicy.PER_OFFER:
        return float(offer.price) + float(offer.shipping)
    return float(offer.price)


def vendor_cost_coefficient(charge: float, policy: ShippingPolicy) -> float:
    return float(charge) if policy is ShippingPolicy.VENDOR_MAX else 0.0


def basket_cost(
    offers: Iterable[Offer],
    vendors: Iterable[str],
    vendor_charges: Dict[str, float],
    policy: ShippingPolicy,
) -> float:
    """
    Cost of a basket under ``policy``. Used to cross-check the solver
    objective, so it is written out directly rather than from coefficients.
    """
    offers = list(offers)
    total = sum(float(o.price) for o in offers)
    if policy is ShippingPolicy.PER_OFFER:
        total += sum(float(o.shipping) for o in offers)
    elif policy is ShippingPolicy.VENDOR_MAX:
        total += sum(vendor_charges[v] for v in vendors)
    return total

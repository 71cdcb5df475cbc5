# -*- coding: utf-8 -*-
"""
Domain objects shared by the providers, the model builder and the decoder.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, Tuple, Union

ItemKey = Tuple[str, str, str]


@dataclass(frozen=True)
class Item:
    """A wanted card. Exactly one offer has to be bought for it."""

    name: str
    collection: str
    number: str
    collection_id: str = ""

    @property
    def key(self) -> ItemKey:
        return (self.collection_id or self.collection, self.number, self.name)

    @property
    def label(self) -> str:
        return f"{self.name} ({self.number})"


@dataclass(frozen=True)
class Offer:
    """A fixed-price listing for one item from one seller."""

    offer_id: str
    item_key: ItemKey
    vendor: str
    price: float
    shipping: float = 0.0
    url: str = ""
    item_name: str = ""

    def __post_init__(self):
        if not math.isfinite(self.price) or not math.isfinite(self.shipping):
            raise ValueError(f"Offer {self.offer_id!r} has a non-finite amount: {self.price} + {self.shipping}")
        if self.price < 0:
            raise ValueError(f"Offer {self.offer_id!r} has a negative price: {self.price}")
        if self.shipping < 0:
            raise ValueError(f"Offer {self.offer_id!r} has a negative shipping cost: {self.shipping}")


@dataclass(frozen=True)
class OfferVariable:
    """Key of a ``select`` variable."""

    item_key: ItemKey
    offer_id: str


@dataclass(frozen=True)
class VendorVariable:
    """Key of an ``active`` variable."""

    vendor: str


VariableKey = Union[OfferVariable, VendorVariable]


def offer_variable(offer: Offer) -> OfferVariable:
    return OfferVariable(offer.item_key, offer.offer_id)


def vendor_shipping_charges(offers: Iterable[Offer]) -> Dict[str, float]:
    """Flat charge per seller: the dearest shipping among that seller's offers."""
    charges: Dict[str, float] = {}
    for offer in offers:
        charges[offer.vendor] = max(charges.get(offer.vendor, 0.0), float(offer.shipping))
    return charges


@dataclass(frozen=True)
class DecodedSolution:
    total_cost: float
    chosen_offers: Tuple[Offer, ...]
    activated_vendors: Tuple[str, ...]
    objective_value: Optional[float] = None
    unsatisfiable_items: Tuple[Item, ...] = field(default=())

    @property
    def item_total(self) -> float:
        return sum(o.price for o in self.chosen_offers)

    def offers_by_vendor(self) -> Dict[str, Tuple[Offer, ...]]:
        grouped: Dict[str, list] = {}
        for offer in self.chosen_offers:
            grouped.setdefault(offer.vendor, []).append(offer)
        return {vendor: tuple(offers) for vendor, offers in grouped.items()}

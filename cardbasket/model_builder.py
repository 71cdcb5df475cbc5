###############################################################################
# model_builder.py
###############################################################################
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import pulp

from .config import logger
from .errors import UnsatisfiableItemError
from .models import (
    Item,
    ItemKey,
    Offer,
    OfferVariable,
    VariableKey,
    VendorVariable,
    offer_variable,
    vendor_shipping_charges,
)
from .policy import (
    OptimizationConfig,
    ShippingPolicy,
    UnsatisfiablePolicy,
    offer_cost_coefficient,
    vendor_cost_coefficient,
)

PROBLEM_NAME = "CheapestCardBasket"


@dataclass
class Program:
    """
    One run's MILP plus the tables needed to read an assignment back.

    ``variables`` maps a typed key to its PuLP variable, ``handles`` is the
    reverse table from the PuLP variable name to that key.
    """

    problem: pulp.LpProblem
    shipping_policy: ShippingPolicy
    items: Tuple[Item, ...]
    covered_items: Tuple[Item, ...]
    unsatisfiable_items: Tuple[Item, ...]
    offers: Dict[OfferVariable, Offer]
    vendor_charges: Dict[str, float]
    variables: Dict[VariableKey, pulp.LpVariable] = field(default_factory=dict)
    handles: Dict[str, VariableKey] = field(default_factory=dict)

    @property
    def vendors(self) -> Tuple[str, ...]:
        return tuple(sorted(self.vendor_charges))

    @property
    def is_empty(self) -> bool:
        return not self.covered_items

    def select_var(self, offer: Offer) -> pulp.LpVariable:
        return self.variables[offer_variable(offer)]

    def active_var(self, vendor: str) -> pulp.LpVariable:
        return self.variables[VendorVariable(vendor)]

    def key_for(self, handle: str) -> VariableKey:
        return self.handles[handle]

    def stats(self) -> Dict[str, int]:
        return {
            "items": len(self.items),
            "covered_items": len(self.covered_items),
            "unsatisfiable_items": len(self.unsatisfiable_items),
            "offers": len(self.offers),
            "vendors": len(self.vendor_charges),
            "variables": len(self.variables),
            "constraints": self.problem.numConstraints(),
        }


# ──────────────────────────────────────────────────────────────
# Grouping helpers
# ──────────────────────────────────────────────────────────────
def group_offers_by_item(items: Sequence[Item], offers: Sequence[Offer]) -> Dict[ItemKey, List[Offer]]:
    """
    Returns item key → offers, in input order. Offers for unknown items are
    dropped; repeated listing ids for the same item keep the first copy.
    """
    grouped: Dict[ItemKey, List[Offer]] = {item.key: [] for item in items}
    seen = set()
    stray = 0
    for offer in offers:
        if offer.item_key not in grouped:
            stray += 1
            continue
        ref = offer_variable(offer)
        if ref in seen:
            logger.debug(f"Duplicate listing {offer.offer_id} for {offer.item_key} ignored.")
            continue
        seen.add(ref)
        grouped[offer.item_key].append(offer)

    if stray:
        logger.warning(f"{stray} offer(s) reference items that were not requested; ignoring them.")
    return grouped


def split_unsatisfiable(items: Sequence[Item], grouped: Dict[ItemKey, List[Offer]]):
    covered, unsatisfiable = [], []
    for item in items:
        (covered if grouped[item.key] else unsatisfiable).append(item)
    return covered, unsatisfiable


# ──────────────────────────────────────────────────────────────────────────────
# Program construction
# ──────────────────────────────────────────────────────────────────────────────
def build_program(items: Sequence[Item], offers: Sequence[Offer], config: OptimizationConfig = None) -> Program:
    """
    Build the basket MILP:

    - select[o] binary per offer, active[v] binary per seller
    - coverage:   sum(select[o] for o of item) == 1, per item with offers
    - activation: select[o] - active[seller(o)] <= 0, per offer
    - usage:      active[v] - sum(select[o] for o of v) <= 0, per seller
    - objective:  priced according to ``config.shipping_policy``
    """
    if config is None:
        config = OptimizationConfig()
    policy = config.shipping_policy

    items = _unique_items(items)
    grouped = group_offers_by_item(items, offers)
    covered, unsatisfiable = split_unsatisfiable(items, grouped)

    # ── pre-check: items nobody sells ─────────────────────────────
    if unsatisfiable:
        if config.unsatisfiable_policy is UnsatisfiablePolicy.ABORT:
            raise UnsatisfiableItemError(unsatisfiable)
        for item in unsatisfiable:
            logger.warning(f"No offers for {item.label} [{item.collection}]; excluded from the basket.")

    kept_offers = [o for item in covered for o in grouped[item.key]]
    charges = vendor_shipping_charges(kept_offers)

    prob = pulp.LpProblem(PROBLEM_NAME, pulp.LpMinimize)
    program = Program(
        problem=prob,
        shipping_policy=policy,
        items=items,
        covered_items=tuple(covered),
        unsatisfiable_items=tuple(unsatisfiable),
        offers={offer_variable(o): o for o in kept_offers},
        vendor_charges=charges,
    )

    # ───────────────────── decision vars ──────────────────────
    # names are positional handles; listing ids and seller names never
    # reach PuLP, so nothing has to be parsed back out of a name
    for n, offer in enumerate(kept_offers):
        _register(program, offer_variable(offer), prob.add_variable(f"select_{n}", cat=pulp.LpBinary))

    vendor_index = {}
    for n, vendor in enumerate(program.vendors):
        vendor_index[vendor] = n
        _register(program, VendorVariable(vendor), prob.add_variable(f"active_{n}", cat=pulp.LpBinary))

    # ───────────────────── constraints ────────────────────────
    for i, item in enumerate(covered):
        prob += pulp.lpSum(program.select_var(o) for o in grouped[item.key]) == 1, f"cover_{i}"

    for n, offer in enumerate(kept_offers):
        prob += program.select_var(offer) - program.active_var(offer.vendor) <= 0, f"activate_{n}"

    offers_by_vendor: Dict[str, List[Offer]] = {}
    for offer in kept_offers:
        offers_by_vendor.setdefault(offer.vendor, []).append(offer)
    for vendor, vendor_offers in offers_by_vendor.items():
        prob += (
            program.active_var(vendor) - pulp.lpSum(program.select_var(o) for o in vendor_offers) <= 0,
            f"usage_{vendor_index[vendor]}",
        )

    # ───────────────────── objective ──────────────────────────
    prob += (
        pulp.lpSum(offer_cost_coefficient(o, policy) * program.select_var(o) for o in kept_offers)
        + pulp.lpSum(
            vendor_cost_coefficient(charges[v], policy) * program.active_var(v) for v in program.vendors
        )
    ), "total_cost"

    logger.debug(f"Total constraints added: {prob.numConstraints()}")
    logger.info(
        f"Built model: {len(covered)} card(s), {len(kept_offers)} listing(s), "
        f"{len(charges)} seller(s), shipping policy '{policy.value}'."
    )
    return program


def _unique_items(items: Sequence[Item]) -> Tuple[Item, ...]:
    unique: Dict[ItemKey, Item] = {}
    for item in items:
        if item.key in unique:
            logger.warning(f"{item.label} requested twice; keeping one copy.")
            continue
        unique[item.key] = item
    return tuple(unique.values())


def _register(program: Program, key: VariableKey, var: pulp.LpVariable) -> None:
    program.variables[key] = var
    program.handles[var.name] = key

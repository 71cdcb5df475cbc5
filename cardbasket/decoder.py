"""
Turn an engine result back into chosen listings and sellers, and check that
the answer is consistent with the program it came from.
"""
import math
from dataclasses import dataclass
from typing import Dict, List, Union

from .config import logger
from .engine import EngineResult, SolveStatus
from .errors import (
    ActivationMismatchError,
    CostMismatchError,
    CoverageMismatchError,
    DecodingInvariantError,
    InfeasibleModelError,
)
from .model_builder import Program
from .models import DecodedSolution, ItemKey, Offer, OfferVariable, VendorVariable
from .policy import basket_cost

TRUE_THRESHOLD = 0.5
RELATIVE_TOLERANCE = 1e-9


@dataclass(frozen=True)
class UnsolvedResult:
    status: SolveStatus
    message: str = ""


def decode_solution(
    program: Program, result: EngineResult, tolerance: float = 1e-6
) -> Union[DecodedSolution, UnsolvedResult]:
    # items without offers never enter the program, so every covered item
    # has a candidate and the model is always feasible
    if result.status is SolveStatus.INFEASIBLE:
        raise InfeasibleModelError(
            f"Engine reported '{program.problem.name}' infeasible although every covered item has offers: "
            f"{result.message}"
        )
    if result.status is not SolveStatus.OPTIMAL:
        logger.warning(f"No optimal solution ({result.status.value}): {result.message}")
        return UnsolvedResult(result.status, result.message)

    chosen: Dict[ItemKey, List[Offer]] = {}
    vendors = set()
    for handle, value in result.assignment.items():
        if value is None or value <= TRUE_THRESHOLD:
            continue
        try:
            key = program.key_for(handle)
        except KeyError:
            raise DecodingInvariantError(f"Engine returned unknown variable '{handle}'") from None
        if isinstance(key, OfferVariable):
            offer = program.offers[key]
            chosen.setdefault(offer.item_key, []).append(offer)
        elif isinstance(key, VendorVariable):
            vendors.add(key.vendor)

    _check_coverage(program, chosen)
    chosen_offers = tuple(chosen[item.key][0] for item in program.covered_items)
    _check_activation(chosen_offers, vendors)

    activated = tuple(sorted(vendors))
    total = basket_cost(chosen_offers, activated, program.vendor_charges, program.shipping_policy)
    reported = result.objective_value
    if reported is None or not math.isclose(total, reported, rel_tol=RELATIVE_TOLERANCE, abs_tol=tolerance):
        raise CostMismatchError(
            f"Recomputed basket cost {total:.6f} does not match solver objective {reported}"
        )

    return DecodedSolution(
        total_cost=total,
        chosen_offers=chosen_offers,
        activated_vendors=activated,
        objective_value=reported,
        unsatisfiable_items=program.unsatisfiable_items,
    )


def _check_coverage(program: Program, chosen: Dict[ItemKey, List[Offer]]) -> None:
    problems = []
    for item in program.covered_items:
        count = len(chosen.get(item.key, ()))
        if count != 1:
            problems.append(f"{item.label}: {count} listing(s)")
    if problems:
        raise CoverageMismatchError("Each card needs exactly one listing; got " + "; ".join(problems))


def _check_activation(chosen_offers, vendors) -> None:
    used = {o.vendor for o in chosen_offers}
    if used - vendors:
        raise ActivationMismatchError(f"Listings bought from inactive seller(s): {sorted(used - vendors)}")
    if vendors - used:
        raise ActivationMismatchError(f"Seller(s) activated without a listing: {sorted(vendors - used)}")

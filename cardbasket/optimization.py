###############################################################################
# optimization.py
###############################################################################
from dataclasses import dataclass, field
from typing import Dict, Optional, Sequence, Tuple

from .config import logger
from .decoder import UnsolvedResult, decode_solution
from .engine import OptimizationEngine, PulpEngine, SolveStatus
from .errors import SolverError
from .model_builder import build_program
from .models import DecodedSolution, Item, Offer
from .policy import OptimizationConfig


@dataclass
class OptimizationOutcome:
    status: SolveStatus
    solution: Optional[DecodedSolution]
    unsatisfiable_items: Tuple[Item, ...] = ()
    program_stats: Dict[str, int] = field(default_factory=dict)
    message: str = ""

    @property
    def solved(self) -> bool:
        return self.solution is not None


def run_optimization(
    items: Sequence[Item],
    offers: Sequence[Offer],
    config: OptimizationConfig = None,
    engine: OptimizationEngine = None,
) -> OptimizationOutcome:
    """
    Build, solve and decode one basket.

    Raises ``UnsatisfiableItemError`` under the abort policy, ``SolverError``
    when the engine fails, and a ``DecodingInvariantError`` subclass when the
    engine's answer contradicts the model.
    """
    if config is None:
        config = OptimizationConfig()
    if engine is None:
        engine = PulpEngine(time_limit=config.time_limit)

    program = build_program(items, offers, config)
    stats = program.stats()
    unsatisfiable = program.unsatisfiable_items

    if program.is_empty:
        logger.info("No card has any listing; nothing to optimise.")
        empty = DecodedSolution(
            total_cost=0.0,
            chosen_offers=(),
            activated_vendors=(),
            objective_value=0.0,
            unsatisfiable_items=unsatisfiable,
        )
        return OptimizationOutcome(SolveStatus.OPTIMAL, empty, unsatisfiable, stats, "Nothing to optimise.")

    logger.info("Solving basket ILP - seller & shipping consideration")
    result = engine.solve(program)
    if result.status is SolveStatus.ERROR:
        raise SolverError(f"Optimisation engine failed: {result.message}", status=result.status)

    decoded = decode_solution(program, result, tolerance=config.tolerance)
    if isinstance(decoded, UnsolvedResult):
        return OptimizationOutcome(decoded.status, None, unsatisfiable, stats, decoded.message)

    logger.info(f"Total combined cost: £{decoded.total_cost:.2f}")
    logger.info(f"Chosen sellers: {', '.join(decoded.activated_vendors)}")
    return OptimizationOutcome(SolveStatus.OPTIMAL, decoded, unsatisfiable, stats, result.message)

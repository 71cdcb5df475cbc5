from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import pulp
from pulp import PulpSolverError

from .config import logger
from .model_builder import Program


class SolveStatus(str, Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    ERROR = "error"


@dataclass
class EngineResult:
    status: SolveStatus
    # PuLP variable name → value; may be fractional within solver tolerance
    assignment: Dict[str, float] = field(default_factory=dict)
    objective_value: Optional[float] = None
    message: str = ""


class OptimizationEngine(ABC):
    """Single blocking request/response: one program in, one result out."""

    @abstractmethod
    def solve(self, program: Program) -> EngineResult:
        pass


class PulpEngine(OptimizationEngine):
    """CBC through PuLP, solved to a zero gap."""

    def __init__(self, time_limit: Optional[float] = None, msg: bool = False):
        self.time_limit = time_limit
        self.msg = msg

    def _solver(self):
        return pulp.PULP_CBC_CMD(msg=self.msg, gapRel=0, gapAbs=0, timeLimit=self.time_limit)

    def solve(self, program: Program) -> EngineResult:
        prob = program.problem
        try:
            prob.solve(self._solver())
        except PulpSolverError as e:
            logger.error(f"Solver failed on '{prob.name}': {e}")
            return EngineResult(SolveStatus.ERROR, message=str(e))

        model_status = pulp.LpStatus[prob.status]
        logger.info(f"Solver status: {model_status}")

        if prob.status == pulp.LpStatusInfeasible:
            return EngineResult(SolveStatus.INFEASIBLE, message="Model is infeasible.")
        if prob.status != pulp.LpStatusOptimal:
            return EngineResult(SolveStatus.ERROR, message=f"Solver returned status '{model_status}'.")
        if prob.sol_status != pulp.LpSolutionOptimal:
            # stopped by the time limit with an unproven incumbent
            return EngineResult(
                SolveStatus.ERROR,
                message=f"Solve stopped before proving optimality (solution status "
                        f"'{pulp.LpSolution.get(prob.sol_status, prob.sol_status)}').",
            )

        assignment = {
            var.name: float(var.varValue or 0.0)
            for var in program.variables.values()
        }
        return EngineResult(
            SolveStatus.OPTIMAL,
            assignment=assignment,
            objective_value=float(pulp.value(prob.objective) or 0.0),
            message="Model is optimal.",
        )

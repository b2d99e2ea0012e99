"""Driver loop running any :class:`~qnopt.optimize.solver.Solver` to completion."""

from __future__ import annotations

import time
from typing import Any, Optional

from ..logging import get_logger
from .algebra import get_algebra
from .core import (
    IterState,
    ObjectiveWrapper,
    OptimizationError,
    OptimizeResult,
    Problem,
    TerminationReason,
)
from .solver import Solver

logger = get_logger(__name__)


class Executor:
    """Call ``init`` once, then alternate ``terminate`` and ``step``.

    Iteration and wall-clock limits are enforced here, at iteration
    boundaries only: a ``step`` that has started always runs to completion.
    Objective and line-search failures are logged and re-raised unchanged.

    Args:
        problem: Problem to minimize (or an already counting wrapper).
        solver: Fresh solver instance; it is not reusable after the run.
        x0: Starting point (NumPy array or torch tensor).
        maxiter: Maximum number of ``step`` calls.
        max_time: Optional wall-clock budget in seconds.
        history: Record every iterate in ``OptimizeResult.history``.
    """

    def __init__(
        self,
        problem: Problem | ObjectiveWrapper,
        solver: Solver,
        x0: Any,
        maxiter: int = 1000,
        max_time: Optional[float] = None,
        history: bool = False,
    ) -> None:
        if maxiter < 0:
            raise ValueError("maxiter must be non-negative.")
        if max_time is not None and max_time <= 0:
            raise ValueError("max_time must be positive.")
        self.algebra = get_algebra(x0)
        if isinstance(problem, ObjectiveWrapper):
            self.objective = problem
        else:
            self.objective = ObjectiveWrapper(problem, self.algebra)
        self.solver = solver
        self.x0 = self.algebra.copy(x0)
        self.maxiter = int(maxiter)
        self.max_time = max_time
        self.history = history

    def run(self) -> OptimizeResult:
        solver = self.solver
        state = IterState(param=self.x0)
        hist: list[Any] = []
        start = time.perf_counter()
        reason = TerminationReason.NOT_TERMINATED
        logger.info(
            "Starting %s on a %d-dimensional problem",
            solver.name,
            self.algebra.shape(self.x0)[0],
        )
        try:
            state = state.update(solver.init(self.objective, state), advance=False)
            if self.history:
                hist.append(self.algebra.copy(state.param))
            while True:
                reason = self._check_termination(state, start)
                if reason.terminated:
                    break
                state = state.update(solver.step(self.objective, state))
                if self.history:
                    hist.append(self.algebra.copy(state.param))
                logger.debug(
                    "iter %d: cost=%.6e |grad|=%.3e",
                    state.iter,
                    state.cost,
                    self.algebra.norm(state.grad),
                )
        except OptimizationError as exc:
            logger.error("%s failed at iteration %d: %s", solver.name, state.iter, exc)
            raise
        solver.mark_terminated(reason)
        grad_norm = self.algebra.norm(state.grad)
        logger.info(
            "%s stopped after %d iterations: %s (cost=%.6e, |grad|=%.3e)",
            solver.name,
            state.iter,
            reason.value,
            state.cost,
            grad_norm,
        )
        return OptimizeResult(
            x=state.param,
            fun=float(state.cost),
            nit=state.iter,
            success=reason.converged,
            message=reason.value.capitalize() + ".",
            grad_norm=grad_norm,
            nfev=self.objective.nfev,
            njev=self.objective.njev,
            nhev=0,
            history=hist,
            termination=reason,
        )

    def _check_termination(self, state: IterState, start: float) -> TerminationReason:
        reason = self.solver.terminate(state)
        if reason.terminated:
            return reason
        if state.iter >= self.maxiter:
            return TerminationReason.MAX_ITERS_REACHED
        if self.max_time is not None and time.perf_counter() - start >= self.max_time:
            return TerminationReason.TIMEOUT
        return TerminationReason.NOT_TERMINATED


__all__ = ["Executor"]

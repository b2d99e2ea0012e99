"""Symmetric Rank-1 (SR1) quasi-Newton method.

The solver keeps an approximation ``H`` of the inverse Hessian. Each
iteration moves along ``p = -H g`` with a line search and corrects ``H`` by
the rank-1 term

    H_{k+1} = H_k + (v v^T) / (v^T y),    v = s - H_k y

with ``s`` the parameter step and ``y`` the gradient change. The update is
skipped when ``|v^T y|`` is small relative to ``(s^T s)(v^T v)``.

References:
    - Nocedal & Wright, *Numerical Optimization* (2006), section 6.2
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..logging import get_logger
from .algebra import Algebra, get_algebra
from .core import (
    EPS,
    SQRT_EPS,
    IterResult,
    IterState,
    ObjectiveWrapper,
    OptimizeResult,
    Problem,
    SolverStatus,
    TerminationReason,
    as_objective,
)
from .executor import Executor
from .line_search import LineSearch, WolfeLineSearch
from .solver import Solver
from .utils import is_pos_def

logger = get_logger(__name__)


@dataclass(frozen=True)
class SR1Config:
    """
    Numerical tolerances of the SR1 solver.

    Args:
        denominator_tol: Relative size below which ``|v^T y|`` is considered
            too small to update the inverse Hessian.
        grad_tol: Gradient norm below which the target precision is reached.
        cost_tol: Cost change below which the run is considered stalled.
    """

    denominator_tol: float = 1e-8
    grad_tol: float = SQRT_EPS
    cost_tol: float = EPS

    def __post_init__(self) -> None:
        for name in ("denominator_tol", "grad_tol", "cost_tol"):
            if not getattr(self, name) > 0:
                raise ValueError(f"{name} must be positive.")


class SR1(Solver):
    """SR1 solver with a pluggable line search.

    Args:
        inv_hessian: Initial inverse-Hessian approximation (n x n). Copied on
            construction; the solver owns its copy.
        line_search: Template line search, copied and configured anew on
            every iteration.
        config: Tolerances; defaults to :class:`SR1Config`.

    Example:
        >>> import numpy as np
        >>> from qnopt.optimize import SR1, Executor, Problem, SecantLineSearch
        >>> problem = Problem(
        ...     fun=lambda x: (x[0] - 1) ** 2 + (x[1] - 2) ** 2,
        ...     grad=lambda x: np.array([2 * (x[0] - 1), 2 * (x[1] - 2)]),
        ... )
        >>> solver = SR1(np.eye(2), SecantLineSearch())
        >>> res = Executor(problem, solver, np.zeros(2)).run()
        >>> np.allclose(res.x, [1.0, 2.0])
        True
    """

    name = "SR1"

    def __init__(
        self,
        inv_hessian: Any,
        line_search: LineSearch,
        config: Optional[SR1Config] = None,
    ) -> None:
        super().__init__()
        self.algebra: Algebra = get_algebra(inv_hessian)
        shape = self.algebra.shape(inv_hessian)
        if len(shape) != 2 or shape[0] != shape[1]:
            raise ValueError(f"Inverse Hessian must be a square matrix, got shape {shape}.")
        if not isinstance(line_search, LineSearch):
            raise TypeError("line_search must be a LineSearch instance.")
        self._inv_hessian = self.algebra.copy(inv_hessian)
        self.line_search = line_search
        self.config = config if config is not None else SR1Config()
        self.n_updates = 0
        self.n_skipped = 0

    @property
    def inv_hessian(self) -> Any:
        """Current inverse-Hessian approximation."""
        return self._inv_hessian

    def init(self, objective: Problem | ObjectiveWrapper, state: IterState) -> IterResult:
        self._require_status(SolverStatus.NOT_STARTED)
        objective = as_objective(objective)
        cost = objective.cost(state.param)
        grad = objective.gradient(state.param)
        self.status = SolverStatus.ITERATING
        return IterResult(param=state.param, cost=cost, grad=grad)

    def step(self, objective: Problem | ObjectiveWrapper, state: IterState) -> IterResult:
        self._require_status(SolverStatus.ITERATING)
        objective = as_objective(objective)
        algebra = self.algebra
        xk = state.param
        gk = state.grad
        direction = algebra.scale(algebra.matvec(self._inv_hessian, gk), -1.0)

        line_search = copy.copy(self.line_search)
        line_search.configure(xk, gk, state.cost, direction)
        found = line_search.run(objective)

        xk1 = found.param
        gk1 = objective.gradient(xk1)
        yk = algebra.sub(gk1, gk)
        sk = algebra.sub(xk1, xk)
        self.update_inverse_hessian(sk, yk)

        return IterResult(param=xk1, cost=found.cost, grad=gk1)

    def update_inverse_hessian(self, sk: Any, yk: Any) -> bool:
        """Apply the SR1 correction for step ``sk`` and gradient change ``yk``.

        Returns:
            True if the correction was applied, False if the stability guard
            skipped it and left the inverse Hessian untouched.
        """
        algebra = self.algebra
        vk = algebra.sub(sk, algebra.matvec(self._inv_hessian, yk))
        denominator = algebra.dot(vk, yk)
        threshold = (
            self.config.denominator_tol * algebra.dot(sk, sk) * algebra.dot(vk, vk)
        )
        if denominator == 0.0 or abs(denominator) < threshold:
            self.n_skipped += 1
            logger.debug(
                "Skipping SR1 update: |v^T y| = %.3e below threshold %.3e",
                abs(denominator),
                threshold,
            )
            return False
        numerator = algebra.outer(vk, vk)
        self._inv_hessian = algebra.add(
            self._inv_hessian, algebra.scale(numerator, 1.0 / denominator)
        )
        self.n_updates += 1
        if logger.isEnabledFor(logging.DEBUG) and not is_pos_def(
            algebra.to_numpy(self._inv_hessian)
        ):
            logger.debug("Inverse Hessian approximation is no longer positive definite")
        return True

    def terminate(self, state: IterState) -> TerminationReason:
        if self.algebra.norm(state.grad) < self.config.grad_tol:
            return TerminationReason.TARGET_PRECISION_REACHED
        if abs(state.prev_cost - state.cost) < self.config.cost_tol:
            return TerminationReason.NO_CHANGE_IN_COST
        return TerminationReason.NOT_TERMINATED


def sr1(
    problem: Problem,
    x0: Any,
    inv_hessian: Any = None,
    line_search: Optional[LineSearch] = None,
    maxiter: int = 1000,
    max_time: Optional[float] = None,
    config: Optional[SR1Config] = None,
    history: bool = False,
) -> OptimizeResult:
    """Minimize ``problem`` with SR1 starting from ``x0``.

    Defaults to the identity as initial inverse Hessian and a strong Wolfe
    line search.
    """
    algebra = get_algebra(x0)
    x0 = algebra.copy(x0)
    if inv_hessian is None:
        size = algebra.shape(x0)[0]
        inv_hessian = algebra.eye(size, like=x0)
    solver = SR1(
        inv_hessian,
        line_search if line_search is not None else WolfeLineSearch(),
        config=config,
    )
    return Executor(
        problem, solver, x0, maxiter=maxiter, max_time=max_time, history=history
    ).run()


__all__ = ["SR1", "SR1Config", "sr1"]

"""Core interfaces shared by the quasi-Newton solver, line searches and driver."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, List, Optional

import numpy as np

from .algebra import Algebra, get_algebra
from .utils import approx_grad

Array = np.ndarray
Objective = Callable[[Any], float]
Gradient = Callable[[Any], Any]
Hessian = Callable[[Any], Any]

EPS = float(np.finfo(float).eps)
SQRT_EPS = float(np.sqrt(EPS))


class OptimizationError(RuntimeError):
    """Base class for failures that abort an optimization run."""


class EvaluationError(OptimizationError):
    """The objective could not be evaluated at a given point."""


class LineSearchError(OptimizationError):
    """The line search could not produce an acceptable step."""


class TerminationReason(Enum):
    """Why an iterative solver stopped (or that it has not)."""

    NOT_TERMINATED = "not terminated"
    TARGET_PRECISION_REACHED = "target precision reached"
    NO_CHANGE_IN_COST = "no change in cost"
    MAX_ITERS_REACHED = "maximum number of iterations reached"
    TIMEOUT = "time limit reached"

    @property
    def terminated(self) -> bool:
        return self is not TerminationReason.NOT_TERMINATED

    @property
    def converged(self) -> bool:
        return self in (
            TerminationReason.TARGET_PRECISION_REACHED,
            TerminationReason.NO_CHANGE_IN_COST,
        )


class SolverStatus(Enum):
    """Lifecycle of a solver instance driven by an external loop."""

    NOT_STARTED = "not_started"
    ITERATING = "iterating"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class Problem:
    """Container describing an optimization problem."""

    fun: Objective
    grad: Optional[Gradient] = None
    hess: Optional[Hessian] = None
    dim: Optional[int] = None


@dataclass
class OptimizeResult:
    """Standard result object returned by the optimizers in this module."""

    x: Any
    fun: float
    nit: int
    success: bool
    message: str
    grad_norm: float
    nfev: int
    njev: int
    nhev: int
    history: List[Any] = field(default_factory=list)
    termination: TerminationReason = TerminationReason.NOT_TERMINATED


@dataclass(frozen=True)
class IterResult:
    """Output of a single ``init`` or ``step`` call."""

    param: Any
    cost: float
    grad: Any = None


@dataclass(frozen=True)
class IterState:
    """Immutable snapshot of the iterate handed to a solver.

    ``prev_cost`` starts at ``+inf`` so that the cost-change test cannot fire
    before a first step has been taken.
    """

    param: Any
    cost: float = float("inf")
    grad: Any = None
    prev_param: Any = None
    prev_cost: float = float("inf")
    prev_grad: Any = None
    iter: int = 0

    def update(self, result: IterResult, advance: bool = True) -> "IterState":
        """Return the snapshot following ``result``.

        With ``advance=False`` (used after ``init``) the current values are
        replaced without shifting them into the ``prev_*`` slots.
        """
        if not advance:
            return replace(self, param=result.param, cost=result.cost, grad=result.grad)
        return IterState(
            param=result.param,
            cost=result.cost,
            grad=result.grad,
            prev_param=self.param,
            prev_cost=self.cost,
            prev_grad=self.grad,
            iter=self.iter + 1,
        )


class ObjectiveWrapper:
    """Evaluate a :class:`Problem` while counting and validating evaluations.

    Any exception raised by user code, and any non-finite cost or gradient,
    is reported as :class:`EvaluationError`. When the problem carries no
    analytic gradient a central-difference approximation is used and its
    function evaluations are added to ``nfev``.
    """

    def __init__(self, problem: Problem, algebra: Optional[Algebra] = None):
        self.problem = problem
        self._algebra = algebra
        self.nfev = 0
        self.njev = 0

    def _bind(self, x: Any) -> Algebra:
        if self._algebra is None:
            self._algebra = get_algebra(x)
        return self._algebra

    def cost(self, x: Any) -> float:
        self._bind(x)
        self.nfev += 1
        try:
            value = float(self.problem.fun(x))
        except EvaluationError:
            raise
        except Exception as exc:
            raise EvaluationError(f"Cost evaluation failed: {exc}") from exc
        if not np.isfinite(value):
            raise EvaluationError(f"Cost evaluation returned a non-finite value ({value}).")
        return value

    def gradient(self, x: Any) -> Any:
        algebra = self._bind(x)
        try:
            if self.problem.grad is not None:
                self.njev += 1
                grad = self.problem.grad(x)
            else:
                grad = self._approx_gradient(algebra, x)
        except EvaluationError:
            raise
        except Exception as exc:
            raise EvaluationError(f"Gradient evaluation failed: {exc}") from exc
        if isinstance(grad, (list, tuple)):
            grad = algebra.from_numpy(np.asarray(grad, dtype=float), like=x)
        if algebra.shape(grad) != algebra.shape(x):
            raise EvaluationError(
                f"Gradient shape {algebra.shape(grad)} does not match parameter shape "
                f"{algebra.shape(x)}."
            )
        if not algebra.all_finite(grad):
            raise EvaluationError("Gradient evaluation returned non-finite entries.")
        return grad

    def _approx_gradient(self, algebra: Algebra, x: Any) -> Any:
        def fun(z: np.ndarray) -> float:
            return float(self.problem.fun(algebra.from_numpy(z, like=x)))

        grad, evals = approx_grad(fun, algebra.to_numpy(x), return_evals=True)
        self.nfev += int(evals)
        return algebra.from_numpy(grad, like=x)


def as_objective(problem: Problem | ObjectiveWrapper) -> ObjectiveWrapper:
    """Wrap ``problem`` unless it already is an :class:`ObjectiveWrapper`."""
    if isinstance(problem, ObjectiveWrapper):
        return problem
    return ObjectiveWrapper(problem)


__all__ = [
    "Array",
    "EPS",
    "EvaluationError",
    "Gradient",
    "Hessian",
    "IterResult",
    "IterState",
    "LineSearchError",
    "Objective",
    "ObjectiveWrapper",
    "OptimizationError",
    "OptimizeResult",
    "Problem",
    "SQRT_EPS",
    "SolverStatus",
    "TerminationReason",
    "as_objective",
]

"""Line searches following Nocedal & Wright, chapter 3.

A line search is configured with a starting point, its gradient and cost and
a search direction, then run to completion against an objective. Solvers
keep one instance as a template and run a shallow copy of it on every outer
iteration, so a configured copy never leaks state into the next iteration.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .algebra import Algebra, get_algebra
from .core import LineSearchError, ObjectiveWrapper, Problem, as_objective


@dataclass(frozen=True)
class LineSearchResult:
    """Accepted point of a line search."""

    param: Any
    cost: float
    alpha: float
    nit: int


class LineSearch(ABC):
    """Base class for step-length strategies."""

    def __init__(self) -> None:
        self.init_param: Any = None
        self.init_grad: Any = None
        self.init_cost: Optional[float] = None
        self.direction: Any = None

    def configure(
        self,
        init_param: Any,
        init_grad: Any,
        init_cost: Optional[float],
        direction: Any,
    ) -> "LineSearch":
        """Set the starting conditions of the next run and return ``self``."""
        self.init_param = init_param
        self.init_grad = init_grad
        self.init_cost = init_cost
        self.direction = direction
        return self

    def run(self, objective: Problem | ObjectiveWrapper) -> LineSearchResult:
        """Search along the configured direction.

        Raises
        ------
        LineSearchError
            If the search was not configured, the direction is not a descent
            direction, or no acceptable step was found.
        """
        if self.init_param is None or self.direction is None:
            raise LineSearchError("Line search run before configure().")
        objective = as_objective(objective)
        algebra = get_algebra(self.init_param)
        init_grad = self.init_grad
        if init_grad is None:
            init_grad = objective.gradient(self.init_param)
        init_cost = self.init_cost
        if init_cost is None or not math.isfinite(init_cost):
            init_cost = objective.cost(self.init_param)
        slope = algebra.dot(init_grad, self.direction)
        if not slope < 0:
            raise LineSearchError(
                f"Search direction must be a descent direction (slope {slope:.3e})."
            )
        return self._search(objective, algebra, init_cost, slope)

    @abstractmethod
    def _search(
        self,
        objective: ObjectiveWrapper,
        algebra: Algebra,
        phi0: float,
        der0: float,
    ) -> LineSearchResult:
        """Find a step given ``phi(0)`` and ``phi'(0) < 0``."""

    def _point(self, algebra: Algebra, alpha: float) -> Any:
        return algebra.scaled_add(self.init_param, alpha, self.direction)


class BacktrackingLineSearch(LineSearch):
    """Classic Armijo backtracking line search."""

    def __init__(
        self,
        alpha0: float = 1.0,
        rho: float = 0.5,
        c: float = 1e-4,
        max_iter: int = 50,
    ) -> None:
        super().__init__()
        if not (0 < c < 1):
            raise ValueError("Armijo constant c must lie in (0, 1)")
        if not (0 < rho < 1):
            raise ValueError("rho must lie in (0, 1)")
        if alpha0 <= 0:
            raise ValueError("alpha0 must be positive")
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")
        self.alpha0 = float(alpha0)
        self.rho = float(rho)
        self.c = float(c)
        self.max_iter = int(max_iter)

    def _search(self, objective, algebra, phi0, der0):
        alpha = self.alpha0
        for iteration in range(1, self.max_iter + 1):
            candidate = self._point(algebra, alpha)
            f_new = objective.cost(candidate)
            if f_new <= phi0 + self.c * alpha * der0:
                return LineSearchResult(candidate, f_new, alpha, iteration)
            alpha *= self.rho
        raise LineSearchError(
            f"Armijo condition not satisfied within {self.max_iter} backtracking steps."
        )


class WolfeLineSearch(LineSearch):
    """Strong Wolfe line search using bracketing and zoom."""

    def __init__(
        self,
        alpha0: float = 1.0,
        c1: float = 1e-4,
        c2: float = 0.9,
        max_iter: int = 40,
        max_zoom: int = 32,
    ) -> None:
        super().__init__()
        if not (0 < c1 < c2 < 1):
            raise ValueError("Require 0 < c1 < c2 < 1 for Wolfe conditions.")
        if alpha0 <= 0:
            raise ValueError("alpha0 must be positive")
        if max_iter <= 0 or max_zoom <= 0:
            raise ValueError("Iteration limits must be positive")
        self.alpha0 = float(alpha0)
        self.c1 = float(c1)
        self.c2 = float(c2)
        self.max_iter = int(max_iter)
        self.max_zoom = int(max_zoom)

    def _search(self, objective, algebra, phi0, der0):
        nit = 0

        def phi(alpha: float) -> float:
            nonlocal nit
            nit += 1
            return objective.cost(self._point(algebra, alpha))

        def phi_prime(alpha: float) -> float:
            grad = objective.gradient(self._point(algebra, alpha))
            return algebra.dot(grad, self.direction)

        alpha_prev = 0.0
        phi_prev = phi0
        alpha = self.alpha0
        for iteration in range(self.max_iter):
            phi_alpha = phi(alpha)
            if phi_alpha > phi0 + self.c1 * alpha * der0 or (
                iteration > 0 and phi_alpha >= phi_prev
            ):
                alpha, phi_alpha = self._zoom(
                    phi, phi_prime, alpha_prev, alpha, phi_prev, phi0, der0
                )
                return LineSearchResult(self._point(algebra, alpha), phi_alpha, alpha, nit)
            der_alpha = phi_prime(alpha)
            if abs(der_alpha) <= -self.c2 * der0:
                return LineSearchResult(self._point(algebra, alpha), phi_alpha, alpha, nit)
            if der_alpha >= 0:
                alpha, phi_alpha = self._zoom(
                    phi, phi_prime, alpha, alpha_prev, phi_alpha, phi0, der0
                )
                return LineSearchResult(self._point(algebra, alpha), phi_alpha, alpha, nit)
            alpha_prev = alpha
            phi_prev = phi_alpha
            alpha *= 2.0
        if alpha_prev > 0:
            # Sufficient decrease held at alpha_prev; only curvature is missing.
            return LineSearchResult(self._point(algebra, alpha_prev), phi_prev, alpha_prev, nit)
        raise LineSearchError(f"No Wolfe step found within {self.max_iter} iterations.")

    def _zoom(
        self,
        phi: Callable[[float], float],
        phi_prime: Callable[[float], float],
        alo: float,
        ahi: float,
        phi_alo: float,
        phi0: float,
        der0: float,
    ) -> tuple[float, float]:
        """Zoom stage; ``alo`` always satisfies sufficient decrease."""
        for _ in range(self.max_zoom):
            alpha = 0.5 * (alo + ahi)
            phi_alpha = phi(alpha)
            if phi_alpha > phi0 + self.c1 * alpha * der0 or phi_alpha >= phi_alo:
                ahi = alpha
            else:
                der_alpha = phi_prime(alpha)
                if abs(der_alpha) <= -self.c2 * der0:
                    return alpha, phi_alpha
                if der_alpha * (ahi - alo) >= 0:
                    ahi = alo
                alo = alpha
                phi_alo = phi_alpha
            if abs(ahi - alo) < 1e-12:
                break
        if alo > 0:
            return alo, phi_alo
        raise LineSearchError("Zoom failed to find a point with sufficient decrease.")


class SecantLineSearch(LineSearch):
    """Secant iteration on the directional derivative ``phi'(alpha) = 0``.

    The derivative of a quadratic along a line is affine, so on quadratic
    objectives the first secant step is the exact minimizer.
    """

    def __init__(self, alpha0: float = 1.0, tol: float = 1e-10, max_iter: int = 20) -> None:
        super().__init__()
        if alpha0 <= 0:
            raise ValueError("alpha0 must be positive")
        if tol <= 0:
            raise ValueError("tol must be positive")
        if max_iter <= 0:
            raise ValueError("max_iter must be positive")
        self.alpha0 = float(alpha0)
        self.tol = float(tol)
        self.max_iter = int(max_iter)

    def _search(self, objective, algebra, phi0, der0):
        alpha_prev, der_prev = 0.0, der0
        alpha = self.alpha0
        nit = 0
        point = self._point(algebra, alpha)
        while nit < self.max_iter:
            nit += 1
            der = algebra.dot(objective.gradient(point), self.direction)
            if abs(der) <= self.tol * abs(der0) or der == der_prev:
                break
            alpha_next = alpha - der * (alpha - alpha_prev) / (der - der_prev)
            if not math.isfinite(alpha_next) or alpha_next <= 0:
                raise LineSearchError(
                    f"Secant step left the admissible range (alpha={alpha_next})."
                )
            alpha_prev, der_prev = alpha, der
            alpha = alpha_next
            point = self._point(algebra, alpha)
        cost = objective.cost(point)
        if cost > phi0:
            raise LineSearchError(
                f"Secant step increased the cost ({cost:.6e} > {phi0:.6e})."
            )
        return LineSearchResult(point, cost, alpha, nit)


__all__ = [
    "BacktrackingLineSearch",
    "LineSearch",
    "LineSearchResult",
    "SecantLineSearch",
    "WolfeLineSearch",
]

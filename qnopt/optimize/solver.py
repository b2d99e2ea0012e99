"""Iteration protocol shared by solvers driven by :class:`~qnopt.optimize.executor.Executor`."""

from __future__ import annotations

from abc import ABC, abstractmethod

from .core import IterResult, IterState, ObjectiveWrapper, SolverStatus, TerminationReason


class Solver(ABC):
    """A solver exposes ``init``, ``step`` and ``terminate`` to an external loop.

    The loop owns iteration counters and time limits. A solver only turns one
    immutable :class:`IterState` into the next :class:`IterResult` and decides
    whether its own convergence criteria hold.
    """

    name: str = "solver"

    def __init__(self) -> None:
        self.status = SolverStatus.NOT_STARTED
        self.termination = TerminationReason.NOT_TERMINATED

    @abstractmethod
    def init(self, objective: ObjectiveWrapper, state: IterState) -> IterResult:
        """Prepare the first iterate from ``state.param``."""

    @abstractmethod
    def step(self, objective: ObjectiveWrapper, state: IterState) -> IterResult:
        """Compute one iteration."""

    @abstractmethod
    def terminate(self, state: IterState) -> TerminationReason:
        """Check the solver's own stopping criteria."""

    def mark_terminated(self, reason: TerminationReason) -> None:
        """Record that the driving loop stopped for ``reason``."""
        self.status = SolverStatus.TERMINATED
        self.termination = reason

    def _require_status(self, *allowed: SolverStatus) -> None:
        if self.status not in allowed:
            raise RuntimeError(
                f"{self.name} cannot proceed from status {self.status.value!r}."
            )


__all__ = ["Solver"]

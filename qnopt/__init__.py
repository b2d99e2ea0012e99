"""qnopt - SR1 quasi-Newton minimization for NumPy arrays and torch tensors."""

__version__ = "0.1.0"

from .logging import configure_logging, get_logger, set_log_level
from .optimize import (
    SR1,
    BacktrackingLineSearch,
    EvaluationError,
    Executor,
    LineSearch,
    LineSearchError,
    OptimizationError,
    OptimizeResult,
    Problem,
    SecantLineSearch,
    SR1Config,
    TerminationReason,
    WolfeLineSearch,
    sr1,
)

__all__ = [
    "__version__",
    "BacktrackingLineSearch",
    "EvaluationError",
    "Executor",
    "LineSearch",
    "LineSearchError",
    "OptimizationError",
    "OptimizeResult",
    "Problem",
    "SR1",
    "SR1Config",
    "SecantLineSearch",
    "TerminationReason",
    "WolfeLineSearch",
    "configure_logging",
    "get_logger",
    "set_log_level",
    "sr1",
]

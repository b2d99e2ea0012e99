"""SR1 quasi-Newton minimization.

Example
-------
>>> import numpy as np
>>> from qnopt.optimize import Problem, sr1
>>> def bowl(x):
...     return (x[0] - 1) ** 2 + (x[1] - 2) ** 2
>>> def bowl_grad(x):
...     return np.array([2 * (x[0] - 1), 2 * (x[1] - 2)])
>>> res = sr1(Problem(fun=bowl, grad=bowl_grad, dim=2), np.zeros(2))
>>> res.termination.value
'target precision reached'
"""

from .algebra import Algebra, NumpyAlgebra, TorchAlgebra, get_algebra
from .core import (
    EPS,
    SQRT_EPS,
    EvaluationError,
    IterResult,
    IterState,
    LineSearchError,
    ObjectiveWrapper,
    OptimizationError,
    OptimizeResult,
    Problem,
    SolverStatus,
    TerminationReason,
    as_objective,
)
from .executor import Executor
from .line_search import (
    BacktrackingLineSearch,
    LineSearch,
    LineSearchResult,
    SecantLineSearch,
    WolfeLineSearch,
)
from .solver import Solver
from .sr1 import SR1, SR1Config, sr1
from .utils import approx_grad, is_pos_def

__all__ = [
    "Algebra",
    "BacktrackingLineSearch",
    "EPS",
    "EvaluationError",
    "Executor",
    "IterResult",
    "IterState",
    "LineSearch",
    "LineSearchError",
    "LineSearchResult",
    "NumpyAlgebra",
    "ObjectiveWrapper",
    "OptimizationError",
    "OptimizeResult",
    "Problem",
    "SQRT_EPS",
    "SR1",
    "SR1Config",
    "SecantLineSearch",
    "Solver",
    "SolverStatus",
    "TerminationReason",
    "TorchAlgebra",
    "WolfeLineSearch",
    "approx_grad",
    "as_objective",
    "get_algebra",
    "is_pos_def",
    "sr1",
]

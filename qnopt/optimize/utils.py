"""Finite-difference and matrix diagnostics helpers.

Pure NumPy so they can serve every algebra backend after conversion.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

Array = np.ndarray


def approx_grad(
    fun: Callable[[Array], float],
    x: Array,
    eps: float = 1e-6,
    return_evals: bool = False,
) -> Array | tuple[Array, int]:
    """Compute a central-difference gradient approximation.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated.
    eps:
        Perturbation size for finite differences.
    return_evals:
        Also return the number of function evaluations spent.
    """
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float).copy()
    grad = np.zeros_like(x, dtype=float)
    evals = 0
    for i in range(x.size):
        ei = np.zeros_like(x)
        ei[i] = eps
        grad[i] = (fun(x + ei) - fun(x - ei)) / (2.0 * eps)
        evals += 2
    if return_evals:
        return grad, evals
    return grad


def is_pos_def(mat: Array, tol: float = 1e-12) -> bool:
    """Check whether the symmetric part of ``mat`` is positive definite."""
    mat = np.asarray(mat, dtype=float)
    sym = 0.5 * (mat + mat.T)
    eigvals = np.linalg.eigvalsh(sym)
    return bool(np.all(eigvals > tol))


__all__ = ["approx_grad", "is_pos_def"]

"""Vector and matrix operations used by the quasi-Newton machinery.

Solvers and line searches never call NumPy or PyTorch directly. They go
through an :class:`Algebra`, which lets the same SR1 code run on NumPy
arrays and on torch tensors (including tensors living on an accelerator).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

import numpy as np
import torch


class Algebra(ABC):
    """Operations required on parameter vectors and inverse-Hessian matrices."""

    name: str = "abstract"

    @abstractmethod
    def sub(self, a: Any, b: Any) -> Any:
        """Return ``a - b``."""

    @abstractmethod
    def add(self, a: Any, b: Any) -> Any:
        """Return ``a + b``."""

    @abstractmethod
    def scale(self, a: Any, alpha: float) -> Any:
        """Return ``alpha * a``."""

    @abstractmethod
    def scaled_add(self, a: Any, alpha: float, b: Any) -> Any:
        """Return ``a + alpha * b``."""

    @abstractmethod
    def dot(self, a: Any, b: Any) -> float:
        """Inner product of two vectors."""

    @abstractmethod
    def outer(self, a: Any, b: Any) -> Any:
        """Outer product ``a b^T``."""

    @abstractmethod
    def matvec(self, m: Any, v: Any) -> Any:
        """Matrix-vector product."""

    @abstractmethod
    def matmul(self, a: Any, b: Any) -> Any:
        """Matrix-matrix product."""

    @abstractmethod
    def transpose(self, m: Any) -> Any:
        """Matrix transpose."""

    @abstractmethod
    def eye(self, n: int, like: Any = None) -> Any:
        """Identity matrix of size ``n`` matching the dtype of ``like``."""

    @abstractmethod
    def norm(self, a: Any) -> float:
        """Euclidean norm of a vector."""

    @abstractmethod
    def all_finite(self, a: Any) -> bool:
        """True if every entry is finite."""

    @abstractmethod
    def copy(self, a: Any) -> Any:
        """Independent copy of ``a``."""

    @abstractmethod
    def to_numpy(self, a: Any) -> np.ndarray:
        """Convert ``a`` into a float NumPy array."""

    @abstractmethod
    def from_numpy(self, array: np.ndarray, like: Any) -> Any:
        """Convert a NumPy array into the representation used by ``like``."""

    def shape(self, a: Any) -> tuple[int, ...]:
        return tuple(a.shape)


class NumpyAlgebra(Algebra):
    """Dense ``numpy.ndarray`` backend."""

    name = "numpy"

    def sub(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a - b

    def add(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a + b

    def scale(self, a: np.ndarray, alpha: float) -> np.ndarray:
        return alpha * a

    def scaled_add(self, a: np.ndarray, alpha: float, b: np.ndarray) -> np.ndarray:
        return a + alpha * b

    def dot(self, a: np.ndarray, b: np.ndarray) -> float:
        return float(np.dot(a, b))

    def outer(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.outer(a, b)

    def matvec(self, m: np.ndarray, v: np.ndarray) -> np.ndarray:
        return m @ v

    def matmul(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return a @ b

    def transpose(self, m: np.ndarray) -> np.ndarray:
        return m.T

    def eye(self, n: int, like: Any = None) -> np.ndarray:
        dtype = like.dtype if isinstance(like, np.ndarray) else float
        return np.eye(n, dtype=dtype)

    def norm(self, a: np.ndarray) -> float:
        return float(np.linalg.norm(a))

    def all_finite(self, a: Any) -> bool:
        return bool(np.all(np.isfinite(a)))

    def copy(self, a: np.ndarray) -> np.ndarray:
        return np.array(a, dtype=float, copy=True)

    def to_numpy(self, a: Any) -> np.ndarray:
        return np.asarray(a, dtype=float)

    def from_numpy(self, array: np.ndarray, like: Any) -> np.ndarray:
        return np.asarray(array, dtype=float)


class TorchAlgebra(Algebra):
    """``torch.Tensor`` backend; results keep the dtype and device of the inputs."""

    name = "torch"

    def sub(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return a - b

    def add(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return a + b

    def scale(self, a: torch.Tensor, alpha: float) -> torch.Tensor:
        return a * alpha

    def scaled_add(self, a: torch.Tensor, alpha: float, b: torch.Tensor) -> torch.Tensor:
        return torch.add(a, b, alpha=alpha)

    def dot(self, a: torch.Tensor, b: torch.Tensor) -> float:
        return float(torch.dot(a, b).item())

    def outer(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return torch.outer(a, b)

    def matvec(self, m: torch.Tensor, v: torch.Tensor) -> torch.Tensor:
        return torch.mv(m, v)

    def matmul(self, a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
        return a @ b

    def transpose(self, m: torch.Tensor) -> torch.Tensor:
        return m.T

    def eye(self, n: int, like: Any = None) -> torch.Tensor:
        if isinstance(like, torch.Tensor):
            return torch.eye(n, dtype=like.dtype, device=like.device)
        return torch.eye(n, dtype=torch.float64)

    def norm(self, a: torch.Tensor) -> float:
        return float(torch.linalg.vector_norm(a).item())

    def all_finite(self, a: Any) -> bool:
        if not isinstance(a, torch.Tensor):
            a = torch.as_tensor(a)
        return bool(torch.isfinite(a).all().item())

    def copy(self, a: torch.Tensor) -> torch.Tensor:
        return a.detach().clone()

    def to_numpy(self, a: Any) -> np.ndarray:
        if isinstance(a, torch.Tensor):
            return a.detach().cpu().numpy().astype(float)
        return np.asarray(a, dtype=float)

    def from_numpy(self, array: np.ndarray, like: Any) -> torch.Tensor:
        if isinstance(like, torch.Tensor):
            return torch.as_tensor(array, dtype=like.dtype, device=like.device)
        return torch.as_tensor(array, dtype=torch.float64)


NUMPY = NumpyAlgebra()
TORCH = TorchAlgebra()


def get_algebra(x: Any) -> Algebra:
    """Select the backend matching the type of ``x``."""
    if isinstance(x, torch.Tensor):
        if not torch.is_floating_point(x):
            raise TypeError("Tensor parameters must have a floating point dtype.")
        return TORCH
    return NUMPY


__all__ = [
    "Algebra",
    "NUMPY",
    "NumpyAlgebra",
    "TORCH",
    "TorchAlgebra",
    "get_algebra",
]

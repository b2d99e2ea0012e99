"""Pytest configuration and shared fixtures for qnopt tests.

This module provides:
- A deterministic numpy RNG fixture and global numpy/torch seeding
- Quadratic test problems with closed-form minimizers
"""

import os

import numpy as np
import pytest
import torch

from qnopt.optimize import Problem


def _seed() -> int:
    return int(os.environ.get("TEST_RNG_SEED", "0"))


@pytest.fixture(scope="function")
def rng() -> np.random.Generator:
    """Provide a deterministic numpy RNG for tests.

    Uses seed from TEST_RNG_SEED environment variable (default: 0).
    """
    return np.random.default_rng(_seed())


@pytest.fixture(scope="function", autouse=True)
def set_random_seeds() -> None:
    """Seed global numpy and torch state for every test."""
    np.random.seed(_seed())
    torch.manual_seed(_seed())


@pytest.fixture
def bowl() -> Problem:
    """f(x, y) = (x - 1)^2 + (y - 2)^2, minimized at (1, 2)."""

    def fun(x):
        return (x[0] - 1) ** 2 + (x[1] - 2) ** 2

    def grad(x):
        return np.array([2 * (x[0] - 1), 2 * (x[1] - 2)])

    return Problem(fun=fun, grad=grad, dim=2)


@pytest.fixture
def coupled_quadratic() -> tuple[Problem, np.ndarray, np.ndarray]:
    """f(x) = 0.5 x^T A x - b^T x with a non-diagonal SPD matrix A."""
    A = np.array([[3.0, 1.0], [1.0, 2.0]])
    b = np.array([1.0, 1.0])

    def fun(x: np.ndarray) -> float:
        return float(0.5 * x @ (A @ x) - b @ x)

    def grad(x: np.ndarray) -> np.ndarray:
        return A @ x - b

    return Problem(fun=fun, grad=grad, dim=2), A, b

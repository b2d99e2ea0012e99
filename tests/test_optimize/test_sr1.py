import math

import numpy as np
import pytest
import torch

from qnopt.optimize import (
    SQRT_EPS,
    SR1,
    BacktrackingLineSearch,
    EvaluationError,
    Executor,
    IterState,
    LineSearchError,
    ObjectiveWrapper,
    Problem,
    SecantLineSearch,
    SolverStatus,
    SR1Config,
    TerminationReason,
    WolfeLineSearch,
    sr1,
)


def half_square_norm() -> Problem:
    return Problem(fun=lambda x: float(0.5 * x @ x), grad=lambda x: x.copy(), dim=2)


def started(solver: SR1, problem: Problem, x0: np.ndarray) -> tuple[ObjectiveWrapper, IterState]:
    objective = ObjectiveWrapper(problem)
    state = IterState(param=x0)
    state = state.update(solver.init(objective, state), advance=False)
    return objective, state


def test_init_matches_closed_form(coupled_quadratic):
    problem, A, b = coupled_quadratic
    solver = SR1(np.eye(2), SecantLineSearch())
    x = np.array([1.0, -1.0])
    result = solver.init(problem, IterState(param=x))
    assert result.cost == pytest.approx(0.5 * x @ A @ x - b @ x)
    assert result.cost == pytest.approx(1.5)
    assert np.allclose(result.grad, [1.0, -2.0])
    assert np.array_equal(solver.inv_hessian, np.eye(2))
    assert solver.status is SolverStatus.ITERATING


def test_init_wraps_domain_errors():
    problem = Problem(fun=lambda x: math.log(x[0]), grad=lambda x: np.array([1.0 / x[0]]))
    solver = SR1(np.eye(1), BacktrackingLineSearch())
    with pytest.raises(EvaluationError):
        solver.init(problem, IterState(param=np.array([-1.0])))


def test_step_matches_hand_computed_update(coupled_quadratic):
    problem, _, _ = coupled_quadratic
    solver = SR1(np.eye(2), SecantLineSearch())
    objective, state = started(solver, problem, np.zeros(2))

    result = solver.step(objective, state)

    assert np.allclose(result.param, [2 / 7, 2 / 7])
    assert np.allclose(result.grad, [1 / 7, -1 / 7])
    assert result.cost == pytest.approx(problem.fun(np.array([2 / 7, 2 / 7])))
    expected = np.array([[0.5, -1 / 3], [-1 / 3, 7 / 9]])
    assert np.allclose(solver.inv_hessian, expected)
    assert np.allclose(solver.inv_hessian, solver.inv_hessian.T)


def test_update_formula_small_example():
    solver = SR1(np.eye(2), SecantLineSearch())
    s = np.array([1.0, 2.0])
    y = np.array([3.0, 1.0])
    v = s - y
    expected = np.eye(2) + np.outer(v, v) / (v @ y)

    assert solver.update_inverse_hessian(s, y)
    assert np.allclose(solver.inv_hessian, expected)
    assert solver.n_updates == 1


def test_update_skipped_when_correction_vanishes():
    solver = SR1(np.eye(2), SecantLineSearch())
    s = np.array([0.3, -0.7])
    before = solver.inv_hessian.copy()

    assert not solver.update_inverse_hessian(s, s.copy())
    assert np.array_equal(solver.inv_hessian, before)
    assert solver.n_skipped == 1


def test_update_skipped_for_small_denominator():
    solver = SR1(np.eye(2), SecantLineSearch())
    s = np.array([1.0, 1.0])
    y = np.array([1.0, 1e-10])

    assert not solver.update_inverse_hessian(s, y)
    assert np.array_equal(solver.inv_hessian, np.eye(2))


def test_denominator_tolerance_is_configurable():
    solver = SR1(np.eye(2), SecantLineSearch(), config=SR1Config(denominator_tol=1e-12))
    s = np.array([1.0, 1.0])
    y = np.array([1.0, 1e-10])

    assert solver.update_inverse_hessian(s, y)
    assert not np.array_equal(solver.inv_hessian, np.eye(2))


def test_step_with_identical_steps_keeps_hessian():
    solver = SR1(np.eye(2), BacktrackingLineSearch())
    objective, state = started(solver, half_square_norm(), np.array([1.5, -0.5]))

    result = solver.step(objective, state)

    assert np.array_equal(result.param, np.zeros(2))
    assert np.array_equal(solver.inv_hessian, np.eye(2))
    assert solver.n_skipped == 1


def test_step_does_not_mutate_state(coupled_quadratic):
    problem, _, _ = coupled_quadratic
    solver = SR1(np.eye(2), WolfeLineSearch())
    objective, state = started(solver, problem, np.array([0.5, -1.0]))
    param, grad = state.param.copy(), state.grad.copy()

    solver.step(objective, state)

    assert np.array_equal(state.param, param)
    assert np.array_equal(state.grad, grad)
    assert solver.line_search.init_param is None


def test_nonfinite_gradient_aborts_without_update():
    def grad(x: np.ndarray) -> np.ndarray:
        if np.linalg.norm(x) < 0.5:
            return np.full_like(x, np.nan)
        return 2 * x

    problem = Problem(fun=lambda x: float(x @ x), grad=grad)
    h0 = 0.5 * np.eye(2)
    solver = SR1(h0, BacktrackingLineSearch())
    objective, state = started(solver, problem, np.array([1.0, 1.0]))

    with pytest.raises(EvaluationError):
        solver.step(objective, state)
    assert np.array_equal(solver.inv_hessian, h0)
    assert solver.n_updates == 0 and solver.n_skipped == 0


def test_line_search_failure_propagates(coupled_quadratic):
    problem, _, _ = coupled_quadratic
    solver = SR1(-np.eye(2), WolfeLineSearch())
    objective, state = started(solver, problem, np.zeros(2))

    with pytest.raises(LineSearchError):
        solver.step(objective, state)
    assert np.array_equal(solver.inv_hessian, -np.eye(2))


@pytest.mark.parametrize(
    "grad, cost, prev_cost, expected",
    [
        ([1e-9, 0.0], 1.0, 1.0, TerminationReason.TARGET_PRECISION_REACHED),
        ([1e-9, 0.0], 1.0, 5.0, TerminationReason.TARGET_PRECISION_REACHED),
        ([1.0, 0.0], 2.0, 2.0, TerminationReason.NO_CHANGE_IN_COST),
        ([1.0, 0.0], 1.0, 2.0, TerminationReason.NOT_TERMINATED),
        ([1.0, 0.0], 1.0, float("inf"), TerminationReason.NOT_TERMINATED),
    ],
)
def test_terminate(grad, cost, prev_cost, expected):
    solver = SR1(np.eye(2), SecantLineSearch())
    state = IterState(param=np.zeros(2), cost=cost, grad=np.array(grad), prev_cost=prev_cost)
    assert solver.terminate(state) is expected
    assert solver.status is SolverStatus.NOT_STARTED
    assert np.array_equal(solver.inv_hessian, np.eye(2))


@pytest.mark.parametrize(
    "line_search", [SecantLineSearch(), WolfeLineSearch(), BacktrackingLineSearch()]
)
def test_bowl_converges_from_origin(bowl, line_search):
    solver = SR1(np.eye(2), line_search)
    res = Executor(bowl, solver, np.zeros(2)).run()
    assert res.success
    assert res.termination is TerminationReason.TARGET_PRECISION_REACHED
    assert np.allclose(res.x, [1.0, 2.0])
    assert res.grad_norm < SQRT_EPS
    assert res.nit <= 3
    assert solver.status is SolverStatus.TERMINATED


def test_coupled_quadratic_recovers_inverse_hessian(coupled_quadratic):
    problem, A, b = coupled_quadratic
    solver = SR1(np.eye(2), SecantLineSearch())
    res = Executor(problem, solver, np.zeros(2)).run()
    assert res.success
    assert res.nit == 2
    assert np.allclose(res.x, np.linalg.solve(A, b))
    assert np.allclose(solver.inv_hessian, np.linalg.inv(A), atol=1e-8)


def test_exact_inverse_hessian_takes_newton_step(rng):
    M = rng.normal(size=(5, 5))
    A = M @ M.T + 5 * np.eye(5)
    b = rng.normal(size=5)
    problem = Problem(
        fun=lambda x: float(0.5 * x @ (A @ x) - b @ x),
        grad=lambda x: A @ x - b,
        dim=5,
    )
    res = sr1(
        problem,
        rng.normal(size=5),
        inv_hessian=np.linalg.inv(A),
        line_search=BacktrackingLineSearch(),
    )
    assert res.success
    assert res.nit == 1
    assert np.allclose(res.x, np.linalg.solve(A, b))


def test_sr1_on_torch_tensors():
    target = torch.tensor([1.0, 2.0], dtype=torch.float64)
    problem = Problem(
        fun=lambda x: torch.sum((x - target) ** 2),
        grad=lambda x: 2 * (x - target),
        dim=2,
    )
    res = sr1(problem, torch.zeros(2, dtype=torch.float64), line_search=SecantLineSearch())
    assert res.success
    assert isinstance(res.x, torch.Tensor)
    assert torch.allclose(res.x, target)


def test_sr1_without_gradient_uses_finite_differences(bowl):
    problem = Problem(fun=bowl.fun, dim=2)
    res = sr1(problem, np.zeros(2), line_search=BacktrackingLineSearch(), maxiter=1)
    assert np.allclose(res.x, [1.0, 2.0], atol=1e-5)
    assert res.njev == 0
    assert res.nfev > 0


def test_invalid_construction():
    with pytest.raises(ValueError):
        SR1(np.eye(3)[:2], SecantLineSearch())
    with pytest.raises(TypeError):
        SR1(np.eye(2), lambda *args: None)
    with pytest.raises(ValueError):
        SR1Config(grad_tol=0.0)


def test_protocol_order_is_enforced(bowl):
    solver = SR1(np.eye(2), SecantLineSearch())
    state = IterState(param=np.zeros(2), cost=5.0, grad=np.array([-2.0, -4.0]))
    with pytest.raises(RuntimeError):
        solver.step(bowl, state)
    solver.init(bowl, IterState(param=np.zeros(2)))
    with pytest.raises(RuntimeError):
        solver.init(bowl, IterState(param=np.zeros(2)))


def test_solver_owns_its_hessian():
    h0 = np.eye(2)
    solver = SR1(h0, SecantLineSearch())
    solver.update_inverse_hessian(np.array([1.0, 2.0]), np.array([3.0, 1.0]))
    assert np.array_equal(h0, np.eye(2))

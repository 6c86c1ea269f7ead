import numpy as np
import pytest

from hqp_sot.constraint import Constraint
from hqp_sot.solver_setting import SolverSetting
from hqp_sot.solvers.hqp_solver import HQPSolver
from hqp_sot.solvers.qp_problem import SolverStatus
from hqp_sot.stack import Stack
from hqp_sot.task import Task
from hqp_sot.tasks.aggregated import Aggregated
from hqp_sot.tasks.velocity import Postural
from hqp_sot.constraints.velocity import VelocityLimits
from hqp_sot.mat_logger import MatLogger


class Fixed(Task):
    def __init__(self, task_id, A, b):
        A = np.atleast_2d(np.asarray(A, dtype=float))
        super().__init__(task_id, A.shape[1])
        self._set_task(A, b)

    def set_b(self, b):
        self._set_task(self._A, b)

    def set_task(self, A, b):
        self._set_task(A, b)


def test_stack_rejects_duplicates_and_size_mismatch():
    t = Fixed("t", np.eye(2), np.zeros(2))
    stack = Stack([t])
    with pytest.raises(ValueError):
        stack.add_task(t)
    with pytest.raises(ValueError):
        stack.add_task(Fixed("big", np.eye(3), np.zeros(3)))
    assert len(stack) == 1 and stack[0] is t


def test_stack_from_priorities():
    a = Fixed("a", [[1.0, 0.0]], [1.0])
    b = Fixed("b", [[0.0, 1.0]], [1.0])
    c = Fixed("c", np.eye(2), np.zeros(2))
    stack = Stack.from_priorities([(1, c), (0, a), (0, b)])
    assert len(stack) == 2
    assert isinstance(stack[0], Aggregated)
    assert stack[0].get_task_id() == "aplusb"
    assert stack[1] is c


def test_single_level_matches_least_squares():
    A = np.array([[1.0, 2.0, 0.0], [0.0, 1.0, 1.0]])
    b = np.array([1.0, -1.0])
    solver = HQPSolver(Stack([Fixed("t", A, b)]))
    result = solver.solve()
    assert result.success
    np.testing.assert_allclose(A.dot(result.solution), b, atol=1e-6)
    # minimum norm among the exact solutions
    np.testing.assert_allclose(result.solution, np.linalg.pinv(A).dot(b), atol=1e-6)


def test_higher_level_is_preserved():
    # level 0: x0 + x1 = 1 and x2 = 0.5, level 1 asks for x = 0
    high = Fixed("high", [[1.0, 1.0, 0.0], [0.0, 0.0, 1.0]], [1.0, 0.5])
    low = Fixed("low", np.eye(3), np.zeros(3))
    setting = SolverSetting()
    solver = HQPSolver(Stack([high, low]), setting=setting)
    result = solver.solve()
    assert result.success
    x = result.solution
    residual = high.get_A().dot(x) - high.get_b()
    assert np.all(np.abs(residual) <= 2.0 * setting.priority_tolerance)
    np.testing.assert_allclose(x, [0.5, 0.5, 0.5], atol=1e-5)


def test_dependent_higher_rows():
    high = Fixed("high", [[1.0, 1.0], [2.0, 2.0]], [1.0, 2.0])
    low = Fixed("low", [[1.0, -1.0]], [0.4])
    result = HQPSolver(Stack([high, low])).solve()
    assert result.success
    np.testing.assert_allclose(result.solution, [0.7, 0.3], atol=1e-5)


def test_constraints_apply_to_lower_levels():
    high = Fixed("high", [[1.0, 0.0]], [0.0])
    low = Fixed("low", [[0.0, 1.0]], [5.0])
    limit = Constraint("limit", 2)
    limit.set_bounds([-1.0, -1.0], [1.0, 1.0])
    high.add_constraint(limit)
    result = HQPSolver(Stack([high, low])).solve()
    assert result.success
    np.testing.assert_allclose(result.solution, [0.0, 1.0], atol=1e-6)


def test_solver_wide_bounds():
    task = Fixed("t", np.eye(2), [3.0, -3.0])
    bounds = VelocityLimits(1.0, 0.5, 2)
    result = HQPSolver(Stack([task]), bounds=bounds).solve()
    assert result.success
    np.testing.assert_allclose(result.solution, [0.5, -0.5], atol=1e-8)


def test_first_failing_level_aborts():
    high = Fixed("high", [[1.0, 0.0]], [0.0])
    low = Fixed("low", [[0.0, 1.0]], [0.0])
    impossible = Constraint("impossible", 2)
    impossible.set_inequality(np.array([[0.0, 1.0], [0.0, 1.0]]), [1.0, -np.inf], [np.inf, 0.0])
    low.add_constraint(impossible)
    solver = HQPSolver(Stack([high, low]))
    result = solver.solve()
    assert not result.success
    assert result.failed_level == 1
    assert result.status in (SolverStatus.INFEASIBLE, SolverStatus.SOLVE_FAILURE)


def test_repeated_solves_reuse_problems():
    task = Fixed("t", np.eye(2), [0.2, 0.1])
    solver = HQPSolver(Stack([task]), bounds=VelocityLimits(1.0, 0.5, 2))
    assert solver.solve().success
    problem = solver.get_problem(0)
    for target in ([0.3, 0.0], [2.0, 0.0], [-0.1, 0.4]):
        task.set_b(target)
        result = solver.solve()
        assert result.success
        np.testing.assert_allclose(result.solution, np.clip(target, -0.5, 0.5), atol=1e-8)
    assert solver.get_problem(0) is problem


def test_postural_converges_monotonically():
    q = np.zeros(5)
    q_ref = np.array([0.4, -0.2, 1.0, -1.5, 0.3])
    postural = Postural(q)
    postural.set_reference(q_ref)
    assert postural.set_lambda(0.1)
    stack = Stack([postural])
    solver = HQPSolver(stack)
    errors = [np.linalg.norm(q_ref - q)]
    for _ in range(150):
        stack.update(q)
        result = solver.solve()
        assert result.success
        q = q + result.solution
        errors.append(np.linalg.norm(q_ref - q))
    assert errors[-1] < 1e-4
    assert all(e1 >= e2 for e1, e2 in zip(errors, errors[1:]))


def test_log(tmp_path):
    mat_logger = MatLogger(str(tmp_path / "hqp.mat"))
    solver = HQPSolver(Stack([Fixed("t", np.eye(2), [0.0, 1.0])]))
    solver.solve()
    solver.log(mat_logger)
    assert {"H_0", "solution_0", "t_A"} <= set(mat_logger.names())


@pytest.mark.parametrize("seed", range(1, 7))
def test_redundant_level_without_constraints(seed):
    rng = np.random.default_rng(seed)
    A = rng.standard_normal((3, 7))
    b = rng.standard_normal(3)
    result = HQPSolver(Stack([Fixed("pos", A, b)])).solve()
    assert result.success
    np.testing.assert_allclose(A.dot(result.solution), b, atol=1e-6)


@pytest.mark.parametrize("with_bounds", [False, True])
def test_three_redundant_levels_over_ticks(rng, with_bounds):
    n = 6
    tasks = [Fixed("t%d" % m, rng.standard_normal((m, n)), np.zeros(m)) for m in (2, 3, 6)]
    bounds = VelocityLimits(0.3, 1.0, n) if with_bounds else None
    setting = SolverSetting()
    solver = HQPSolver(Stack(tasks), bounds=bounds, setting=setting)
    for _ in range(30):
        for task in tasks:
            m = task.get_A().shape[0]
            task.set_task(task.get_A() + 0.01 * rng.standard_normal((m, n)),
                          rng.standard_normal(m))
        result = solver.solve()
        assert result.success
        x = result.solution
        if with_bounds:
            assert np.all(np.abs(x) <= 0.3 + 1e-8)
        # each level keeps what the levels above it achieved
        for level in range(2):
            A = tasks[level].get_A()
            target = A.dot(solver.get_problem(level).get_solution())
            delta = setting.priority_tolerance * np.maximum(1.0, np.abs(target))
            assert np.all(np.abs(A.dot(x) - target) <= 2.0 * delta + 1e-9)


def test_top_task_steady_state_error_is_bounded():
    # the lower task pulls against the top one on every tick
    setting = SolverSetting()
    lam = 0.5
    q = np.zeros(2)
    high = Fixed("high", [[1.0, 0.0]], [0.0])
    low = Fixed("low", [[1.0, 0.0]], [0.0])
    assert high.set_lambda(lam)
    solver = HQPSolver(Stack([high, low]), setting=setting)
    for _ in range(100):
        high.set_b([1.0 - q[0]])
        low.set_b([-5.0 - q[0]])
        result = solver.solve()
        assert result.success
        q = q + result.solution
    error = 1.0 - q[0]
    assert abs(error) <= 1.1 * setting.priority_tolerance / lam

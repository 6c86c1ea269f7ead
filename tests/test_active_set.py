import numpy as np
import pytest

from hqp_sot.solvers.active_set import ActiveSetQP, ActiveStatus, ReturnValue
from hqp_sot.task import HessianType

INF = 1e8


def box_problem():
    """min 1/2 |x - (2, -2)|^2  s.t.  -1 <= x <= 1, x0 + x1 <= 0.5"""
    H = np.eye(2)
    g = -np.array([2.0, -2.0])
    A = np.array([[1.0, 1.0]])
    return H, g, A, np.array([-INF]), np.array([0.5]), -np.ones(2), np.ones(2)


def test_cold_init_solution_and_status():
    qp = ActiveSetQP(2, 1)
    assert qp.init(*box_problem(), 100) == ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), [1.0, -1.0], atol=1e-8)
    assert list(qp.get_bounds_status()) == [ActiveStatus.UPPER, ActiveStatus.LOWER]
    assert list(qp.get_constraints_status()) == [ActiveStatus.INACTIVE]


def test_dual_sign_convention():
    H, g, A, lA, uA, l, u = box_problem()
    qp = ActiveSetQP(2, 1)
    qp.init(H, g, A, lA, uA, l, u, 100)
    x, y = qp.get_primal_solution(), qp.get_dual_solution()
    # H x + g = C' y with C = [I; A]
    C = np.vstack([np.eye(2), A])
    np.testing.assert_allclose(H.dot(x) + g, C.T.dot(y), atol=1e-8)
    assert y[0] < 0.0    # upper bound active
    assert y[1] > 0.0    # lower bound active


def test_hotstart_tracks_changing_gradient():
    H, g, A, lA, uA, l, u = box_problem()
    qp = ActiveSetQP(2, 1)
    qp.init(H, g, A, lA, uA, l, u, 100)
    g_new = -np.array([0.2, 0.1])
    assert qp.hotstart(H, g_new, A, lA, uA, l, u, 100) == ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), [0.2, 0.1], atol=1e-8)
    assert not qp.get_bounds_status().any()


def test_hotstart_activates_general_constraint():
    H, g, A, lA, uA, l, u = box_problem()
    qp = ActiveSetQP(2, 1)
    qp.init(H, g, A, lA, uA, l, u, 100)
    g_new = -np.array([0.5, 0.5])
    assert qp.hotstart(H, g_new, A, lA, uA, l, u, 100) == ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), [0.25, 0.25], atol=1e-8)
    assert qp.get_constraints_status()[0] == ActiveStatus.UPPER


def test_hotstart_requires_init():
    qp = ActiveSetQP(2, 1)
    assert qp.hotstart(*box_problem(), 100) == \
        ReturnValue.RET_HOTSTART_FAILED_AS_QP_NOT_INITIALISED


def test_equality_rows():
    H = np.eye(3)
    g = np.zeros(3)
    A = np.array([[1.0, 1.0, 1.0], [1.0, 1.0, 1.0]])
    lA = uA = np.array([3.0, 3.0])
    qp = ActiveSetQP(3, 2)
    ret = qp.init(H, g, A, lA, uA, -INF * np.ones(3), INF * np.ones(3), 100)
    assert ret == ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), [1.0, 1.0, 1.0], atol=1e-8)


def test_infeasible_bounds():
    qp = ActiveSetQP(1, 0)
    ret = qp.init(np.eye(1), np.zeros(1), np.zeros((0, 1)), [], [], [1.0], [-1.0], 100)
    assert ret == ReturnValue.RET_INIT_FAILED_INFEASIBILITY


def test_infeasible_constraints():
    qp = ActiveSetQP(2, 2)
    A = np.array([[1.0, 0.0], [1.0, 0.0]])
    ret = qp.init(np.eye(2), np.zeros(2), A, [1.0, -INF], [INF, 0.0],
                  -INF * np.ones(2), INF * np.ones(2), 100)
    assert ret != ReturnValue.SUCCESSFUL_RETURN


def test_invalid_sizes():
    qp = ActiveSetQP(2, 1)
    ret = qp.init(np.eye(3), np.zeros(3), np.zeros((1, 3)), [0.0], [0.0],
                  np.zeros(3), np.zeros(3), 100)
    assert ret == ReturnValue.RET_INVALID_ARGUMENTS


def test_working_set_budget():
    n = 6
    H = np.eye(n)
    g = -10.0 * np.ones(n)
    l, u = -np.ones(n), np.ones(n)
    qp = ActiveSetQP(n, 0)
    qp.init(H, np.zeros(n), np.zeros((0, n)), [], [], l, u, 100)
    # every bound has to become active, which needs n changes
    assert qp.hotstart(H, g, np.zeros((0, n)), [], [], l, u, 2) == \
        ReturnValue.RET_MAX_NWSR_REACHED
    assert qp.hotstart(H, g, np.zeros((0, n)), [], [], l, u, 100) == \
        ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), np.ones(n))


def test_init_warm_from_guess():
    H, g, A, lA, uA, l, u = box_problem()
    qp = ActiveSetQP(2, 1)
    ret = qp.init_warm(H, g, A, lA, uA, l, u, 100,
                       x_guess=np.zeros(2),
                       bounds_guess=[ActiveStatus.UPPER, ActiveStatus.LOWER],
                       constraints_guess=[ActiveStatus.INACTIVE])
    assert ret == ReturnValue.SUCCESSFUL_RETURN
    assert qp.n_changes == 0
    np.testing.assert_allclose(qp.get_primal_solution(), [1.0, -1.0], atol=1e-8)


def test_init_warm_from_wrong_guess():
    H, g, A, lA, uA, l, u = box_problem()
    qp = ActiveSetQP(2, 1)
    # active sides that can not hold together with the constraint row
    ret = qp.init_warm(H, g, A, lA, uA, l, u, 100, x_guess=np.zeros(2),
                       y_guess=np.array([1.0, 0.0, -1.0]))
    assert ret == ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), [1.0, -1.0], atol=1e-8)


@pytest.mark.parametrize("hessian_type", list(HessianType))
def test_hessian_types(hessian_type):
    H, g, A, lA, uA, l, u = box_problem()
    qp = ActiveSetQP(2, 1, hessian_type)
    assert qp.init(H, g, A, lA, uA, l, u, 100) == ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), [1.0, -1.0], atol=1e-6)


def test_not_positive_definite_hessian():
    qp = ActiveSetQP(2, 0, HessianType.POSDEF)
    ret = qp.init(np.diag([1.0, -1.0]), np.zeros(2), np.zeros((0, 2)), [], [],
                  -np.ones(2), np.ones(2), 100)
    assert ret == ReturnValue.RET_HESSIAN_NOT_SPD


def test_random_problems_match_quadprog(rng):
    from qpsolvers import solve_qp

    for _ in range(10):
        n, m = 5, 3
        M = rng.standard_normal((n, n))
        H = M.dot(M.T) + np.eye(n)
        g = rng.standard_normal(n)
        A = rng.standard_normal((m, n))
        lA, uA = -rng.uniform(0.1, 1.0, m), rng.uniform(0.1, 1.0, m)
        l, u = -np.ones(n), np.ones(n)
        expected = solve_qp(H, g, np.vstack([A, -A]), np.hstack([uA, -lA]),
                            lb=l, ub=u, solver="quadprog")

        qp = ActiveSetQP(n, m, HessianType.POSDEF)
        qp.init(np.eye(n), np.zeros(n), A, lA, uA, l, u, 100)
        assert qp.hotstart(H, g, A, lA, uA, l, u, 100) == ReturnValue.SUCCESSFUL_RETURN
        np.testing.assert_allclose(qp.get_primal_solution(), expected, atol=1e-6)


def rank_deficient_problem(rng, m=3, n=7):
    """Least squares on an m x n task with the cascade regularisation."""
    A = rng.standard_normal((m, n))
    b = rng.standard_normal(m)
    return A, b, A.T.dot(A) + 1e-8 * np.eye(n), -A.T.dot(b)


@pytest.mark.parametrize("seed", range(1, 7))
def test_rank_deficient_hessian_unconstrained(seed):
    A, b, H, g = rank_deficient_problem(np.random.default_rng(seed))
    n = H.shape[0]
    qp = ActiveSetQP(n, 0)
    ret = qp.init(H, g, np.zeros((0, n)), [], [], -INF * np.ones(n), INF * np.ones(n), 100)
    assert ret == ReturnValue.SUCCESSFUL_RETURN
    x = qp.get_primal_solution()
    np.testing.assert_allclose(A.dot(x), b, atol=1e-6)
    np.testing.assert_allclose(x, np.linalg.pinv(A).dot(b), atol=1e-5)


@pytest.mark.parametrize("seed", range(1, 7))
def test_rank_deficient_hessian_with_box(seed):
    from qpsolvers import solve_qp

    rng = np.random.default_rng(seed)
    n = 7
    l, u = -0.3 * np.ones(n), 0.3 * np.ones(n)
    qp = ActiveSetQP(n, 0)
    for tick in range(5):
        A, b, H, g = rank_deficient_problem(rng, n=n)
        b = 3.0 * b
        g = -A.T.dot(b)
        expected = solve_qp(H, g, lb=l, ub=u, solver="quadprog")
        if tick == 0:
            ret = qp.init(H, g, np.zeros((0, n)), [], [], l, u, 100)
        else:
            ret = qp.hotstart(H, g, np.zeros((0, n)), [], [], l, u, 100)
        assert ret == ReturnValue.SUCCESSFUL_RETURN
        x = qp.get_primal_solution()
        assert np.all(np.abs(x) <= 0.3 + 1e-8)
        cost = 0.5 * x.dot(H).dot(x) + g.dot(x)
        assert cost <= 0.5 * expected.dot(H).dot(expected) + g.dot(expected) + 1e-8


def test_full_working_set_is_stationary():
    # every bound ends up active on an almost singular Hessian
    n = 4
    a = np.ones((1, n))
    H = a.T.dot(a) + 1e-8 * np.eye(n)
    g = -np.array([10.0, 20.0, 30.0, 40.0])
    l, u = -np.ones(n), np.ones(n)
    qp = ActiveSetQP(n, 0)
    assert qp.init(H, np.zeros(n), np.zeros((0, n)), [], [], l, u, 100) == \
        ReturnValue.SUCCESSFUL_RETURN
    assert qp.hotstart(H, g, np.zeros((0, n)), [], [], l, u, 100) == \
        ReturnValue.SUCCESSFUL_RETURN
    np.testing.assert_allclose(qp.get_primal_solution(), np.ones(n), atol=1e-8)
    assert list(qp.get_bounds_status()) == [ActiveStatus.UPPER] * n
    # a second call with the same data needs no working set change
    assert qp.hotstart(H, g, np.zeros((0, n)), [], [], l, u, 100) == \
        ReturnValue.SUCCESSFUL_RETURN
    assert qp.n_changes == 0

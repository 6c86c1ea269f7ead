"""
@file active_set.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import enum
import logging

import numpy as np
from scipy.linalg import cho_factor, cho_solve
from qpsolvers import Problem, solve_problem
from qpsolvers.exceptions import QPError

from hqp_sot.constraint import INFTY
from hqp_sot.task import HessianType

logger = logging.getLogger(__name__)

# Reference regularisation, scaled by the eps_regularisation option.
REFERENCE_EPS = 1.0e3 * np.finfo(float).eps


class ReturnValue(enum.IntEnum):
    SUCCESSFUL_RETURN = 0
    RET_MAX_NWSR_REACHED = 1
    RET_INVALID_ARGUMENTS = 2
    RET_HESSIAN_NOT_SPD = 3
    RET_INIT_FAILED = 4
    RET_INIT_FAILED_INFEASIBILITY = 5
    RET_HOTSTART_FAILED_AS_QP_NOT_INITIALISED = 6
    RET_HOTSTART_STOPPED_INFEASIBILITY = 7


class ActiveStatus(enum.IntEnum):
    LOWER = -1
    INACTIVE = 0
    UPPER = 1


INFEASIBLE_RETURNS = (ReturnValue.RET_INIT_FAILED_INFEASIBILITY,
                      ReturnValue.RET_HOTSTART_STOPPED_INFEASIBILITY)


class ActiveSetQP:
    """Dense primal active-set solver for

        min 1/2 x'Hx + g'x   s.t.   l <= x <= u,  lA <= A x <= uA

    Bounds and constraints are handled as one set of rows C = [I; A] with
    limits lo = [l; lA] and hi = [u; uA]. A row is in the working set on its
    lower or upper side, rows with lo == hi are always in it.

    The dual solution follows the usual active-set sign convention:

        H x + g = C' y,   y_k > 0 on an active lower side, y_k < 0 on an
                          active upper side.

    Every call is bounded by n_wsr working set changes.
    """
    def __init__(self, n_vars, n_constraints, hessian_type=HessianType.UNKNOWN):
        self.n_vars = int(n_vars)
        self.n_constraints = int(n_constraints)
        self.hessian_type = HessianType(hessian_type)

        self.eps_regularisation = 2.0e2
        self.infty = INFTY
        self.feasibility_tolerance = 1.0e-8
        self.step_tolerance = 1.0e-12
        self.stationarity_tolerance = 1.0e-9
        self.dual_tolerance = 1.0e-9
        self.rank_tolerance = 1.0e-9

        self._H = None
        self._factor = None
        self.reset()

    def reset(self):
        """Drops the working set, the last solution and the factorization."""
        self._factor = None
        self._H = None
        self._working = {}
        self._x = None
        self._y = None
        self._ready = False
        self.n_changes = 0

    def set_hessian_type(self, hessian_type):
        self.hessian_type = HessianType(hessian_type)
        self._factor = None
        self._H = None

    def get_primal_solution(self):
        return self._x.copy()

    def get_dual_solution(self):
        return self._y.copy()

    def get_bounds_status(self):
        status = np.zeros(self.n_vars, dtype=int)
        for k, side in self._working.items():
            if k < self.n_vars:
                status[k] = side
        return status

    def get_constraints_status(self):
        status = np.zeros(self.n_constraints, dtype=int)
        for k, side in self._working.items():
            if k >= self.n_vars:
                status[k - self.n_vars] = side
        return status

    def get_objective_value(self):
        return float(0.5 * self._x.dot(self._H).dot(self._x) + self._g.dot(self._x))

    def is_initialised(self):
        return self._ready

    def init(self, H, g, A, lA, uA, l, u, n_wsr):
        """Cold start. quadprog finds the optimum, the primal iterations then
        recover the working set and the multipliers at that point.

        Returns:
            ReturnValue of the attempt.
        """
        self.reset()
        ret = self._load(H, g, A, lA, uA, l, u)
        if ret != ReturnValue.SUCCESSFUL_RETURN:
            return ret
        working = self._equality_working_set()
        x, ret = self._solve_cold(working, n_wsr)
        if ret != ReturnValue.SUCCESSFUL_RETURN:
            return ret
        if not self._is_feasible(x):
            return ReturnValue.RET_INIT_FAILED_INFEASIBILITY
        for k in range(self._C.shape[0]):
            if k in working:
                continue
            side = self._active_side(x, k)
            if side != ActiveStatus.INACTIVE:
                self._add_independent(working, k, side)
        return self._iterate(x, working, n_wsr)

    def hotstart(self, H, g, A, lA, uA, l, u, n_wsr):
        """Solves the new data starting from the internal working set."""
        if not self._ready:
            return ReturnValue.RET_HOTSTART_FAILED_AS_QP_NOT_INITIALISED
        ret = self._load(H, g, A, lA, uA, l, u)
        if ret != ReturnValue.SUCCESSFUL_RETURN:
            return ret
        return self._start(dict(self._working), self._x, n_wsr,
                           ReturnValue.RET_HOTSTART_STOPPED_INFEASIBILITY)

    def init_warm(self, H, g, A, lA, uA, l, u, n_wsr, x_guess=None, y_guess=None,
                  bounds_guess=None, constraints_guess=None):
        """Discards the internal state and starts from a guessed solution.

        Args:
            x_guess (ndarray): Primal guess, used when it is feasible.
            y_guess (ndarray): Dual guess, its signs give the active sides
                when no status guess is given.
            bounds_guess (ndarray): ActiveStatus of each bound.
            constraints_guess (ndarray): ActiveStatus of each constraint.
        """
        self.reset()
        ret = self._load(H, g, A, lA, uA, l, u)
        if ret != ReturnValue.SUCCESSFUL_RETURN:
            return ret
        n_rows = self.n_vars + self.n_constraints
        status = None
        if bounds_guess is not None and constraints_guess is not None:
            status = np.concatenate([np.ravel(bounds_guess), np.ravel(constraints_guess)])
        elif y_guess is not None:
            y_guess = np.ravel(y_guess)
            status = np.where(y_guess > 0.0, ActiveStatus.LOWER,
                              np.where(y_guess < 0.0, ActiveStatus.UPPER,
                                       ActiveStatus.INACTIVE))
        guess = {}
        if status is not None and status.size == n_rows:
            for k, side in enumerate(status):
                if side != ActiveStatus.INACTIVE:
                    guess[k] = ActiveStatus(int(side))
        if x_guess is not None:
            x_guess = np.ravel(x_guess)
            if x_guess.size != self.n_vars:
                x_guess = None
        return self._start(guess, x_guess, n_wsr,
                           ReturnValue.RET_INIT_FAILED_INFEASIBILITY)

    def _load(self, H, g, A, lA, uA, l, u):
        n, r = self.n_vars, self.n_constraints
        H = np.atleast_2d(np.asarray(H, dtype=float))
        A = np.asarray(A, dtype=float)
        A = np.zeros((0, n)) if A.size == 0 else np.atleast_2d(A)
        g, lA, uA, l, u = (np.ravel(np.asarray(v, dtype=float)) for v in (g, lA, uA, l, u))
        if H.shape != (n, n) or A.shape != (r, n) or g.size != n:
            return ReturnValue.RET_INVALID_ARGUMENTS
        if lA.size != r or uA.size != r or l.size != n or u.size != n:
            return ReturnValue.RET_INVALID_ARGUMENTS

        self._g = g
        self._C = np.vstack([np.eye(n), A])
        self._lo = np.concatenate([l, lA])
        self._hi = np.concatenate([u, uA])
        self._is_equality = self._hi - self._lo <= self.step_tolerance
        self._lower_finite = self._lo > -self.infty
        self._upper_finite = self._hi < self.infty
        if np.any(self._lo > self._hi + self.feasibility_tolerance):
            return ReturnValue.RET_INIT_FAILED_INFEASIBILITY
        return self._factorize(H)

    def _factorize(self, H):
        n = self.n_vars
        if self.hessian_type == HessianType.IDENTITY:
            H = np.eye(n)
        else:
            H = 0.5 * (H + H.T)
            if self.hessian_type != HessianType.POSDEF:
                H = H + self.eps_regularisation * REFERENCE_EPS * np.eye(n)
        if self._factor is not None and np.array_equal(H, self._H):
            return ReturnValue.SUCCESSFUL_RETURN
        try:
            self._factor = cho_factor(H)
        except np.linalg.LinAlgError:
            self._factor = None
            self._H = None
            return ReturnValue.RET_HESSIAN_NOT_SPD
        self._H = H
        return ReturnValue.SUCCESSFUL_RETURN

    def _solve_cold(self, working, n_wsr):
        eq_rows = list(working)
        ineq = ~self._is_equality
        upper = ineq & self._upper_finite
        lower = ineq & self._lower_finite
        G = np.vstack([self._C[upper], -self._C[lower]])
        h = np.concatenate([self._hi[upper], -self._lo[lower]])
        problem = Problem(
            self._H, self._g,
            G if G.shape[0] else None, h if h.size else None,
            self._C[eq_rows] if eq_rows else None,
            self._lo[eq_rows] if eq_rows else None)
        try:
            solution = solve_problem(problem, solver="quadprog")
        except (QPError, ValueError) as e:
            logger.debug("quadprog failed: %s", e)
            return None, ReturnValue.RET_INIT_FAILED
        if not solution.found or solution.x is None:
            return None, ReturnValue.RET_INIT_FAILED_INFEASIBILITY
        iterations = solution.extras.get("iterations")
        if iterations is not None and int(np.ravel(iterations)[0]) > n_wsr:
            return None, ReturnValue.RET_MAX_NWSR_REACHED
        return np.asarray(solution.x, dtype=float), ReturnValue.SUCCESSFUL_RETURN

    def _start(self, guess, x_prev, n_wsr, infeasible_return):
        """Solves the equality problem on the guessed working set and iterates
        from it. Falls back to x_prev when that point is infeasible.
        """
        working = self._equality_working_set()
        for k, side in guess.items():
            if k in working or self._is_equality[k]:
                continue
            if side == ActiveStatus.LOWER and not self._lower_finite[k]:
                continue
            if side == ActiveStatus.UPPER and not self._upper_finite[k]:
                continue
            self._add_independent(working, k, side)

        rows, N, e = self._normals(working)
        x, _ = self._solve_eqp(N, self._g, e)
        if not self._is_feasible(x):
            if x_prev is None or not self._is_feasible(x_prev):
                return infeasible_return
            x = x_prev
            working = {k: side for k, side in working.items()
                       if self._is_equality[k] or self._active_side(x, k) == side}
        return self._iterate(x, working, n_wsr)

    def _iterate(self, x, working, n_wsr):
        self.n_changes = 0
        while self.n_changes <= n_wsr:
            rows, N, _ = self._normals(working)
            gradient = self._H.dot(x) + self._g
            p, mu = self._solve_eqp(N, gradient, np.zeros(len(rows)))
            if np.linalg.norm(p) > self.stationarity_tolerance * max(1.0, np.linalg.norm(x)):
                alpha, block = self._ratio_test(x, p, working)
                x = x + alpha * p
                if block is not None:
                    working[block[0]] = block[1]
                    self.n_changes += 1
                    continue
                # Full step: mu already holds the multipliers at the new x.
                gradient = self._H.dot(x) + self._g

            drop, drop_mu = None, -self.dual_tolerance * max(1.0, np.linalg.norm(gradient))
            for k, m in zip(rows, mu):
                if not self._is_equality[k] and m < drop_mu:
                    drop, drop_mu = k, m
            if drop is None:
                self._store(x, working, rows, mu)
                return ReturnValue.SUCCESSFUL_RETURN
            del working[drop]
            self.n_changes += 1
        return ReturnValue.RET_MAX_NWSR_REACHED

    def _ratio_test(self, x, p, working):
        Cx = self._C.dot(x)
        Cp = self._C.dot(p)
        tol = self.rank_tolerance * np.linalg.norm(p) * np.linalg.norm(self._C, axis=1)
        alpha, block = 1.0, None
        for k in range(self._C.shape[0]):
            if k in working:
                continue
            if Cp[k] < -tol[k] and self._lower_finite[k]:
                step, side = (self._lo[k] - Cx[k]) / Cp[k], ActiveStatus.LOWER
            elif Cp[k] > tol[k] and self._upper_finite[k]:
                step, side = (self._hi[k] - Cx[k]) / Cp[k], ActiveStatus.UPPER
            else:
                continue
            step = max(step, 0.0)
            if step < alpha:
                alpha, block = step, (k, side)
        return alpha, block

    def _solve_eqp(self, N, d, e):
        """Solves min 1/2 p'Hp + d'p s.t. N p = e.

        Returns:
            p, and the multipliers mu with H p + d = N' mu.
        """
        if N.shape[0] == 0:
            return -cho_solve(self._factor, d), np.zeros(0)
        if N.shape[0] >= self.n_vars:
            # N is square and regular, p does not depend on H.
            p = np.linalg.lstsq(N, e, rcond=None)[0]
            mu = np.linalg.lstsq(N.T, self._H.dot(p) + d, rcond=None)[0]
            return p, mu
        Hinv_d = cho_solve(self._factor, d)
        Hinv_Nt = cho_solve(self._factor, N.T)
        M = N.dot(Hinv_Nt)
        mu = np.linalg.lstsq(M, e + N.dot(Hinv_d), rcond=None)[0]
        p = Hinv_Nt.dot(mu) - Hinv_d
        # Restores N p = e, the range space solve drifts off it on a badly
        # conditioned H.
        p -= np.linalg.lstsq(N, N.dot(p) - e, rcond=None)[0]
        return p, mu

    def _normals(self, working):
        rows = list(working)
        signs = np.array([1.0 if working[k] == ActiveStatus.LOWER else -1.0
                          for k in rows])
        if not rows:
            return rows, np.zeros((0, self.n_vars)), np.zeros(0)
        N = self._C[rows] * signs[:, None]
        e = np.where(signs > 0.0, self._lo[rows], -self._hi[rows])
        return rows, N, e

    def _equality_working_set(self):
        working = {}
        for k in np.flatnonzero(self._is_equality):
            self._add_independent(working, int(k), ActiveStatus.LOWER)
        return working

    def _add_independent(self, working, k, side):
        if len(working) >= self.n_vars:
            return False
        a = self._C[k]
        _, N, _ = self._normals(working)
        residual = a
        if N.shape[0] > 0:
            coef = np.linalg.lstsq(N.T, a, rcond=None)[0]
            residual = a - N.T.dot(coef)
        if np.linalg.norm(residual) <= self.rank_tolerance * max(1.0, np.linalg.norm(a)):
            return False
        working[k] = side
        return True

    def _active_side(self, x, k):
        value = self._C[k].dot(x)
        if self._lower_finite[k] and abs(value - self._lo[k]) <= \
                self.feasibility_tolerance * max(1.0, abs(self._lo[k])):
            return ActiveStatus.LOWER
        if self._upper_finite[k] and abs(value - self._hi[k]) <= \
                self.feasibility_tolerance * max(1.0, abs(self._hi[k])):
            return ActiveStatus.UPPER
        return ActiveStatus.INACTIVE

    def _is_feasible(self, x):
        Cx = self._C.dot(x)
        tol = self.feasibility_tolerance * np.maximum(1.0, np.abs(Cx))
        return bool(np.all(Cx >= self._lo - tol) and np.all(Cx <= self._hi + tol))

    def _store(self, x, working, rows, mu):
        y = np.zeros(self._C.shape[0])
        for k, m in zip(rows, mu):
            y[k] = m if working[k] == ActiveStatus.LOWER else -m
        self._x = x
        self._y = y
        self._working = dict(working)
        self._ready = True

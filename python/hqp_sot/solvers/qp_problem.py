"""
@file qp_problem.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import enum
import logging

import numpy as np

from hqp_sot.constraint import INFTY
from hqp_sot.task import HessianType
from hqp_sot.solvers.active_set import (ActiveSetQP, ReturnValue,
                                        INFEASIBLE_RETURNS)

logger = logging.getLogger(__name__)

DEFAULT_N_WSR = 132
DEFAULT_EPS_REGULARISATION = 2.0e2


class SolverStatus(enum.Enum):
    SUCCESS = "success"
    SHAPE_MISMATCH = "shape_mismatch"
    VALIDATION_FAILURE = "validation_failure"
    SOLVE_FAILURE = "solve_failure"
    INFEASIBLE = "infeasible"


class ProblemState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STALE = "stale"


def _vector(v):
    return np.ravel(np.asarray(v, dtype=float))


def _matrix(M, cols):
    M = np.asarray(M, dtype=float)
    if M.size == 0:
        return np.zeros((0, cols))
    return np.atleast_2d(M)


class QPProblem:
    """One QP of the cascade:

        min 1/2 x'Hx + g'x   s.t.   l <= x <= u,  lA <= A x <= uA

    The problem keeps its working set between solve() calls. Empty l and u
    mean the variables are unbounded.
    """
    def __init__(self, n_vars, n_constraints, hessian_type=HessianType.UNKNOWN,
                 eps_regularisation=DEFAULT_EPS_REGULARISATION):
        self._n_vars = int(n_vars)
        self._n_constraints = int(n_constraints)
        self._hessian_type = HessianType(hessian_type)
        self._solver = ActiveSetQP(self._n_vars, self._n_constraints, self._hessian_type)

        self._options = {}
        self.set_default_options()
        self._options["eps_regularisation"] = float(eps_regularisation)
        self._apply_options()

        n, r = self._n_vars, self._n_constraints
        self._H = np.zeros((n, n))
        self._g = np.zeros(n)
        self._A = np.zeros((r, n))
        self._lA = np.zeros(r)
        self._uA = np.zeros(r)
        self._l = np.zeros(0)
        self._u = np.zeros(0)

        self._solution = np.zeros(n)
        self._dual_solution = np.zeros(n + r)
        self._active_bounds = np.zeros(n, dtype=int)
        self._active_constraints = np.zeros(r, dtype=int)

        self._state = ProblemState.UNINITIALIZED
        self.last_return_value = None

    def get_n_vars(self):
        return self._n_vars

    def get_n_constraints(self):
        return self._n_constraints

    def get_state(self):
        return self._state

    def get_solution(self):
        return self._solution

    def get_dual_solution(self):
        return self._dual_solution

    def get_active_bounds(self):
        return self._active_bounds

    def get_active_constraints(self):
        return self._active_constraints

    def get_H(self):
        return self._H

    def get_g(self):
        return self._g

    def get_A(self):
        return self._A

    def get_lA(self):
        return self._lA

    def get_uA(self):
        return self._uA

    def get_l(self):
        return self._l

    def get_u(self):
        return self._u

    def get_hessian_type(self):
        return self._hessian_type

    def set_hessian_type(self, hessian_type):
        """Changing the hint drops the cached factorization."""
        hessian_type = HessianType(hessian_type)
        if hessian_type != self._hessian_type:
            self._hessian_type = hessian_type
            self._solver.set_hessian_type(hessian_type)

    def get_options(self):
        return dict(self._options)

    def set_options(self, options):
        for key in options:
            if key not in self._options:
                raise ValueError("unknown option %s" % key)
        self._options.update(options)
        self._apply_options()

    def set_default_options(self):
        self._options = {
            "n_wsr": DEFAULT_N_WSR,
            "eps_regularisation": DEFAULT_EPS_REGULARISATION,
            "infty": INFTY,
            "feasibility_tolerance": 1.0e-8,
            "step_tolerance": 1.0e-12,
            "stationarity_tolerance": 1.0e-9,
            "dual_tolerance": 1.0e-9,
        }
        self._apply_options()

    def _apply_options(self):
        self._solver.eps_regularisation = float(self._options["eps_regularisation"])
        self._solver.infty = float(self._options["infty"])
        self._solver.feasibility_tolerance = float(self._options["feasibility_tolerance"])
        self._solver.step_tolerance = float(self._options["step_tolerance"])
        self._solver.stationarity_tolerance = float(
            self._options["stationarity_tolerance"])
        self._solver.dual_tolerance = float(self._options["dual_tolerance"])
        # The factorization depends on the regularisation.
        self._solver.set_hessian_type(self._hessian_type)

    def init_problem(self, H, g, A, lA, uA, l, u):
        """Stores the problem and solves it from scratch. On failure the
        previous solution, dual solution and active sets are kept.

        Returns:
            SolverStatus of the attempt.
        """
        n = self._n_vars
        H = _matrix(H, n)
        g, lA, uA, l, u = (_vector(v) for v in (g, lA, uA, l, u))
        A = _matrix(A, n)
        if not self._validate(H, g, A, lA, uA, l, u):
            return SolverStatus.VALIDATION_FAILURE

        self._H, self._g = H, g
        self._A, self._lA, self._uA = A, lA, uA
        self._l, self._u = l, u
        self.check_infty()

        ret = self._cold_init()
        if ret != ReturnValue.SUCCESSFUL_RETURN:
            logger.error("init_problem failed with %s", ret.name)
            if self._state == ProblemState.READY:
                self._state = ProblemState.STALE
            return self._failure(ret)
        self._collect()
        return SolverStatus.SUCCESS

    def update_task(self, H, g):
        H = np.atleast_2d(np.asarray(H, dtype=float))
        g = _vector(g)
        if H.shape[0] != H.shape[1] or g.size != H.shape[0]:
            logger.error("update_task: H %s and g %d are inconsistent", H.shape, g.size)
            return SolverStatus.SHAPE_MISMATCH
        if H.shape[0] == self._n_vars:
            self._H, self._g = H, g
            self._mark_stale()
            return SolverStatus.SUCCESS

        if not self._check_shape(H.shape[0], self._n_constraints):
            logger.error("update_task: can not resize from %d to %d variables",
                         self._n_vars, H.shape[0])
            return SolverStatus.SHAPE_MISMATCH
        self._rebuild(H.shape[0], self._n_constraints)
        return self.init_problem(H, g, self._A, self._lA, self._uA, self._l, self._u)

    def update_constraints(self, A, lA, uA):
        A = _matrix(A, self._n_vars)
        lA, uA = _vector(lA), _vector(uA)
        if A.shape[1] != self._n_vars or lA.size != A.shape[0] or uA.size != A.shape[0]:
            logger.error("update_constraints: A %s, lA %d, uA %d are inconsistent",
                         A.shape, lA.size, uA.size)
            return SolverStatus.SHAPE_MISMATCH
        if A.shape[0] == self._n_constraints:
            self._A, self._lA, self._uA = A, lA, uA
            self._mark_stale()
            return SolverStatus.SUCCESS

        self._rebuild(self._n_vars, A.shape[0])
        return self.init_problem(self._H, self._g, A, lA, uA, self._l, self._u)

    def update_bounds(self, l, u):
        l, u = _vector(l), _vector(u)
        if l.size != self._l.size or u.size != self._u.size:
            logger.error("update_bounds: sizes %d, %d differ from %d, %d",
                         l.size, u.size, self._l.size, self._u.size)
            return SolverStatus.SHAPE_MISMATCH
        self._l, self._u = l, u
        self._mark_stale()
        return SolverStatus.SUCCESS

    def update_problem(self, H, g, A, lA, uA, l, u):
        """Updates bounds, constraints and task, in this order. Stops at the
        first failure.
        """
        status = self.update_bounds(l, u)
        if status != SolverStatus.SUCCESS:
            return status
        status = self.update_constraints(A, lA, uA)
        if status != SolverStatus.SUCCESS:
            return status
        return self.update_task(H, g)

    def solve(self):
        """Solves the stored problem. Tries a hotstart, then an initialization
        seeded with the last solution, then a cold initialization.
        """
        if self._state == ProblemState.UNINITIALIZED:
            logger.error("solve called before init_problem")
            return SolverStatus.SOLVE_FAILURE
        self.check_infty()

        ret = ReturnValue.RET_INIT_FAILED
        for strategy in (self._hotstart, self._reseeded_init, self._cold_init):
            ret = strategy()
            if ret == ReturnValue.SUCCESSFUL_RETURN:
                self._collect()
                return SolverStatus.SUCCESS
            logger.warning("%s failed with %s", strategy.__name__.lstrip("_"), ret.name)
        self._state = ProblemState.STALE
        return self._failure(ret)

    def check_infty(self):
        """Clamps every bound and constraint limit into [-infty, infty]."""
        infty = self._options["infty"]
        self._l = np.clip(self._l, -infty, infty)
        self._u = np.clip(self._u, -infty, infty)
        self._lA = np.clip(self._lA, -infty, infty)
        self._uA = np.clip(self._uA, -infty, infty)

    def get_objective_value(self):
        x = self._solution
        return float(0.5 * x.dot(self._H).dot(x) + self._g.dot(x))

    def log(self, mat_logger, i=0):
        suffix = "_" + str(i)
        mat_logger.add("H" + suffix, self._H)
        mat_logger.add("g" + suffix, self._g)
        mat_logger.add("A" + suffix, self._A)
        mat_logger.add("lA" + suffix, self._lA)
        mat_logger.add("uA" + suffix, self._uA)
        mat_logger.add("l" + suffix, self._l)
        mat_logger.add("u" + suffix, self._u)
        mat_logger.add("solution" + suffix, self._solution)

    def print_problem_information(self, problem_number=-1, solver_id="",
                                  constraints_id="", bounds_id=""):
        logger.info("")
        if problem_number >= 0:
            logger.info("Problem %d", problem_number)
        logger.info("Stack: %s", solver_id)
        logger.info("Constraints: %s", constraints_id)
        logger.info("Bounds: %s", bounds_id)
        logger.info("# variables: %d, # constraints: %d, # bounds: %d",
                    self._n_vars, self._n_constraints, self._l.size)
        logger.info("Hessian type: %s", self._hessian_type.name)
        logger.info("Options: %s", self._options)

    def _hotstart(self):
        return self._solver.hotstart(*self._problem_data(), self._options["n_wsr"])

    def _reseeded_init(self):
        return self._solver.init_warm(
            *self._problem_data(), self._options["n_wsr"],
            x_guess=self._solution, y_guess=self._dual_solution,
            bounds_guess=self._active_bounds,
            constraints_guess=self._active_constraints)

    def _cold_init(self):
        return self._solver.init(*self._problem_data(), self._options["n_wsr"])

    def _problem_data(self):
        infty = self._options["infty"]
        n = self._n_vars
        l = self._l if self._l.size else np.full(n, -infty)
        u = self._u if self._u.size else np.full(n, infty)
        return self._H, self._g, self._A, self._lA, self._uA, l, u

    def _collect(self):
        self._solution = self._solver.get_primal_solution()
        self._dual_solution = self._solver.get_dual_solution()
        self._active_bounds = self._solver.get_bounds_status()
        self._active_constraints = self._solver.get_constraints_status()
        self._state = ProblemState.READY

    def _failure(self, ret):
        self.last_return_value = ret
        if ret in INFEASIBLE_RETURNS:
            self._dump_infeasibility()
            return SolverStatus.INFEASIBLE
        return SolverStatus.SOLVE_FAILURE

    def _dump_infeasibility(self):
        logger.debug("infeasible problem, %d variables, %d constraints",
                     self._n_vars, self._n_constraints)
        logger.debug("l: %s", self._l)
        logger.debug("u: %s", self._u)
        logger.debug("A: %s", self._A)
        logger.debug("lA: %s", self._lA)
        logger.debug("uA: %s", self._uA)
        crossed = np.flatnonzero(self._lA > self._uA)
        if crossed.size:
            logger.debug("constraint rows with lA > uA: %s", crossed)

    def _mark_stale(self):
        if self._state == ProblemState.READY:
            self._state = ProblemState.STALE

    def _validate(self, H, g, A, lA, uA, l, u):
        n, r = self._n_vars, self._n_constraints
        checks = [
            (H.shape == (n, n), "H is %s, expected %dx%d" % (H.shape, n, n)),
            (g.size == n, "g has size %d, expected %d" % (g.size, n)),
            (A.shape == (r, n), "A is %s, expected %dx%d" % (A.shape, r, n)),
            (lA.size == r and uA.size == r,
             "lA, uA have sizes %d, %d, expected %d" % (lA.size, uA.size, r)),
            (l.size == u.size and l.size in (0, n),
             "l, u have sizes %d, %d, expected %d" % (l.size, u.size, n)),
        ]
        for ok, message in checks:
            if not ok:
                logger.error("init_problem: %s", message)
                return False
        return True

    def _check_shape(self, n_vars, n_constraints):
        """True if the stored constraints and bounds fit a problem with
        n_vars variables and n_constraints constraints.
        """
        if self._A.shape[0] > 0 and (self._A.shape[1] != n_vars
                                     or self._A.shape[0] != n_constraints):
            return False
        return self._l.size in (0, n_vars) and self._u.size in (0, n_vars)

    def _rebuild(self, n_vars, n_constraints):
        """Recreates the backend for a new shape, keeping options and the
        overlapping part of the last solution.
        """
        logger.info("rebuilding QP from %dx%d to %dx%d", self._n_vars,
                    self._n_constraints, n_vars, n_constraints)
        old_n = self._n_vars
        solution, dual = self._solution, self._dual_solution
        bounds, constraints = self._active_bounds, self._active_constraints

        self._n_vars, self._n_constraints = n_vars, n_constraints
        self._solver = ActiveSetQP(n_vars, n_constraints, self._hessian_type)
        self._apply_options()

        keep_n = min(old_n, n_vars)
        keep_r = min(constraints.size, n_constraints)
        self._solution = np.zeros(n_vars)
        self._solution[:keep_n] = solution[:keep_n]
        self._dual_solution = np.zeros(n_vars + n_constraints)
        self._dual_solution[:keep_n] = dual[:keep_n]
        self._dual_solution[n_vars:n_vars + keep_r] = dual[old_n:old_n + keep_r]
        self._active_bounds = np.zeros(n_vars, dtype=int)
        self._active_bounds[:keep_n] = bounds[:keep_n]
        self._active_constraints = np.zeros(n_constraints, dtype=int)
        self._active_constraints[:keep_r] = constraints[:keep_r]
        if self._A.shape[0] == 0:
            self._A = np.zeros((0, n_vars))
        self._state = ProblemState.UNINITIALIZED

"""
@file hqp_solver.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import collections
import logging

import numpy as np

from hqp_sot.constraints.aggregated import stack_constraints, unique_constraints
from hqp_sot.solver_setting import SolverSetting
from hqp_sot.solvers.qp_problem import ProblemState, QPProblem, SolverStatus
from hqp_sot.task import HessianType

logger = logging.getLogger(__name__)

SolveResult = collections.namedtuple(
    "SolveResult", ["success", "solution", "status", "failed_level"])


class HQPSolver:
    """Solves a Stack level by level. Level k minimizes its own task

        min ||A_k x - lambda_k b_k||^2_W_k

    subject to its constraints, the constraints of every higher level, the
    solver-wide bounds and, for each higher level j, the band

        A_j x_j* - delta <= A_j x <= A_j x_j* + delta

    that keeps the optimum x_j* of level j. delta is the priority tolerance
    scaled by max(1, |A_j x_j*|).
    """
    def __init__(self, stack, bounds=None, setting=None):
        self.stack = stack
        self.bounds = bounds
        self.setting = setting if setting is not None else SolverSetting()
        self.regularisation = self.setting.hessian_regularisation
        self._problems = [None] * len(stack)
        self._solution = np.zeros(stack.get_x_size() or 0)

    def get_problem(self, level):
        return self._problems[level]

    def get_solution(self):
        return self._solution

    def solve(self):
        """Solves every level for the current state of the stack. The stack
        and the bounds must be updated beforehand.

        Returns:
            SolveResult. On failure solution holds the last successful
            solution and failed_level the index of the failing level.
        """
        n = self.stack.get_x_size()
        if len(self._problems) != len(self.stack):
            self._problems = [None] * len(self.stack)

        higher_constraints = [] if self.bounds is None else [self.bounds]
        priority_rows = []
        x = np.zeros(n)
        for i, task in enumerate(self.stack):
            H, g = self._cost(task)
            constraints = unique_constraints(task.get_constraints() + higher_constraints)
            l, u, A, lA, uA = stack_constraints(constraints, n, self.setting.infty)
            A, lA, uA = self._add_priority_rows(A, lA, uA, priority_rows)

            status = self._solve_level(i, task, H, g, A, lA, uA, l, u)
            if status != SolverStatus.SUCCESS:
                logger.error("level %d (%s) failed: %s", i, task.get_task_id(), status.name)
                return SolveResult(False, self._solution, status, i)

            x = self._problems[i].get_solution()
            if task.get_A().shape[0] > 0:
                priority_rows.append((task.get_A(), task.get_A().dot(x)))
            higher_constraints = constraints

        self._solution = x
        return SolveResult(True, x, SolverStatus.SUCCESS, None)

    def _cost(self, task):
        A, W = task.get_A(), task.get_weight()
        AtW = A.T.dot(W)
        H = AtW.dot(A) + self.regularisation * np.eye(A.shape[1])
        g = -AtW.dot(task.get_lambda() * task.get_b())
        return H, g

    def _add_priority_rows(self, A, lA, uA, priority_rows):
        # A lower level may sit on the edge of the band every tick, the higher
        # task then settles at an error of about delta / lambda.
        if not priority_rows:
            return A, lA, uA
        rows, lower, upper = [A], [lA], [uA]
        for A_j, target in priority_rows:
            delta = self.setting.priority_tolerance * np.maximum(1.0, np.abs(target))
            rows.append(A_j)
            lower.append(target - delta)
            upper.append(target + delta)
        return np.vstack(rows), np.concatenate(lower), np.concatenate(upper)

    def _solve_level(self, i, task, H, g, A, lA, uA, l, u):
        problem = self._problems[i]
        hessian_type = task.get_hessian_type()
        if hessian_type == HessianType.UNKNOWN:
            hessian_type = self.setting.hessian_type
        if problem is None or problem.get_n_vars() != H.shape[0] \
                or problem.get_state() == ProblemState.UNINITIALIZED:
            problem = QPProblem(H.shape[0], A.shape[0], hessian_type,
                                self.setting.eps_regularisation)
            problem.set_options({"n_wsr": self.setting.n_wsr,
                                 "infty": self.setting.infty})
            self._problems[i] = problem
            return problem.init_problem(H, g, A, lA, uA, l, u)

        problem.set_hessian_type(hessian_type)
        status = problem.update_problem(H, g, A, lA, uA, l, u)
        if status != SolverStatus.SUCCESS:
            return status
        return problem.solve()

    def log(self, mat_logger):
        for i, problem in enumerate(self._problems):
            if problem is not None:
                problem.log(mat_logger, i)
        self.stack.log(mat_logger)
        if self.bounds is not None:
            self.bounds.log(mat_logger)

    def print_problem_information(self):
        for i, problem in enumerate(self._problems):
            if problem is None:
                continue
            task = self.stack[i]
            problem.print_problem_information(
                i, task.get_task_id(),
                " ".join(c.get_constraint_id() for c in task.get_constraints()),
                "" if self.bounds is None else self.bounds.get_constraint_id())

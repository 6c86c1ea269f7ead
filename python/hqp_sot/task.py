"""
@file task.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import enum
import logging

import numpy as np

logger = logging.getLogger(__name__)


class HessianType(enum.IntEnum):
    """Structure hint handed to the active-set backend."""
    UNKNOWN = 0
    SEMIDEF = 1
    POSDEF = 2
    IDENTITY = 3


class Task:
    """A weighted least-squares objective over the decision variable x:

        min (A x - lambda b)^T W (A x - lambda b)

    plus the constraints that must hold while the task is active. Subclasses
    recompute A and b in _update().
    """
    def __init__(self, task_id, x_size, bounded_lambda=True):
        self._task_id = str(task_id)
        self._x_size = int(x_size)
        self.bounded_lambda = bounded_lambda

        self._A = np.zeros((0, self._x_size))
        self._b = np.zeros(0)
        self._W = np.zeros((0, 0))
        self._lambda = 1.0
        self._hessian_type = HessianType.UNKNOWN
        self._constraints = []

    def get_task_id(self):
        return self._task_id

    def get_x_size(self):
        return self._x_size

    def get_A(self):
        return self._A

    def get_b(self):
        return self._b

    def get_weight(self):
        return self._W

    def set_weight(self, W):
        W = np.atleast_2d(np.asarray(W, dtype=float))
        if W.shape != (self._A.shape[0], self._A.shape[0]):
            raise ValueError("weight of %s must be %dx%d, got %s"
                             % (self._task_id, self._A.shape[0],
                                self._A.shape[0], W.shape))
        self._W = W

    def get_lambda(self):
        return self._lambda

    def set_lambda(self, lam):
        """Sets the feedback gain scaling b.

        Returns:
            False if the gain is rejected, the previous value is kept.
        """
        lam = float(lam)
        if lam < 0.0 or (self.bounded_lambda and lam > 1.0):
            logger.warning("%s: lambda %g rejected, keeping %g",
                           self._task_id, lam, self._lambda)
            return False
        self._lambda = lam
        return True

    def get_hessian_type(self):
        return self._hessian_type

    def set_hessian_type(self, hessian_type):
        self._hessian_type = HessianType(hessian_type)

    def get_constraints(self):
        return list(self._constraints)

    def add_constraint(self, constraint):
        if constraint.get_x_size() != self._x_size:
            raise ValueError("constraint %s has x_size %d, task %s has %d"
                             % (constraint.get_constraint_id(),
                                constraint.get_x_size(), self._task_id,
                                self._x_size))
        if not any(c is constraint for c in self._constraints):
            self._constraints.append(constraint)

    def remove_constraint(self, constraint):
        self._constraints = [c for c in self._constraints if c is not constraint]

    def update(self, x):
        """Updates the attached constraints and then the task itself with
        the same state.

        Args:
            x (ndarray): Variable state at the current control tick.
        """
        x = np.asarray(x, dtype=float).reshape(-1)
        for constraint in self._constraints:
            constraint.update(x)
        self._update(x)

    def _update(self, x):
        pass

    def _set_task(self, A, b):
        A = np.asarray(A, dtype=float)
        if A.size == 0:
            A = np.zeros((0, self._x_size))
        A = np.atleast_2d(A)
        b = np.asarray(b, dtype=float).reshape(-1)
        if A.shape[1] != self._x_size:
            raise ValueError("A of %s has %d columns, expected %d"
                             % (self._task_id, A.shape[1], self._x_size))
        if A.shape[0] != b.size:
            raise ValueError("A of %s has %d rows but b has size %d"
                             % (self._task_id, A.shape[0], b.size))
        self._A = A
        self._b = b
        if self._W.shape[0] != A.shape[0]:
            self._W = np.eye(A.shape[0])

    def compute_cost(self, x):
        """Weighted squared residual of the task at x."""
        e = self._A.dot(x) - self._lambda * self._b
        return float(e.dot(self._W).dot(e))

    def log(self, mat_logger):
        mat_logger.add(self._task_id + "_A", self._A)
        mat_logger.add(self._task_id + "_b", self._b)
        mat_logger.add(self._task_id + "_W", self._W)
        mat_logger.add(self._task_id + "_lambda", self._lambda)
        self._log(mat_logger)

    def _log(self, mat_logger):
        pass

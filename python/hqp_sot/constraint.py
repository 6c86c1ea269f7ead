"""
@file constraint.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

# Values beyond +-INFTY mean "no limit" and are clamped to it before a solve.
INFTY = 1.0e8


def _as_vector(vec):
    return np.asarray(vec, dtype=float).reshape(-1)


def _as_matrix(mat, cols):
    mat = np.asarray(mat, dtype=float)
    if mat.size == 0:
        return np.zeros((0, cols))
    return np.atleast_2d(mat)


class Constraint:
    """A linear restriction on the decision variable x. It can hold any
    combination of:
        1. box bounds:       lower_bound <= x <= upper_bound
        2. equalities:       Aeq * x = beq
        3. inequalities:     bLowerBound <= Aineq * x <= bUpperBound
    An inequality with one empty side is unilateral.

    The same instance may be shared by several tasks. Only its own update()
    mutates it.
    """
    def __init__(self, constraint_id, x_size):
        self._constraint_id = str(constraint_id)
        self._x_size = int(x_size)

        self._lower_bound = np.zeros(0)
        self._upper_bound = np.zeros(0)
        self._Aeq = np.zeros((0, self._x_size))
        self._beq = np.zeros(0)
        self._Aineq = np.zeros((0, self._x_size))
        self._b_lower_bound = np.zeros(0)
        self._b_upper_bound = np.zeros(0)

    def get_constraint_id(self):
        return self._constraint_id

    def get_x_size(self):
        return self._x_size

    def get_lower_bound(self):
        return self._lower_bound

    def get_upper_bound(self):
        return self._upper_bound

    def get_Aeq(self):
        return self._Aeq

    def get_beq(self):
        return self._beq

    def get_Aineq(self):
        return self._Aineq

    def get_b_lower_bound(self):
        return self._b_lower_bound

    def get_b_upper_bound(self):
        return self._b_upper_bound

    def is_equality_constraint(self):
        """True if the constraint enforces an equality."""
        return self._Aeq.shape[0] > 0

    def is_inequality_constraint(self):
        """True if the constraint enforces an inequality."""
        return self._Aineq.shape[0] > 0

    def is_unilateral_constraint(self):
        """True if the inequality is bounded on one side only."""
        return self.is_inequality_constraint() and (
            self._b_lower_bound.size == 0 or self._b_upper_bound.size == 0)

    def is_bilateral_constraint(self):
        return self.is_inequality_constraint() and not self.is_unilateral_constraint()

    def has_bounds(self):
        """True if the constraint contains a box bound on x."""
        return self._lower_bound.size > 0 or self._upper_bound.size > 0

    def is_bound(self):
        """True if the constraint is a pure box bound lower <= x <= upper."""
        return self.has_bounds() and not self.is_constraint()

    def is_constraint(self):
        """True if the constraint has equality or inequality rows."""
        return self.is_equality_constraint() or self.is_inequality_constraint()

    def update(self, x):
        """Updates the bounds and constraint matrices for the state x.

        Args:
            x (ndarray): Variable state at the current control tick.
        """
        self._update(_as_vector(x))

    def _update(self, x):
        pass

    def log(self, mat_logger):
        """Adds the non-empty matrices of the constraint to a MatLogger."""
        cid = self._constraint_id
        if self._Aeq.size > 0:
            mat_logger.add(cid + "_Aeq", self._Aeq)
        if self._Aineq.size > 0:
            mat_logger.add(cid + "_Aineq", self._Aineq)
        if self._beq.size > 0:
            mat_logger.add(cid + "_beq", self._beq)
        if self._b_lower_bound.size > 0:
            mat_logger.add(cid + "_bLowerBound", self._b_lower_bound)
        if self._b_upper_bound.size > 0:
            mat_logger.add(cid + "_bUpperBound", self._b_upper_bound)
        if self._upper_bound.size > 0:
            mat_logger.add(cid + "_upperBound", self._upper_bound)
        if self._lower_bound.size > 0:
            mat_logger.add(cid + "_lowerBound", self._lower_bound)
        self._log(mat_logger)

    def _log(self, mat_logger):
        pass

    # Setters used by subclasses. They reject sizes that break the invariants.

    def set_lower_bound(self, lb):
        lb = _as_vector(lb)
        if lb.size not in (0, self._x_size):
            raise ValueError("lower bound of %s has size %d, expected %d"
                             % (self._constraint_id, lb.size, self._x_size))
        if lb.size and self._upper_bound.size and lb.size != self._upper_bound.size:
            raise ValueError("lower and upper bounds of %s differ in size"
                             % self._constraint_id)
        self._lower_bound = lb

    def set_upper_bound(self, ub):
        ub = _as_vector(ub)
        if ub.size not in (0, self._x_size):
            raise ValueError("upper bound of %s has size %d, expected %d"
                             % (self._constraint_id, ub.size, self._x_size))
        if ub.size and self._lower_bound.size and ub.size != self._lower_bound.size:
            raise ValueError("lower and upper bounds of %s differ in size"
                             % self._constraint_id)
        self._upper_bound = ub

    def set_bounds(self, lb, ub):
        lb, ub = _as_vector(lb), _as_vector(ub)
        if lb.size != ub.size:
            raise ValueError("lower bound size %d != upper bound size %d"
                             % (lb.size, ub.size))
        self._lower_bound = np.zeros(0)
        self._upper_bound = np.zeros(0)
        self.set_lower_bound(lb)
        self.set_upper_bound(ub)

    def set_equality(self, Aeq, beq):
        Aeq = _as_matrix(Aeq, self._x_size)
        beq = _as_vector(beq)
        if Aeq.shape[1] != self._x_size:
            raise ValueError("Aeq of %s has %d columns, expected %d"
                             % (self._constraint_id, Aeq.shape[1], self._x_size))
        if Aeq.shape[0] != beq.size:
            raise ValueError("Aeq rows %d != beq size %d" % (Aeq.shape[0], beq.size))
        self._Aeq = Aeq
        self._beq = beq

    def set_inequality(self, Aineq, b_lower=None, b_upper=None):
        """Sets bLower <= Aineq * x <= bUpper. Pass None for a missing side."""
        Aineq = _as_matrix(Aineq, self._x_size)
        b_lower = np.zeros(0) if b_lower is None else _as_vector(b_lower)
        b_upper = np.zeros(0) if b_upper is None else _as_vector(b_upper)
        if Aineq.shape[1] != self._x_size:
            raise ValueError("Aineq of %s has %d columns, expected %d"
                             % (self._constraint_id, Aineq.shape[1], self._x_size))
        for side in (b_lower, b_upper):
            if side.size not in (0, Aineq.shape[0]):
                raise ValueError("Aineq rows %d != inequality bound size %d"
                                 % (Aineq.shape[0], side.size))
        if Aineq.shape[0] > 0 and b_lower.size == 0 and b_upper.size == 0:
            raise ValueError("inequality of %s needs at least one bound"
                             % self._constraint_id)
        self._Aineq = Aineq
        self._b_lower_bound = b_lower
        self._b_upper_bound = b_upper

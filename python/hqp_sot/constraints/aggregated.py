"""
@file aggregated.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.constraint import INFTY, Constraint

CONSTRAINT_ID_SEPARATOR = "plus"


def unique_constraints(constraints):
    """Drops repeated instances, keeping the first occurrence."""
    unique = []
    for constraint in constraints:
        if not any(constraint is c for c in unique):
            unique.append(constraint)
    return unique


def stack_constraints(constraints, x_size, infty=INFTY):
    """Translates a list of constraints into the rows of a QP:

        l <= x <= u,  lA <= A x <= uA

    Box bounds are intersected, equalities become rows with lA == uA and the
    missing side of a unilateral inequality is set to -/+infty.

    Args:
        constraints (list): Constraints to stack, in order.
        x_size (int): Size of the decision variable.
        infty (float): Value used for a missing bound.
    Returns:
        l, u, A, lA, uA
    """
    l = np.full(x_size, -infty)
    u = np.full(x_size, infty)
    rows, lower, upper = [], [], []
    for constraint in unique_constraints(constraints):
        if constraint.get_x_size() != x_size:
            raise ValueError("constraint %s has x_size %d, expected %d"
                             % (constraint.get_constraint_id(),
                                constraint.get_x_size(), x_size))
        if constraint.get_lower_bound().size > 0:
            l = np.maximum(l, constraint.get_lower_bound())
        if constraint.get_upper_bound().size > 0:
            u = np.minimum(u, constraint.get_upper_bound())
        if constraint.is_equality_constraint():
            rows.append(constraint.get_Aeq())
            lower.append(constraint.get_beq())
            upper.append(constraint.get_beq())
        if constraint.is_inequality_constraint():
            Aineq = constraint.get_Aineq()
            b_lower = constraint.get_b_lower_bound()
            b_upper = constraint.get_b_upper_bound()
            rows.append(Aineq)
            lower.append(b_lower if b_lower.size else np.full(Aineq.shape[0], -infty))
            upper.append(b_upper if b_upper.size else np.full(Aineq.shape[0], infty))
    if rows:
        A = np.vstack(rows)
        lA = np.concatenate(lower)
        uA = np.concatenate(upper)
    else:
        A = np.zeros((0, x_size))
        lA = np.zeros(0)
        uA = np.zeros(0)
    return l, u, A, lA, uA


class AggregatedConstraint(Constraint):
    """Merges several constraints into one. Bounds are intersected,
    equalities and inequalities are stacked in list order. Unilateral
    inequalities become bilateral, with the missing side at -/+infty.
    """
    def __init__(self, constraints, x_size, infty=INFTY):
        constraints = unique_constraints(constraints)
        super().__init__(
            CONSTRAINT_ID_SEPARATOR.join(c.get_constraint_id() for c in constraints),
            x_size)
        for constraint in constraints:
            if constraint.get_x_size() != self._x_size:
                raise ValueError("constraint %s has x_size %d, expected %d"
                                 % (constraint.get_constraint_id(),
                                    constraint.get_x_size(), self._x_size))
        self._constraints = constraints
        self._infty = infty
        self.aggregate()

    def get_constraint_list(self):
        return list(self._constraints)

    def _update(self, x):
        for constraint in self._constraints:
            constraint.update(x)
        self.aggregate()

    def aggregate(self):
        n = self._x_size
        lb, ub = None, None
        Aeq, beq = [], []
        Aineq, b_lower, b_upper = [], [], []
        for constraint in self._constraints:
            if constraint.has_bounds():
                lo = constraint.get_lower_bound()
                hi = constraint.get_upper_bound()
                lo = lo if lo.size else np.full(n, -self._infty)
                hi = hi if hi.size else np.full(n, self._infty)
                lb = lo.copy() if lb is None else np.maximum(lb, lo)
                ub = hi.copy() if ub is None else np.minimum(ub, hi)
            if constraint.is_equality_constraint():
                Aeq.append(constraint.get_Aeq())
                beq.append(constraint.get_beq())
            if constraint.is_inequality_constraint():
                rows = constraint.get_Aineq().shape[0]
                lo = constraint.get_b_lower_bound()
                hi = constraint.get_b_upper_bound()
                Aineq.append(constraint.get_Aineq())
                b_lower.append(lo if lo.size else np.full(rows, -self._infty))
                b_upper.append(hi if hi.size else np.full(rows, self._infty))

        if lb is None:
            self.set_bounds(np.zeros(0), np.zeros(0))
        else:
            self.set_bounds(lb, ub)
        if Aeq:
            self.set_equality(np.vstack(Aeq), np.concatenate(beq))
        else:
            self.set_equality(np.zeros((0, n)), np.zeros(0))
        if Aineq:
            self.set_inequality(np.vstack(Aineq), np.concatenate(b_lower),
                                np.concatenate(b_upper))
        else:
            self._Aineq = np.zeros((0, n))
            self._b_lower_bound = np.zeros(0)
            self._b_upper_bound = np.zeros(0)

    def _log(self, mat_logger):
        for constraint in self._constraints:
            constraint.log(mat_logger)

"""
@file joint_limits.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.constraint import Constraint


class JointLimits(Constraint):
    """Keeps q + dq inside [q_min, q_max]:

        scaling (q_min - q) <= dq <= scaling (q_max - q)

    scaling in (0, 1] slows down the approach to a limit.
    """
    def __init__(self, x, joint_bound_max, joint_bound_min, bound_scaling=1.0,
                 constraint_id="joint_limits"):
        x = np.asarray(x, dtype=float).reshape(-1)
        super().__init__(constraint_id, x.size)
        self._joint_max = np.asarray(joint_bound_max, dtype=float).reshape(-1)
        self._joint_min = np.asarray(joint_bound_min, dtype=float).reshape(-1)
        if self._joint_max.size != x.size or self._joint_min.size != x.size:
            raise ValueError("joint limits must have size %d" % x.size)
        if np.any(self._joint_min > self._joint_max):
            raise ValueError("joint_bound_min exceeds joint_bound_max")
        self.set_bound_scaling(bound_scaling)
        self._update(x)

    def set_bound_scaling(self, bound_scaling):
        if not 0.0 < bound_scaling <= 1.0:
            raise ValueError("bound scaling %g is outside (0, 1]" % bound_scaling)
        self._bound_scaling = float(bound_scaling)

    def get_bound_scaling(self):
        return self._bound_scaling

    def _update(self, x):
        self.set_bounds(self._bound_scaling * (self._joint_min - x),
                        self._bound_scaling * (self._joint_max - x))

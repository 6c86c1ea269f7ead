"""
@file velocity_limits.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.constraint import Constraint


class VelocityLimits(Constraint):
    """Bounds the joint displacement of one control step:

        -qdot_max dt <= dq <= qdot_max dt

    qdot_max is a scalar or one value per joint. The bounds do not depend on
    the state.
    """
    def __init__(self, qdot_limit, dt, x_size, constraint_id="velocity_limits"):
        super().__init__(constraint_id, x_size)
        if dt <= 0.0:
            raise ValueError("dt must be positive, got %g" % dt)
        self._dt = float(dt)
        self.set_velocity_limits(qdot_limit)

    def set_velocity_limits(self, qdot_limit):
        qdot_limit = np.abs(np.asarray(qdot_limit, dtype=float))
        if qdot_limit.size == 1:
            qdot_limit = np.full(self._x_size, float(qdot_limit.reshape(-1)[0]))
        self._qdot_limit = qdot_limit.reshape(-1)
        self.set_bounds(-self._qdot_limit * self._dt, self._qdot_limit * self._dt)

    def get_velocity_limits(self):
        return self._qdot_limit.copy()

    def get_dt(self):
        return self._dt

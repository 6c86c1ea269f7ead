"""
@file com_velocity.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.constraint import Constraint


class CoMVelocity(Constraint):
    """Bounds the center of mass velocity:

        -v_max dt <= J_com dq <= v_max dt
    """
    def __init__(self, velocity_limits, dt, x, robot, constraint_id="com_velocity"):
        x = np.asarray(x, dtype=float).reshape(-1)
        super().__init__(constraint_id, x.size)
        if dt <= 0.0:
            raise ValueError("dt must be positive, got %g" % dt)
        self.robot = robot
        self._dt = float(dt)
        self._velocity_limits = np.abs(np.asarray(velocity_limits, dtype=float)).reshape(-1)
        if self._velocity_limits.size != 3:
            raise ValueError("CoM velocity limits must have size 3")
        self._update(x)

    def set_velocity_limits(self, velocity_limits):
        velocity_limits = np.abs(np.asarray(velocity_limits, dtype=float)).reshape(-1)
        if velocity_limits.size != 3:
            raise ValueError("CoM velocity limits must have size 3")
        self._velocity_limits = velocity_limits
        self._set_rows()

    def get_velocity_limits(self):
        return self._velocity_limits.copy()

    def _update(self, x):
        self._J_com = self.robot.get_com_jacobian()
        self._set_rows()

    def _set_rows(self):
        bound = self._velocity_limits * self._dt
        self.set_inequality(self._J_com, -bound, bound)

"""
@file controller.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import logging

import numpy as np

from hqp_sot.solvers.hqp_solver import HQPSolver

logger = logging.getLogger(__name__)


class VelocityController:
    """Runs one control tick: updates the robot model, the stack and the
    bounds with the current configuration, solves the stack and integrates
    the joint displacement. A failed tick commands zero displacement.
    """
    def __init__(self, setting, stack, bounds=None, robot=None):
        self.timestep = setting.timestep
        self.robot = robot
        self.stack = stack
        self.bounds = bounds
        self.hqp_solver = HQPSolver(stack, bounds, setting)

        self.dq = np.zeros(stack.get_x_size())
        self.n_failures = 0

    def update(self, q):
        """Updates the robot model, the bounds and every level with q."""
        q = np.asarray(q, dtype=float).reshape(-1)
        if self.robot is not None:
            self.robot.update(q)
        if self.bounds is not None:
            self.bounds.update(q)
        self.stack.update(q)

    def compute_joint_displacement(self, q):
        """Joint displacement for the current tick.

        Args:
            q (ndarray): Current joint configuration.
        Returns:
            dq (ndarray): Joint displacement, zero if the stack can not be
                solved.
        """
        self.update(q)
        result = self.hqp_solver.solve()
        if result.success:
            self.dq = result.solution.copy()
        else:
            self.n_failures += 1
            logger.warning("tick failed at level %d (%s), holding position",
                           result.failed_level, result.status.name)
            self.dq = np.zeros(self.stack.get_x_size())
        return self.dq

    def step(self, q):
        """Computes the displacement and returns the next configuration."""
        dq = self.compute_joint_displacement(q)
        if self.robot is not None:
            return self.robot.integrate(q, dq)
        return np.asarray(q, dtype=float) + dq

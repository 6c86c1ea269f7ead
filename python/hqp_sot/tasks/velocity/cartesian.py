"""
@file cartesian.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.geometry import WORLD_FRAME, pose_error
from hqp_sot.task import Task


class Cartesian(Task):
    """Velocity task driving the pose of distal_link, relative to base_link,
    towards a reference:

        A = J,  b = [p_ref - p; orientation_error_gain * e_o]

    With base_link "world" J is the world aligned frame Jacobian, otherwise
    the relative Jacobian expressed in base_link. The reference starts at the
    actual pose.
    """
    def __init__(self, task_id, x, robot, distal_link, base_link=WORLD_FRAME,
                 orientation_error_gain=1.0):
        x = np.asarray(x, dtype=float).reshape(-1)
        super().__init__(task_id, x.size)
        if distal_link == base_link:
            raise ValueError("distal and base link are both %s" % distal_link)
        self.robot = robot
        self.distal_link = distal_link
        self.base_link = base_link
        self.orientation_error_gain = float(orientation_error_gain)

        self._actual_pose = self._compute_pose()
        self._desired_pose = self._actual_pose.copy()
        self._update(x)

    def _compute_pose(self):
        if self.base_link == WORLD_FRAME:
            return self.robot.get_frame_pose(self.distal_link)
        return self.robot.get_relative_pose(self.distal_link, self.base_link)

    def _update(self, x):
        """Reads the robot model, which must already be updated with x."""
        self._actual_pose = self._compute_pose()
        if self.base_link == WORLD_FRAME:
            J = self.robot.get_frame_jacobian(self.distal_link)
        else:
            J = self.robot.get_relative_jacobian(self.distal_link, self.base_link)
        self._set_task(J, pose_error(self._desired_pose, self._actual_pose,
                                     self.orientation_error_gain))

    def set_reference(self, desired_pose):
        desired_pose = np.asarray(desired_pose, dtype=float)
        if desired_pose.shape != (4, 4):
            raise ValueError("reference must be a 4x4 transform")
        self._desired_pose = desired_pose.copy()
        self._set_task(self._A, pose_error(self._desired_pose, self._actual_pose,
                                           self.orientation_error_gain))

    def get_reference(self):
        return self._desired_pose.copy()

    def get_actual_pose(self):
        return self._actual_pose.copy()

    def get_error(self):
        return pose_error(self._desired_pose, self._actual_pose, 1.0)

    def set_orientation_error_gain(self, gain):
        self.orientation_error_gain = float(gain)

    def _log(self, mat_logger):
        mat_logger.add(self._task_id + "_desired_pose", self._desired_pose)
        mat_logger.add(self._task_id + "_actual_pose", self._actual_pose)

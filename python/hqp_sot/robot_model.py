"""
@file robot_model.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np
import pinocchio as pin
from scipy.linalg import block_diag

from hqp_sot.geometry import WORLD_FRAME, inverse_homogeneous, vec_to_so3


class RobotModel:
    """Kinematics of a fixed-base robot, used by the velocity tasks and
    constraints. update(q) must be called before any query.
    """
    def __init__(self, model):
        self.model = model
        self.data = self.model.createData()

        self.nq = self.model.nq
        self.nv = self.model.nv
        self.q = pin.neutral(self.model)
        self.update(self.q)

    @classmethod
    def from_urdf(cls, urdf_filename):
        return cls(pin.buildModelFromUrdf(urdf_filename))

    def update(self, q):
        """Computes frame placements, joint Jacobians and the center of mass
        for the configuration q.
        """
        self.q = np.array(q, dtype=float)
        pin.forwardKinematics(self.model, self.data, self.q)
        pin.computeJointJacobians(self.model, self.data, self.q)
        pin.updateFramePlacements(self.model, self.data)
        # also fills data.com[0]
        pin.jacobianCenterOfMass(self.model, self.data, self.q)

    def integrate(self, cur_q, v):
        """Integrate a configuration vector for a tangent vector during one unit time.

        Args:
            cur_q (ndarray): Configuration vector.
            v (ndarray): Tangent vector.
        Returns:
            q (ndarray): Updated configuration vector.
        """
        return pin.integrate(self.model, cur_q, v)

    def get_frame_id(self, name):
        if not self.model.existFrame(name):
            raise ValueError("Frame %s is not available." % name)
        if name == "universe" or name == "root_joint":
            raise ValueError("Frame %s is not available." % name)
        return self.model.getFrameId(name)

    def get_frame_pose(self, name):
        """4x4 homogeneous transform of a frame in the world frame."""
        if name == WORLD_FRAME:
            return np.eye(4)
        return self.data.oMf[self.get_frame_id(name)].homogeneous.copy()

    def get_relative_pose(self, distal, base):
        """Pose of distal expressed in base."""
        return inverse_homogeneous(self.get_frame_pose(base)).dot(
            self.get_frame_pose(distal))

    def get_frame_jacobian(self, name):
        """Express frame jacobian in local world aligned coordinate system
        centered on the moving part but with axes aligned with the frame of the
        Universe. Rows are [linear; angular].
        """
        if name == WORLD_FRAME:
            return np.zeros((6, self.nv))
        return pin.getFrameJacobian(self.model, self.data, self.get_frame_id(name),
                                    pin.ReferenceFrame.LOCAL_WORLD_ALIGNED)

    def get_relative_jacobian(self, distal, base):
        """Jacobian of the twist of distal relative to base, expressed in the
        base frame.
        """
        J_distal = self.get_frame_jacobian(distal)
        if base == WORLD_FRAME:
            return J_distal
        J_base = self.get_frame_jacobian(base)
        T_base = self.get_frame_pose(base)
        r = self.get_frame_pose(distal)[:3, 3] - T_base[:3, 3]

        J = J_distal - J_base
        J[:3] += vec_to_so3(r).dot(J_base[3:])
        R_t = T_base[:3, :3].T
        return block_diag(R_t, R_t).dot(J)

    def get_com_position(self):
        """Vector of absolute com position."""
        return self.data.com[0].copy()

    def get_com_jacobian(self):
        return self.data.Jcom.copy()

    def get_joint_limits(self):
        return (self.model.lowerPositionLimit.copy(),
                self.model.upperPositionLimit.copy())

    def get_velocity_limits(self):
        return self.model.velocityLimit.copy()

"""Shared pytest fixtures."""

import numpy as np
import pytest

from hqp_sot.geometry import (WORLD_FRAME, homogeneous, inverse_homogeneous,
                              matrix_log3, so3_to_vec)


def rot_z(angle):
    c, s = np.cos(angle), np.sin(angle)
    return np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]])


class PlanarArm:
    """Three revolute z joints in the xy plane, unit link lengths. Frames
    link1, link2 sit at the end of the first two links and ee at the end of
    the third one. The center of mass is the mean of the link midpoints.
    """
    frames = ("link1", "link2", "ee")

    def __init__(self, q=None):
        self.nq = self.nv = 3
        self.q = np.zeros(3)
        self.update(np.zeros(3) if q is None else q)

    def _points(self, q, scale):
        # Position of the point at `scale` along each link, and the joint origins.
        angles = np.cumsum(q)
        joints = [np.zeros(3)]
        points = []
        for k in range(3):
            direction = np.array([np.cos(angles[k]), np.sin(angles[k]), 0.0])
            points.append(joints[k] + scale * direction)
            joints.append(joints[k] + direction)
        return points, joints

    def _jacobian(self, point, joints, n_joints):
        J = np.zeros((6, 3))
        for i in range(n_joints):
            r = point - joints[i]
            J[:3, i] = [-r[1], r[0], 0.0]
            J[5, i] = 1.0
        return J

    def update(self, q):
        self.q = np.array(q, dtype=float)
        ends, joints = self._points(self.q, 1.0)
        mids, _ = self._points(self.q, 0.5)
        angles = np.cumsum(self.q)
        self._poses = {}
        self._jacobians = {}
        for k, name in enumerate(self.frames):
            self._poses[name] = homogeneous(rot_z(angles[k]), ends[k])
            self._jacobians[name] = self._jacobian(ends[k], joints, k + 1)
        self._com = np.mean(mids, axis=0)
        self._J_com = np.mean([self._jacobian(mids[k], joints, k + 1)[:3]
                               for k in range(3)], axis=0)

    def integrate(self, q, dq):
        return np.asarray(q, dtype=float) + dq

    def get_frame_pose(self, name):
        if name == WORLD_FRAME:
            return np.eye(4)
        if name not in self._poses:
            raise ValueError("Frame %s is not available." % name)
        return self._poses[name].copy()

    def get_relative_pose(self, distal, base):
        return inverse_homogeneous(self.get_frame_pose(base)).dot(
            self.get_frame_pose(distal))

    def get_relative_jacobian(self, distal, base, h=1e-6):
        """Central differences of the relative pose, expressed in base."""
        J = np.zeros((6, 3))
        for i in range(3):
            dq = np.zeros(3)
            dq[i] = h
            T_plus = PlanarArm(self.q + dq).get_relative_pose(distal, base)
            T_minus = PlanarArm(self.q - dq).get_relative_pose(distal, base)
            J[:3, i] = (T_plus[:3, 3] - T_minus[:3, 3]) / (2.0 * h)
            J[3:, i] = so3_to_vec(matrix_log3(
                T_plus[:3, :3].dot(T_minus[:3, :3].T))) / (2.0 * h)
        return J

    def get_frame_jacobian(self, name):
        if name not in self._jacobians:
            raise ValueError("Frame %s is not available." % name)
        return self._jacobians[name].copy()

    def get_com_position(self):
        return self._com.copy()

    def get_com_jacobian(self):
        return self._J_com.copy()

    def get_joint_limits(self):
        return -2.5 * np.ones(3), 2.5 * np.ones(3)

    def get_velocity_limits(self):
        return 2.0 * np.ones(3)


class StandingPoint:
    """A point mass moving in the horizontal plane above four fixed feet at
    (+-0.1, +-0.1). x = [com_x, com_y].
    """
    feet = {"foot_fl": (0.1, 0.1), "foot_fr": (0.1, -0.1),
            "foot_rl": (-0.1, 0.1), "foot_rr": (-0.1, -0.1)}

    def __init__(self, q=None):
        self.q = np.zeros(2)
        self.update(np.zeros(2) if q is None else q)

    def update(self, q):
        self.q = np.array(q, dtype=float)

    def get_frame_pose(self, name):
        x, y = self.feet[name]
        return homogeneous(np.eye(3), [x, y, 0.0])

    def get_com_position(self):
        return np.array([self.q[0], self.q[1], 0.8])

    def get_com_jacobian(self):
        return np.array([[1.0, 0.0], [0.0, 1.0], [0.0, 0.0]])


@pytest.fixture
def planar_arm():
    return PlanarArm(np.array([0.3, 0.6, -0.4]))


@pytest.fixture
def standing_point():
    return StandingPoint()


@pytest.fixture
def rng():
    return np.random.default_rng(7)

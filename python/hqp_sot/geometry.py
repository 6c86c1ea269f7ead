"""
@file geometry.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

# Name of the fixed world frame in frame queries.
WORLD_FRAME = "world"


def near_zero(z):
    """Determines whether a scalar is small enough to be treated as zero

    Args:
        z (float): A scalar input to check
    Returns:
        True if z is close to zero, false otherwise
    """
    return abs(z) < 1e-6


def vec_to_so3(omg):
    """Converts a 3-vector to an so(3) representation, i.e. the matrix of the
    cross product omg x (.)

    Example Input:
        omg = np.array([1, 2, 3])
    Output:
        np.array([[ 0, -3,  2],
                  [ 3,  0, -1],
                  [-2,  1,  0]])
    """
    return np.array([[0,      -omg[2],  omg[1]],
                     [omg[2],       0, -omg[0]],
                     [-omg[1], omg[0],       0]])


def so3_to_vec(so3mat):
    """Converts an so(3) representation to a 3-vector"""
    return np.array([so3mat[2][1], so3mat[0][2], so3mat[1][0]])


def matrix_log3(R):
    """Computes the matrix logarithm of a rotation matrix

    Args:
        R (ndarray): A 3x3 rotation matrix
    Returns:
        The 3x3 skew-symmetric matrix log(R)

    Example Input:
        R = np.array([[0, 0, 1],
                      [1, 0, 0],
                      [0, 1, 0]])
    Output:
        np.array([[          0, -1.20919958,  1.20919958],
                  [ 1.20919958,           0, -1.20919958],
                  [-1.20919958,  1.20919958,           0]])
    """
    acosinput = (np.trace(R) - 1) / 2.0
    if acosinput >= 1:
        return np.zeros((3, 3))
    elif acosinput <= -1:
        if not near_zero(1 + R[2][2]):
            omg = (1.0 / np.sqrt(2 * (1 + R[2][2]))) \
                  * np.array([R[0][2], R[1][2], 1 + R[2][2]])
        elif not near_zero(1 + R[1][1]):
            omg = (1.0 / np.sqrt(2 * (1 + R[1][1]))) \
                  * np.array([R[0][1], 1 + R[1][1], R[2][1]])
        else:
            omg = (1.0 / np.sqrt(2 * (1 + R[0][0]))) \
                  * np.array([1 + R[0][0], R[1][0], R[2][0]])
        return vec_to_so3(np.pi * omg)
    else:
        theta = np.arccos(acosinput)
        return theta / 2.0 / np.sin(theta) * (R - np.array(R).T)


def orientation_error(des_rot, cur_rot):
    """Rotation vector taking cur_rot to des_rot, expressed in the frame
    where both rotations are expressed.

    Args:
        des_rot (ndarray): Desired 3x3 rotation.
        cur_rot (ndarray): Actual 3x3 rotation.
    """
    return cur_rot.dot(so3_to_vec(matrix_log3(cur_rot.T.dot(des_rot))))


def pose_error(des_pose, cur_pose, orientation_gain=1.0):
    """Stacked [position error; orientation_gain * orientation error] between
    two 4x4 homogeneous transforms.
    """
    return np.hstack((des_pose[:3, 3] - cur_pose[:3, 3],
                      orientation_gain * orientation_error(des_pose[:3, :3],
                                                           cur_pose[:3, :3])))


def homogeneous(rot, pos):
    """Builds a 4x4 homogeneous transform."""
    T = np.eye(4)
    T[:3, :3] = rot
    T[:3, 3] = pos
    return T


def inverse_homogeneous(T):
    R, p = T[:3, :3], T[:3, 3]
    return homogeneous(R.T, -R.T.dot(p))

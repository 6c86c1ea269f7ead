"""
@file __init__.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

from hqp_sot.constraints.velocity.joint_limits import JointLimits
from hqp_sot.constraints.velocity.velocity_limits import VelocityLimits
from hqp_sot.constraints.velocity.com_velocity import CoMVelocity
from hqp_sot.constraints.velocity.convex_hull import ConvexHull

"""
@file demo_manipulator_reaching.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01

Velocity IK demo: the end effector reaches an offset position while the
posture is kept in the nullspace, under joint and velocity limits.
"""

import os
import sys
import inspect
import logging

import numpy as np
import pinocchio as pin

from hqp_sot.solver_setting import ControllerSetting, load_yaml
from hqp_sot.robot_model import RobotModel
from hqp_sot.stack import Stack
from hqp_sot.tasks.velocity import Cartesian, Postural
from hqp_sot.constraints.aggregated import AggregatedConstraint
from hqp_sot.constraints.velocity import JointLimits, VelocityLimits
from hqp_sot.controller import VelocityController
from hqp_sot.mat_logger import MatLogger


# absolute directory of this package
rootdir = os.path.dirname(os.path.dirname(
        os.path.abspath(inspect.getfile(inspect.currentframe()))))


def main(argv):
    # Load configuration file
    if len(argv) == 1:
        cfg_file = argv[0]
    else:
        raise RuntimeError("Usage: python3 ./demo.py /<config file within root folder>")
    logging.basicConfig(level=logging.INFO)

    configs = load_yaml(rootdir + cfg_file)
    duration = configs["planner_variables"]["duration"]
    offset = np.array(configs["planner_variables"]["end_effector_offset"])

    setting = ControllerSetting()
    setting.initialize(rootdir, cfg_file)
    if setting.urdf_filename:
        robot = RobotModel.from_urdf(setting.urdf_filename)
    else:
        robot = RobotModel(pin.buildSampleModelManipulator())
    end_effector = setting.end_effector_name or robot.model.frames[-1].name

    q = setting.joint_init_pos if setting.joint_init_pos.size else pin.neutral(robot.model)
    robot.update(q)

    cartesian = Cartesian("ee", q, robot, end_effector, setting.base_name)
    reference = cartesian.get_actual_pose()
    reference[:3, 3] += offset
    cartesian.set_reference(reference)
    cartesian.set_lambda(setting.lambda_)
    postural = Postural(q)
    postural.set_lambda(setting.lambda_)

    q_min, q_max = robot.get_joint_limits()
    bounds = AggregatedConstraint(
        [JointLimits(q, q_max, q_min, setting.joint_bound_scaling),
         VelocityLimits(setting.velocity_limit, setting.timestep, robot.nv)],
        robot.nv)

    stack = Stack([cartesian, postural])
    controller = VelocityController(setting, stack, bounds, robot)
    mat_logger = MatLogger(rootdir + "/hqp_sot_demo.mat")

    for _ in range(int(duration / setting.timestep)):
        q = controller.step(q)
        controller.hqp_solver.log(mat_logger)
        mat_logger.add("q", q)

    robot.update(q)
    logging.info("final position error: %s",
                 reference[:3, 3] - robot.get_frame_pose(end_effector)[:3, 3])
    mat_logger.flush()


if __name__ == '__main__':
    main(sys.argv[1:])

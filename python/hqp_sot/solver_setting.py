"""
@file solver_setting.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import logging

import numpy as np
import yaml

from hqp_sot.constraint import INFTY
from hqp_sot.task import HessianType

logger = logging.getLogger(__name__)


def load_yaml(filename):
    """Reads a yaml configuration file.

    Args:
        filename (str): Path of the file.
    Returns:
        dict with the file content.
    """
    with open(filename, "r") as f:
        return yaml.safe_load(f)


class SolverSetting:
    """Parameters of the hierarchical solver and of the velocity tasks and
    constraints built on top of it.
    """
    def __init__(self):
        self.n_wsr = 132
        self.eps_regularisation = 2.0e2
        self.hessian_regularisation = 1.0e-8
        self.infty = INFTY
        self.hessian_type = HessianType.UNKNOWN
        self.priority_tolerance = 1.0e-6
        self.timestep = 0.01
        self.joint_init_pos = np.zeros(0)
        self.joint_bound_scaling = 1.0
        self.velocity_limit = 1.0
        self.lambda_ = 1.0

    def initialize(self, rootdir, cfg_file, solver_vars_yaml="solver_variables"):
        configs = load_yaml(rootdir + cfg_file)[solver_vars_yaml]
        self.n_wsr = int(configs.get("n_wsr", self.n_wsr))
        self.eps_regularisation = float(
            configs.get("eps_regularisation", self.eps_regularisation))
        self.hessian_regularisation = float(
            configs.get("hessian_regularisation", self.hessian_regularisation))
        self.infty = float(configs.get("infty", self.infty))
        if "hessian_type" in configs:
            self.hessian_type = HessianType[str(configs["hessian_type"]).upper()]
        self.priority_tolerance = float(
            configs.get("priority_tolerance", self.priority_tolerance))
        self.timestep = float(configs.get("timestep", self.timestep))
        if "joint_init_pos" in configs:
            self.joint_init_pos = np.array(configs["joint_init_pos"], dtype=float)
        self.joint_bound_scaling = float(
            configs.get("joint_bound_scaling", self.joint_bound_scaling))
        self.velocity_limit = float(configs.get("velocity_limit", self.velocity_limit))
        self.lambda_ = float(configs.get("lambda", self.lambda_))
        logger.info("SolverSetting: n_wsr %d, eps_regularisation %g, infty %g",
                    self.n_wsr, self.eps_regularisation, self.infty)


class ControllerSetting(SolverSetting):
    """Adds the robot description used by the demos."""
    def __init__(self):
        super().__init__()
        self.urdf_filename = None
        self.base_name = "world"
        self.end_effector_name = None

    def initialize(self, rootdir, cfg_file, solver_vars_yaml="solver_variables",
                   ctrl_vars_yaml="controller_variables"):
        super().initialize(rootdir, cfg_file, solver_vars_yaml)
        configs = load_yaml(rootdir + cfg_file)[ctrl_vars_yaml]
        if configs.get("urdf_filename"):
            self.urdf_filename = rootdir + configs["urdf_filename"]
        logger.info("ControllerSetting: urdf_filename: %s", self.urdf_filename)
        self.base_name = configs.get("base_name", self.base_name)
        self.end_effector_name = configs["end_effector_name"]

"""
@file __init__.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

from hqp_sot.constraint import INFTY, Constraint
from hqp_sot.task import HessianType, Task
from hqp_sot.tasks.aggregated import Aggregated
from hqp_sot.constraints.aggregated import AggregatedConstraint
from hqp_sot.stack import Stack
from hqp_sot.solvers.qp_problem import QPProblem, SolverStatus
from hqp_sot.solvers.hqp_solver import HQPSolver, SolveResult

"""
@file aggregated.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np
from scipy.linalg import block_diag

from hqp_sot.task import Task

TASK_ID_SEPARATOR = "plus"


class Aggregated(Task):
    """Merges several tasks into a single one. The sub-tasks are stacked in
    list order:

        A = [A_1; A_2; ...],  b = [lambda_1 b_1; lambda_2 b_2; ...],
        W = blkdiag(W_1, W_2, ...)

    The constraints of the aggregated task are its own constraints followed
    by the constraints of every sub-task, each instance appearing once.
    Sub-tasks and constraints are shared, never copied.
    """
    def __init__(self, tasks, x_size, bounded_lambda=True):
        tasks = list(tasks)
        super().__init__(
            TASK_ID_SEPARATOR.join(t.get_task_id() for t in tasks),
            x_size, bounded_lambda)
        for task in tasks:
            if task.get_x_size() != self._x_size:
                raise ValueError(
                    "task %s has x_size %d, aggregated expects %d"
                    % (task.get_task_id(), task.get_x_size(), self._x_size))
        self._tasks = tasks
        self._own_constraints = []
        self._aggregated_constraints = []
        self.aggregate()

    def get_task_list(self):
        return list(self._tasks)

    def get_own_constraints(self):
        return list(self._own_constraints)

    def get_aggregated_constraints(self):
        return list(self._aggregated_constraints)

    def get_constraints(self):
        return self._own_constraints + self._aggregated_constraints

    def add_constraint(self, constraint):
        if constraint.get_x_size() != self._x_size:
            raise ValueError("constraint %s has x_size %d, task %s has %d"
                             % (constraint.get_constraint_id(),
                                constraint.get_x_size(), self._task_id,
                                self._x_size))
        if not any(c is constraint for c in self._own_constraints):
            self._own_constraints.append(constraint)
        self._merge_constraints()

    def remove_constraint(self, constraint):
        self._own_constraints = [
            c for c in self._own_constraints if c is not constraint]
        self._merge_constraints()

    def update(self, x):
        """Updates every sub-task and own constraint with x, then rebuilds
        the aggregated matrices.
        """
        x = np.asarray(x, dtype=float).reshape(-1)
        for task in self._tasks:
            task.update(x)
        for constraint in self._own_constraints:
            constraint.update(x)
        self.aggregate()

    def aggregate(self):
        """Rebuilds A, b, W and the constraint union from the current state
        of the sub-tasks, without updating them.
        """
        if self._tasks:
            A = np.vstack([t.get_A() for t in self._tasks])
            b = np.concatenate([t.get_lambda() * t.get_b() for t in self._tasks])
            blocks = [t.get_weight() for t in self._tasks if t.get_A().shape[0] > 0]
            W = block_diag(*blocks) if blocks else np.zeros((0, 0))
        else:
            A = np.zeros((0, self._x_size))
            b = np.zeros(0)
            W = np.zeros((0, 0))
        self._set_task(A, b)
        self._W = W
        self._merge_constraints()

    def _merge_constraints(self):
        merged = []
        for task in self._tasks:
            for constraint in task.get_constraints():
                if any(constraint is c for c in self._own_constraints):
                    continue
                if any(constraint is c for c in merged):
                    continue
                merged.append(constraint)
        self._aggregated_constraints = merged

    def _log(self, mat_logger):
        for task in self._tasks:
            task.log(mat_logger)

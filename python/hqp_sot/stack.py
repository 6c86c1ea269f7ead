"""
@file stack.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.tasks.aggregated import Aggregated


class Stack:
    """Ordered priority levels. Level 0 has the highest priority."""

    def __init__(self, tasks=(), x_size=None):
        self._tasks = []
        self._x_size = x_size
        for task in tasks:
            self.add_task(task)

    @classmethod
    def from_priorities(cls, pairs, x_size=None):
        """Builds a stack from (priority, task) pairs. Smaller numbers come
        first and tasks sharing a priority are merged into one Aggregated.
        """
        priorities = sorted(set(priority for priority, _ in pairs))
        stack = cls(x_size=x_size)
        for priority in priorities:
            tasks = [task for p, task in pairs if p == priority]
            if len(tasks) == 1:
                stack.add_task(tasks[0])
            else:
                stack.add_task(Aggregated(tasks, tasks[0].get_x_size()))
        return stack

    def add_task(self, task):
        if any(t is task for t in self._tasks):
            raise ValueError("task %s is already in the stack" % task.get_task_id())
        if self._x_size is None:
            self._x_size = task.get_x_size()
        elif task.get_x_size() != self._x_size:
            raise ValueError("task %s has x_size %d, stack has %d"
                             % (task.get_task_id(), task.get_x_size(), self._x_size))
        self._tasks.append(task)

    def get_tasks(self):
        return list(self._tasks)

    def get_x_size(self):
        return self._x_size

    def update(self, x):
        """Updates every level with the same state."""
        x = np.asarray(x, dtype=float).reshape(-1)
        for task in self._tasks:
            task.update(x)

    def log(self, mat_logger):
        for task in self._tasks:
            task.log(mat_logger)

    def __len__(self):
        return len(self._tasks)

    def __iter__(self):
        return iter(self._tasks)

    def __getitem__(self, index):
        return self._tasks[index]

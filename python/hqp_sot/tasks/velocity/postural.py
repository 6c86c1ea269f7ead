"""
@file postural.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np

from hqp_sot.task import HessianType, Task


class Postural(Task):
    """Joint space velocity task, A = I and b = q_ref - q. The reference
    defaults to the configuration given at construction.
    """
    def __init__(self, x, task_id="postural"):
        x = np.asarray(x, dtype=float).reshape(-1)
        super().__init__(task_id, x.size)
        self._q = x.copy()
        self._q_ref = x.copy()
        self._set_task(np.eye(self._x_size), np.zeros(self._x_size))
        self.set_hessian_type(HessianType.IDENTITY)
        self._update(x)

    def _update(self, x):
        self._q = x.copy()
        self._set_task(np.eye(self._x_size), self._q_ref - self._q)

    def set_weight(self, W):
        super().set_weight(W)
        if np.array_equal(self._W, np.eye(self._x_size)):
            self.set_hessian_type(HessianType.IDENTITY)
        else:
            self.set_hessian_type(HessianType.UNKNOWN)

    def set_reference(self, x_ref):
        x_ref = np.asarray(x_ref, dtype=float).reshape(-1)
        if x_ref.size != self._x_size:
            raise ValueError("reference has size %d, expected %d"
                             % (x_ref.size, self._x_size))
        self._q_ref = x_ref.copy()
        self._set_task(self._A, self._q_ref - self._q)

    def get_reference(self):
        return self._q_ref.copy()

    def get_actual_positions(self):
        return self._q.copy()

    def _log(self, mat_logger):
        mat_logger.add(self._task_id + "_x_ref", self._q_ref)
        mat_logger.add(self._task_id + "_x", self._q)

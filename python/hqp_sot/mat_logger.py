"""
@file mat_logger.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import logging

import numpy as np
from scipy.io import savemat

logger = logging.getLogger(__name__)


class MatLogger:
    """Collects named matrices, one sample per add() call, and writes them
    to a .mat file. Samples of a name are stacked along a new last axis.
    """
    def __init__(self, filename):
        self.filename = filename
        self._samples = {}

    def add(self, name, value):
        self._samples.setdefault(name, []).append(np.array(value, dtype=float))

    def get(self, name):
        return list(self._samples.get(name, []))

    def names(self):
        return list(self._samples)

    def clear(self):
        self._samples = {}

    def flush(self):
        """Writes every logged variable to the file."""
        data = {}
        for name, samples in self._samples.items():
            if all(s.shape == samples[0].shape for s in samples):
                data[name] = np.stack(samples, axis=-1)
            else:
                logger.warning("%s changed shape, only the last sample is saved", name)
                data[name] = samples[-1]
        savemat(self.filename, data)
        logger.info("saved %d variables to %s", len(data), self.filename)

"""
@file convex_hull.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

import numpy as np
from scipy.spatial import ConvexHull as QHull

from hqp_sot.constraint import Constraint

DEFAULT_SAFETY_MARGIN = 0.01


class ConvexHull(Constraint):
    """Keeps the ground projection of the center of mass inside the support
    polygon of the contact links, shrunk by a safety margin. Each hull edge
    a' p + c <= 0 gives the row

        a' J_com_xy dq <= -c - margin - a' com_xy
    """
    def __init__(self, x, robot, links_in_contact, safety_margin=DEFAULT_SAFETY_MARGIN,
                 constraint_id="convex_hull"):
        x = np.asarray(x, dtype=float).reshape(-1)
        super().__init__(constraint_id, x.size)
        self.robot = robot
        self.set_links_in_contact(links_in_contact)
        self._safety_margin = float(safety_margin)
        self._hull_points = np.zeros((0, 2))
        self._update(x)

    def set_links_in_contact(self, links_in_contact):
        links_in_contact = list(links_in_contact)
        if len(links_in_contact) < 3:
            raise ValueError("a support polygon needs at least 3 contact links")
        self._links_in_contact = links_in_contact

    def get_links_in_contact(self):
        return list(self._links_in_contact)

    def get_safety_margin(self):
        return self._safety_margin

    def set_safety_margin(self, safety_margin):
        self._safety_margin = float(safety_margin)

    def get_hull_points(self):
        """Vertices of the support polygon, counter-clockwise."""
        return self._hull_points.copy()

    def _update(self, x):
        points = np.array([self.robot.get_frame_pose(link)[:2, 3]
                           for link in self._links_in_contact])
        hull = QHull(points)
        self._hull_points = points[hull.vertices]

        normals, offsets = hull.equations[:, :2], hull.equations[:, 2]
        com_xy = self.robot.get_com_position()[:2]
        J_xy = self.robot.get_com_jacobian()[:2]
        self.set_inequality(normals.dot(J_xy), None,
                            -offsets - self._safety_margin - normals.dot(com_xy))

    def _log(self, mat_logger):
        mat_logger.add(self._constraint_id + "_hull_points", self._hull_points)

"""
@file __init__.py
@package hqp_sot
@author Xinyuan Liu (liuxinyuan872@gmail.com)
@license License BSD-3-Clause
@Copyright (c) 2026, Harbin Institute of Technology.
@date 2026-01
"""

from hqp_sot.tasks.velocity.postural import Postural
from hqp_sot.tasks.velocity.cartesian import Cartesian

"""
Geometry Module
===============

Quaternion helpers and reference frames.
"""

from . import quaternion
from .frames import (
    AttitudeHold,
    FrameTransform,
    THRUST_AXIS_BODY,
    hold_direction,
    hold_quaternion,
    lvlh_matrix,
    thrust_direction,
)

__all__ = [
    'quaternion',
    'AttitudeHold',
    'FrameTransform',
    'THRUST_AXIS_BODY',
    'hold_direction',
    'hold_quaternion',
    'lvlh_matrix',
    'thrust_direction',
]

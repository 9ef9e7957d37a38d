"""
Manufacturer conventions for robot arm joint values.

Controllers report axis values in degrees with their own zero positions and
rotation senses. Internally every arm uses radians with the convention of
the analytic solvers; the functions below convert between the two.
"""

import math
from enum import Enum

HALF_PI = math.pi / 2


class Manufacturer(Enum):
    ABB = "ABB"
    KUKA = "KUKA"
    UR = "UR"
    STAUBLI = "Staubli"
    OTHER = "Other"
    ALL = "All"

    @classmethod
    def parse(cls, value: "str | Manufacturer") -> "Manufacturer":
        if isinstance(value, Manufacturer):
            return value
        for member in cls:
            if member.value.lower() == value.lower() or member.name.lower() == value.lower():
                return member
        raise ValueError(f"Unknown manufacturer: {value}")


def arm_degree_to_radian(manufacturer: Manufacturer, degree: float, axis: int) -> float:
    """Convert a controller axis value (degrees) to solver radians."""
    radian = math.radians(degree)

    match manufacturer:
        case Manufacturer.ABB:
            if axis == 1:
                radian = -radian + HALF_PI
            if axis in (2, 4):
                radian = -radian
        case Manufacturer.KUKA:
            if axis == 2:
                radian -= HALF_PI
            radian = -radian
        case Manufacturer.STAUBLI:
            if axis == 1:
                radian = -radian + HALF_PI
            if axis == 2:
                radian = -radian + HALF_PI
            if axis == 4:
                radian = -radian

    return radian


def arm_radian_to_degree(manufacturer: Manufacturer, radian: float, axis: int) -> float:
    """Convert solver radians back to a controller axis value (degrees)."""
    match manufacturer:
        case Manufacturer.ABB:
            if axis == 1:
                radian = -(radian - HALF_PI)
            if axis in (2, 4):
                radian = -radian
        case Manufacturer.KUKA:
            radian = -radian
            if axis == 2:
                radian += HALF_PI
        case Manufacturer.STAUBLI:
            if axis == 1:
                radian = -(radian - HALF_PI)
            if axis == 2:
                radian = -(radian - HALF_PI)
            if axis == 4:
                radian = -radian

    return math.degrees(radian)


def arm_start_pose(manufacturer: Manufacturer) -> list[float]:
    """Joint values used to compute the default plane of every arm joint."""
    match manufacturer:
        case Manufacturer.KUKA:
            return [0.0, HALF_PI, 0.0, 0.0, 0.0, -math.pi]
        case Manufacturer.STAUBLI:
            return [0.0, HALF_PI, HALF_PI, 0.0, 0.0, 0.0]
        case Manufacturer.UR:
            return [0.0, -HALF_PI, 0.0, -HALF_PI, 0.0, 0.0]
        case _:
            return [0.0, HALF_PI, 0.0, 0.0, 0.0, 0.0]

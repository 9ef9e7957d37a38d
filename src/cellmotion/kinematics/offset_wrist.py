"""
Closed-form kinematics for 6-axis arms with an offset wrist.

Collaborative arms place the wrist axes side by side instead of crossing
them. Axis 1 comes from a circle/line intersection, axis 5 from a projected
dot product, and axes 6, 3, 2 and 4 follow from the residual rotation.
"""

import math
from typing import Sequence

import numpy as np

from cellmotion.core.geometry import rotation_z
from cellmotion.kinematics.spherical_wrist import safe_acos, wrap_angle
from cellmotion.targets.target import RobotConfigurations


def _sign(value: float) -> float:
    return float((value > 0) - (value < 0))


def inverse_kinematics(
    a: Sequence[float],
    d: Sequence[float],
    transform: np.ndarray,
    configuration: RobotConfigurations,
) -> tuple[list[float], list[str]]:
    """
    Joint values reaching a flange transform expressed in the arm base.

    Returns:
        Joint values wrapped into ``[-pi, pi]`` and the list of errors.
    """
    errors: list[str] = []

    shoulder = RobotConfigurations.SHOULDER in configuration
    elbow = RobotConfigurations.ELBOW in configuration
    if shoulder:
        elbow = not elbow
    wrist = RobotConfigurations.WRIST not in configuration
    if shoulder:
        wrist = not wrist

    joints = [0.0] * 6
    unreachable = False

    t = transform @ rotation_z(math.pi / 2)

    # shoulder
    big_a = d[5] * t[1, 2] - t[1, 3]
    big_b = d[5] * t[0, 2] - t[0, 3]
    radius = math.sqrt(big_a * big_a + big_b * big_b)

    arccos = safe_acos(d[3] / radius) if radius else math.nan
    if math.isnan(arccos):
        errors.append("Overhead singularity.")
        arccos = 0.0

    arctan = math.atan2(-big_b, big_a)
    joints[0] = arctan + arccos if not shoulder else arctan - arccos

    # wrist 2
    numer = t[0, 3] * math.sin(joints[0]) - t[1, 3] * math.cos(joints[0]) - d[3]
    arccos = safe_acos(numer / d[5])
    if math.isnan(arccos):
        errors.append("Overhead singularity 2.")
        arccos = math.pi
        unreachable = True

    joints[4] = arccos if not wrist else 2.0 * math.pi - arccos

    # rest
    c1, s1 = math.cos(joints[0]), math.sin(joints[0])
    c5, s5 = math.cos(joints[4]), math.sin(joints[4])

    joints[5] = math.atan2(
        _sign(s5) * -(t[0, 1] * s1 - t[1, 1] * c1),
        _sign(s5) * (t[0, 0] * s1 - t[1, 0] * c1),
    )

    c6, s6 = math.cos(joints[5]), math.sin(joints[5])
    x04x = -s5 * (t[0, 2] * c1 + t[1, 2] * s1) - c5 * (
        s6 * (t[0, 1] * c1 + t[1, 1] * s1) - c6 * (t[0, 0] * c1 + t[1, 0] * s1)
    )
    x04y = c5 * (t[2, 0] * c6 - t[2, 1] * s6) - t[2, 2] * s5
    p13x = (
        d[4] * (s6 * (t[0, 0] * c1 + t[1, 0] * s1) + c6 * (t[0, 1] * c1 + t[1, 1] * s1))
        - d[5] * (t[0, 2] * c1 + t[1, 2] * s1)
        + t[0, 3] * c1
        + t[1, 3] * s1
    )
    p13y = t[2, 3] - d[0] - d[5] * t[2, 2] + d[4] * (t[2, 1] * c6 + t[2, 0] * s6)
    c3 = (p13x * p13x + p13y * p13y - a[1] * a[1] - a[2] * a[2]) / (2.0 * a[1] * a[2])

    arccos = safe_acos(c3)
    if math.isnan(arccos):
        arccos = 0.0
        unreachable = True

    joints[2] = arccos if not elbow else 2.0 * math.pi - arccos

    denom = a[1] * a[1] + a[2] * a[2] + 2 * a[1] * a[2] * c3
    s3 = math.sin(arccos)
    big_a = a[1] + a[2] * c3
    big_b = a[2] * s3

    if not elbow:
        joints[1] = math.atan2((big_a * p13y - big_b * p13x) / denom, (big_a * p13x + big_b * p13y) / denom)
    else:
        joints[1] = math.atan2((big_a * p13y + big_b * p13x) / denom, (big_a * p13x - big_b * p13y) / denom)

    c23 = math.cos(joints[1] + joints[2])
    s23 = math.sin(joints[1] + joints[2])
    joints[3] = math.atan2(c23 * x04y - s23 * x04x, x04x * c23 + x04y * s23)

    if unreachable:
        errors.append("Target out of reach.")

    joints = [wrap_angle(j) for j in joints]
    joints = [0.0 if math.isnan(j) else j for j in joints]
    return joints, errors


def forward_kinematics(a: Sequence[float], d: Sequence[float], joints: Sequence[float]) -> list[np.ndarray]:
    """Pose of every arm axis relative to the arm base; the last one is the flange."""
    c = [math.cos(j) for j in joints]
    s = [math.sin(j) for j in joints]
    s23 = math.sin(joints[1] + joints[2])
    c23 = math.cos(joints[1] + joints[2])
    s234 = math.sin(joints[1] + joints[2] + joints[3])
    c234 = math.cos(joints[1] + joints[2] + joints[3])

    reach = a[2] * c23 + a[1] * c[1]
    height = d[0] + a[2] * s23 + a[1] * s[1]

    t0 = np.array(
        [
            [c[0], 0.0, s[0], 0.0],
            [s[0], 0.0, -c[0], 0.0],
            [0.0, 1.0, 0.0, d[0]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    t1 = np.array(
        [
            [c[0] * c[1], -c[0] * s[1], s[0], a[1] * c[0] * c[1]],
            [c[1] * s[0], -s[0] * s[1], -c[0], a[1] * c[1] * s[0]],
            [s[1], c[1], 0.0, d[0] + a[1] * s[1]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    t2 = np.array(
        [
            [c23 * c[0], -s23 * c[0], s[0], c[0] * reach],
            [c23 * s[0], -s23 * s[0], -c[0], s[0] * reach],
            [s23, c23, 0.0, height],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    t3 = np.array(
        [
            [c234 * c[0], s[0], s234 * c[0], c[0] * reach + d[3] * s[0]],
            [c234 * s[0], -c[0], s234 * s[0], s[0] * reach - d[3] * c[0]],
            [s234, 0.0, -c234, height],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    t4 = np.array(
        [
            [
                s[0] * s[4] + c234 * c[0] * c[4],
                -s234 * c[0],
                c[4] * s[0] - c234 * c[0] * s[4],
                c[0] * reach + d[3] * s[0] + d[4] * s234 * c[0],
            ],
            [
                c234 * c[4] * s[0] - c[0] * s[4],
                -s234 * s[0],
                -c[0] * c[4] - c234 * s[0] * s[4],
                s[0] * reach - d[3] * c[0] + d[4] * s234 * s[0],
            ],
            [s234 * c[4], c234, -s234 * s[4], height - d[4] * c234],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    t5 = np.array(
        [
            [
                c[5] * (s[0] * s[4] + c234 * c[0] * c[4]) - s234 * c[0] * s[5],
                -s[5] * (s[0] * s[4] + c234 * c[0] * c[4]) - s234 * c[0] * c[5],
                c[4] * s[0] - c234 * c[0] * s[4],
                d[5] * (c[4] * s[0] - c234 * c[0] * s[4])
                + c[0] * reach
                + d[3] * s[0]
                + d[4] * s234 * c[0],
            ],
            [
                -c[5] * (c[0] * s[4] - c234 * c[4] * s[0]) - s234 * s[0] * s[5],
                s[5] * (c[0] * s[4] - c234 * c[4] * s[0]) - s234 * c[5] * s[0],
                -c[0] * c[4] - c234 * s[0] * s[4],
                s[0] * reach
                - d[3] * c[0]
                - d[5] * (c[0] * c[4] + c234 * s[0] * s[4])
                + d[4] * s234 * s[0],
            ],
            [
                c234 * s[5] + s234 * c[4] * c[5],
                c234 * c[5] - s234 * c[4] * s[5],
                -s234 * s[4],
                height - d[4] * c234 - d[5] * s234 * s[4],
            ],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )

    return [t0, t1, t2, t3, t4, t5 @ rotation_z(-math.pi / 2)]

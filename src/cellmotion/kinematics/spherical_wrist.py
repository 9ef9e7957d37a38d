"""
Closed-form kinematics for 6-axis arms whose last three axes intersect.

The inverse solution follows the classic geometric decomposition: project
the wrist center, solve axis 1 from its azimuth, solve axes 2 and 3 from the
shoulder/elbow/wrist triangle, and read axes 4 to 6 from the residual
rotation. Link parameters are the ``a``/``d`` offsets of the arm joints.
"""

import math
from typing import Sequence

import numpy as np

from cellmotion.core.geometry import SINGULARITY_TOL, invert
from cellmotion.targets.target import RobotConfigurations


def safe_acos(value: float) -> float:
    """``acos`` that returns NaN outside ``[-1, 1]`` instead of raising."""
    if -1.0 <= value <= 1.0:
        return math.acos(value)
    return math.nan


def wrap_angle(value: float) -> float:
    if value > math.pi:
        value -= 2 * math.pi
    if value < -math.pi:
        value += 2 * math.pi
    return value


def _upper_arm(a: Sequence[float], d: Sequence[float], j0: float, j1: float, j2: float) -> np.ndarray:
    """Pose at the end of axis 3, before the wrist offset ``d[3]``."""
    c0, s0 = math.cos(j0), math.sin(j0)
    c1, s1 = math.cos(j1), math.sin(j1)
    c2, s2 = math.cos(j2), math.sin(j2)
    c12 = c1 * c2 - s1 * s2
    s12 = s1 * c2 + c1 * s2

    return np.array(
        [
            [c0 * c12, s0, c0 * s12, c0 * (a[2] * c12 + a[1] * c1) + a[0] * c0],
            [s0 * c12, -c0, s0 * s12, s0 * (a[2] * c12 + a[1] * c1) + a[0] * s0],
            [s12, 0.0, -c12, a[2] * s12 + a[1] * s1 + d[0]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )


def inverse_kinematics(
    a: Sequence[float],
    d: Sequence[float],
    transform: np.ndarray,
    configuration: RobotConfigurations,
) -> tuple[list[float], list[str]]:
    """
    Joint values reaching a flange transform expressed in the arm base.

    Args:
        a: Link lengths of the six arm joints.
        d: Link offsets of the six arm joints.
        transform: Flange pose relative to the arm base.
        configuration: Branch selector among the eight solutions.

    Returns:
        Joint values wrapped into ``[-pi, pi]`` and the list of errors.
    """
    errors: list[str] = []

    shoulder = RobotConfigurations.SHOULDER in configuration
    elbow = RobotConfigurations.ELBOW in configuration
    if shoulder:
        elbow = not elbow
    wrist = RobotConfigurations.WRIST not in configuration

    unreachable = False
    joints = [0.0] * 6

    l2 = math.hypot(a[2], d[3])
    ad2 = math.atan2(a[2], d[3])
    center = transform[:3, 3] - transform[:3, 2] * d[5]
    joints[0] = math.atan2(center[1], center[0])

    ll = math.hypot(center[0], center[1])
    if ll > 0:
        p1 = np.array([a[0] * center[0] / ll, a[0] * center[1] / ll, d[0]])
    else:
        p1 = np.array([math.nan, math.nan, d[0]])

    if shoulder:
        joints[0] += math.pi
        center = np.array([-center[0], -center[1], center[2]])

    l3 = float(np.linalg.norm(center - p1))
    l1 = a[1]

    beta = safe_acos((l1 * l1 + l3 * l3 - l2 * l2) / (2 * l1 * l3)) if l3 else math.nan
    if math.isnan(beta):
        beta = 0.0
        unreachable = True
    if elbow:
        beta = -beta

    ttl = math.hypot(center[0] - p1[0], center[1] - p1[1])
    if shoulder:
        ttl = -ttl
    al = math.atan2(center[2] - p1[2], ttl)

    joints[1] = beta + al

    gama = safe_acos((l1 * l1 + l2 * l2 - l3 * l3) / (2 * l1 * l2))
    if math.isnan(gama):
        gama = math.pi
        unreachable = True
    if elbow:
        gama = -gama

    joints[2] = gama - ad2 - math.pi / 2

    residual = invert(_upper_arm(a, d, joints[0], joints[1], joints[2])) @ transform
    joints[3] = math.atan2(residual[1, 2], residual[0, 2])
    joints[4] = safe_acos(residual[2, 2])
    joints[5] = math.atan2(residual[2, 1], -residual[2, 0])

    if wrist:
        joints[3] += math.pi
        joints[4] = -joints[4]
        joints[5] -= math.pi

    joints = [wrap_angle(j) for j in joints]

    if unreachable:
        errors.append("Target out of reach")

    if abs(1 - residual[2, 2]) < 0.0001:
        errors.append("Near wrist singularity")

    if math.hypot(center[0], center[1]) < a[0] + SINGULARITY_TOL:
        errors.append("Near overhead singularity")

    joints = [0.0 if math.isnan(j) else j for j in joints]
    return joints, errors


def forward_kinematics(a: Sequence[float], d: Sequence[float], joints: Sequence[float]) -> list[np.ndarray]:
    """
    Pose of every arm axis relative to the arm base.

    The last transform is the flange; the first two sit at the shoulder and
    the elbow, the third at the end of the upper arm and the remaining ones at
    the wrist center.
    """
    c = [math.cos(j) for j in joints]
    s = [math.sin(j) for j in joints]

    shoulder = np.array(
        [
            [c[0], s[0], 0.0, a[0] * c[0]],
            [s[0], -c[0], 0.0, a[0] * s[0]],
            [0.0, 0.0, -1.0, d[0]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    elbow = np.array(
        [
            [c[0] * c[1], s[0], c[0] * s[1], c[0] * a[1] * c[1] + a[0] * c[0]],
            [s[0] * c[1], -c[0], s[0] * s[1], s[0] * a[1] * c[1] + a[0] * s[0]],
            [s[1], 0.0, -c[1], a[1] * s[1] + d[0]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    upper_arm = _upper_arm(a, d, joints[0], joints[1], joints[2])

    axis4 = np.array(
        [
            [c[3], -s[3], 0.0, 0.0],
            [s[3], c[3], 0.0, 0.0],
            [0.0, 0.0, 1.0, d[3]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    axis5 = np.array(
        [
            [c[3] * c[4], -s[3], c[3] * s[4], 0.0],
            [s[3] * c[4], c[3], s[3] * s[4], 0.0],
            [-s[4], 0.0, c[4], d[3]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )
    flange = np.array(
        [
            [
                c[3] * c[4] * c[5] - s[3] * s[5],
                -c[3] * c[4] * s[5] - s[3] * c[5],
                c[3] * s[4],
                c[3] * s[4] * d[5],
            ],
            [
                s[3] * c[4] * c[5] + c[3] * s[5],
                -s[3] * c[4] * s[5] + c[3] * c[5],
                s[3] * s[4],
                s[3] * s[4] * d[5],
            ],
            [-s[4] * c[5], s[4] * s[5], c[4], c[4] * d[5] + d[3]],
            [0.0, 0.0, 0.0, 1.0],
        ]
    )

    return [
        shoulder,
        elbow,
        upper_arm,
        upper_arm @ axis4,
        upper_arm @ axis5,
        upper_arm @ flange,
    ]

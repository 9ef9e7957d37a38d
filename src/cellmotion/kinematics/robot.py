"""Kinematics of 6-axis robot arms."""

import math
from enum import Enum
from typing import TYPE_CHECKING, Optional, Sequence

import numpy as np

from cellmotion.core.geometry import (
    ANGLE_TOL,
    frame_to_matrix,
    invert,
    matrix_to_frame,
    rotation_z,
)
from cellmotion.kinematics import offset_wrist, spherical_wrist
from cellmotion.kinematics.mechanism import MechanismKinematics
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.targets.target import CartesianTarget, JointTarget, RobotConfigurations, Target

if TYPE_CHECKING:
    from cellmotion.mechanisms.mechanism import RobotArm


class WristTopology(Enum):
    """Arm families with a closed-form inverse solution."""

    SPHERICAL = "spherical"
    OFFSET = "offset"


def squared_difference(a: float, b: float) -> float:
    """Squared shortest angular distance between two joint values."""
    difference = abs(a - b)
    if difference > math.pi:
        difference = math.pi * 2 - difference
    return difference * difference


class RobotKinematics(MechanismKinematics):
    """
    Arm solver dispatching to the closed-form equations of its wrist topology.

    Cartesian targets are solved with the forced configuration when one is
    given (or when there is nothing to be close to), otherwise with the
    solution closest to the previous joints. Joint targets get their
    configuration back-computed from forward kinematics.
    """

    solution_count = 8

    def __init__(self, arm: "RobotArm") -> None:
        super().__init__(arm)
        self.a = [joint.a for joint in arm.joints]
        self.d = [joint.d for joint in arm.joints]

    def inverse_kinematics(
        self, transform: np.ndarray, configuration: RobotConfigurations
    ) -> tuple[list[float], list[str]]:
        match self.mechanism.wrist:
            case WristTopology.SPHERICAL:
                return spherical_wrist.inverse_kinematics(self.a, self.d, transform, configuration)
            case WristTopology.OFFSET:
                return offset_wrist.inverse_kinematics(self.a, self.d, transform, configuration)
        raise ValueError(f"Unsupported wrist topology: {self.mechanism.wrist}")

    def forward_kinematics(self, joints: Sequence[float]) -> list[np.ndarray]:
        match self.mechanism.wrist:
            case WristTopology.SPHERICAL:
                return spherical_wrist.forward_kinematics(self.a, self.d, joints)
            case WristTopology.OFFSET:
                return offset_wrist.forward_kinematics(self.a, self.d, joints)
        raise ValueError(f"Unsupported wrist topology: {self.mechanism.wrist}")

    def set_joints(
        self,
        solution: KinematicSolution,
        target: Target,
        prev_joints: Optional[Sequence[float]],
    ) -> None:
        joint_count = len(self.mechanism.joints)

        if isinstance(target, JointTarget):
            joints = list(target.joints[:joint_count])
            solution.joints = joints + [0.0] * (joint_count - len(joints))
            return

        if not isinstance(target, CartesianTarget):
            raise TypeError(f"Unsupported target type: {type(target).__name__}")

        tcp = rotation_z(math.pi) @ frame_to_matrix(target.tool.tcp)
        target_plane = frame_to_matrix(target.frame.plane) @ frame_to_matrix(target.plane)
        transform = invert(frame_to_matrix(solution.planes[0])) @ target_plane @ invert(tcp)

        if target.configuration is not None or prev_joints is None:
            configuration = (
                target.configuration if target.configuration is not None else RobotConfigurations.NONE
            )
            solution.configuration = configuration
            joints, errors = self.inverse_kinematics(transform, configuration)
        else:
            joints, configuration, errors, _ = self.get_closest_solution(transform, prev_joints)
            solution.configuration = configuration

        solution.joints = (
            JointTarget.get_absolute_joints(joints, prev_joints) if prev_joints is not None else joints
        )
        solution.errors.extend(errors)

    def set_planes(self, solution: KinematicSolution, target: Target) -> None:
        transforms = self.forward_kinematics(solution.joints)

        if isinstance(target, JointTarget):
            if len(self.mechanism.joints) == 7:
                solution.configuration = RobotConfigurations.NONE
            else:
                _, configuration, _, difference = self.get_closest_solution(
                    transforms[-1], solution.joints
                )
                solution.configuration = (
                    configuration if difference < ANGLE_TOL else RobotConfigurations.UNDEFINED
                )

        flip = rotation_z(math.pi)
        for i in range(len(self.mechanism.joints)):
            solution.planes[i + 1] = matrix_to_frame(transforms[i] @ flip)

    def get_closest_solution(
        self, transform: np.ndarray, prev_joints: Sequence[float]
    ) -> tuple[list[float], RobotConfigurations, list[str], float]:
        """
        Pick the branch whose joints are closest to ``prev_joints``.

        Returns:
            The joints (made continuous with ``prev_joints``), the configuration
            of the winning branch, its errors and the summed squared angular
            difference.
        """
        closest: list[float] = []
        closest_errors: list[str] = []
        closest_index = 0
        closest_difference = math.inf
        joint_count = len(self.mechanism.joints)

        for i in range(self.solution_count):
            joints, errors = self.inverse_kinematics(transform, RobotConfigurations(i))
            joints = JointTarget.get_absolute_joints(joints, prev_joints)

            difference = sum(
                squared_difference(prev_joints[j], joints[j]) for j in range(joint_count)
            )

            if difference < closest_difference:
                closest = joints
                closest_errors = errors
                closest_index = i
                closest_difference = difference

        return closest, RobotConfigurations(closest_index), closest_errors, closest_difference

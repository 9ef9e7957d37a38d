"""Shared solve sequence for every mechanism kind."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Sequence

import compas.geometry as cg

from cellmotion.core.geometry import frame_to_matrix, plane_to_plane, transform_frame
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.targets.target import Target

if TYPE_CHECKING:
    from cellmotion.mechanisms.mechanism import Mechanism


class MechanismKinematics(ABC):
    """
    Solve a target for one mechanism.

    The sequence is the same for arms and external axes: place the base
    plane, compute joint values, check them against their ranges, compute
    joint planes in mechanism coordinates, and finally move those planes onto
    the base plane.
    """

    def __init__(self, mechanism: "Mechanism") -> None:
        self.mechanism = mechanism

    def solve(
        self,
        target: Target,
        prev_joints: Optional[Sequence[float]] = None,
        base_plane: Optional[cg.Frame] = None,
    ) -> KinematicSolution:
        mechanism = self.mechanism
        joint_count = len(mechanism.joints)

        base = mechanism.base_plane
        if base_plane is not None:
            base = transform_frame(base, plane_to_plane(cg.Frame.worldXY(), base_plane))

        solution = KinematicSolution(
            joints=[0.0] * joint_count,
            planes=[base] + [cg.Frame.worldXY() for _ in range(joint_count)],
        )

        self.set_joints(solution, target, prev_joints)
        self.joints_out_of_range(solution)
        self.set_planes(solution, target)

        transform = frame_to_matrix(solution.planes[0])
        for i in range(1, joint_count + 1):
            solution.planes[i] = transform_frame(solution.planes[i], transform)

        return solution

    def joints_out_of_range(self, solution: KinematicSolution) -> None:
        """Report and clamp joint values outside their permitted range."""
        for joint in self.mechanism.joints:
            value = solution.joints[joint.index]
            if not joint.includes(value):
                solution.errors.append(f"Axis {joint.number + 1} is outside the permitted range.")
                solution.joints[joint.index] = joint.clamp(value)

    @abstractmethod
    def set_joints(
        self,
        solution: KinematicSolution,
        target: Target,
        prev_joints: Optional[Sequence[float]],
    ) -> None:
        ...

    @abstractmethod
    def set_planes(self, solution: KinematicSolution, target: Target) -> None:
        ...

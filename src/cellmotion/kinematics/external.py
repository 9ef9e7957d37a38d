"""Kinematics of external axes: linear tracks, positioners and custom axes."""

from typing import Optional, Sequence

import compas.geometry as cg

from cellmotion.core.geometry import move_frame, rotate_frame
from cellmotion.kinematics.mechanism import MechanismKinematics
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.targets.target import JointTarget, Target


class ExternalKinematics(MechanismKinematics):
    """External axes read their values from ``target.external`` by joint number."""

    missing_axis_error = "External axis not configured on this target."

    def set_joints(
        self,
        solution: KinematicSolution,
        target: Target,
        prev_joints: Optional[Sequence[float]],
    ) -> None:
        external_count = len(target.external)

        for i, joint in enumerate(self.mechanism.joints):
            external_index = joint.number - 6
            if 0 <= external_index < external_count:
                solution.joints[i] = target.external[external_index]
            else:
                solution.errors.append(self.missing_axis_error)


class TrackKinematics(ExternalKinematics):
    """Up to three stacked prismatic axes along X, Y and Z."""

    missing_axis_error = "Track external axis not configured on this target."

    def set_planes(self, solution: KinematicSolution, target: Target) -> None:
        joints = self.mechanism.joints
        values = solution.joints

        plane = joints[0].plane
        plane = move_frame(plane, plane.xaxis.scaled(values[0]))
        solution.planes[1] = plane

        if len(joints) > 1:
            plane = joints[1].plane
            plane = move_frame(plane, solution.planes[1].point + plane.yaxis.scaled(values[1]))
            solution.planes[2] = plane

        if len(joints) > 2:
            plane = joints[2].plane
            plane = move_frame(plane, solution.planes[2].point + plane.zaxis.scaled(values[2]))
            solution.planes[3] = plane


class PositionerKinematics(ExternalKinematics):
    """Chained rotary axes; each plane is rotated by its own axis and every axis before it."""

    missing_axis_error = "Positioner external axis not configured on this target."

    def set_joints(
        self,
        solution: KinematicSolution,
        target: Target,
        prev_joints: Optional[Sequence[float]],
    ) -> None:
        super().set_joints(solution, target, prev_joints)
        if prev_joints is not None:
            solution.joints = JointTarget.get_absolute_joints(solution.joints, prev_joints)

    def set_planes(self, solution: KinematicSolution, target: Target) -> None:
        joints = self.mechanism.joints

        for i in range(len(joints)):
            plane = joints[i].plane.copy()
            for j in range(i, -1, -1):
                axis_plane = joints[j].plane
                plane = rotate_frame(plane, solution.joints[j], axis_plane.zaxis, axis_plane.point)
            solution.planes[i + 1] = plane


class CustomKinematics(MechanismKinematics):
    """Axes with no geometric model; values pass through and every plane stays at the world origin."""

    def set_joints(
        self,
        solution: KinematicSolution,
        target: Target,
        prev_joints: Optional[Sequence[float]],
    ) -> None:
        for i, joint in enumerate(self.mechanism.joints):
            external_index = joint.number - 6
            solution.joints[i] = (
                target.external[external_index] if 0 <= external_index < len(target.external) else 0.0
            )

    def set_planes(self, solution: KinematicSolution, target: Target) -> None:
        for i in range(len(solution.planes)):
            solution.planes[i] = cg.Frame.worldXY()

"""
Targets bound to a program: one ``ProgramTarget`` per mechanical group and
one ``SystemTarget`` per time step across every group of the cell.
"""

import copy
from typing import TYPE_CHECKING, Iterable, Optional

import compas.geometry as cg

from cellmotion.core.geometry import orient, plane_to_plane, transform_frame
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.targets.commands import Command
from cellmotion.targets.target import CartesianTarget, JointTarget, Motions, Target

if TYPE_CHECKING:
    from cellmotion.mechanisms.system import RobotCell


class ProgramTarget:
    """
    A target of one mechanical group at one step of a program.

    Commands are flattened out of nested groups and stripped of the default
    command. ``kinematics``, ``changes_configuration`` and ``leading_joint``
    are filled in by the compiler.
    """

    def __init__(self, target: Target, group: int) -> None:
        self.target = target
        self.group = group
        self.commands: list[Command] = list(target.command.flatten()) if target.command is not None else []
        self.kinematics: Optional[KinematicSolution] = None
        self.changes_configuration = False
        self.leading_joint = 0
        self.system_target: Optional["SystemTarget"] = None

    @property
    def index(self) -> int:
        return self.system_target.index

    @property
    def is_joint_target(self) -> bool:
        return isinstance(self.target, JointTarget)

    @property
    def is_joint_motion(self) -> bool:
        return self.is_joint_target or self.target.motion is Motions.JOINT

    @property
    def forced_configuration(self) -> bool:
        return not self.is_joint_target and self.target.configuration is not None

    @property
    def world_plane(self) -> cg.Frame:
        """TCP pose in world coordinates."""
        return self.kinematics.planes[-1]

    def _frame_plane(self, system_target: "SystemTarget") -> cg.Frame:
        frame = self.target.frame
        if frame.is_coupled:
            return orient(frame.plane, system_target.planes[frame.coupled_plane_index])
        return frame.plane

    @property
    def plane(self) -> cg.Frame:
        """TCP pose expressed in the target frame."""
        frame_plane = self._frame_plane(self.system_target)
        return transform_frame(self.world_plane, plane_to_plane(frame_plane, cg.Frame.worldXY()))

    def get_prev_plane(self, prev_target: "ProgramTarget") -> cg.Frame:
        """
        Pose of the previous target expressed like this one: with this
        target's tool and in this target's frame, as placed at the previous
        step.
        """
        prev_plane = prev_target.world_plane

        if prev_target.target.tool is not self.target.tool:
            prev_plane = transform_frame(
                self.target.tool.tcp, plane_to_plane(prev_target.target.tool.tcp, prev_plane)
            )

        frame_plane = self._frame_plane(prev_target.system_target)
        return transform_frame(prev_plane, plane_to_plane(frame_plane, cg.Frame.worldXY()))

    def _external(self, joints: list[float]) -> list[float]:
        return joints[6 : 6 + len(self.target.external)]

    def to_kine_target(self) -> Target:
        """Target reproducing the solved pose of this program target."""
        joints = self.kinematics.joints
        external = self._external(joints)

        if self.is_joint_target:
            return JointTarget.from_target(joints[:6], self.target, external)

        return CartesianTarget.from_target(
            self.plane, self.target, self.kinematics.configuration, self.target.motion, external
        )

    def lerp(
        self,
        prev_target: "ProgramTarget",
        robot_system: "RobotCell",
        t: float,
        start: float,
        end: float,
    ) -> Target:
        """Intermediate target between ``prev_target`` and this one."""
        all_joints = JointTarget.lerp(prev_target.kinematics.joints, self.kinematics.joints, t, start, end)
        external = self._external(all_joints)

        if self.is_joint_motion:
            return JointTarget.from_target(all_joints[:6], self.target, external)

        prev_plane = self.get_prev_plane(prev_target)
        plane = robot_system.cartesian_lerp(prev_plane, self.plane, t, start, end)
        return CartesianTarget.from_target(
            plane, self.target, prev_target.kinematics.configuration, Motions.LINEAR, external
        )

    def set_target_kinematics(
        self,
        kinematics: KinematicSolution,
        errors: list[str],
        warnings: Optional[list[str]],
        prev_target: Optional["ProgramTarget"],
    ) -> None:
        self.kinematics = kinematics

        if not errors and kinematics.errors:
            errors.append(f"Errors in target {self.index} of robot {self.group}:")
            errors.extend(kinematics.errors)

        if (
            warnings is not None
            and prev_target is not None
            and prev_target.kinematics.configuration != kinematics.configuration
        ):
            self.changes_configuration = True
            warnings.append(
                f'Configuration changed to "{kinematics.configuration}" on target {self.index} of robot {self.group}'
            )
        else:
            self.changes_configuration = False

    def shallow_clone(self, system_target: "SystemTarget") -> "ProgramTarget":
        clone = copy.copy(self)
        clone.system_target = system_target
        return clone

    def __repr__(self) -> str:
        return f"ProgramTarget ({self.target!r}, group {self.group})"


class SystemTarget:
    """All program targets of one step, one per mechanical group, with the step timing."""

    def __init__(self, program_targets: Iterable[ProgramTarget], index: int) -> None:
        self.program_targets = list(program_targets)
        for program_target in self.program_targets:
            program_target.system_target = self

        self.index = index
        self.total_time = 0.0
        self.delta_time = 0.0
        self.min_time = 0.0

    @property
    def planes(self) -> list[cg.Frame]:
        return [plane for target in self.program_targets for plane in target.kinematics.planes]

    @property
    def joints(self) -> list[float]:
        return [joint for target in self.program_targets for joint in target.kinematics.joints]

    def shallow_clone(self, index: int = -1) -> "SystemTarget":
        clone = copy.copy(self)
        if index != -1:
            clone.index = index
        clone.program_targets = [target.shallow_clone(clone) for target in self.program_targets]
        return clone

    def kine_targets(self) -> list[Target]:
        return [target.to_kine_target() for target in self.program_targets]

    def lerp(
        self,
        prev_target: "SystemTarget",
        robot_system: "RobotCell",
        t: float,
        start: float,
        end: float,
    ) -> list[Target]:
        return [
            target.lerp(prev_target.program_targets[i], robot_system, t, start, end)
            for i, target in enumerate(self.program_targets)
        ]

    def set_target_kinematics(
        self,
        kinematics: list[KinematicSolution],
        errors: list[str],
        warnings: Optional[list[str]],
        prev_target: Optional["SystemTarget"] = None,
    ) -> None:
        for target in self.program_targets:
            prev = prev_target.program_targets[target.group] if prev_target is not None else None
            target.set_target_kinematics(kinematics[target.group], errors, warnings, prev)

    def __repr__(self) -> str:
        return f"SystemTarget ({self.index}, {len(self.program_targets)} groups, {self.total_time:.2f} s)"

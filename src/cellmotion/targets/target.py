"""
Robot targets.

A target is the authored intent for one mechanical group at one step of a
program. ``CartesianTarget`` holds a TCP pose and ``JointTarget`` holds axis
values directly. Targets are treated as immutable once handed to a program:
compiler stages that need a different field produce a copy with
``with_(...)``.
"""

import copy
import math
from enum import Enum, IntFlag
from typing import Any, ClassVar, Iterable, Optional, Sequence

import compas.geometry as cg

from cellmotion.targets.attributes import Frame, Speed, Tool, Zone
from cellmotion.targets.commands import Command, Group


class RobotConfigurations(IntFlag):
    """Branch selector among the eight analytic arm solutions."""

    NONE = 0
    SHOULDER = 1
    ELBOW = 2
    WRIST = 4
    UNDEFINED = 8

    def __str__(self) -> str:
        if self == RobotConfigurations.NONE:
            return "None"
        names = [
            flag.name.capitalize()
            for flag in (
                RobotConfigurations.SHOULDER,
                RobotConfigurations.ELBOW,
                RobotConfigurations.WRIST,
                RobotConfigurations.UNDEFINED,
            )
            if flag in self
        ]
        return ", ".join(names)


class Motions(Enum):
    JOINT = "joint"
    LINEAR = "linear"


class Target:
    """Attributes shared by cartesian and joint targets."""

    DEFAULT: ClassVar["JointTarget"]

    def __init__(
        self,
        tool: Optional[Tool] = None,
        speed: Optional[Speed] = None,
        zone: Optional[Zone] = None,
        command: Optional[Command] = None,
        frame: Optional[Frame] = None,
        external: Optional[Iterable[float]] = None,
    ) -> None:
        self.tool = tool if tool is not None else Tool.DEFAULT
        self.speed = speed if speed is not None else Speed.DEFAULT
        self.zone = zone if zone is not None else Zone.DEFAULT
        self.frame = frame if frame is not None else Frame.DEFAULT
        self.command = command if command is not None else Command.DEFAULT
        self.external: list[float] = list(external) if external is not None else []

    @property
    def targets(self) -> list["Target"]:
        """A single target is also a one-element toolpath."""
        return [self]

    @property
    def is_joint_target(self) -> bool:
        return isinstance(self, JointTarget)

    def append_command(self, command: Command) -> None:
        current = self.command

        if current is None or current is Command.DEFAULT:
            self.command = command
            return

        group = Group(current.commands if isinstance(current, Group) else [current])
        group.append(command)
        self.command = group

    def shallow_clone(self) -> "Target":
        return copy.copy(self)

    def with_(self, **changes: Any) -> "Target":
        """Copy of this target with some attributes replaced."""
        clone = copy.copy(self)
        for key, value in changes.items():
            if not hasattr(clone, key):
                raise AttributeError(f"{type(self).__name__} has no attribute {key!r}")
            setattr(clone, key, value)
        return clone

    def _attribute_text(self) -> str:
        text = f", {self.tool!r}, {self.speed!r}, {self.zone!r}"
        if self.command is not Command.DEFAULT:
            text += ", Contains commands"
        if self.external:
            text += f", {len(self.external)} external axes"
        return text


class CartesianTarget(Target):
    """
    Target defined by a TCP pose.

    Args:
        plane: TCP pose, expressed in ``frame``.
        configuration: Forced arm configuration. ``None`` lets the solver pick
            the solution closest to the previous joints.
        motion: Joint (axis interpolated) or linear (TCP interpolated) motion.
    """

    def __init__(
        self,
        plane: cg.Frame,
        configuration: Optional[RobotConfigurations] = None,
        motion: Motions = Motions.JOINT,
        tool: Optional[Tool] = None,
        speed: Optional[Speed] = None,
        zone: Optional[Zone] = None,
        command: Optional[Command] = None,
        frame: Optional[Frame] = None,
        external: Optional[Iterable[float]] = None,
    ) -> None:
        super().__init__(tool, speed, zone, command, frame, external)
        self.plane = plane
        self.configuration = configuration
        self.motion = motion

    @classmethod
    def from_target(
        cls,
        plane: cg.Frame,
        target: Target,
        configuration: Optional[RobotConfigurations] = None,
        motion: Motions = Motions.JOINT,
        external: Optional[Iterable[float]] = None,
    ) -> "CartesianTarget":
        """New cartesian target sharing the attributes of ``target``."""
        return cls(
            plane,
            configuration,
            motion,
            target.tool,
            target.speed,
            target.zone,
            target.command,
            target.frame,
            external if external is not None else target.external,
        )

    def __repr__(self) -> str:
        x, y, z = self.plane.point
        configuration = f', "{self.configuration}"' if self.configuration is not None else ""
        return (
            f"Target (Cartesian ({x:.2f},{y:.2f},{z:.2f}), {self.motion.name.capitalize()}"
            f"{configuration}{self._attribute_text()})"
        )


class JointTarget(Target):
    """Target defined by arm axis values in radians."""

    def __init__(
        self,
        joints: Sequence[float],
        tool: Optional[Tool] = None,
        speed: Optional[Speed] = None,
        zone: Optional[Zone] = None,
        command: Optional[Command] = None,
        frame: Optional[Frame] = None,
        external: Optional[Iterable[float]] = None,
    ) -> None:
        super().__init__(tool, speed, zone, command, frame, external)
        self.joints = list(joints)

    @classmethod
    def from_target(
        cls,
        joints: Sequence[float],
        target: Target,
        external: Optional[Iterable[float]] = None,
    ) -> "JointTarget":
        """New joint target sharing the attributes of ``target``."""
        return cls(
            joints,
            target.tool,
            target.speed,
            target.zone,
            target.command,
            target.frame,
            external if external is not None else target.external,
        )

    @staticmethod
    def lerp(
        a: Sequence[float], b: Sequence[float], t: float, start: float, end: float
    ) -> list[float]:
        """Per-axis linear interpolation; an empty parameter range maps to ``a``."""
        span = end - start
        t = (t - start) / span if span != 0 else 0.0
        return [x * (1.0 - t) + y * t for x, y in zip(a, b)]

    @staticmethod
    def get_absolute_joint(joint: float) -> float:
        """Reduce an angle into ``(-pi, pi]`` keeping its sign convention."""
        two_pi = math.pi * 2
        absolute = abs(joint)
        result = absolute - math.floor(absolute / two_pi) * two_pi
        if result > math.pi:
            result -= two_pi
        sign = (joint > 0) - (joint < 0)
        return result * sign

    @staticmethod
    def get_absolute_joints(joints: Sequence[float], prev_joints: Sequence[float]) -> list[float]:
        """
        Map each joint onto the continuation nearest the previous value.

        Both values are reduced into ``(-pi, pi]``; the shortest signed
        difference between them is then added to the raw previous value, so
        consecutive solutions never jump by a full turn.
        """
        two_pi = math.pi * 2
        result = []

        for joint, prev in zip(joints, prev_joints):
            difference = JointTarget.get_absolute_joint(joint) - JointTarget.get_absolute_joint(prev)
            if abs(difference) > math.pi:
                sign = (difference > 0) - (difference < 0)
                difference = (abs(difference) - two_pi) * sign
            result.append(prev + difference)

        return result

    def __repr__(self) -> str:
        joints = ",".join(f"{j:.3f}" for j in self.joints)
        return f"Target (Joint ({joints}){self._attribute_text()})"


Target.DEFAULT = JointTarget([0.0, math.pi / 2, 0.0, 0.0, 0.0, 0.0])

"""Static description of mechanism axes."""

import math
from dataclasses import dataclass, field
from enum import Enum

import compas.geometry as cg
import trimesh

from cellmotion.core.geometry import empty_mesh


class JointKind(Enum):
    REVOLUTE = "revolute"
    PRISMATIC = "prismatic"


@dataclass
class Joint:
    """
    One axis of a mechanism.

    ``range`` and ``max_speed`` are in solver units: radians and rad/s for
    revolute joints, mm and mm/s for prismatic ones. ``number`` is the
    position of the axis inside its mechanical group (arm axes first, then
    external axes from 6); ``index`` is its position inside its mechanism.
    ``plane`` is the axis plane at the mechanism start pose, in mechanism
    coordinates, and is filled in when the mechanism is built.
    """

    index: int
    number: int
    a: float = 0.0
    d: float = 0.0
    range: tuple[float, float] = (-math.pi, math.pi)
    max_speed: float = math.pi
    kind: JointKind = JointKind.REVOLUTE
    plane: cg.Frame = field(default_factory=cg.Frame.worldXY)
    mesh: trimesh.Trimesh = field(default_factory=empty_mesh)

    def __post_init__(self) -> None:
        low, high = self.range
        self.range = (min(low, high), max(low, high))

    @property
    def is_revolute(self) -> bool:
        return self.kind is JointKind.REVOLUTE

    @property
    def is_prismatic(self) -> bool:
        return self.kind is JointKind.PRISMATIC

    def includes(self, value: float) -> bool:
        low, high = self.range
        return low <= value <= high

    def clamp(self, value: float) -> float:
        low, high = self.range
        return min(max(value, low), high)


def revolute_joint(index: int, number: int, **kwargs) -> Joint:
    return Joint(index, number, kind=JointKind.REVOLUTE, **kwargs)


def prismatic_joint(index: int, number: int, **kwargs) -> Joint:
    return Joint(index, number, kind=JointKind.PRISMATIC, **kwargs)

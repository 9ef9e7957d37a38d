"""
Target attributes: tools, reference frames, speeds and zones.

Attributes are shared by reference between many targets. Identity matters:
the compiler collects distinct instances with ``is`` comparisons, names the
unnamed ones and renames duplicates by cloning. Instances are never renamed
in place, so an attribute owned by the caller keeps its original name.
"""

import copy
import math
from typing import Any, ClassVar, Optional, Sequence, TypeVar

import compas.geometry as cg
import trimesh

from cellmotion.core.geometry import DISTANCE_TOL, as_trimesh

A = TypeVar("A", bound="TargetAttribute")


class TargetAttribute:
    """Named record shared across targets."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    @property
    def has_name(self) -> bool:
        return bool(self.name)

    def clone_with_name(self: A, name: str) -> A:
        """Shallow copy of this attribute carrying a new name."""
        clone = copy.copy(self)
        clone.name = name
        return clone

    @property
    def type_name(self) -> str:
        return type(self).__name__


class Tool(TargetAttribute):
    """
    Tool mounted on a robot flange.

    Args:
        tcp: Tool center point, expressed in flange coordinates.
        name: Identifier used in emitted code.
        weight: Tool weight in kg, checked against the robot payload.
        centroid: Center of mass in flange coordinates, defaults to the TCP origin.
        mesh: Tool geometry in flange coordinates, used by the collision sweep.
    """

    DEFAULT: ClassVar["Tool"]

    def __init__(
        self,
        tcp: cg.Frame,
        name: Optional[str] = None,
        weight: float = 0.0,
        centroid: Optional[Sequence[float]] = None,
        mesh: Any = None,
    ) -> None:
        super().__init__(name)
        self.tcp = tcp
        self.weight = weight
        self.centroid = list(centroid) if centroid is not None else list(tcp.point)
        self.mesh: trimesh.Trimesh = as_trimesh(mesh)

    def __repr__(self) -> str:
        return f"Tool ({self.name})"


class Frame(TargetAttribute):
    """
    Reference frame in which target planes are expressed.

    A frame can be coupled to a moving mechanism: either an external axis of a
    mechanical group (``coupled_mechanism`` >= 0) or, for robot-to-robot
    coupling, the flange of another mechanical group (``coupled_mechanism``
    == -1).
    """

    DEFAULT: ClassVar["Frame"]

    def __init__(
        self,
        plane: cg.Frame,
        coupled_mechanism: int = -1,
        coupled_mechanical_group: int = -1,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        self.plane = plane
        self.coupled_mechanism = coupled_mechanism
        self.coupled_mechanical_group = coupled_mechanical_group
        self.coupled_plane_index = -1

    @property
    def is_coupled(self) -> bool:
        return self.coupled_mechanical_group != -1

    def with_plane(self, plane: cg.Frame) -> "Frame":
        clone = copy.copy(self)
        clone.plane = plane
        return clone

    def __repr__(self) -> str:
        if self.name is not None:
            return f"Frame ({self.name})"
        x, y, z = self.plane.point
        coupled = " Coupled" if self.is_coupled else ""
        return f"Frame ({x:.2f},{y:.2f},{z:.2f}{coupled})"


class Speed(TargetAttribute):
    """
    Speed limits applied to a motion.

    Args:
        translation: TCP translation speed in mm/s.
        rotation: TCP rotation speed in rad/s.
        translation_external: Prismatic external axis speed cap in mm/s.
        rotation_external: Revolute external axis speed cap in rad/s.
        name: Identifier used in emitted code.
    """

    DEFAULT: ClassVar["Speed"]

    def __init__(
        self,
        translation: float = 100.0,
        rotation: float = math.pi,
        translation_external: float = 5000.0,
        rotation_external: float = math.pi * 6,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        self.translation = translation
        self.rotation = rotation
        self.translation_external = translation_external
        self.rotation_external = rotation_external
        self.translation_accel = 1000.0
        self.axis_accel = math.pi
        # Fixed duration in seconds, overrides the TCP speeds when positive
        self.time = 0.0

    def __repr__(self) -> str:
        if self.name is not None:
            return f"Speed ({self.name})"
        return f"Speed ({self.translation:.1f} mm/s)"


class Zone(TargetAttribute):
    """
    Blend zone around a target.

    Args:
        distance: TCP zone radius in mm. Zero means a stop point.
        rotation: Reorientation zone in radians, defaults to ``distance / 10`` degrees.
        rotation_external: Revolute external axis zone in radians.
        name: Identifier used in emitted code.
    """

    DEFAULT: ClassVar["Zone"]

    def __init__(
        self,
        distance: float,
        rotation: Optional[float] = None,
        rotation_external: Optional[float] = None,
        name: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        self.distance = distance
        self.rotation = rotation if rotation is not None else math.radians(distance / 10)
        self.rotation_external = rotation_external if rotation_external is not None else self.rotation

    @property
    def is_flyby(self) -> bool:
        return self.distance > DISTANCE_TOL

    def __repr__(self) -> str:
        if self.name is not None:
            return f"Zone ({self.name})"
        if self.is_flyby:
            return f"Zone ({self.distance:.2f} mm)"
        return "Zone (Stop point)"


Tool.DEFAULT = Tool(cg.Frame.worldXY(), "DefaultTool")
Frame.DEFAULT = Frame(cg.Frame.worldXY(), -1, -1, "DefaultFrame")
Speed.DEFAULT = Speed(name="DefaultSpeed")
Zone.DEFAULT = Zone(0, name="DefaultZone")

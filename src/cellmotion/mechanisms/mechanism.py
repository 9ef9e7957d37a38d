"""
Mechanisms: robot arms and the external axes that work with them.

A mechanism owns an ordered list of joints, a base plane and the meshes
used for posing. Joint values, ranges and speeds are in solver units
(radians or mm); ``degree_to_radian`` and ``radian_to_degree`` convert
controller values axis by axis. The planes of every joint at the start pose
are computed once at construction and are what posing meshes and the
external solvers build on.
"""

import math
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

import compas.geometry as cg
import trimesh

from cellmotion.core.geometry import as_trimesh, plane_to_plane, transform_frame
from cellmotion.core.manufacturers import (
    Manufacturer,
    arm_degree_to_radian,
    arm_radian_to_degree,
    arm_start_pose,
)
from cellmotion.kinematics.external import CustomKinematics, PositionerKinematics, TrackKinematics
from cellmotion.kinematics.mechanism import MechanismKinematics
from cellmotion.kinematics.robot import RobotKinematics, WristTopology
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.mechanisms.joints import Joint
from cellmotion.targets.target import JointTarget, Target


class Mechanism(ABC):
    """
    Base class of every mechanism.

    Args:
        model: Model name, prefixed with the manufacturer in ``model``.
        manufacturer: Controller brand.
        payload: Maximum payload in kg.
        base_plane: Pose of the mechanism base relative to the cell.
        base_mesh: Geometry of the fixed base, in base coordinates.
        joints: Axes in solver units.
        moves_robot: The last plane of this mechanism carries the robot arm.
    """

    def __init__(
        self,
        model: str,
        manufacturer: Manufacturer,
        payload: float,
        base_plane: cg.Frame,
        base_mesh: Any,
        joints: Sequence[Joint],
        moves_robot: bool = False,
    ) -> None:
        self.name = model
        self.manufacturer = manufacturer
        self.payload = payload
        self.base_plane = base_plane
        self.base_mesh: trimesh.Trimesh = as_trimesh(base_mesh)
        self.joints = list(joints)
        self.moves_robot = moves_robot
        self._solver: Optional[MechanismKinematics] = None

        self.set_start_planes()

    @property
    def model(self) -> str:
        return f"{self.manufacturer.value}.{self.name}"

    @property
    def solver(self) -> MechanismKinematics:
        if self._solver is None:
            self._solver = self.create_solver()
        return self._solver

    def kinematics(
        self,
        target: Target,
        prev_joints: Optional[Sequence[float]] = None,
        base_plane: Optional[cg.Frame] = None,
    ) -> KinematicSolution:
        return self.solver.solve(target, prev_joints, base_plane)

    @abstractmethod
    def create_solver(self) -> MechanismKinematics:
        ...

    @abstractmethod
    def set_start_planes(self) -> None:
        ...

    @abstractmethod
    def degree_to_radian(self, degree: float, i: int) -> float:
        ...

    @abstractmethod
    def radian_to_degree(self, radian: float, i: int) -> float:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__} ({self.model})"


class RobotArm(Mechanism):
    """
    Six-axis industrial or collaborative arm.

    The wrist topology picks the closed-form solver. Universal Robots arms
    default to the offset wrist, every other manufacturer to the spherical
    wrist.
    """

    def __init__(
        self,
        model: str,
        manufacturer: Manufacturer,
        payload: float,
        base_plane: cg.Frame,
        base_mesh: Any,
        joints: Sequence[Joint],
        wrist: Optional[WristTopology] = None,
    ) -> None:
        if wrist is None:
            wrist = WristTopology.OFFSET if manufacturer is Manufacturer.UR else WristTopology.SPHERICAL
        self.wrist = wrist
        super().__init__(model, manufacturer, payload, base_plane, base_mesh, joints, moves_robot=False)

    def create_solver(self) -> MechanismKinematics:
        return RobotKinematics(self)

    def start_pose(self) -> JointTarget:
        return JointTarget(arm_start_pose(self.manufacturer))

    def set_start_planes(self) -> None:
        solution = self.kinematics(self.start_pose())
        to_local = plane_to_plane(self.base_plane, cg.Frame.worldXY())

        for i, joint in enumerate(self.joints):
            joint.plane = transform_frame(solution.planes[i + 1], to_local)

    def degree_to_radian(self, degree: float, i: int) -> float:
        return arm_degree_to_radian(self.manufacturer, degree, i)

    def radian_to_degree(self, radian: float, i: int) -> float:
        return arm_radian_to_degree(self.manufacturer, radian, i)


class Track(Mechanism):
    """Linear axes; values are millimetres on both sides."""

    def create_solver(self) -> MechanismKinematics:
        return TrackKinematics(self)

    def set_start_planes(self) -> None:
        plane = cg.Frame.worldXY()

        for joint in self.joints:
            origin = plane.point + plane.xaxis.scaled(joint.a) + plane.zaxis.scaled(joint.d)
            plane = cg.Frame(origin, plane.xaxis, plane.yaxis)
            joint.plane = plane

    def degree_to_radian(self, degree: float, i: int) -> float:
        return degree

    def radian_to_degree(self, radian: float, i: int) -> float:
        return radian


class Positioner(Mechanism):
    """One-axis turntable or two-axis tilt/rotate positioner."""

    def create_solver(self) -> MechanismKinematics:
        return PositionerKinematics(self)

    def set_start_planes(self) -> None:
        joints = self.joints

        if len(joints) == 1:
            joints[0].plane = cg.Frame([joints[0].a, 0, joints[0].d], [1, 0, 0], [0, 1, 0])
        else:
            joints[0].plane = cg.Frame([0, 0, joints[0].d], [1, 0, 0], [0, 0, 1])
            joints[1].plane = cg.Frame([0, joints[1].a, joints[0].d + joints[1].d], [1, 0, 0], [0, 1, 0])

    def degree_to_radian(self, degree: float, i: int) -> float:
        return math.radians(degree)

    def radian_to_degree(self, radian: float, i: int) -> float:
        return math.degrees(radian)


class CustomMechanism(Mechanism):
    """External axes without a geometric model; values pass through untouched."""

    def create_solver(self) -> MechanismKinematics:
        return CustomKinematics(self)

    def set_start_planes(self) -> None:
        for joint in self.joints:
            joint.plane = cg.Frame.worldXY()

    def degree_to_radian(self, degree: float, i: int) -> float:
        return degree

    def radian_to_degree(self, radian: float, i: int) -> float:
        return radian

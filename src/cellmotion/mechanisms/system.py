"""
Robot cells: mechanical groups of arms and external axes sharing one controller.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import compas.geometry as cg
import trimesh

from cellmotion.core.exceptions import ConfigurationError
from cellmotion.core.geometry import as_trimesh, cartesian_lerp
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.kinematics.group import MechanicalGroupKinematics, solve_cell
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.mechanisms.joints import Joint
from cellmotion.mechanisms.mechanism import Mechanism, RobotArm
from cellmotion.targets.target import Target


@dataclass
class IO:
    """Names of the controller signals, indexed by the IO commands."""

    do: list[str] = field(default_factory=list)
    di: list[str] = field(default_factory=list)
    ao: list[str] = field(default_factory=list)
    ai: list[str] = field(default_factory=list)


class MechanicalGroup:
    """
    One robot arm and the external axes coordinated with it.

    Joints are numbered across the group: arm axes 0-5, external axes from 6.
    ``joints`` is ordered by that number, so joint values of a solution can be
    indexed by ``Joint.number``.
    """

    def __init__(self, index: int, mechanisms: Sequence[Mechanism]) -> None:
        self.index = index
        self.name = f"T_ROB{index + 1}"

        robots = [m for m in mechanisms if isinstance(m, RobotArm)]
        if len(robots) != 1:
            raise ConfigurationError(
                f"Mechanical group {self.name} must contain exactly one robot arm.",
                details={"robot_arms": len(robots)},
            )

        self.robot: RobotArm = robots[0]
        self.externals: list[Mechanism] = [m for m in mechanisms if m is not self.robot]
        self.joints: list[Joint] = sorted(
            (joint for mechanism in mechanisms for joint in mechanism.joints),
            key=lambda joint: joint.number,
        )
        self.solver = MechanicalGroupKinematics(self)

    @property
    def mechanisms(self) -> list[Mechanism]:
        """Mechanisms in the order their planes appear in a solution."""
        return [*self.externals, self.robot]

    @property
    def plane_count(self) -> int:
        """Number of planes in a solution: a base plane per mechanism, a plane per joint and the TCP."""
        return sum(len(m.joints) + 1 for m in self.mechanisms) + 1

    @property
    def default_planes(self) -> list[cg.Frame]:
        planes: list[cg.Frame] = []
        for mechanism in self.mechanisms:
            planes.append(cg.Frame.worldXY())
            planes.extend(joint.plane for joint in mechanism.joints)
        return planes

    @property
    def default_meshes(self) -> list[trimesh.Trimesh]:
        meshes: list[trimesh.Trimesh] = []
        for mechanism in self.mechanisms:
            meshes.append(mechanism.base_mesh)
            meshes.extend(joint.mesh for joint in mechanism.joints)
        return meshes

    def kinematics(
        self,
        target: Target,
        prev_joints: Optional[Sequence[float]] = None,
        coupled_plane: Optional[cg.Frame] = None,
        base_plane: Optional[cg.Frame] = None,
    ) -> KinematicSolution:
        return self.solver.solve(target, prev_joints, coupled_plane, base_plane)

    def _mechanism_of(self, number: int) -> Mechanism:
        for mechanism in self.mechanisms:
            if any(joint.number == number for joint in mechanism.joints):
                return mechanism
        raise IndexError(f"No joint number {number} in {self.name}.")

    def degree_to_radian(self, degree: float, i: int) -> float:
        if i < len(self.robot.joints):
            return self.robot.degree_to_radian(degree, i)
        mechanism = self._mechanism_of(i)
        index = next(joint.index for joint in mechanism.joints if joint.number == i)
        return mechanism.degree_to_radian(degree, index)

    def radian_to_degree(self, radian: float, i: int) -> float:
        if i < len(self.robot.joints):
            return self.robot.radian_to_degree(radian, i)
        mechanism = self._mechanism_of(i)
        index = next(joint.index for joint in mechanism.joints if joint.number == i)
        return mechanism.radian_to_degree(radian, index)

    def radians_to_degrees_external(self, target: Target) -> list[float]:
        """External axis values of a target in controller units."""
        values = [0.0] * len(target.external)
        joint_count = len(self.robot.joints)

        for mechanism in self.externals:
            for joint in mechanism.joints:
                i = joint.number - joint_count
                if 0 <= i < len(values):
                    values[i] = mechanism.radian_to_degree(target.external[i], joint.index)

        return values

    def __repr__(self) -> str:
        return f"MechanicalGroup ({self.name}, {self.robot.model}, {len(self.externals)} externals)"


class RobotCell:
    """
    A controller driving one or more mechanical groups.

    Args:
        name: Robot system name.
        manufacturer: Controller brand, selects the code emitter.
        groups: Mechanical groups, in controller task order.
        io: Controller IO names.
        base_plane: Pose of the cell in world coordinates.
        environment: Static geometry checked by the collision detector.
    """

    def __init__(
        self,
        name: str,
        manufacturer: Manufacturer,
        groups: Sequence[MechanicalGroup],
        io: Optional[IO] = None,
        base_plane: Optional[cg.Frame] = None,
        environment: Any = None,
    ) -> None:
        self.name = name
        self.manufacturer = manufacturer
        self.mechanical_groups = list(groups)
        self.io = io if io is not None else IO()
        self.base_plane = base_plane if base_plane is not None else cg.Frame.worldXY()
        self.environment: trimesh.Trimesh = as_trimesh(environment)

    def payload(self, group: int) -> float:
        return self.mechanical_groups[group].robot.payload

    def joints(self, group: int) -> list[Joint]:
        return self.mechanical_groups[group].joints

    def robot_joint_count(self, group: int) -> int:
        return len(self.mechanical_groups[group].robot.joints)

    def get_plane_index(self, frame) -> int:
        """
        Index, in the concatenated planes of a cell solution, of the plane a
        coupled frame moves with.

        Frames coupled to an external mechanism follow the last plane of that
        mechanism; frames coupled to another group follow that group's flange.
        """
        groups = self.mechanical_groups
        index = -1

        if frame.coupled_mechanism != -1:
            for i in range(frame.coupled_mechanical_group):
                index += groups[i].plane_count

            group = groups[frame.coupled_mechanical_group]
            for i in range(frame.coupled_mechanism + 1):
                index += len(group.externals[i].joints) + 1

            return index

        for i in range(frame.coupled_mechanical_group + 1):
            index += groups[i].plane_count

        return index - 1

    def kinematics(
        self,
        targets: Sequence[Target],
        prev_joints: Optional[Sequence[Sequence[float]]] = None,
    ) -> list[KinematicSolution]:
        return solve_cell(self, targets, prev_joints)

    def cartesian_lerp(self, a: cg.Frame, b: cg.Frame, t: float, start: float, end: float) -> cg.Frame:
        return cartesian_lerp(a, b, t, start, end)

    def degree_to_radian(self, degree: float, i: int, group: int = 0) -> float:
        return self.mechanical_groups[group].degree_to_radian(degree, i)

    def radian_to_degree(self, radian: float, i: int, group: int = 0) -> float:
        return self.mechanical_groups[group].radian_to_degree(radian, i)

    def __repr__(self) -> str:
        return f"RobotCell ({self.name})"

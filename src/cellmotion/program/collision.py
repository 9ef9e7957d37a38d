"""
Swept collision check over a compiled program.

Every step of the program is subdivided on its own (by TCP travel and by
the largest axis rotation), the meshes of every mechanism are posed at each
subdivision and two sets of them are tested for interference with
``trimesh.collision.CollisionManager`` (FCL). Steps are checked in parallel;
the lowest colliding step wins.
"""

import math
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Optional, Sequence

import trimesh
from trimesh.collision import CollisionManager

from cellmotion.core.geometry import as_trimesh, frame_distance, frame_to_matrix, plane_to_plane, transform_mesh
from cellmotion.core.logging import get_logger
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.program.program_target import SystemTarget
from cellmotion.targets.attributes import Tool

if TYPE_CHECKING:
    from cellmotion.mechanisms.system import RobotCell
    from cellmotion.program.program import Program

logger = get_logger(__name__)


class MeshPoser:
    """
    Place the meshes of a robot cell at a solved pose.

    Per group, the base and joint meshes of every mechanism (externals
    first, then the arm) are moved from their default plane to their solved
    plane, followed by the tool mesh on the flange.
    """

    def __init__(self, robot_system: "RobotCell") -> None:
        groups = robot_system.mechanical_groups
        self.default_planes = [group.default_planes for group in groups]
        self.default_meshes = [group.default_meshes for group in groups]
        self.meshes: list[trimesh.Trimesh] = []

    def pose(self, solutions: Sequence[KinematicSolution], tools: Sequence[Tool]) -> list[trimesh.Trimesh]:
        meshes = []

        for i, solution in enumerate(solutions):
            planes = solution.planes
            default_planes = self.default_planes[i]
            default_meshes = self.default_meshes[i]

            for k in range(len(planes) - 1):
                transform = plane_to_plane(default_planes[k], planes[k])
                meshes.append(transform_mesh(default_meshes[k], transform))

            meshes.append(transform_mesh(tools[i].mesh, frame_to_matrix(planes[-2])))

        self.meshes = meshes
        return meshes


def mesh_clash(
    first: Sequence[trimesh.Trimesh], second: Sequence[trimesh.Trimesh]
) -> Optional[tuple[trimesh.Trimesh, trimesh.Trimesh]]:
    """First pair of interfering meshes between two sets, or ``None``."""
    solid_a = [(i, mesh) for i, mesh in enumerate(first) if not mesh.is_empty]
    solid_b = [(i, mesh) for i, mesh in enumerate(second) if not mesh.is_empty]
    if not solid_a or not solid_b:
        return None

    manager_a = CollisionManager()
    manager_b = CollisionManager()
    for i, mesh in solid_a:
        manager_a.add_object(str(i), mesh)
    for i, mesh in solid_b:
        manager_b.add_object(str(i), mesh)

    hit, names = manager_a.in_collision_other(manager_b, return_names=True)
    if not hit:
        return None

    name_a, name_b = min(names, key=lambda pair: (int(pair[0]), int(pair[1])))
    return first[int(name_a)], second[int(name_b)]


class FirstCollision:
    """
    Lowest-index collision found by any worker.

    Offers from higher indices never replace a lower one. Once a collision is
    recorded, workers on higher indices stop at their next subdivision.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._found = threading.Event()
        self.target: Optional[SystemTarget] = None
        self.meshes: Optional[list[trimesh.Trimesh]] = None

    def offer(self, target: SystemTarget, meshes: tuple[trimesh.Trimesh, trimesh.Trimesh]) -> None:
        with self._lock:
            if self.target is None or target.index < self.target.index:
                self.target = target
                self.meshes = list(meshes)
            self._found.set()

    def cancelled(self, index: int) -> bool:
        if not self._found.is_set():
            return False
        with self._lock:
            return self.target is not None and self.target.index < index


class Collision:
    """
    Check a compiled program for interference between two sets of meshes.

    Mesh indices count, per group, the base and joint meshes of every
    mechanism followed by the tool mesh; the environment mesh, when given,
    comes last. For a single arm without external axes the tool is 7 and the
    environment 8.

    Args:
        program: Compiled program.
        first: Indices of the first mesh set.
        second: Indices of the second mesh set.
        environment: Extra mesh to include in the posed list.
        environment_plane: Index, in the concatenated solution planes, of the
            plane the environment moves with; -1 keeps it static.
        linear_step: Maximum TCP travel in mm between checked poses.
        angular_step: Maximum axis rotation in radians between checked poses.
        max_workers: Thread pool size, defaults to the executor's choice.
    """

    def __init__(
        self,
        program: "Program",
        first: Sequence[int] = (7,),
        second: Sequence[int] = (4,),
        environment=None,
        environment_plane: int = 0,
        linear_step: float = 100.0,
        angular_step: float = math.pi / 4,
        max_workers: Optional[int] = None,
    ) -> None:
        self.program = program
        self.robot_system = program.robot_system
        self.first = list(first)
        self.second = list(second)
        self.environment = as_trimesh(environment) if environment is not None else None
        self.environment_plane = environment_plane
        self.linear_step = linear_step
        self.angular_step = angular_step
        self.max_workers = max_workers
        self._result = FirstCollision()

        self._collide()

    @property
    def has_collision(self) -> bool:
        return self._result.target is not None

    @property
    def collision_target(self) -> Optional[SystemTarget]:
        return self._result.target

    @property
    def meshes(self) -> Optional[list[trimesh.Trimesh]]:
        return self._result.meshes

    def _collide(self) -> None:
        targets = self.program.targets[1:]
        logger.info(
            "collision_sweep_started",
            steps=len(targets),
            first=self.first,
            second=self.second,
            max_workers=self.max_workers,
        )

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self._check_step, target) for target in targets]
            for future in futures:
                future.result()

        if self.has_collision:
            logger.info("collision_found", target=self.collision_target.index)
        else:
            logger.info("collision_sweep_clear")

    def divisions(self, system_target: SystemTarget, prev_target: SystemTarget) -> int:
        divisions = 1

        for target, prev in zip(system_target.program_targets, prev_target.program_targets):
            distance = frame_distance(prev.world_plane, target.world_plane)
            linear_divisions = math.ceil(distance / self.linear_step)

            max_angle = max(abs(a - b) for a, b in zip(target.kinematics.joints, prev.kinematics.joints))
            angular_divisions = math.ceil(max_angle / self.angular_step)

            divisions = max(divisions, linear_divisions, angular_divisions)

        return divisions

    def _check_step(self, system_target: SystemTarget) -> None:
        index = system_target.index
        prev_target = self.program.targets[index - 1]
        divisions = self.divisions(system_target, prev_target)
        poser = MeshPoser(self.robot_system)
        tools = [target.target.tool for target in system_target.program_targets]

        # the first step also checks where the program starts
        for i in range(0 if index == 1 else 1, divisions + 1):
            if self._result.cancelled(index):
                return

            t = i / divisions
            kine_targets = system_target.lerp(prev_target, self.robot_system, t, 0.0, 1.0)
            kinematics = self.robot_system.kinematics(kine_targets)
            meshes = poser.pose(kinematics, tools)

            if self.environment is not None:
                if self.environment_plane != -1:
                    planes = [plane for solution in kinematics for plane in solution.planes]
                    plane = planes[self.environment_plane]
                    meshes.append(transform_mesh(self.environment, frame_to_matrix(plane)))
                else:
                    meshes.append(self.environment.copy())

            clash = mesh_clash([meshes[x] for x in self.first], [meshes[x] for x in self.second])
            if clash is not None:
                self._result.offer(system_target, clash)
                return

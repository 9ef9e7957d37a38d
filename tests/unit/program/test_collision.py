"""
Unit tests for the swept collision check.
"""

import math

import compas.geometry as cg
import pytest

from cellmotion.core.geometry import as_trimesh
from cellmotion.mechanisms import MechanicalGroup, RobotCell
from cellmotion.program import Collision, FirstCollision, MeshPoser, Program, SystemTarget
from cellmotion.program.collision import mesh_clash
from cellmotion.targets import CartesianTarget, JointTarget, Motions, Tool

HOME_DOWN = [0.0, math.pi / 2, 0.0, 0.0, -math.pi / 2, 0.0]
Z_DOWN = ([1, 0, 0], [0, -1, 0])


@pytest.fixture
def boxed_tool(box_mesh):
    """Tool carrying a 40 mm cube centred on its TCP."""
    return Tool(cg.Frame([0, 0, 100], [1, 0, 0], [0, 1, 0]), "Probe", weight=1, mesh=box_mesh(40, (0, 0, 100)))


@pytest.fixture
def sweep_program(abb_cell, boxed_tool, process_speed):
    """Three targets crossing y = 0 at (800, y, 600)."""
    points = [(800, -300, 600), (800, -150, 600), (800, 150, 600)]
    targets = [
        CartesianTarget(
            cg.Frame(point, *Z_DOWN),
            motion=Motions.JOINT if i == 0 else Motions.LINEAR,
            tool=boxed_tool,
            speed=process_speed,
        )
        for i, point in enumerate(points)
    ]
    return Program("Sweep", abb_cell, [targets], step_size=50)


class TestMeshClash:
    """Tests for pairwise mesh interference."""

    def test_overlap(self, box_mesh):
        """Overlapping boxes clash and are returned."""
        a = box_mesh(10)
        b = box_mesh(10, (5, 0, 0))
        first, second = mesh_clash([a], [b])
        assert first is a
        assert second is b

    def test_apart(self, box_mesh):
        assert mesh_clash([box_mesh(10)], [box_mesh(10, (50, 0, 0))]) is None

    def test_lowest_pair(self, box_mesh):
        """The lowest colliding indices are reported."""
        far = box_mesh(10, (500, 0, 0))
        a = box_mesh(10)
        b = box_mesh(10, (2, 0, 0))
        result = mesh_clash([far, a, b], [box_mesh(10, (1, 0, 0))])
        assert result[0] is a

    def test_empty_meshes_skipped(self, box_mesh):
        """Empty meshes never clash."""
        assert mesh_clash([as_trimesh(None)], [box_mesh(10)]) is None
        assert mesh_clash([], [box_mesh(10)]) is None


class TestFirstCollision:
    """Tests for the shared lowest-index result."""

    def test_lowest_index_wins(self, box_mesh):
        result = FirstCollision()
        meshes = (box_mesh(1), box_mesh(1))

        result.offer(SystemTarget([], 3), meshes)
        result.offer(SystemTarget([], 1), meshes)
        result.offer(SystemTarget([], 5), meshes)

        assert result.target.index == 1
        assert len(result.meshes) == 2

    def test_cancelled(self, box_mesh):
        """Workers past a found collision stop; earlier ones continue."""
        result = FirstCollision()
        assert not result.cancelled(10)

        result.offer(SystemTarget([], 2), (box_mesh(1), box_mesh(1)))
        assert result.cancelled(4)
        assert not result.cancelled(2)
        assert not result.cancelled(1)


class TestMeshPoser:
    """Tests for placing meshes at a solved pose."""

    def test_tool_on_flange(self, abb_cell, boxed_tool):
        """The tool mesh moves with the flange."""
        solutions = abb_cell.kinematics([JointTarget(HOME_DOWN)])
        meshes = MeshPoser(abb_cell).pose(solutions, [boxed_tool])

        assert len(meshes) == 8
        assert meshes[7].centroid == pytest.approx([945, 0, 1075], abs=1e-6)

    def test_base_mesh_follows_base(self, spherical_arm, box_mesh):
        """Base meshes are moved onto the solved base plane."""
        spherical_arm.base_mesh = box_mesh(100, (0, 0, 50))
        cell = RobotCell(
            "Raised",
            spherical_arm.manufacturer,
            [MechanicalGroup(0, [spherical_arm])],
            base_plane=cg.Frame([0, 0, 500], [1, 0, 0], [0, 1, 0]),
        )
        meshes = MeshPoser(cell).pose(cell.kinematics([JointTarget(HOME_DOWN)]), [Tool.DEFAULT])
        assert meshes[0].centroid == pytest.approx([0, 0, 550], abs=1e-6)


class TestCollision:
    """Tests for sweeping a program."""

    @pytest.mark.parametrize("workers", [1, 4])
    def test_collision_found(self, sweep_program, box_mesh, workers):
        """The sweep reports the step crossing the obstacle, whatever the pool size."""
        assert sweep_program.errors == []

        collision = sweep_program.check_collisions(
            [7], [8], box_mesh(120, (800, 0, 600)), environment_plane=-1, max_workers=workers
        )

        assert collision.has_collision
        assert collision.collision_target.index == 2
        assert len(collision.meshes) == 2

    def test_clear(self, sweep_program, box_mesh):
        """An obstacle away from the path isn't hit."""
        collision = sweep_program.check_collisions(
            [7], [8], box_mesh(120, (0, 800, 600)), environment_plane=-1, max_workers=2
        )
        assert not collision.has_collision
        assert collision.collision_target is None
        assert collision.meshes is None

    def test_environment_on_plane(self, sweep_program, box_mesh):
        """An environment attached to a plane moves with it."""
        collision = Collision(sweep_program, [7], [8], box_mesh(20), environment_plane=6, max_workers=1)
        # The environment rides on the flange, 100 mm above the probe
        assert not collision.has_collision

    def test_divisions(self, sweep_program):
        """Steps are split by TCP travel and axis rotation."""
        collision = Collision(sweep_program, [7], [0], None, linear_step=100, angular_step=math.pi)
        targets = sweep_program.targets
        assert collision.divisions(targets[2], targets[1]) == 3
        assert collision.divisions(targets[1], targets[0]) == 2

    def test_final_pose_checked(self, sweep_program, box_mesh):
        """The pose a step ends on is checked even when the step isn't subdivided."""
        collision = sweep_program.check_collisions(
            [7],
            [8],
            box_mesh(60, (800, 150, 600)),
            environment_plane=-1,
            linear_step=1000,
            angular_step=math.pi,
            max_workers=1,
        )

        assert collision.divisions(sweep_program.targets[2], sweep_program.targets[1]) == 1
        assert collision.has_collision
        assert collision.collision_target.index == 2

    def test_start_pose_checked(self, sweep_program, box_mesh):
        """The first step also checks where the program starts."""
        collision = sweep_program.check_collisions(
            [7],
            [8],
            box_mesh(60, (800, -300, 600)),
            environment_plane=-1,
            linear_step=1000,
            angular_step=math.pi,
            max_workers=1,
        )
        assert collision.has_collision
        assert collision.collision_target.index == 1

    def test_static_environment_copied(self, sweep_program, box_mesh):
        """Workers clash against their own copy of a static environment."""
        obstacle = box_mesh(120, (800, 0, 600))
        vertices = obstacle.vertices.copy()

        collision = sweep_program.check_collisions([7], [8], obstacle, environment_plane=-1, max_workers=4)

        assert collision.has_collision
        assert collision.meshes[1] is not obstacle
        assert collision.meshes[1].vertices == pytest.approx(vertices)
        assert obstacle.vertices == pytest.approx(vertices)

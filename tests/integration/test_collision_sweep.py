"""
Collision sweep over a cell and program loaded from disk, meshes included.

The probe tool carries a 40 mm cube on its TCP and the cell environment is a
120 mm block straddling y = 0, so a sweep along Y has to hit it.
"""

import pytest
import trimesh
from click.testing import CliRunner

from cellmotion.cli import main
from cellmotion.core.config import ConfigManager, build_toolpaths, load_program_file
from cellmotion.program import Program

CELL = """
robot_system:
  name: ObstacleCell
  manufacturer: ABB
  environment: obstacle.stl
  groups:
    - mechanisms:
        - kind: arm
          model: IRB2600
          payload: 12
          joints:
            - {a: 150, d: 445, range: [-180, 180], max_speed: 175}
            - {a: 700, d: 0, range: [-95, 155], max_speed: 175}
            - {a: 115, d: 0, range: [-180, 75], max_speed: 175}
            - {a: 0, d: 795, range: [-400, 400], max_speed: 360}
            - {a: 0, d: 0, range: [-120, 120], max_speed: 360}
            - {a: 0, d: 85, range: [-400, 400], max_speed: 460}
"""

SWEEP = """
program:
  name: Sweep
  robot_system: obstacle_cell
  step_size: 50

tools:
  - name: Probe
    tcp: {point: [0, 0, 100]}
    weight: 1
    mesh: probe.stl

speeds:
  - {name: Process, translation: 100}

toolpaths:
  - targets:
      - {plane: {point: [800, -300, 600], xaxis: [1, 0, 0], yaxis: [0, -1, 0]}, tool: Probe, speed: Process}
      - {plane: {point: [800, -150, 600], xaxis: [1, 0, 0], yaxis: [0, -1, 0]}, motion: linear, tool: Probe, speed: Process}
      - {plane: {point: [800, 150, 600], xaxis: [1, 0, 0], yaxis: [0, -1, 0]}, motion: linear, tool: Probe, speed: Process}
"""


@pytest.fixture
def obstacle_config_dir(temp_dir):
    config_dir = temp_dir / "config"
    (config_dir / "robots").mkdir(parents=True)
    (config_dir / "programs").mkdir(parents=True)

    (config_dir / "robots" / "obstacle_cell.yaml").write_text(CELL)
    trimesh.creation.box(extents=(120, 120, 120)).apply_translation((800, 0, 600)).export(
        str(config_dir / "robots" / "obstacle.stl")
    )

    (config_dir / "programs" / "sweep.yaml").write_text(SWEEP)
    trimesh.creation.box(extents=(40, 40, 40)).apply_translation((0, 0, 100)).export(
        str(config_dir / "programs" / "probe.stl")
    )

    return config_dir


@pytest.fixture
def sweep_program(obstacle_config_dir):
    program_file = obstacle_config_dir / "programs" / "sweep.yaml"
    program_config = load_program_file(program_file)
    robot_system = ConfigManager(obstacle_config_dir).get_robot_system("obstacle_cell")
    toolpaths = build_toolpaths(program_config, robot_system, program_file.parent)
    return Program("Sweep", robot_system, toolpaths, step_size=50)


@pytest.mark.integration
class TestCollisionSweep:
    """Tests for sweeping a program loaded from YAML and STL files."""

    def test_meshes_loaded(self, sweep_program):
        """The environment and tool meshes come from the files."""
        assert sweep_program.errors == []
        assert sweep_program.robot_system.environment.volume == pytest.approx(120**3, rel=1e-6)
        assert sweep_program.targets[0].program_targets[0].target.tool.mesh.volume == pytest.approx(
            40**3, rel=1e-6
        )

    @pytest.mark.parametrize("workers", [1, 3])
    def test_hits_environment(self, sweep_program, workers):
        """The probe hits the block on the way to the last target."""
        collision = sweep_program.check_collisions(
            [7], [8], sweep_program.robot_system.environment, environment_plane=-1, max_workers=workers
        )

        assert collision.has_collision
        assert collision.collision_target.index == 2

    def test_without_environment(self, sweep_program):
        """Tool against the empty base mesh never clashes."""
        collision = sweep_program.check_collisions([7], [0], None, max_workers=2)
        assert not collision.has_collision


@pytest.mark.integration
class TestCollideCommand:
    """Tests for the collide command on the same files."""

    def test_reports_collision(self, obstacle_config_dir):
        runner = CliRunner()
        result = runner.invoke(
            main,
            [
                "--config-dir",
                str(obstacle_config_dir),
                "collide",
                str(obstacle_config_dir / "programs" / "sweep.yaml"),
                "-a",
                "7",
                "-b",
                "8",
                "--environment",
                "--workers",
                "2",
            ],
        )

        assert result.exit_code == 2
        assert "Collision before target 2" in result.output

    def test_clear_without_environment(self, obstacle_config_dir):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["--config-dir", str(obstacle_config_dir), "collide", str(obstacle_config_dir / "programs" / "sweep.yaml")],
        )

        assert result.exit_code == 0
        assert "No collisions found" in result.output

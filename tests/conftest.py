"""
Pytest configuration and shared fixtures.
"""

import math
import tempfile
from pathlib import Path

import compas.geometry as cg
import pytest
import trimesh

from cellmotion.core.manufacturers import Manufacturer
from cellmotion.mechanisms import (
    IO,
    MechanicalGroup,
    Positioner,
    RobotArm,
    RobotCell,
    Track,
    prismatic_joint,
    revolute_joint,
)
from cellmotion.targets import Frame, Speed, Tool

IRB2600_A = [150, 700, 115, 0, 0, 0]
IRB2600_D = [445, 0, 0, 795, 0, 85]
IRB2600_SPEED = [175, 175, 175, 360, 360, 460]

UR5_A = [0, -425, -392.25, 0, 0, 0]
UR5_D = [89.159, 0, 0, 109.15, 94.65, 82.3]

# Joint values with the flange pointing straight down, in solver units
HOME_DOWN = [0.0, math.pi / 2, 0.0, 0.0, -math.pi / 2, 0.0]
Z_DOWN = ([1, 0, 0], [0, -1, 0])


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config_dir(temp_dir):
    """Create a sample configuration directory structure."""
    config_dir = temp_dir / "config"
    (config_dir / "robots").mkdir(parents=True)
    (config_dir / "programs").mkdir(parents=True)

    robot_config = """
robot_system:
  name: TestCell
  manufacturer: ABB
  io:
    do: [DO1, DO2]
    di: [DI1]
    ao: [AO1]
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
    (config_dir / "robots" / "test_cell.yaml").write_text(robot_config)

    track_config = """
robot_system:
  name: TrackCell
  manufacturer: ABB
  groups:
    - mechanisms:
        - kind: track
          model: IRBT2005
          moves_robot: true
          joints:
            - {kind: prismatic, range: [0, 4000], max_speed: 2000}
        - kind: arm
          model: IRB2600
          payload: 12
          joints:
            - {a: 150, d: 445}
            - {a: 700, d: 0}
            - {a: 115, d: 0}
            - {a: 0, d: 795}
            - {a: 0, d: 0}
            - {a: 0, d: 85}
"""
    (config_dir / "robots" / "track_cell.yaml").write_text(track_config)

    settings = """
compiler:
  step_size: 10.0
  collision_linear_step: 50.0
  collision_angular_step: 30.0
"""
    (config_dir / "settings.yaml").write_text(settings)

    program = """
program:
  name: Line
  robot_system: test_cell
  step_size: 50

tools:
  - name: Torch
    tcp: {point: [0, 0, 100]}
    weight: 2.5

speeds:
  - {name: Process, translation: 100}

frames:
  - name: Table
    plane: {point: [600, 0, 400]}

init_commands:
  - {type: set_do, index: 0, value: 0}

toolpaths:
  - targets:
      - {plane: {point: [0, 0, 500], xaxis: [1, 0, 0], yaxis: [0, -1, 0]}, tool: Torch, speed: Process, frame: Table}
      - plane: {point: [300, 0, 500], xaxis: [1, 0, 0], yaxis: [0, -1, 0]}
        motion: linear
        tool: Torch
        speed: Process
        frame: Table
        commands:
          - {type: set_do, index: 0, value: 1}
          - {type: wait, name: Dwell, seconds: 0.5}
"""
    (config_dir / "programs" / "line.yaml").write_text(program)

    return config_dir


def _irb2600_joints():
    return [
        revolute_joint(
            i,
            i,
            a=IRB2600_A[i],
            d=IRB2600_D[i],
            range=(-2 * math.pi, 2 * math.pi),
            max_speed=math.radians(IRB2600_SPEED[i]),
        )
        for i in range(6)
    ]


@pytest.fixture
def spherical_arm():
    """IRB2600-like arm with open joint ranges."""
    return RobotArm("IRB2600", Manufacturer.ABB, 12, cg.Frame.worldXY(), None, _irb2600_joints())


@pytest.fixture
def make_spherical_arm():
    """Factory for IRB2600-like arms on a given base plane."""

    def make(base_plane=None):
        plane = base_plane if base_plane is not None else cg.Frame.worldXY()
        return RobotArm("IRB2600", Manufacturer.ABB, 12, plane, None, _irb2600_joints())

    return make


@pytest.fixture
def ur_arm():
    """UR5 arm with the offset wrist solver."""
    joints = [
        revolute_joint(i, i, a=UR5_A[i], d=UR5_D[i], range=(-2 * math.pi, 2 * math.pi), max_speed=math.pi)
        for i in range(6)
    ]
    return RobotArm("UR5", Manufacturer.UR, 5, cg.Frame.worldXY(), None, joints)


@pytest.fixture
def abb_cell(spherical_arm):
    """Single ABB arm cell with a few IO signals."""
    io = IO(do=["DO1", "DO2"], di=["DI1"], ao=["AO1"])
    return RobotCell("TestCell", Manufacturer.ABB, [MechanicalGroup(0, [spherical_arm])], io)


@pytest.fixture
def ur_cell(ur_arm):
    """Single UR5 cell."""
    io = IO(do=["0", "1"], di=["0"], ao=["0"])
    return RobotCell("URCell", Manufacturer.UR, [MechanicalGroup(0, [ur_arm])], io)


@pytest.fixture
def track_cell(spherical_arm):
    """Arm carried by a linear track along X."""
    track = Track(
        "IRBT2005",
        Manufacturer.ABB,
        0,
        cg.Frame.worldXY(),
        None,
        [prismatic_joint(0, 6, range=(0, 4000), max_speed=2000)],
        moves_robot=True,
    )
    return RobotCell("TrackCell", Manufacturer.ABB, [MechanicalGroup(0, [track, spherical_arm])])


@pytest.fixture
def positioner_cell(spherical_arm):
    """Arm next to a turntable whose plate sits at (900, 0, 300)."""
    positioner = Positioner(
        "Turntable",
        Manufacturer.ABB,
        0,
        cg.Frame([900, 0, 0], [1, 0, 0], [0, 1, 0]),
        None,
        [revolute_joint(0, 6, d=300, range=(-2 * math.pi, 2 * math.pi), max_speed=math.pi)],
    )
    return RobotCell("TurntableCell", Manufacturer.ABB, [MechanicalGroup(0, [positioner, spherical_arm])])


@pytest.fixture
def torch():
    """Tool with its TCP 100 mm along the flange Z axis."""
    return Tool(cg.Frame([0, 0, 100], [1, 0, 0], [0, 1, 0]), "Torch", weight=2.5)


@pytest.fixture
def process_speed():
    return Speed(100, name="Process")


@pytest.fixture
def table():
    """Work object at (600, 0, 400)."""
    return Frame(cg.Frame([600, 0, 400], [1, 0, 0], [0, 1, 0]), name="Table")


@pytest.fixture
def box_mesh():
    """Factory for axis-aligned boxes."""

    def make(size, center=(0, 0, 0)):
        mesh = trimesh.creation.box(extents=[size, size, size])
        mesh.apply_translation(center)
        return mesh

    return make

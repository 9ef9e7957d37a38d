"""
Configuration management for cellmotion.

Robot systems and programs are described in YAML and validated with
pydantic. Joint ranges, joint speeds and target joint values are written in
controller units (degrees for revolute axes, millimetres for prismatic ones)
and converted to solver units when the objects are built.
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Optional

import compas.geometry as cg
import yaml
from pydantic import BaseModel, Field, ValidationError

from cellmotion.core.exceptions import ConfigurationError
from cellmotion.core.geometry import load_mesh
from cellmotion.core.logging import get_logger
from cellmotion.core.manufacturers import Manufacturer, arm_degree_to_radian
from cellmotion.kinematics.robot import WristTopology
from cellmotion.mechanisms.joints import Joint, JointKind
from cellmotion.mechanisms.mechanism import CustomMechanism, Mechanism, Positioner, RobotArm, Track
from cellmotion.mechanisms.system import IO, MechanicalGroup, RobotCell
from cellmotion.postprocessor.base import EmitterConfig, NumberFormat
from cellmotion.targets.attributes import Frame, Speed, Tool, Zone
from cellmotion.targets.commands import (
    Command,
    Custom,
    Group,
    Message,
    PulseDO,
    SetAO,
    SetDO,
    Stop,
    Wait,
    WaitDI,
)
from cellmotion.targets.target import CartesianTarget, JointTarget, Motions, RobotConfigurations, Target

logger = get_logger(__name__)

EXTERNAL_JOINT_START = 6


# =============================================================================
# Robot systems
# =============================================================================


class FrameConfig(BaseModel):
    """Rigid frame: origin and two axes."""

    point: tuple[float, float, float] = (0.0, 0.0, 0.0)
    xaxis: tuple[float, float, float] = (1.0, 0.0, 0.0)
    yaxis: tuple[float, float, float] = (0.0, 1.0, 0.0)

    def to_frame(self) -> cg.Frame:
        return cg.Frame(self.point, self.xaxis, self.yaxis)


class JointConfig(BaseModel):
    """Joint configuration model, in controller units."""

    kind: Literal["revolute", "prismatic"] = "revolute"
    a: float = 0.0
    d: float = 0.0
    range: tuple[float, float] = (-180.0, 180.0)
    max_speed: float = 180.0
    mesh: Optional[str] = None


class MechanismConfig(BaseModel):
    """Mechanism configuration model."""

    kind: Literal["arm", "track", "positioner", "custom"] = "arm"
    model: str
    manufacturer: Optional[str] = None
    payload: float = 0.0
    base_frame: FrameConfig = Field(default_factory=FrameConfig)
    mesh: Optional[str] = None
    moves_robot: bool = False
    wrist: Optional[Literal["spherical", "offset"]] = None
    joints: list[JointConfig] = Field(default_factory=list)


class MechanicalGroupConfig(BaseModel):
    """Mechanical group configuration model."""

    mechanisms: list[MechanismConfig]


class IOConfig(BaseModel):
    """Controller signal names."""

    do: list[str] = Field(default_factory=list)
    di: list[str] = Field(default_factory=list)
    ao: list[str] = Field(default_factory=list)
    ai: list[str] = Field(default_factory=list)


class RobotSystemConfig(BaseModel):
    """Robot system configuration model."""

    name: str
    manufacturer: str
    base_frame: FrameConfig = Field(default_factory=FrameConfig)
    io: IOConfig = Field(default_factory=IOConfig)
    environment: Optional[str] = None
    groups: list[MechanicalGroupConfig]


class CompilerSettings(BaseModel):
    """Compiler, collision sweep and emitter settings."""

    step_size: float = 1.0
    collision_linear_step: float = 100.0
    collision_angular_step: float = 45.0
    position_decimals: int = 3
    rotation_decimals: int = 5
    joint_decimals: int = 4

    @property
    def collision_angular_step_radians(self) -> float:
        return math.radians(self.collision_angular_step)

    def emitter_config(self, manufacturer: Manufacturer) -> EmitterConfig:
        match manufacturer:
            case Manufacturer.UR:
                config = EmitterConfig(format_name="urscript", file_extension=".script", indent="  ")
            case _:
                config = EmitterConfig(format_name="rapid", file_extension=".mod")

        config.position = NumberFormat(self.position_decimals)
        config.rotation = NumberFormat(self.rotation_decimals)
        config.joints = NumberFormat(self.joint_decimals)
        return config


def _resolve(path: Optional[str], base_dir: Optional[Path]) -> Optional[Path]:
    if path is None:
        return None
    resolved = Path(path)
    if not resolved.is_absolute() and base_dir is not None:
        resolved = base_dir / resolved
    return resolved


def _mesh(path: Optional[str], base_dir: Optional[Path]) -> Any:
    resolved = _resolve(path, base_dir)
    return load_mesh(resolved) if resolved is not None else None


def _build_joints(
    config: MechanismConfig,
    manufacturer: Manufacturer,
    first_number: int,
    base_dir: Optional[Path],
) -> list[Joint]:
    joints = []

    for i, joint in enumerate(config.joints):
        kind = JointKind(joint.kind)

        if config.kind == "arm":
            low, high = (arm_degree_to_radian(manufacturer, value, i) for value in joint.range)
            max_speed = math.radians(joint.max_speed)
        elif kind is JointKind.REVOLUTE:
            low, high = (math.radians(value) for value in joint.range)
            max_speed = math.radians(joint.max_speed)
        else:
            low, high = joint.range
            max_speed = joint.max_speed

        joints.append(
            Joint(
                index=i,
                number=first_number + i,
                a=joint.a,
                d=joint.d,
                range=(low, high),
                max_speed=max_speed,
                kind=kind,
                mesh=_mesh(joint.mesh, base_dir),
            )
        )

    return joints


def build_mechanism(
    config: MechanismConfig,
    default_manufacturer: Manufacturer,
    first_number: int,
    base_dir: Optional[Path] = None,
) -> Mechanism:
    manufacturer = Manufacturer.parse(config.manufacturer) if config.manufacturer else default_manufacturer
    joints = _build_joints(config, manufacturer, first_number, base_dir)
    base_plane = config.base_frame.to_frame()
    base_mesh = _mesh(config.mesh, base_dir)

    match config.kind:
        case "arm":
            wrist = WristTopology[config.wrist.upper()] if config.wrist else None
            return RobotArm(config.model, manufacturer, config.payload, base_plane, base_mesh, joints, wrist)
        case "track":
            mechanism_type = Track
        case "positioner":
            mechanism_type = Positioner
        case _:
            mechanism_type = CustomMechanism

    return mechanism_type(
        config.model, manufacturer, config.payload, base_plane, base_mesh, joints, config.moves_robot
    )


def build_robot_system(config: RobotSystemConfig, base_dir: Optional[Path] = None) -> RobotCell:
    """
    Build a robot cell from its validated configuration.

    Raises:
        ConfigurationError: If the manufacturer is unknown or a group is malformed
    """
    try:
        manufacturer = Manufacturer.parse(config.manufacturer)
    except ValueError as e:
        raise ConfigurationError(str(e), details={"robot_system": config.name})

    groups = []
    for index, group_config in enumerate(config.groups):
        mechanisms = []
        number = EXTERNAL_JOINT_START

        for mechanism_config in group_config.mechanisms:
            if mechanism_config.kind == "arm":
                mechanisms.append(build_mechanism(mechanism_config, manufacturer, 0, base_dir))
            else:
                mechanisms.append(build_mechanism(mechanism_config, manufacturer, number, base_dir))
                number += len(mechanism_config.joints)

        groups.append(MechanicalGroup(index, mechanisms))

    io = IO(do=list(config.io.do), di=list(config.io.di), ao=list(config.io.ao), ai=list(config.io.ai))
    environment = _mesh(config.environment, base_dir)

    return RobotCell(config.name, manufacturer, groups, io, config.base_frame.to_frame(), environment)


# =============================================================================
# Programs
# =============================================================================


class ToolConfig(BaseModel):
    name: str
    tcp: FrameConfig = Field(default_factory=FrameConfig)
    weight: float = 0.0
    centroid: Optional[tuple[float, float, float]] = None
    mesh: Optional[str] = None


class SpeedConfig(BaseModel):
    """Speeds in mm/s and deg/s."""

    name: str
    translation: float = 100.0
    rotation: float = 180.0
    translation_external: float = 5000.0
    rotation_external: float = 1080.0
    translation_accel: float = 1000.0
    axis_accel: float = 180.0
    time: float = 0.0


class ZoneConfig(BaseModel):
    """Zone radius in mm, reorientation zones in degrees."""

    name: str
    distance: float = 0.0
    rotation: Optional[float] = None
    rotation_external: Optional[float] = None


class FrameAttributeConfig(BaseModel):
    name: str
    plane: FrameConfig = Field(default_factory=FrameConfig)
    coupled_mechanism: int = -1
    coupled_mechanical_group: int = -1


class CommandConfig(BaseModel):
    type: Literal["wait", "set_do", "pulse_do", "wait_di", "set_ao", "message", "stop", "custom"]
    name: Optional[str] = None
    run_before: bool = False
    seconds: float = 0.0
    index: int = 0
    value: float = 1.0
    length: float = 0.2
    message: str = ""
    manufacturer: str = "All"
    code: Optional[str] = None
    declaration: Optional[str] = None


class TargetConfig(BaseModel):
    """Target in controller units: joint values in degrees, planes in mm."""

    type: Literal["joint", "cartesian"] = "cartesian"
    joints: list[float] = Field(default_factory=list)
    plane: FrameConfig = Field(default_factory=FrameConfig)
    motion: Literal["joint", "linear"] = "joint"
    configuration: Optional[list[Literal["shoulder", "elbow", "wrist"]]] = None
    tool: Optional[str] = None
    speed: Optional[str] = None
    zone: Optional[str] = None
    frame: Optional[str] = None
    external: list[float] = Field(default_factory=list)
    commands: list[CommandConfig] = Field(default_factory=list)


class ToolpathConfig(BaseModel):
    targets: list[TargetConfig]


class ProgramInfoConfig(BaseModel):
    name: str
    robot_system: str
    step_size: Optional[float] = None
    multi_file_indices: Optional[list[int]] = None


class ProgramFileConfig(BaseModel):
    """Program configuration model."""

    program: ProgramInfoConfig
    tools: list[ToolConfig] = Field(default_factory=list)
    speeds: list[SpeedConfig] = Field(default_factory=list)
    zones: list[ZoneConfig] = Field(default_factory=list)
    frames: list[FrameAttributeConfig] = Field(default_factory=list)
    init_commands: list[CommandConfig] = Field(default_factory=list)
    toolpaths: list[ToolpathConfig]


def build_command(config: CommandConfig) -> Command:
    command: Command

    match config.type:
        case "wait":
            command = Wait(config.seconds, config.name)
        case "set_do":
            command = SetDO(config.index, bool(config.value), config.name)
        case "pulse_do":
            command = PulseDO(config.index, config.length, config.name)
        case "wait_di":
            command = WaitDI(config.index, bool(config.value), config.name)
        case "set_ao":
            command = SetAO(config.index, config.value, config.name)
        case "message":
            command = Message(config.message, config.name)
        case "stop":
            command = Stop(config.name)
        case _:
            command = Custom(
                config.name or "CustomCommand",
                Manufacturer.parse(config.manufacturer),
                config.code,
                config.declaration,
            )

    command.run_before = config.run_before
    return command


def _lookup(attributes: dict[str, Any], name: Optional[str], kind: str) -> Any:
    if name is None:
        return None
    if name not in attributes:
        raise ConfigurationError(
            f"Unknown {kind}: {name}",
            details={"available": list(attributes.keys())},
        )
    return attributes[name]


def build_toolpaths(
    config: ProgramFileConfig,
    robot_system: RobotCell,
    base_dir: Optional[Path] = None,
) -> list[list[Target]]:
    """
    Targets of every mechanical group, converted to solver units.

    Raises:
        ConfigurationError: If a target references an undeclared attribute
    """
    tools = {
        t.name: Tool(t.tcp.to_frame(), t.name, t.weight, t.centroid, _mesh(t.mesh, base_dir))
        for t in config.tools
    }
    speeds = {}
    for s in config.speeds:
        speed = Speed(
            s.translation,
            math.radians(s.rotation),
            s.translation_external,
            math.radians(s.rotation_external),
            s.name,
        )
        speed.translation_accel = s.translation_accel
        speed.axis_accel = math.radians(s.axis_accel)
        speed.time = s.time
        speeds[s.name] = speed
    zones = {
        z.name: Zone(
            z.distance,
            math.radians(z.rotation) if z.rotation is not None else None,
            math.radians(z.rotation_external) if z.rotation_external is not None else None,
            z.name,
        )
        for z in config.zones
    }
    frames = {
        f.name: Frame(f.plane.to_frame(), f.coupled_mechanism, f.coupled_mechanical_group, f.name)
        for f in config.frames
    }

    toolpaths = []
    for group_index, toolpath in enumerate(config.toolpaths):
        group = robot_system.mechanical_groups[min(group_index, len(robot_system.mechanical_groups) - 1)]
        external_count = len(group.joints) - len(group.robot.joints)
        targets: list[Target] = []

        for t in toolpath.targets:
            # Surplus values are kept as given, the compiler warns about the count
            external = [
                group.degree_to_radian(value, EXTERNAL_JOINT_START + i) if i < external_count else value
                for i, value in enumerate(t.external)
            ]
            commands = [build_command(c) for c in t.commands]
            command = Group(commands) if len(commands) > 1 else (commands[0] if commands else None)
            attributes = dict(
                tool=_lookup(tools, t.tool, "tool"),
                speed=_lookup(speeds, t.speed, "speed"),
                zone=_lookup(zones, t.zone, "zone"),
                command=command,
                frame=_lookup(frames, t.frame, "frame"),
                external=external,
            )

            if t.type == "joint":
                joints = [group.degree_to_radian(value, i) for i, value in enumerate(t.joints)]
                targets.append(JointTarget(joints, **attributes))
            else:
                configuration = None
                if t.configuration is not None:
                    configuration = RobotConfigurations.NONE
                    for flag in t.configuration:
                        configuration |= RobotConfigurations[flag.upper()]
                targets.append(
                    CartesianTarget(t.plane.to_frame(), configuration, Motions(t.motion), **attributes)
                )

        toolpaths.append(targets)

    return toolpaths


def build_init_commands(config: ProgramFileConfig) -> Optional[Group]:
    if not config.init_commands:
        return None
    return Group(build_command(c) for c in config.init_commands)


def _read_yaml(path: Path) -> Any:
    try:
        with open(path) as f:
            return yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to read YAML file: {path}", details={"error": str(e)})


def load_program_file(path: str | Path) -> ProgramFileConfig:
    """
    Load and validate a program description.

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    path = Path(path)
    data = _read_yaml(path)

    try:
        return ProgramFileConfig(**(data or {}))
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"Failed to load program file: {path}", details={"error": str(e)})


@dataclass
class ConfigManager:
    """
    Central configuration manager for cellmotion.

    Loads and validates robot systems from ``robots/*.yaml`` and compiler
    settings from ``settings.yaml``.

    Example:
        >>> config = ConfigManager(config_dir=Path("config"))
        >>> cell = config.get_robot_system("irb2600_cell")
    """

    config_dir: Path
    _robots: dict[str, RobotSystemConfig] = field(default_factory=dict, init=False)
    _settings: CompilerSettings = field(default_factory=CompilerSettings, init=False)
    _loaded: bool = field(default=False, init=False)

    def __post_init__(self) -> None:
        """Initialize configuration manager."""
        self.config_dir = Path(self.config_dir)
        if not self.config_dir.exists():
            raise ConfigurationError(
                f"Configuration directory not found: {self.config_dir}"
            )

    def load(self) -> None:
        """Load all configurations from disk."""
        self._load_robots()
        self._load_settings()
        self._loaded = True

    def _load_robots(self) -> None:
        """Load robot system configurations."""
        robots_dir = self.config_dir / "robots"
        if not robots_dir.exists():
            return

        for config_file in sorted(robots_dir.glob("*.yaml")):
            data = _read_yaml(config_file)
            if not data or "robot_system" not in data:
                continue

            try:
                robot = RobotSystemConfig(**data["robot_system"])
            except (TypeError, ValidationError) as e:
                raise ConfigurationError(
                    f"Failed to load robot config: {config_file}",
                    details={"error": str(e)},
                )

            self._robots[config_file.stem] = robot
            logger.info("robot_system_loaded", name=config_file.stem, groups=len(robot.groups))

    def _load_settings(self) -> None:
        settings_file = self.config_dir / "settings.yaml"
        if not settings_file.exists():
            return

        data = _read_yaml(settings_file) or {}
        try:
            self._settings = CompilerSettings(**data.get("compiler", {}))
        except (TypeError, ValidationError) as e:
            raise ConfigurationError(
                f"Failed to load settings: {settings_file}",
                details={"error": str(e)},
            )

    def get_robot(self, name: str) -> RobotSystemConfig:
        """
        Get robot system configuration by name.

        Args:
            name: Robot configuration name (without .yaml extension)

        Raises:
            ConfigurationError: If robot not found
        """
        if not self._loaded:
            self.load()

        if name not in self._robots:
            available = list(self._robots.keys())
            raise ConfigurationError(
                f"Robot configuration not found: {name}",
                details={"available": available},
            )
        return self._robots[name]

    def get_robot_system(self, name: str) -> RobotCell:
        """Build the robot cell of a named configuration."""
        return build_robot_system(self.get_robot(name), self.config_dir / "robots")

    @property
    def settings(self) -> CompilerSettings:
        if not self._loaded:
            self.load()
        return self._settings

    def list_robots(self) -> list[str]:
        """List available robot configurations."""
        if not self._loaded:
            self.load()
        return list(self._robots.keys())

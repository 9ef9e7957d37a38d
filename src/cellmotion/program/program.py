"""
Robot programs.

A ``Program`` zips one toolpath per mechanical group into system targets,
compiles them, keeps the resulting keyframe timeline for playback and, when
the compilation produced no errors, the controller code.
"""

import math
import re
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable, Optional, Sequence

from cellmotion.core.exceptions import PostProcessorError, SimulationError, ToolpathError
from cellmotion.core.logging import get_logger, program_context
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.mechanisms.system import RobotCell
from cellmotion.program.check_program import CheckProgram
from cellmotion.program.collision import Collision
from cellmotion.program.program_target import ProgramTarget, SystemTarget
from cellmotion.program.simulation import Simulation, SimulationPose
from cellmotion.targets.attributes import TargetAttribute
from cellmotion.targets.commands import Command
from cellmotion.targets.target import Target

if TYPE_CHECKING:
    from cellmotion.postprocessor.base import EmitterConfig

logger = get_logger(__name__)

MAX_NAME_LENGTH = 32
KRC_NAME_LENGTH = 24

_IDENTIFIER = re.compile(r"^[A-Z0-9_]+$", re.IGNORECASE)


def is_valid_identifier(name: str) -> tuple[bool, str]:
    """
    Check a controller identifier.

    Returns:
        ``(True, "")`` or ``(False, reason)``.
    """
    if len(name) == 0:
        return False, "name is empty."

    excess = len(name) - MAX_NAME_LENGTH
    if excess > 0:
        return False, f"name is {excess} character(s) too long."

    if not name[0].isalpha():
        return False, "name must start with a letter."

    if not _IDENTIFIER.match(name):
        return False, "name can only contain letters, digits, and underscores (_)."

    return True, ""


def _toolpath_targets(toolpath: Any) -> list[Target]:
    if isinstance(toolpath, Target):
        return [toolpath]
    if hasattr(toolpath, "targets"):
        return list(toolpath.targets)
    return list(toolpath)


class Program:
    """
    A compiled robot program.

    Args:
        name: Program name, used for modules and files.
        robot_system: Robot cell the program runs on.
        toolpaths: One toolpath per mechanical group. A toolpath is anything
            with a ``targets`` attribute, a single target or a sequence of
            targets.
        init_commands: Commands run once before the first motion.
        multi_file_indices: Target indices where a new code file starts.
        step_size: Maximum TCP travel in mm between samples of linear motions.
        emitter_config: Number formats and layout of the generated code.

    Raises:
        ToolpathError: Toolpaths don't match the robot system or are empty.
    """

    def __init__(
        self,
        name: str,
        robot_system: RobotCell,
        toolpaths: Iterable[Any],
        init_commands: Optional[Command] = None,
        multi_file_indices: Optional[Sequence[int]] = None,
        step_size: float = 1.0,
        emitter_config: Optional["EmitterConfig"] = None,
    ) -> None:
        self.name = name
        self.robot_system = robot_system
        self.init_commands: list[Command] = list(init_commands.flatten()) if init_commands is not None else []
        self.attributes: list[TargetAttribute] = []
        self.warnings: list[str] = []
        self.errors: list[str] = []
        self.duration = 0.0
        self.code: Optional[list[list[list[str]]]] = None
        self._simulation: Optional[Simulation] = None
        self.emitter_config = emitter_config

        targets = self.create_system_targets(toolpaths)

        with program_context(name, robot_system.name):
            check_program = CheckProgram(self, targets, step_size)
            self._simulation = Simulation(self, check_program.keyframes)
            self.targets: list[SystemTarget] = check_program.fixed_targets

            self.check_name(name)
            self.multi_file_indices = self.fix_multi_file_indices(multi_file_indices, len(self.targets))

            for warning in self.warnings:
                logger.debug("program_warning", message=warning)
            for error in self.errors:
                logger.debug("program_error", message=error)

            if not self.errors:
                self.code = self._emit_code()

    def create_system_targets(self, toolpaths: Iterable[Any]) -> list[SystemTarget]:
        paths = [_toolpath_targets(toolpath) for toolpath in toolpaths]
        group_count = len(self.robot_system.mechanical_groups)

        if len(paths) != group_count:
            raise ToolpathError(
                f"You supplied {len(paths)} toolpath(s), this robot system requires {group_count} toolpath(s)."
            )

        count = min((len(path) for path in paths), default=0)
        system_targets = []

        for i in range(count):
            if any(not isinstance(path[i], Target) for path in paths):
                raise ToolpathError(f"Target index {i} is null or invalid.", target_index=i)

            program_targets = [ProgramTarget(path[i], group) for group, path in enumerate(paths)]
            system_targets.append(SystemTarget(program_targets, i))

        if any(len(path) != count for path in paths):
            raise ToolpathError("All toolpaths must contain the same number of targets.")

        if not system_targets:
            raise ToolpathError("The program must contain at least 1 target.")

        return system_targets

    def check_name(self, name: str) -> None:
        group = max(self.robot_system.mechanical_groups, key=lambda g: len(g.name)).name
        name = f"{name}_{group}_000"

        valid, error = is_valid_identifier(name)
        if not valid:
            self.errors.append("Program " + error)

        if self.robot_system.manufacturer is Manufacturer.KUKA:
            excess = len(name) - KRC_NAME_LENGTH
            if excess > 0:
                self.warnings.append(
                    f"If using an older KRC2 or KRC3 controller, make the program name {excess} character(s) shorter."
                )

    def fix_multi_file_indices(self, multi_file_indices: Optional[Sequence[int]], target_count: int) -> list[int]:
        if self.errors:
            return [0]

        indices = list(multi_file_indices) if multi_file_indices is not None else [0]

        if indices:
            start_count = len(indices)
            indices = [i for i in indices if i < target_count]

            if start_count > len(indices):
                self.warnings.append("Multi-file index was higher than the number of targets.")

            indices.sort()

        if not indices or indices[0] != 0:
            indices.insert(0, 0)

        return indices

    def _emit_code(self) -> Optional[list[list[list[str]]]]:
        from cellmotion.postprocessor import emitter_for

        try:
            emitter = emitter_for(self.robot_system.manufacturer, self.emitter_config)
        except PostProcessorError as e:
            self.warnings.append(e.message)
            return None

        return emitter.generate(self)

    @property
    def has_simulation(self) -> bool:
        return self._simulation is not None

    @property
    def current_simulation_pose(self) -> SimulationPose:
        if self._simulation is None:
            raise SimulationError("This program cannot be animated.", details={"program": self.name})
        return self._simulation.current_pose

    def animate(self, time: float, normalized: bool = True) -> SimulationPose:
        """Move the simulation to ``time`` (a fraction of the duration when ``normalized``)."""
        if self._simulation is None:
            raise SimulationError("This program cannot be animated.", details={"program": self.name})
        return self._simulation.step(time, normalized)

    def check_collisions(
        self,
        first: Optional[Sequence[int]] = None,
        second: Optional[Sequence[int]] = None,
        environment: Any = None,
        environment_plane: int = 0,
        linear_step: float = 100.0,
        angular_step: float = math.pi / 4,
        max_workers: Optional[int] = None,
    ) -> Collision:
        return Collision(
            self,
            first if first is not None else [7],
            second if second is not None else [4],
            environment,
            environment_plane,
            linear_step,
            angular_step,
            max_workers,
        )

    def save(self, folder: str | Path) -> list[Path]:
        """Write the generated code files into ``folder``."""
        from cellmotion.postprocessor import emitter_for

        if self.code is None:
            raise PostProcessorError("Program code not generated.", details={"program": self.name})

        return emitter_for(self.robot_system.manufacturer, self.emitter_config).save(self, Path(folder))

    def __str__(self) -> str:
        hours, remainder = divmod(int(self.duration), 3600)
        minutes, seconds = divmod(remainder, 60)
        return (
            f"Program ({self.name} with {len(self.targets)} targets and "
            f"{hours:02}:{minutes:02}:{seconds:02} (h:m:s) long)"
        )

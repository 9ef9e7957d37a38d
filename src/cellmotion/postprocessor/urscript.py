"""
Universal Robots URScript emitter: generates a single ``def Program():``
script.

Poses are written as ``p[x, y, z, rx, ry, rz]`` in meters with a rotation
vector, joint values in radians. Tools are declared once and switched with
``set_tcp`` / ``set_payload`` whenever a target changes tool.
"""

from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import compas.geometry as cg
import numpy as np
from scipy.spatial.transform import Rotation

from cellmotion.core.geometry import frame_to_matrix, plane_to_plane, transform_frame
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.program.program_target import ProgramTarget, SystemTarget
from cellmotion.targets.attributes import Speed, Tool, Zone
from cellmotion.targets.commands import (
    Command,
    Custom,
    Message,
    SetAO,
    SetDO,
    Stop,
    Wait,
    WaitDI,
)
from cellmotion.targets.target import Motions, Target

from .base import Code, EmitterBase, EmitterConfig

if TYPE_CHECKING:
    from cellmotion.program.program import Program

INDENT = "  "

# Tool frames are expressed in the flange convention of the controller
FLANGE_PLANE = cg.Frame([0, 0, 0], [0, 1, 0], [-1, 0, 0])


def pose_numbers(plane: cg.Frame) -> List[float]:
    """``[x, y, z, rx, ry, rz]``: origin in meters and rotation vector in radians."""
    matrix = frame_to_matrix(plane)
    rotation = Rotation.from_matrix(matrix[:3, :3]).as_rotvec()
    origin = np.asarray(plane.point, dtype=float) / 1000.0
    return [*origin.tolist(), *rotation.tolist()]


class URScriptEmitter(EmitterBase):
    """URScript emitter generating .script files."""

    manufacturer = Manufacturer.UR

    def __init__(self, config: Optional[EmitterConfig] = None):
        cfg = config or EmitterConfig(
            format_name='urscript',
            file_extension='.script',
            line_ending='\r\n',
            indent=INDENT,
        )
        super().__init__(cfg)

    def pose(self, plane: cg.Frame) -> str:
        return f"p[{', '.join(self.rot(n) for n in pose_numbers(plane))}]"

    def build(self, program: "Program") -> Code:
        if len(program.multi_file_indices) > 1:
            program.warnings.append("Multi-file input not supported on UR robots")

        return [[self.script()]]

    def script(self) -> List[str]:
        program = self.program
        indent = self.config.indent
        code = ["def Program():"]

        for tool in (a for a in program.attributes if isinstance(a, Tool)):
            code.extend(indent + line for line in self.tool_declaration(tool))

        for speed in (a for a in program.attributes if isinstance(a, Speed)):
            code.append(f"{indent}{speed.name} = {self.rot(speed.translation / 1000)}")

        for zone in (a for a in program.attributes if isinstance(a, Zone)):
            code.append(f"{indent}{zone.name} = {self.rot(zone.distance / 1000)}")

        for command in (a for a in program.attributes if isinstance(a, Command)):
            declaration = self.declaration(command)
            if declaration:
                code.append(indent + declaration)

        code.extend(indent + self.code(command, Target.DEFAULT) for command in program.init_commands)

        current_tool: Optional[Tool] = None

        for system_target in program.targets:
            program_target = system_target.program_targets[0]
            target = program_target.target

            if current_tool is None or target.tool is not current_tool:
                code.append(f"{indent}set_tcp({target.tool.name}Tcp)")
                code.append(f"{indent}set_payload({target.tool.name}Weight, {target.tool.name}Cog)")
                current_tool = target.tool

            code.extend(indent + self.code(c, target) for c in program_target.commands if c.run_before)
            code.append(indent + self.move(system_target, program_target))
            code.extend(indent + self.code(c, target) for c in program_target.commands if not c.run_before)

        code.append("end")
        return code

    def tool_declaration(self, tool: Tool) -> List[str]:
        to_flange = plane_to_plane(cg.Frame.worldXY(), FLANGE_PLANE)
        tcp = transform_frame(tool.tcp, to_flange)
        cog = (to_flange @ np.array([*tool.centroid, 1.0]))[:3] / 1000.0

        return [
            f"{tool.name}Tcp = {self.pose(tcp)}",
            f"{tool.name}Weight = {self.num(tool.weight)}",
            f"{tool.name}Cog = [{', '.join(self.rot(c) for c in cog)}]",
        ]

    def _axis_speed(self, system_target: SystemTarget, max_speed: float) -> float:
        percentage = system_target.min_time / system_target.delta_time if system_target.delta_time > 0 else 0.1
        return percentage * max_speed

    def move(self, system_target: SystemTarget, program_target: ProgramTarget) -> str:
        target = program_target.target
        speed = target.speed
        zone = target.zone.name
        joints_limits = self.program.robot_system.mechanical_groups[0].robot.joints

        if program_target.is_joint_target or (program_target.is_joint_motion and program_target.forced_configuration):
            joints = target.joints if program_target.is_joint_target else program_target.kinematics.joints
            axis_speed = self._axis_speed(system_target, max(j.max_speed for j in joints_limits))
            velocity = f"v={self.num(axis_speed)}" if speed.time == 0 else f"t={self.num(speed.time)}"
            values = ", ".join(self.joint(j) for j in joints[:6])
            return f"movej([{values}], a={self.joint(speed.axis_accel)}, {velocity}, r={zone})"

        plane = transform_frame(target.plane, frame_to_matrix(target.frame.plane))
        plane = transform_frame(plane, plane_to_plane(self.program.robot_system.base_plane, cg.Frame.worldXY()))
        pose = self.pose(plane)

        match target.motion:
            case Motions.JOINT:
                axis_speed = self._axis_speed(system_target, min(j.max_speed for j in joints_limits))
                velocity = f"v={self.num(axis_speed)}" if speed.time == 0 else f"t={self.num(speed.time)}"
                return f"movej({pose},a={self.rot(speed.axis_accel)},{velocity},r={zone})"
            case Motions.LINEAR:
                velocity = f"v={speed.name}" if speed.time == 0 else f"t={self.num(speed.time)}"
                return f"movel({pose},a={self.rot(speed.translation_accel / 1000)},{velocity},r={zone})"

        raise ValueError(f"Motion '{target.motion}' not supported.")

    def command_code(self, command: Command, target: Target) -> Optional[str]:
        io = self.program.robot_system.io

        match command:
            case Custom():
                return command.code_for(Manufacturer.UR)
            case Wait():
                return f"sleep({command.name})"
            case SetDO():
                return f"set_digital_out({io.do[command.do]},{command.value})"
            case WaitDI():
                negate = "not " if command.value else ""
                return (
                    f"while {negate}get_digital_in({io.di[command.di]}):\r\n"
                    f"{INDENT}{INDENT}sleep(0.008)\r\n{INDENT}end"
                )
            case SetAO():
                return f"set_analog_out({io.ao[command.ao]},{command.name})"
            case Message():
                return f'textmsg("{command.message}")'
            case Stop():
                return "pause program"

        return None

    def command_declaration(self, command: Command) -> Optional[str]:
        match command:
            case Custom():
                return command.declaration_for(Manufacturer.UR)
            case Wait():
                return f"{command.name} = {self.num(command.seconds)}"
            case SetAO():
                return f"{command.name} = {self.num(command.value)}"

        return None

    def save(self, program: "Program", folder: Path) -> List[Path]:
        lines = [line for file in program.code[0] for line in file]
        return [self.write_lines(folder / f"{program.name}{self.file_extension}", lines)]

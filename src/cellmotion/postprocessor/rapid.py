"""
ABB RAPID emitter: generates .mod modules for ABB IRC5 controllers.

One main module per mechanical group holds the tooldata, wobjdata,
speeddata, zonedata and command declarations followed by the motion
instructions (MoveAbsJ for joint targets, MoveJ with confdata for cartesian
joint motions, MoveL for linear motions). When multi-file indices split the
program, the main module loads and runs one submodule per file.
"""

import math
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

import compas.geometry as cg

from cellmotion.core.geometry import DISTANCE_TOL, frame_quaternion, plane_to_plane, transform_frame
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.program.program_target import ProgramTarget
from cellmotion.targets.attributes import Frame, Speed, Tool, Zone
from cellmotion.targets.commands import (
    Command,
    Custom,
    Message,
    PulseDO,
    SetAO,
    SetDO,
    Stop,
    Wait,
    WaitDI,
)
from cellmotion.targets.target import JointTarget, Motions, RobotConfigurations, Target

from .base import Code, EmitterBase, EmitterConfig

if TYPE_CHECKING:
    from cellmotion.program.program import Program

NO_EXTERNAL = "9E9"


def configuration_data(joints: List[float], configuration: RobotConfigurations) -> str:
    """ABB confdata ``[cf1,cf4,cf6,cfx]`` of a solved arm pose."""
    quadrants = []
    for axis in (0, 3, 5):
        cf = math.floor(joints[axis] / (math.pi / 2))
        if cf < 0:
            cf -= 1
        quadrants.append(cf)

    shoulder = RobotConfigurations.SHOULDER in configuration
    elbow = RobotConfigurations.ELBOW in configuration
    if shoulder:
        elbow = not elbow
    wrist = RobotConfigurations.WRIST in configuration

    cfx = 0
    if wrist:
        cfx += 1
    if elbow:
        cfx += 2
    if shoulder:
        cfx += 4

    cf1, cf4, cf6 = quadrants
    return f"[{cf1},{cf4},{cf6},{cfx}]"


class RapidEmitter(EmitterBase):
    """ABB RAPID emitter generating .mod files."""

    manufacturer = Manufacturer.ABB

    def __init__(self, config: Optional[EmitterConfig] = None):
        cfg = config or EmitterConfig(
            format_name='rapid',
            file_extension='.mod',
            line_ending='\r\n',
        )
        super().__init__(cfg)

    # ── Program layout ────────────────────────────────────────────────

    def build(self, program: "Program") -> Code:
        code = []
        for group in range(len(program.robot_system.mechanical_groups)):
            group_code = [self.main_module(group)]
            for file in range(len(program.multi_file_indices)):
                group_code.append(self.sub_module(file, group))
            code.append(group_code)
        return code

    @property
    def _multi_program(self) -> bool:
        return len(self.program.multi_file_indices) > 1

    @property
    def _multi_group(self) -> bool:
        return len(self.program.robot_system.mechanical_groups) > 1

    def main_module(self, group: int) -> List[str]:
        program = self.program
        mechanical_group = program.robot_system.mechanical_groups[group]
        group_name = mechanical_group.name
        code = [f"MODULE {program.name}_{group_name}"]

        if not mechanical_group.externals:
            code.append("VAR extjoint extj := [9E9,9E9,9E9,9E9,9E9,9E9];")
        code.append("VAR confdata conf := [0,0,0,0];")

        if self._multi_group:
            code.append("VAR syncident sync1;")
            code.append("VAR syncident sync2;")
            code.append('TASK PERS tasks all_tasks{2} := [["T_ROB1"], ["T_ROB2"]];')

        attributes = program.attributes
        code.extend(self.tool(a) for a in attributes if isinstance(a, Tool))
        code.extend(self.frame(a) for a in attributes if isinstance(a, Frame))
        code.extend(self.speed(a) for a in attributes if isinstance(a, Speed))
        code.extend(self.zone(a) for a in attributes if isinstance(a, Zone) and a.is_flyby)

        for command in (a for a in attributes if isinstance(a, Command)):
            declaration = self.declaration(command)
            if declaration.strip():
                code.append(declaration)

        code.append("PROC Main()")
        if not self._multi_program:
            code.append("ConfL \\Off;")

        if group == 0:
            code.extend(self.code(command, Target.DEFAULT) for command in program.init_commands)

        if self._multi_group:
            code.append("SyncMoveOn sync1, all_tasks;")

        if self._multi_program:
            for i in range(len(program.multi_file_indices)):
                module = f"{program.name}_{group_name}_{i:03}"
                code.append(f'Load\\Dynamic, "HOME:/{program.name}/{module}.MOD";')
                code.append(f'%"{module}:Main"%;')
                code.append(f'UnLoad "HOME:/{program.name}/{module}.MOD";')

            if self._multi_group:
                code.append("SyncMoveOff sync2;")

            code.append("ENDPROC")
            code.append("ENDMODULE")

        return code

    def sub_module(self, file: int, group: int) -> List[str]:
        program = self.program
        group_name = program.robot_system.mechanical_groups[group].name
        indices = program.multi_file_indices

        start = indices[file]
        end = len(program.targets) if file == len(indices) - 1 else indices[file + 1]
        code = []

        if self._multi_program:
            code.append(f"MODULE {program.name}_{group_name}_{file:03}")
            code.append("PROC Main()")
            code.append("ConfL \\Off;")

        for j in range(start, end):
            program_target = program.targets[j].program_targets[group]
            target = program_target.target

            code.extend(self.code(c, target) for c in program_target.commands if c.run_before)
            code.append(self.move(program_target, group))
            code.extend(self.code(c, target) for c in program_target.commands if not c.run_before)

        if not self._multi_program and self._multi_group:
            code.append("SyncMoveOff sync2;")

        code.append("ENDPROC")
        code.append("ENDMODULE")
        return code

    # ── Motions ───────────────────────────────────────────────────────

    def external(self, target: Target, group: int) -> str:
        mechanical_group = self.program.robot_system.mechanical_groups[group]
        if not mechanical_group.externals:
            return "extj"

        values = mechanical_group.radians_to_degrees_external(target)
        externals = [NO_EXTERNAL] * 6
        for i, value in enumerate(values[:6]):
            externals[i] = self.joint(value)

        return f"[{','.join(externals)}]"

    def pose(self, plane: cg.Frame) -> str:
        q = frame_quaternion(plane)
        x, y, z = plane.point
        pos = f"[{self.num(x)},{self.num(y)},{self.num(z)}]"
        orient = f"[{self.rot(q.w)},{self.rot(q.x)},{self.rot(q.y)},{self.rot(q.z)}]"
        return f"{pos},{orient}"

    def move(self, program_target: ProgramTarget, group: int) -> str:
        target = program_target.target
        zone = target.zone.name if target.zone.is_flyby else "fine"
        id_ = f"\\ID:={program_target.index}" if self._multi_group else ""
        external = self.external(target, group)
        attributes = f"{id_},{target.speed.name},{zone},{target.tool.name}"

        if isinstance(target, JointTarget):
            mechanical_group = self.program.robot_system.mechanical_groups[group]
            joints = [self.joint(mechanical_group.radian_to_degree(x, i)) for i, x in enumerate(target.joints)]
            return f"MoveAbsJ [[{','.join(joints[:6])}],{external}]{attributes};"

        pose = self.pose(target.plane)
        kinematics = program_target.kinematics

        match target.motion:
            case Motions.JOINT:
                conf = configuration_data(kinematics.joints, kinematics.configuration)
                return f"MoveJ [{pose},{conf},{external}]{attributes} \\WObj:={target.frame.name};"
            case Motions.LINEAR:
                return f"MoveL [{pose},conf,{external}]{attributes} \\WObj:={target.frame.name};"

        raise ValueError(f"Motion '{target.motion}' not supported.")

    # ── Declarations ──────────────────────────────────────────────────

    def tool(self, tool: Tool) -> str:
        weight = tool.weight if tool.weight > 0.001 else 0.001
        centroid = list(tool.centroid)
        if math.dist(centroid, (0.0, 0.0, 0.0)) < DISTANCE_TOL:
            centroid = [0.0, 0.0, 0.001]

        cx, cy, cz = centroid
        loaddata = f"[{self.num(weight)},[{self.num(cx)},{self.num(cy)},{self.num(cz)}],[1,0,0,0],0,0,0]"
        return f"PERS tooldata {tool.name}:=[TRUE,[{self.pose(tool.tcp)}],{loaddata}];"

    def frame(self, frame: Frame) -> str:
        base_plane = self.program.robot_system.base_plane
        plane = transform_frame(frame.plane, plane_to_plane(base_plane, cg.Frame.worldXY()))

        coupled_mechanism = ""
        if frame.is_coupled:
            if frame.coupled_mechanism == -1:
                coupled_mechanism = f"ROB_{frame.coupled_mechanical_group + 1}"
            else:
                coupled_mechanism = f"STN_{frame.coupled_mechanism + 1}"

        fixed = "FALSE" if frame.is_coupled else "TRUE"
        return (
            f'TASK PERS wobjdata {frame.name}:=[FALSE,{fixed},"{coupled_mechanism}",'
            f"[{self.pose(plane)}],[[0,0,0],[1,0,0,0]]];"
        )

    def speed(self, speed: Speed) -> str:
        rotation = math.degrees(speed.rotation)
        rotation_external = math.degrees(speed.rotation_external)
        return (
            f"TASK PERS speeddata {speed.name}:=[{self.num(speed.translation)},{self.num(rotation)},"
            f"{self.num(speed.translation_external)},{self.num(rotation_external)}];"
        )

    def zone(self, zone: Zone) -> str:
        distance = self.num(zone.distance)
        angle = self.num(math.degrees(zone.rotation))
        angle_external = self.num(math.degrees(zone.rotation_external))
        return (
            f"TASK PERS zonedata {zone.name}:=[FALSE,{distance},{distance},{distance},"
            f"{angle},{distance},{angle_external}];"
        )

    # ── Commands ──────────────────────────────────────────────────────

    def command_code(self, command: Command, target: Target) -> Optional[str]:
        io = self.program.robot_system.io

        match command:
            case Custom():
                return command.code_for(Manufacturer.ABB)
            case Wait():
                if target.zone.is_flyby:
                    return f"WaitTime {command.name};"
                return f"WaitTime \\InPos,{command.name};"
            case SetDO():
                value = "1" if command.value else "0"
                if target.zone.is_flyby:
                    return f"SetDO {io.do[command.do]},{value};"
                return f"SetDO \\Sync ,{io.do[command.do]},{value};"
            case PulseDO():
                return f"PulseDO \\PLength:={self.num(command.length)}, {io.do[command.do]};"
            case WaitDI():
                value = "1" if command.value else "0"
                return f"WaitDI {io.di[command.di]},{value};"
            case SetAO():
                return f"SetAO {io.ao[command.ao]},{command.name};"
            case Message():
                return f'TPWrite "{command.message}";'
            case Stop():
                return "Stop;"

        return None

    def command_declaration(self, command: Command) -> Optional[str]:
        match command:
            case Custom():
                return command.declaration_for(Manufacturer.ABB)
            case Wait():
                return f"PERS num {command.name}:={self.num(command.seconds)};"
            case SetAO():
                return f"PERS num {command.name};\r\n{command.name} := {self.num(command.value)};"

        return None

    # ── Files ─────────────────────────────────────────────────────────

    def save(self, program: "Program", folder: Path) -> List[Path]:
        code = program.code
        target_folder = folder / program.name
        multi_program = len(program.multi_file_indices) > 1
        written = []

        for i, group_code in enumerate(code):
            group = program.robot_system.mechanical_groups[i].name
            main_module = f"{program.name}_{group}{self.file_extension}"

            pgf = [
                '<?xml version="1.0" encoding="ISO-8859-1" ?>',
                "<Program>",
                f"    <Module>{main_module}</Module>",
                "</Program>",
            ]
            written.append(
                self.write_lines(target_folder / f"{program.name}_{group}.pgf", pgf, encoding="iso-8859-1")
            )

            lines = list(group_code[0])
            if not multi_program:
                lines.extend(group_code[1])
            written.append(self.write_lines(target_folder / main_module, lines, encoding="iso-8859-1"))

            if multi_program:
                for j in range(1, len(group_code)):
                    file = target_folder / f"{program.name}_{group}_{j - 1:03}{self.file_extension}"
                    written.append(self.write_lines(file, group_code[j], encoding="iso-8859-1"))

        return written

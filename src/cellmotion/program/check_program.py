"""
Program compiler.

Turns the authored system targets of a program into a validated, timed
target list and a keyframe timeline:

1. The first cartesian target of every group is rewritten as a joint target.
2. Target attributes are checked, collected, named and deduplicated.
3. Every motion is solved, subdivided along linear paths and timed against
   the speed limits of the TCP and of every axis.

Geometric problems become entries of ``Program.errors`` and truncate the
compiled target list; only malformed frame couplings raise.
"""

import math
from typing import TYPE_CHECKING, Iterable, Optional, TypeVar

from cellmotion.core.exceptions import ConfigurationError
from cellmotion.core.geometry import TIME_TOL, UNIT_TOL, frame_distance, vector_angle
from cellmotion.core.logging import get_logger
from cellmotion.program.program_target import ProgramTarget, SystemTarget
from cellmotion.targets.attributes import Frame, Speed, TargetAttribute, Tool, Zone
from cellmotion.targets.commands import Command, Wait
from cellmotion.targets.target import CartesianTarget, JointTarget, Motions, RobotConfigurations

if TYPE_CHECKING:
    from cellmotion.program.program import Program

logger = get_logger(__name__)

T = TypeVar("T")

KEYFRAME_TOL = 1e-9


def distinct(items: Iterable[T]) -> list[T]:
    """Unique items by identity, in order of first appearance."""
    seen: set[int] = set()
    result = []
    for item in items:
        if id(item) not in seen:
            seen.add(id(item))
            result.append(item)
    return result


def linear_divisions(system_target: SystemTarget, prev_target: SystemTarget, step_size: float) -> int:
    """Number of subdivisions of a step: the longest linear motion of any group over ``step_size``."""
    divisions = 1

    for target in system_target.program_targets:
        if target.is_joint_motion:
            continue

        prev_plane = target.get_prev_plane(prev_target.program_targets[target.group])
        distance = frame_distance(prev_plane, target.plane)
        # exact multiples of the step stay exact despite float noise
        divisions = max(divisions, math.ceil(distance / step_size - UNIT_TOL))

    return divisions


class CheckProgram:
    """
    Compile the system targets of ``program``.

    Attributes:
        keyframes: Timeline samples where the motion speed changes.
        fixed_targets: Compiled system targets, truncated after the first
            target with errors.
    """

    def __init__(self, program: "Program", system_targets: list[SystemTarget], step_size: float) -> None:
        self.program = program
        self.robot_system = program.robot_system
        self.keyframes: list[SystemTarget] = []
        self._last_index = -1

        self.fix_first_target(system_targets[0])
        self.fix_target_attributes(system_targets)
        error_index = self.fix_target_motions(system_targets, step_size)

        if error_index != -1:
            self.fixed_targets = system_targets[: error_index + 1]
            logger.info(
                "program_truncated",
                targets=len(self.fixed_targets),
                errors=len(program.errors),
                duration_s=round(program.duration, 3),
            )
        else:
            self.fixed_targets = system_targets
            logger.info(
                "program_compiled",
                targets=len(self.fixed_targets),
                keyframes=len(self.keyframes),
                warnings=len(program.warnings),
                duration_s=round(program.duration, 3),
            )

    def _program_targets(self, system_targets: list[SystemTarget]) -> list[ProgramTarget]:
        return [target for system_target in system_targets for target in system_target.program_targets]

    def fix_first_target(self, first_target: SystemTarget) -> None:
        fix = [target for target in first_target.program_targets if not target.is_joint_target]
        if not fix:
            return

        kinematics = self.robot_system.kinematics([target.target for target in first_target.program_targets])

        for program_target in fix:
            group = program_target.group
            solution = kinematics[group]

            if solution.errors:
                self.program.errors.append(f"Errors in target {program_target.index} of robot {group}:")
                self.program.errors.extend(solution.errors)

            joint_count = self.robot_system.robot_joint_count(group)
            program_target.target = JointTarget.from_target(solution.joints[:joint_count], program_target.target)
            self.program.warnings.append(
                f"First target in robot {group} changed to a joint motion using axis rotations"
            )

        logger.debug("first_target_fixed", groups=[target.group for target in fix])

    def fix_target_attributes(self, system_targets: list[SystemTarget]) -> None:
        program = self.program
        warnings = program.warnings
        program_targets = self._program_targets(system_targets)

        # External axes
        resize_count = 0
        resize_target: Optional[ProgramTarget] = None

        for target in program_targets:
            joint_count = self.robot_system.robot_joint_count(target.group)
            external_count = len(self.robot_system.joints(target.group)) - joint_count

            if len(target.target.external) != external_count:
                resize_count += 1
                if resize_target is None:
                    resize_target = target

        if resize_target is not None:
            warnings.append(
                f"{resize_count} targets have wrong number of external axes configured, "
                f"the first one being target {resize_target.index} of robot {resize_target.group}."
            )

        # Defaults
        default_tools = [t for t in program_targets if t.target.tool is Tool.DEFAULT]
        if default_tools:
            first = default_tools[0]
            warnings.append(
                f"{len(default_tools)} targets have their tool set to default, "
                f"the first one being target {first.index} in robot {first.group}"
            )

        default_speeds = [t for t in program_targets if t.target.speed is Speed.DEFAULT]
        if default_speeds:
            first = default_speeds[0]
            warnings.append(
                f"{len(default_speeds)} targets have their speed set to default, "
                f"the first one being target {first.index} in robot {first.group}"
            )

        linear_forced = [
            t
            for t in program_targets
            if isinstance(t.target, CartesianTarget)
            and t.target.motion is Motions.LINEAR
            and t.target.configuration is not None
        ]
        if linear_forced:
            first = linear_forced[0]
            warnings.append(
                f"{len(linear_forced)} targets are set to linear with a forced configuration, "
                f"the first one being target {first.index} in robot {first.group}. "
                "Configuration setting is ignored for linear motions."
            )

        for target in linear_forced:
            target.target = target.target.with_(configuration=None)

        # Payload
        tools: list[tuple[Tool, int]] = []
        for target in program_targets:
            if not any(tool is target.target.tool and group == target.group for tool, group in tools):
                tools.append((target.target.tool, target.group))

        for tool, group in tools:
            payload = self.robot_system.payload(group)
            if tool.weight > payload:
                warnings.append(
                    f"Weight of tool {tool.name} exceeds the robot {group} rated payload of {payload:g} kg"
                )

        # Unique attributes
        attributes: list[TargetAttribute] = program.attributes
        attributes.extend(distinct(tool for tool, _ in tools))
        attributes.extend(distinct(t.target.frame for t in program_targets))
        attributes.extend(distinct(t.target.speed for t in program_targets))
        attributes.extend(distinct(t.target.zone for t in program_targets))

        commands: list[Command] = list(program.init_commands)
        commands.extend(command for t in program_targets for command in t.commands)
        attributes.extend(distinct(commands))

        # Name attributes with no name
        counts: dict[type, int] = {}
        for attribute in list(attributes):
            if not attribute.has_name:
                kind = type(attribute)
                counts[kind] = counts.get(kind, 0) + 1
                self.set_attribute_name(attribute, program_targets, f"{attribute.type_name}{counts[kind] - 1:03}")

        # Rename attributes with duplicate names
        by_name: dict[str, list[TargetAttribute]] = {}
        for attribute in attributes:
            by_name.setdefault(attribute.name, []).append(attribute)

        for name, group in by_name.items():
            if len(group) < 2:
                continue

            warnings.append(f'Multiple target attributes named "{name}" found')
            for i, attribute in enumerate(group):
                self.set_attribute_name(attribute, program_targets, f"{attribute.name}{i:03}")

        # Frames
        for frame in [a for a in attributes if isinstance(a, Frame)]:
            self._check_frame(frame, program_targets)

        logger.debug("attributes_resolved", attributes=len(attributes), warnings=len(warnings))

    def _check_frame(self, frame: Frame, program_targets: list[ProgramTarget]) -> None:
        if frame.coupled_mechanical_group == -1 and frame.coupled_mechanism != -1:
            raise ConfigurationError(f"Frame {frame.name} has a coupled mechanism set but no mechanical group.")

        if frame.coupled_mechanical_group == 0 and frame.coupled_mechanism == -1:
            raise ConfigurationError(f"Frame {frame.name} is set to couple the robot rather than a mechanism.")

        if not frame.is_coupled:
            return

        groups = self.robot_system.mechanical_groups
        if frame.coupled_mechanical_group > len(groups) - 1:
            raise ConfigurationError(f"Frame {frame.name} is set to couple an inexistent mechanical group.")

        if frame.coupled_mechanism > len(groups[frame.coupled_mechanical_group].externals) - 1:
            raise ConfigurationError(f"Frame {frame.name} is set to couple an inexistent mechanism.")

        coupled = self.set_attribute_name(frame, program_targets, frame.name)
        coupled.coupled_plane_index = self.robot_system.get_plane_index(coupled)

    def set_attribute_name(
        self, attribute: TargetAttribute, program_targets: list[ProgramTarget], name: str
    ) -> TargetAttribute:
        """
        Replace ``attribute`` with a renamed copy in the program attributes,
        in every target using it and in every command list holding it.
        """
        named = attribute.clone_with_name(name)
        attributes = self.program.attributes
        index = next(i for i, a in enumerate(attributes) if a is attribute)
        attributes[index] = named

        match named:
            case Tool():
                for target in program_targets:
                    if target.target.tool is attribute:
                        target.target = target.target.with_(tool=named)
            case Frame():
                for target in program_targets:
                    if target.target.frame is attribute:
                        target.target = target.target.with_(frame=named)
            case Speed():
                for target in program_targets:
                    if target.target.speed is attribute:
                        target.target = target.target.with_(speed=named)
            case Zone():
                for target in program_targets:
                    if target.target.zone is attribute:
                        target.target = target.target.with_(zone=named)
            case Command():
                init_commands = self.program.init_commands
                for i, command in enumerate(init_commands):
                    if command is attribute:
                        init_commands[i] = named
                for target in program_targets:
                    for i, command in enumerate(target.commands):
                        if command is attribute:
                            target.commands[i] = named

        return named

    def fix_target_motions(self, system_targets: list[SystemTarget], step_size: float) -> int:
        program = self.program
        robot_system = self.robot_system
        errors = program.errors
        seven_dof = any(len(group.robot.joints) == 7 for group in robot_system.mechanical_groups)
        time = 0.0

        for i, system_target in enumerate(system_targets):
            if i == 0:
                kinematics = robot_system.kinematics([t.target for t in system_target.program_targets])
                system_target.set_target_kinematics(kinematics, errors, program.warnings)
                self.check_undefined(system_target, system_targets)
                self.keyframes.append(system_target.shallow_clone())
            else:
                prev_target = system_targets[i - 1]
                prev_joints = [t.kinematics.joints for t in prev_target.program_targets]

                # Endpoint, solved without interpolation
                kine_targets = []
                for j, program_target in enumerate(system_target.program_targets):
                    target = program_target.target.shallow_clone()
                    if isinstance(target, CartesianTarget) and target.motion is Motions.LINEAR:
                        target.configuration = prev_target.program_targets[j].kinematics.configuration
                    kine_targets.append(target)

                kinematics = robot_system.kinematics(kine_targets, prev_joints)
                system_target.set_target_kinematics(kinematics, errors, program.warnings, prev_target)
                self.check_undefined(system_target, system_targets)

                divisions = linear_divisions(system_target, prev_target, step_size)

                prev_inter = prev_target.shallow_clone()
                prev_inter.delta_time = 0.0
                prev_inter.total_time = 0.0
                prev_inter.min_time = 0.0

                total_delta_time = 0.0
                last_delta_time = 0.0
                delta_time_since_last = 0.0
                total_min_time = 0.0
                min_time_since_last = 0.0

                for j in range(1, divisions + 1):
                    t = j / divisions
                    inter_target = system_target.shallow_clone()
                    kine_targets = system_target.lerp(prev_target, robot_system, t, 0.0, 1.0)
                    kinematics = robot_system.kinematics(kine_targets, prev_joints)
                    inter_target.set_target_kinematics(kinematics, errors, None, prev_inter)

                    slowest_delta = 0.0
                    slowest_min_time = 0.0
                    for target in inter_target.program_targets:
                        delta, min_time, leading_joint = self.get_speeds(
                            target, prev_inter.program_targets[target.group]
                        )
                        slowest_delta = max(slowest_delta, delta)
                        slowest_min_time = max(slowest_min_time, min_time)
                        target.leading_joint = leading_joint

                    if j > 1 and (seven_dof or abs(slowest_delta - last_delta_time) > KEYFRAME_TOL):
                        self.keyframes.append(prev_inter.shallow_clone())
                        delta_time_since_last = 0.0
                        min_time_since_last = 0.0

                    last_delta_time = slowest_delta
                    time += slowest_delta
                    total_delta_time += slowest_delta
                    delta_time_since_last += slowest_delta
                    total_min_time += slowest_min_time
                    min_time_since_last += slowest_min_time

                    inter_target.delta_time = delta_time_since_last
                    inter_target.min_time = min_time_since_last
                    inter_target.total_time = time

                    prev_inter = inter_target

                self.keyframes.append(prev_inter.shallow_clone())

                if not errors:
                    longest_wait = max(
                        sum(c.seconds for c in target.commands if isinstance(c, Wait))
                        for target in system_target.program_targets
                    )

                    if longest_wait > TIME_TOL:
                        time += longest_wait
                        total_delta_time += longest_wait
                        prev_inter.total_time = time
                        prev_inter.delta_time += longest_wait
                        self.keyframes.append(prev_inter.shallow_clone())

                system_target.total_time = time
                system_target.delta_time = total_delta_time
                system_target.min_time = total_min_time

                for program_target in system_target.program_targets:
                    inter = prev_inter.program_targets[program_target.group]
                    program_target.kinematics = inter.kinematics
                    program_target.changes_configuration = inter.changes_configuration
                    program_target.leading_joint = inter.leading_joint

            if errors:
                program.duration = time
                for error in errors:
                    logger.debug("compiler_error", error=error)
                return i

        program.duration = time
        return -1

    def check_undefined(self, system_target: SystemTarget, system_targets: list[SystemTarget]) -> None:
        """An undefined configuration can't be carried into a linear motion."""
        i = system_target.index
        if i >= len(system_targets) - 1:
            return

        for target in system_target.program_targets:
            if target.kinematics.configuration != RobotConfigurations.UNDEFINED:
                continue
            if not system_targets[i + 1].program_targets[target.group].is_joint_motion:
                self.program.errors.append(
                    f"Undefined configuration (probably due to a singularity) in target {target.index} "
                    f"of robot {target.group} before a linear motion"
                )

    def get_speeds(self, target: ProgramTarget, prev_target: ProgramTarget) -> tuple[float, float, int]:
        """
        Time needed to move from ``prev_target`` to ``target``.

        Returns:
            The slowest of translation, rotation, axis and external axis
            times (or the fixed speed time), the axis time alone, and the
            index of the leading joint.
        """
        program = self.program
        prev_plane = target.get_prev_plane(prev_target)
        plane = target.plane
        joints = self.robot_system.joints(target.group)
        speed = target.target.speed
        values = target.kinematics.joints
        prev_values = prev_target.kinematics.joints

        # Axis
        delta_axis_time = 0.0
        leading_joint = -1

        for i in range(len(values)):
            axis_time = abs(values[i] - prev_values[i]) / joints[i].max_speed
            if axis_time > delta_axis_time:
                delta_axis_time = axis_time
                leading_joint = i

        # External
        delta_external_time = 0.0
        external_leading_joint = -1
        joint_count = self.robot_system.robot_joint_count(target.group)
        external_count = len(joints) - joint_count

        for i in range(external_count):
            joint = joints[i + joint_count]
            joint_speed = joint.max_speed
            if joint.is_prismatic:
                joint_speed = min(joint_speed, speed.translation_external)
            else:
                joint_speed = min(joint_speed, speed.rotation_external)

            external_time = abs(values[i + joint_count] - prev_values[i + joint_count]) / joint_speed
            if external_time > delta_external_time:
                delta_external_time = external_time
                external_leading_joint = i + joint_count

        if speed.time > 0:
            delta_times = [speed.time, 0.0, delta_axis_time, delta_external_time]
        else:
            distance = frame_distance(prev_plane, plane)
            delta_linear_time = distance / speed.translation

            angle_swivel = vector_angle(prev_plane.zaxis, plane.zaxis)
            angle_rotation = vector_angle(prev_plane.xaxis, plane.xaxis)
            delta_rotation_time = max(angle_swivel, angle_rotation) / speed.rotation

            delta_times = [delta_linear_time, delta_rotation_time, delta_axis_time, delta_external_time]

        delta_time = 0.0
        delta_index = -1
        for i, value in enumerate(delta_times):
            if value > delta_time:
                delta_time = value
                delta_index = i

        if delta_time < TIME_TOL:
            program.warnings.append(f"Position and orientation do not change for {target.index}")
        elif delta_index == 1:
            if target.index != self._last_index:
                program.warnings.append(f"Rotation speed limit reached in target {target.index}")
            self._last_index = target.index
        elif delta_index == 2:
            if target.index != self._last_index:
                program.warnings.append(f"Axis {leading_joint + 1} speed limit reached in target {target.index}")
            self._last_index = target.index
        elif delta_index == 3:
            if target.index != self._last_index:
                program.warnings.append(
                    f"External axis {external_leading_joint + 1} speed limit reached in target {target.index}"
                )
            leading_joint = external_leading_joint
            self._last_index = target.index

        return delta_time, delta_axis_time, leading_joint

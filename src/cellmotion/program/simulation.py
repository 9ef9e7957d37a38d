"""Playback of a compiled program's keyframe timeline."""

from dataclasses import dataclass
from typing import TYPE_CHECKING

import compas.geometry as cg

from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.program.program_target import SystemTarget

if TYPE_CHECKING:
    from cellmotion.program.program import Program


@dataclass
class SimulationPose:
    """Kinematics of every mechanical group at the current simulation time."""

    kinematics: list[KinematicSolution]
    target_index: int
    current_time: float = 0.0

    def get_last_plane(self, group: int) -> cg.Frame:
        """TCP plane of a mechanical group."""
        return self.kinematics[group].planes[-1]


class Simulation:
    """
    Seekable cursor over the keyframes of a program.

    The cursor scans forward or backward from its last position, which keeps
    near-monotonic playback cheap. Poses between keyframes are re-solved from
    interpolated targets exactly like the compiler does.
    """

    def __init__(self, program: "Program", keyframes: list[SystemTarget]) -> None:
        self.program = program
        self.keyframes = keyframes
        self.duration = program.duration
        self._current = 0

        first = keyframes[0]
        self.current_pose = SimulationPose([t.kinematics for t in first.program_targets], first.index)

    def step(self, time: float, is_normalized: bool = True) -> SimulationPose:
        robot_system = self.program.robot_system
        keyframes = self.keyframes

        if len(keyframes) == 1:
            keyframe = keyframes[0]
            self.current_pose.kinematics = robot_system.kinematics(keyframe.kine_targets())
            self.current_pose.target_index = keyframe.index
            self.current_pose.current_time = 0.0
            return self.current_pose

        if is_normalized:
            time *= self.duration
        time = min(max(time, 0.0), self.duration)

        if time >= self.current_pose.current_time:
            for i in range(self._current, len(keyframes) - 1):
                if keyframes[i + 1].total_time >= time:
                    self._current = i
                    break
        else:
            for i in range(self._current, -1, -1):
                if keyframes[i].total_time <= time:
                    self._current = i
                    break

        target = keyframes[self._current + 1]
        prev_target = keyframes[self._current]
        prev_joints = [t.kinematics.joints for t in prev_target.program_targets]

        kine_targets = target.lerp(prev_target, robot_system, time, prev_target.total_time, target.total_time)
        self.current_pose.kinematics = robot_system.kinematics(kine_targets, prev_joints)
        self.current_pose.target_index = target.index
        self.current_pose.current_time = time
        return self.current_pose

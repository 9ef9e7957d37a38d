"""Forward and inverse kinematics of arms, external axes, mechanical groups and cells."""

from cellmotion.kinematics.external import CustomKinematics, PositionerKinematics, TrackKinematics
from cellmotion.kinematics.group import MechanicalGroupKinematics, solve_cell
from cellmotion.kinematics.mechanism import MechanismKinematics
from cellmotion.kinematics.robot import RobotKinematics, WristTopology
from cellmotion.kinematics.solution import KinematicSolution

__all__ = [
    "CustomKinematics",
    "KinematicSolution",
    "MechanicalGroupKinematics",
    "MechanismKinematics",
    "PositionerKinematics",
    "RobotKinematics",
    "TrackKinematics",
    "WristTopology",
    "solve_cell",
]

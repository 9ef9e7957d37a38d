"""Mechanisms, mechanical groups and robot cells."""

from cellmotion.core.manufacturers import Manufacturer
from cellmotion.kinematics.robot import WristTopology
from cellmotion.mechanisms.joints import Joint, JointKind, prismatic_joint, revolute_joint
from cellmotion.mechanisms.mechanism import CustomMechanism, Mechanism, Positioner, RobotArm, Track
from cellmotion.mechanisms.system import IO, MechanicalGroup, RobotCell

__all__ = [
    "CustomMechanism",
    "IO",
    "Joint",
    "JointKind",
    "Manufacturer",
    "MechanicalGroup",
    "Mechanism",
    "Positioner",
    "RobotArm",
    "RobotCell",
    "Track",
    "WristTopology",
    "prismatic_joint",
    "revolute_joint",
]

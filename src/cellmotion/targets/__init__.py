"""Target model: targets, their shared attributes, commands and toolpaths."""

from cellmotion.targets.attributes import Frame, Speed, TargetAttribute, Tool, Zone
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
from cellmotion.targets.target import (
    CartesianTarget,
    JointTarget,
    Motions,
    RobotConfigurations,
    Target,
)
from cellmotion.targets.toolpath import SimpleToolpath

__all__ = [
    "CartesianTarget",
    "Command",
    "Custom",
    "Frame",
    "Group",
    "JointTarget",
    "Message",
    "Motions",
    "PulseDO",
    "RobotConfigurations",
    "SetAO",
    "SetDO",
    "SimpleToolpath",
    "Speed",
    "Stop",
    "Target",
    "TargetAttribute",
    "Tool",
    "Wait",
    "WaitDI",
    "Zone",
]

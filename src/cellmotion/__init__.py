"""
cellmotion - Kinematics and motion compiler for industrial robot cells

Solves arm and external axis kinematics, compiles target lists into timed,
validated programs, plays them back, sweeps them for collisions and emits
controller code (ABB RAPID, Universal Robots URScript).
"""

__version__ = "0.1.0"
__author__ = "cellmotion contributors"

from cellmotion.core.config import ConfigManager
from cellmotion.mechanisms import MechanicalGroup, RobotArm, RobotCell
from cellmotion.program import Program
from cellmotion.targets import CartesianTarget, JointTarget, Tool

__all__ = [
    "__version__",
    "CartesianTarget",
    "ConfigManager",
    "JointTarget",
    "MechanicalGroup",
    "Program",
    "RobotArm",
    "RobotCell",
    "Tool",
]

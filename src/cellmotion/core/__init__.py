"""Core utilities: errors, logging, configuration, geometry and manufacturer conventions."""

from cellmotion.core.exceptions import (
    CellMotionError,
    CommandError,
    ConfigurationError,
    GeometryError,
    KinematicsError,
    PostProcessorError,
    SimulationError,
    ToolpathError,
)
from cellmotion.core.manufacturers import Manufacturer

__all__ = [
    "CellMotionError",
    "CommandError",
    "ConfigurationError",
    "GeometryError",
    "KinematicsError",
    "Manufacturer",
    "PostProcessorError",
    "SimulationError",
    "ToolpathError",
]

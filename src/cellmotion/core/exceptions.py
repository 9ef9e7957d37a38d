"""
Custom exceptions for cellmotion.

All cellmotion exceptions inherit from CellMotionError for easy catching.

Geometric and kinematic problems (unreachable poses, singularities, joints
out of range) are never raised: they are reported as strings on
``KinematicSolution.errors`` and ``Program.errors``. The exceptions below are
reserved for structural mistakes that cannot be attributed to a target.
"""

from typing import Any


class CellMotionError(Exception):
    """Base exception for all cellmotion errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(CellMotionError):
    """Raised when configuration is invalid or missing."""

    pass


class ToolpathError(CellMotionError):
    """Raised when toolpaths can't be combined into system targets."""

    def __init__(
        self,
        message: str,
        target_index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.target_index = target_index


class KinematicsError(CellMotionError):
    """Raised when the robot system solver is called with inconsistent inputs."""

    pass


class GeometryError(CellMotionError):
    """Raised when geometry can't be converted or transformed."""

    pass


class CommandError(CellMotionError):
    """Raised when a command references IO the robot system doesn't have."""

    def __init__(
        self,
        message: str,
        command: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.command = command


class SimulationError(CellMotionError):
    """Raised when simulation fails."""

    pass


class PostProcessorError(CellMotionError):
    """Raised when no code emitter exists for a manufacturer."""

    pass

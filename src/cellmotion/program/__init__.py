"""Programs: compilation, playback and collision checking."""

from cellmotion.program.check_program import CheckProgram
from cellmotion.program.collision import Collision, FirstCollision, MeshPoser
from cellmotion.program.program import Program, is_valid_identifier
from cellmotion.program.program_target import ProgramTarget, SystemTarget
from cellmotion.program.simulation import Simulation, SimulationPose

__all__ = [
    "CheckProgram",
    "Collision",
    "FirstCollision",
    "MeshPoser",
    "Program",
    "ProgramTarget",
    "Simulation",
    "SimulationPose",
    "SystemTarget",
    "is_valid_identifier",
]

"""Result of solving one target against one mechanism or mechanical group."""

from dataclasses import dataclass, field

import compas.geometry as cg

from cellmotion.targets.target import RobotConfigurations


@dataclass
class KinematicSolution:
    """
    Joint values and poses for a single target.

    ``planes`` holds the base plane followed by one plane per joint. For a
    mechanical group the planes of every mechanism are concatenated and the
    TCP plane is appended last, so ``planes[-2]`` is the flange of the arm.
    Geometric problems are reported in ``errors``; solving never raises.
    """

    joints: list[float] = field(default_factory=list)
    planes: list[cg.Frame] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    configuration: RobotConfigurations = RobotConfigurations.NONE

    @property
    def last_plane(self) -> cg.Frame:
        return self.planes[-1]

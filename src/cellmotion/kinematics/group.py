"""Kinematics of mechanical groups and of whole robot cells."""

from typing import TYPE_CHECKING, Optional, Sequence

import compas.geometry as cg

from cellmotion.core.exceptions import KinematicsError
from cellmotion.core.geometry import orient
from cellmotion.core.logging import get_logger
from cellmotion.kinematics.solution import KinematicSolution
from cellmotion.targets.target import Target

if TYPE_CHECKING:
    from cellmotion.mechanisms.system import MechanicalGroup, RobotCell

logger = get_logger(__name__)


class MechanicalGroupKinematics:
    """
    Solve one target for an arm and the external axes that carry it.

    External axes are solved first. A track flagged with ``moves_robot``
    becomes the arm base; the external mechanism the target frame is coupled
    to becomes the reference of the target frame. The returned planes are the
    concatenated planes of every mechanism (externals first) followed by the
    TCP plane.
    """

    def __init__(self, group: "MechanicalGroup") -> None:
        self.group = group

    def solve(
        self,
        target: Target,
        prev_joints: Optional[Sequence[float]] = None,
        coupled_plane: Optional[cg.Frame] = None,
        base_plane: Optional[cg.Frame] = None,
    ) -> KinematicSolution:
        group = self.group
        joint_count = len(group.joints)
        solution = KinematicSolution(joints=[0.0] * joint_count)

        if prev_joints is not None and len(prev_joints) != joint_count:
            solution.errors.append(
                f"Previous joints set but contain {len(prev_joints)} value(s), "
                f"should contain {joint_count} values."
            )
            prev_joints = None

        frame = target.frame
        robot_base = base_plane

        for i, external in enumerate(group.externals):
            external_prev = (
                [prev_joints[joint.number] for joint in external.joints] if prev_joints is not None else None
            )
            external_solution = external.solver.solve(target, external_prev, base_plane)

            solution.errors.extend(external_solution.errors)
            solution.planes.extend(external_solution.planes)
            for joint, value in zip(external.joints, external_solution.joints):
                solution.joints[joint.number] = value

            if frame.coupled_mechanism == i and frame.coupled_mechanical_group == group.index:
                coupled_plane = external_solution.last_plane

            if external.moves_robot:
                robot_base = external_solution.last_plane

        if coupled_plane is not None:
            coupled_frame = frame.with_plane(orient(frame.plane, coupled_plane))
            target = target.with_(frame=coupled_frame)

        robot = group.robot
        robot_prev = (
            [prev_joints[joint.number] for joint in robot.joints] if prev_joints is not None else None
        )
        robot_solution = robot.solver.solve(target, robot_prev, robot_base)

        solution.errors.extend(robot_solution.errors)
        solution.planes.extend(robot_solution.planes)
        for joint, value in zip(robot.joints, robot_solution.joints):
            solution.joints[joint.number] = value
        solution.configuration = robot_solution.configuration

        solution.planes.append(orient(target.tool.tcp, robot_solution.last_plane))
        return solution


def solve_cell(
    cell: "RobotCell",
    targets: Sequence[Target],
    prev_joints: Optional[Sequence[Sequence[float]]] = None,
) -> list[KinematicSolution]:
    """
    Solve one target per mechanical group.

    Groups whose flange another group is coupled to are solved first so their
    flange plane is available as the coupled frame.

    Raises:
        KinematicsError: If the number of targets or previous joint sets does
            not match the number of groups, or a group is coupled to itself.
    """
    groups = cell.mechanical_groups

    if len(targets) != len(groups):
        raise KinematicsError("Incorrect number of targets.")
    if prev_joints is not None and len(prev_joints) != len(groups):
        raise KinematicsError("Incorrect number of previous joint values.")

    referenced = {
        target.frame.coupled_mechanical_group
        for target in targets
        if target.frame.coupled_mechanical_group != -1
    }
    order = sorted(range(len(groups)), key=lambda i: i not in referenced)

    solutions: list[Optional[KinematicSolution]] = [None] * len(groups)

    for i in order:
        target = targets[i]
        frame = target.frame
        coupled_plane = None

        if frame.coupled_mechanical_group != -1 and frame.coupled_mechanism == -1:
            coupled = frame.coupled_mechanical_group
            if coupled == i:
                raise KinematicsError("Cannot couple a robot with itself.")
            coupled_solution = solutions[coupled]
            if coupled_solution is None:
                raise KinematicsError(f"Robot {coupled} must be solved before robot {i} can be coupled to it.")
            coupled_plane = coupled_solution.planes[-2]

        solutions[i] = groups[i].solver.solve(
            target,
            prev_joints[i] if prev_joints is not None else None,
            coupled_plane,
            cell.base_plane,
        )

    logger.debug("cell_solved", groups=len(groups), errors=sum(len(s.errors) for s in solutions))
    return solutions

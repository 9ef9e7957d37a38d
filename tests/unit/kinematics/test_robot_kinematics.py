"""
Unit tests for arm kinematics: spherical and offset wrists.
"""

import math

import compas.geometry as cg
import pytest

from cellmotion.core.manufacturers import Manufacturer
from cellmotion.kinematics import RobotKinematics, WristTopology
from cellmotion.kinematics.spherical_wrist import safe_acos, wrap_angle
from cellmotion.mechanisms import RobotArm, revolute_joint
from cellmotion.targets import CartesianTarget, JointTarget, RobotConfigurations, Tool

SPHERICAL_JOINTS = [0.3, 1.2, -0.2, 0.5, -0.8, 1.0]
OFFSET_JOINTS = [0.3, -1.2, 1.0, -1.4, 1.2, 0.5]


def assert_planes_close(a, b, tol=1e-6):
    assert list(a.point) == pytest.approx(list(b.point), abs=tol)
    assert list(a.xaxis) == pytest.approx(list(b.xaxis), abs=tol)
    assert list(a.yaxis) == pytest.approx(list(b.yaxis), abs=tol)


class TestHelpers:
    """Tests for the trigonometric helpers."""

    def test_safe_acos(self):
        """acos is NaN outside its domain instead of raising."""
        assert safe_acos(1.0) == 0.0
        assert math.isnan(safe_acos(1.5))

    def test_wrap_angle(self):
        """Angles wrap once into [-pi, pi]."""
        assert wrap_angle(4.0) == pytest.approx(4.0 - 2 * math.pi)
        assert wrap_angle(-4.0) == pytest.approx(2 * math.pi - 4.0)


class TestSphericalWrist:
    """Tests for arms whose last three axes intersect."""

    def test_solver_dispatch(self, spherical_arm):
        """Non-UR arms default to the spherical wrist."""
        assert spherical_arm.wrist is WristTopology.SPHERICAL
        assert isinstance(spherical_arm.solver, RobotKinematics)

    def test_start_pose_flange(self, spherical_arm):
        """At the start pose the flange points along +X at the wrist height."""
        solution = spherical_arm.kinematics(spherical_arm.start_pose())
        flange = solution.planes[-1]
        assert list(flange.point) == pytest.approx([1030, 0, 1260], abs=1e-6)
        assert list(flange.zaxis) == pytest.approx([1, 0, 0], abs=1e-9)

    def test_plane_count(self, spherical_arm):
        """A solution holds the base plane and one plane per joint."""
        solution = spherical_arm.kinematics(JointTarget(SPHERICAL_JOINTS))
        assert len(solution.planes) == 7
        assert len(solution.joints) == 6

    def test_joint_planes_stored(self, spherical_arm):
        """Joint planes at the start pose are kept on the joints."""
        assert list(spherical_arm.joints[0].plane.point) == pytest.approx([150, 0, 445])
        assert list(spherical_arm.joints[5].plane.point) == pytest.approx([1030, 0, 1260])

    def test_round_trip(self, spherical_arm):
        """Inverse kinematics recovers the joints of a forward solution."""
        forward = spherical_arm.kinematics(JointTarget(SPHERICAL_JOINTS))
        assert forward.errors == []
        assert forward.configuration != RobotConfigurations.UNDEFINED

        target = CartesianTarget(forward.planes[-1], configuration=forward.configuration)
        inverse = spherical_arm.kinematics(target)
        assert inverse.errors == []
        assert inverse.joints == pytest.approx(SPHERICAL_JOINTS, abs=1e-6)

    @pytest.mark.parametrize("branch", range(8))
    def test_every_configuration_reaches_pose(self, spherical_arm, branch):
        """All eight branches reach the same flange pose."""
        forward = spherical_arm.kinematics(JointTarget(SPHERICAL_JOINTS))
        plane = forward.planes[-1]

        solution = spherical_arm.kinematics(CartesianTarget(plane, configuration=RobotConfigurations(branch)))
        assert solution.errors == []
        assert_planes_close(solution.planes[-1], plane)

    @pytest.mark.parametrize("branch", range(8))
    def test_configuration_back_computed(self, spherical_arm, branch):
        """Joint targets get the configuration of the branch they came from."""
        plane = spherical_arm.kinematics(JointTarget(SPHERICAL_JOINTS)).planes[-1]
        joints = spherical_arm.kinematics(CartesianTarget(plane, configuration=RobotConfigurations(branch))).joints

        assert spherical_arm.kinematics(JointTarget(joints)).configuration == RobotConfigurations(branch)

    def test_closest_solution(self, spherical_arm):
        """Without a forced configuration the branch nearest the previous joints wins."""
        plane = spherical_arm.kinematics(JointTarget(SPHERICAL_JOINTS)).planes[-1]
        previous = [j + 0.05 for j in SPHERICAL_JOINTS]

        solution = spherical_arm.kinematics(CartesianTarget(plane), previous)
        assert solution.joints == pytest.approx(SPHERICAL_JOINTS, abs=1e-6)

    def test_continuity_past_pi(self, spherical_arm):
        """Solutions continue from previous joints instead of wrapping."""
        joints = [0.3, 1.2, -0.2, 0.5, -0.8, 3.0]
        plane = spherical_arm.kinematics(JointTarget(joints)).planes[-1]
        previous = list(joints)
        previous[5] = 3.0 - 2 * math.pi

        solution = spherical_arm.kinematics(CartesianTarget(plane), previous)
        assert solution.errors == []
        assert solution.joints[5] == pytest.approx(3.0 - 2 * math.pi, abs=1e-6)

    def test_tool_offset(self, spherical_arm):
        """The TCP plane is the tool frame carried by the flange."""
        tool = Tool(cg.Frame([0, 0, 100], [1, 0, 0], [0, 1, 0]), "Torch")
        target = CartesianTarget(cg.Frame([900, 0, 600], [1, 0, 0], [0, -1, 0]), tool=tool)
        solution = spherical_arm.kinematics(target)

        assert solution.errors == []
        flange = solution.planes[-1]
        assert list(flange.point) == pytest.approx([900, 0, 700], abs=1e-6)
        assert list(flange.zaxis) == pytest.approx([0, 0, -1], abs=1e-9)

    def test_out_of_reach(self, spherical_arm):
        """Unreachable poses are reported, not raised."""
        solution = spherical_arm.kinematics(CartesianTarget(cg.Frame([5000, 0, 0], [1, 0, 0], [0, 1, 0])))
        assert "Target out of reach" in solution.errors

    def test_overhead_singularity(self, spherical_arm):
        """A wrist center above axis 2 is an overhead singularity."""
        target = CartesianTarget(cg.Frame([150, 0, 800], [1, 0, 0], [0, -1, 0]))
        assert "Near overhead singularity" in spherical_arm.kinematics(target).errors

    def test_wrist_singularity(self, spherical_arm):
        """Axis 5 at zero is a wrist singularity."""
        plane = spherical_arm.kinematics(JointTarget([0.0, 1.2, -0.2, 0.0, 0.0, 0.0])).planes[-1]
        solution = spherical_arm.kinematics(CartesianTarget(plane, configuration=RobotConfigurations.NONE))
        assert "Near wrist singularity" in solution.errors

    def test_out_of_range_is_clamped(self):
        """Joints outside their range are reported and clamped."""
        joints = [
            revolute_joint(i, i, a=a, d=d, range=(-0.5, 0.5) if i == 0 else (-2 * math.pi, 2 * math.pi))
            for i, (a, d) in enumerate(zip([150, 700, 115, 0, 0, 0], [445, 0, 0, 795, 0, 85]))
        ]
        arm = RobotArm("Limited", Manufacturer.ABB, 10, cg.Frame.worldXY(), None, joints)

        solution = arm.kinematics(JointTarget([1.0, math.pi / 2, 0, 0, 0, 0]))
        assert solution.errors == ["Axis 1 is outside the permitted range."]
        assert solution.joints[0] == 0.5

    def test_base_plane(self, make_spherical_arm):
        """Solutions follow the arm base plane."""
        base = cg.Frame([1000, 500, 0], [0, 1, 0], [-1, 0, 0])
        arm = make_spherical_arm(base)
        solution = arm.kinematics(arm.start_pose())
        assert list(solution.planes[0].point) == pytest.approx([1000, 500, 0])
        assert list(solution.planes[-1].point) == pytest.approx([1000, 1530, 1260], abs=1e-6)


class TestOffsetWrist:
    """Tests for UR-style arms."""

    def test_solver_dispatch(self, ur_arm):
        """UR arms default to the offset wrist."""
        assert ur_arm.wrist is WristTopology.OFFSET

    def test_round_trip(self, ur_arm):
        """Inverse kinematics recovers the joints of a forward solution."""
        forward = ur_arm.kinematics(JointTarget(OFFSET_JOINTS))
        assert forward.errors == []

        solution = ur_arm.kinematics(CartesianTarget(forward.planes[-1]), OFFSET_JOINTS)
        assert solution.joints == pytest.approx(OFFSET_JOINTS, abs=1e-6)

    @pytest.mark.parametrize("branch", range(8))
    def test_every_configuration_reaches_pose(self, ur_arm, branch):
        """All eight branches reach the same flange pose."""
        plane = ur_arm.kinematics(JointTarget(OFFSET_JOINTS)).planes[-1]
        solution = ur_arm.kinematics(CartesianTarget(plane, configuration=RobotConfigurations(branch)))

        if not solution.errors:
            assert_planes_close(solution.planes[-1], plane)

    def test_out_of_reach(self, ur_arm):
        """Unreachable poses are reported."""
        solution = ur_arm.kinematics(CartesianTarget(cg.Frame([3000, 0, 0], [1, 0, 0], [0, 1, 0])))
        assert "Target out of reach." in solution.errors

"""
Unit tests for the Universal Robots URScript emitter.
"""

import compas.geometry as cg
import pytest

from cellmotion.postprocessor.urscript import pose_numbers
from cellmotion.program import Program
from cellmotion.targets import CartesianTarget, JointTarget, Motions, PulseDO, SetDO, Tool, Wait, WaitDI

OFFSET_JOINTS = [0.3, -1.2, 1.0, -1.4, 1.2, 0.5]


@pytest.fixture
def weld_targets(ur_cell, torch, process_speed):
    """A joint move followed by a short linear move to a nearby pose."""
    nearby = list(OFFSET_JOINTS)
    nearby[0] += 0.1
    plane = ur_cell.kinematics([JointTarget(nearby, tool=torch)])[0].last_plane

    return [
        JointTarget(OFFSET_JOINTS, tool=torch, speed=process_speed),
        CartesianTarget(
            plane,
            motion=Motions.LINEAR,
            tool=torch,
            speed=process_speed,
            command=SetDO(1, True, "ArcOn"),
        ),
    ]


@pytest.fixture
def weld_program(ur_cell, weld_targets):
    return Program("Weld", ur_cell, [weld_targets], step_size=10)


def script(program):
    return program.code[0][0]


class TestPoseNumbers:
    """Tests for poses in meters and rotation vectors."""

    def test_identity(self):
        assert pose_numbers(cg.Frame([1000, -500, 250], [1, 0, 0], [0, 1, 0])) == pytest.approx(
            [1, -0.5, 0.25, 0, 0, 0]
        )

    def test_rotation_vector(self):
        """A quarter turn about Z is a rotation vector along Z."""
        numbers = pose_numbers(cg.Frame([0, 0, 0], [0, 1, 0], [-1, 0, 0]))
        assert numbers[3:] == pytest.approx([0, 0, 1.5707963], abs=1e-6)


class TestScript:
    """Tests for the generated script."""

    def test_layout(self, weld_program):
        """UR programs are a single script wrapped in a def block."""
        assert weld_program.errors == []
        assert len(weld_program.code) == 1
        assert len(weld_program.code[0]) == 1
        lines = script(weld_program)
        assert lines[0] == "def Program():"
        assert lines[-1] == "end"

    def test_declarations(self, weld_program):
        """Tools are declared in the controller's flange convention."""
        lines = script(weld_program)
        assert "  TorchTcp = p[0, 0, 0.1, 0, 0, 1.5708]" in lines
        assert "  TorchWeight = 2.5" in lines
        assert "  TorchCog = [0, 0, 0.1]" in lines
        assert "  Process = 0.1" in lines
        assert "  DefaultZone = 0" in lines

    def test_tool_set_once(self, weld_program):
        """The TCP is only switched when the tool changes."""
        lines = script(weld_program)
        assert lines.count("  set_tcp(TorchTcp)") == 1
        assert lines.count("  set_payload(TorchWeight, TorchCog)") == 1

    def test_joint_move(self, weld_program):
        lines = script(weld_program)
        move = next(line for line in lines if line.startswith("  movej("))
        assert move.startswith("  movej([0.3, -1.2, 1, -1.4, 1.2, 0.5], a=3.1416, v=")
        assert move.endswith(", r=DefaultZone)")

    def test_linear_move(self, weld_program):
        """Linear moves use the declared speed variable."""
        lines = script(weld_program)
        move = next(line for line in lines if line.startswith("  movel("))
        assert move.startswith("  movel(p[")
        assert move.endswith(",a=1,v=Process,r=DefaultZone)")
        assert lines[lines.index(move) + 1] == "  set_digital_out(1,True)"

    def test_commands(self, ur_cell, weld_targets):
        """Waits are declared and input waits poll."""
        weld_targets[1].command = WaitDI(0, True, "Ready")
        program = Program("Weld", ur_cell, [weld_targets], init_commands=Wait(0.5, "Dwell"), step_size=10)
        lines = script(program)

        assert "  Dwell = 0.5" in lines
        assert "  sleep(Dwell)" in lines
        assert "  while not get_digital_in(0):\r\n    sleep(0.008)\r\n  end" in lines

    def test_unsupported_command(self, ur_cell, weld_targets):
        """Pulses have no URScript rendering and are reported."""
        weld_targets[1].command = PulseDO(0, name="Pulse")
        program = Program("Weld", ur_cell, [weld_targets], step_size=10)
        assert "Command Pulse not implemented for UR robots." in program.warnings
        assert program.code is not None

    def test_multi_file_warning(self, ur_cell, weld_targets):
        """Multi-file splits are ignored on UR controllers."""
        program = Program("Weld", ur_cell, [weld_targets], multi_file_indices=[1], step_size=10)
        assert "Multi-file input not supported on UR robots" in program.warnings
        assert len(program.code[0]) == 1

    def test_tool_change(self, ur_cell, weld_targets):
        """Switching tools sets the TCP again."""
        pointer = Tool(cg.Frame.worldXY(), "Pointer")
        weld_targets.append(JointTarget(OFFSET_JOINTS, tool=pointer))
        program = Program("Weld", ur_cell, [weld_targets], step_size=10)
        lines = script(program)
        assert "  set_tcp(PointerTcp)" in lines
        assert lines.index("  set_tcp(PointerTcp)") > lines.index("  set_tcp(TorchTcp)")


class TestSave:
    """Tests for writing the script file."""

    def test_save(self, weld_program, temp_dir):
        paths = weld_program.save(temp_dir)
        assert [p.name for p in paths] == ["Weld.script"]
        text = paths[0].read_text(encoding="utf-8")
        assert text.startswith("def Program():\r\n")
        assert text.endswith("end")

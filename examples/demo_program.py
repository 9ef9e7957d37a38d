"""
Demonstration of the cellmotion program pipeline.

This script shows how to:
1. Build a robot cell in code
2. Solve forward and inverse kinematics
3. Compile a program and inspect its diagnostics
4. Sample the simulation and emit RAPID code
"""

import math

import compas.geometry as cg

from cellmotion.core.manufacturers import Manufacturer
from cellmotion.mechanisms import MechanicalGroup, RobotArm, RobotCell, revolute_joint
from cellmotion.program import Program
from cellmotion.targets import CartesianTarget, Frame, JointTarget, Motions, Speed, Tool

IRB2600_A = [150, 700, 115, 0, 0, 0]
IRB2600_D = [445, 0, 0, 795, 0, 85]
IRB2600_SPEED = [175, 175, 175, 360, 360, 460]


def build_cell() -> RobotCell:
    joints = [
        revolute_joint(
            i,
            i,
            a=IRB2600_A[i],
            d=IRB2600_D[i],
            range=(-math.pi, math.pi),
            max_speed=math.radians(IRB2600_SPEED[i]),
        )
        for i in range(6)
    ]
    arm = RobotArm("IRB2600", Manufacturer.ABB, 12, cg.Frame.worldXY(), None, joints)
    return RobotCell("DemoCell", Manufacturer.ABB, [MechanicalGroup(0, [arm])])


def main():
    """Run program demonstration."""
    print("=" * 60)
    print("cellmotion Program Demo")
    print("=" * 60)

    # 1. Robot cell
    print("\n1. Building robot cell")
    cell = build_cell()
    arm = cell.mechanical_groups[0].robot
    print(f"   [OK] {arm.model} with {len(arm.joints)} axes, wrist {arm.wrist.name.lower()}")

    # 2. Kinematics
    print("\n2. Forward and inverse kinematics")
    home = JointTarget([0, math.pi / 2, 0, 0, -math.pi / 2, 0])
    solution = cell.kinematics([home])[0]
    x, y, z = solution.planes[-1].point
    print(f"   Home TCP: ({x:.1f}, {y:.1f}, {z:.1f})")

    down = cg.Frame([900, 0, 600], [1, 0, 0], [0, -1, 0])
    solution = cell.kinematics([CartesianTarget(down)], [home.joints])[0]
    print(f"   IK joints (deg): {[round(math.degrees(j), 2) for j in solution.joints]}")
    print(f"   Configuration: {solution.configuration}")

    # 3. Program
    print("\n3. Compiling program")
    tool = Tool(cg.Frame([0, 0, 100], [1, 0, 0], [0, 1, 0]), "Torch", weight=2.5)
    speed = Speed(100, name="Process")
    frame = Frame(cg.Frame([600, 0, 400], [1, 0, 0], [0, 1, 0]), name="Table")
    flange_down = dict(tool=tool, speed=speed, frame=frame)

    targets = [
        JointTarget(home.joints, tool=tool, speed=speed),
        CartesianTarget(cg.Frame([0, 0, 500], [1, 0, 0], [0, -1, 0]), **flange_down),
        CartesianTarget(cg.Frame([300, 0, 500], [1, 0, 0], [0, -1, 0]), motion=Motions.LINEAR, **flange_down),
    ]
    program = Program("DemoProgram", cell, [targets], step_size=10)
    print(f"   [OK] {program}")

    for warning in program.warnings:
        print(f"   [WARN] {warning}")
    for error in program.errors:
        print(f"   [ERROR] {error}")

    # 4. Simulation and code
    print("\n4. Simulation and code")
    for t in (0.0, 0.5, 1.0):
        pose = program.animate(t)
        x, y, z = pose.get_last_plane(0).point
        print(f"   t={t:.1f}: target {pose.target_index}, TCP ({x:.1f}, {y:.1f}, {z:.1f})")

    if program.code is not None:
        print()
        for line in program.code[0][0] + program.code[0][1]:
            print(f"   {line}")

    print("\n" + "=" * 60)
    print("Demo complete")
    print("=" * 60)


if __name__ == "__main__":
    main()

"""
Command-line interface for cellmotion.

Provides commands for listing robot systems, compiling programs, sampling
their simulation and sweeping them for collisions.
"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from cellmotion import __version__
from cellmotion.core.config import (
    ConfigManager,
    build_init_commands,
    build_toolpaths,
    load_program_file,
)
from cellmotion.core.exceptions import CellMotionError
from cellmotion.core.logging import configure_logging
from cellmotion.program import Program

console = Console()


def _load_program(ctx: click.Context, program_file: Path, step_size: Optional[float] = None) -> Program:
    config_mgr = ConfigManager(ctx.obj["config_dir"])
    settings = config_mgr.settings
    program_config = load_program_file(program_file)
    info = program_config.program

    robot_system = config_mgr.get_robot_system(info.robot_system)
    toolpaths = build_toolpaths(program_config, robot_system, program_file.parent)

    if step_size is None:
        step_size = info.step_size if info.step_size is not None else settings.step_size

    return Program(
        info.name,
        robot_system,
        toolpaths,
        init_commands=build_init_commands(program_config),
        multi_file_indices=info.multi_file_indices,
        step_size=step_size,
        emitter_config=settings.emitter_config(robot_system.manufacturer),
    )


def _print_diagnostics(program: Program) -> None:
    for warning in program.warnings:
        console.print(f"[yellow]⚠[/yellow] {warning}")
    for error in program.errors:
        console.print(f"[red]✗[/red] {error}")


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config-dir",
    type=click.Path(exists=True, path_type=Path),
    default="config",
    help="Configuration directory",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Log level",
)
@click.pass_context
def main(ctx: click.Context, config_dir: Path, log_level: str) -> None:
    """cellmotion - Kinematics and motion compiler for industrial robot cells."""
    configure_logging(level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@main.command("robots")
@click.pass_context
def robots(ctx: click.Context) -> None:
    """List available robot systems."""
    try:
        config_mgr = ConfigManager(ctx.obj["config_dir"])
        names = config_mgr.list_robots()

        if not names:
            console.print("[yellow]No robot systems found.[/yellow]")
            return

        table = Table(title="Available Robot Systems")
        table.add_column("Name", style="cyan")
        table.add_column("Manufacturer")
        table.add_column("Groups")
        table.add_column("Mechanisms")

        for name in names:
            robot = config_mgr.get_robot(name)
            mechanisms = ", ".join(m.model for group in robot.groups for m in group.mechanisms)
            table.add_row(name, robot.manufacturer, str(len(robot.groups)), mechanisms)

        console.print(table)

    except CellMotionError as e:
        console.print(f"[red]✗[/red] Failed to list robot systems: {e}")
        raise SystemExit(1)


@main.command("compile")
@click.argument("program_file", type=click.Path(exists=True, path_type=Path))
@click.option("--output", "-o", type=click.Path(path_type=Path), help="Folder receiving the generated code")
@click.option("--step-size", type=float, help="Linear motion sampling step in mm")
@click.pass_context
def compile_program(ctx: click.Context, program_file: Path, output: Optional[Path], step_size: Optional[float]) -> None:
    """Compile a program and write its controller code."""
    try:
        program = _load_program(ctx, program_file, step_size)

        table = Table(title=f"Program: {program.name}")
        table.add_column("Property", style="cyan")
        table.add_column("Value")

        table.add_row("Robot System", program.robot_system.name)
        table.add_row("Targets", str(len(program.targets)))
        table.add_row("Duration", f"{program.duration:.2f} s")
        table.add_row("Warnings", str(len(program.warnings)))
        table.add_row("Errors", str(len(program.errors)))
        console.print(table)

        _print_diagnostics(program)

        if program.errors:
            raise SystemExit(1)

        if output is not None and program.code is not None:
            files = program.save(output)
            for file in files:
                console.print(f"[green]✓[/green] Wrote {file}")

    except CellMotionError as e:
        console.print(f"[red]✗[/red] Failed to compile program: {e}")
        raise SystemExit(1)


@main.command("simulate")
@click.argument("program_file", type=click.Path(exists=True, path_type=Path))
@click.option("--time", "-t", "time_", type=float, required=True, help="Simulation time")
@click.option("--normalized/--seconds", default=True, help="Read the time as a fraction of the duration")
@click.pass_context
def simulate(ctx: click.Context, program_file: Path, time_: float, normalized: bool) -> None:
    """Print the axis values of every mechanical group at a given time."""
    try:
        program = _load_program(ctx, program_file)
        pose = program.animate(time_, normalized)

        table = Table(title=f"{program.name} at {pose.current_time:.3f} s (target {pose.target_index})")
        table.add_column("Group", style="cyan")
        table.add_column("Axes (controller units)")
        table.add_column("TCP (mm)")
        table.add_column("Errors")

        for i, (group, solution) in enumerate(zip(program.robot_system.mechanical_groups, pose.kinematics)):
            axes = ", ".join(f"{group.radian_to_degree(v, n):.3f}" for n, v in enumerate(solution.joints))
            x, y, z = pose.get_last_plane(i).point
            table.add_row(group.name, axes, f"{x:.2f}, {y:.2f}, {z:.2f}", str(len(solution.errors)))

        console.print(table)

    except CellMotionError as e:
        console.print(f"[red]✗[/red] Failed to simulate program: {e}")
        raise SystemExit(1)


@main.command("collide")
@click.argument("program_file", type=click.Path(exists=True, path_type=Path))
@click.option("--first", "-a", type=int, multiple=True, default=(7,), show_default=True, help="First mesh set")
@click.option("--second", "-b", type=int, multiple=True, default=(4,), show_default=True, help="Second mesh set")
@click.option("--environment/--no-environment", default=False, help="Include the cell environment mesh")
@click.option("--environment-plane", type=int, default=-1, help="Plane the environment moves with, -1 for static")
@click.option("--workers", type=int, help="Worker threads")
@click.pass_context
def collide(
    ctx: click.Context,
    program_file: Path,
    first: tuple[int, ...],
    second: tuple[int, ...],
    environment: bool,
    environment_plane: int,
    workers: Optional[int],
) -> None:
    """Sweep a compiled program for collisions between two mesh sets."""
    try:
        program = _load_program(ctx, program_file)
        _print_diagnostics(program)

        settings = ConfigManager(ctx.obj["config_dir"]).settings
        collision = program.check_collisions(
            list(first),
            list(second),
            program.robot_system.environment if environment else None,
            environment_plane,
            settings.collision_linear_step,
            settings.collision_angular_step_radians,
            workers,
        )

        if collision.has_collision:
            console.print(f"[red]✗[/red] Collision before target {collision.collision_target.index}")
            raise SystemExit(2)

        console.print("[green]✓[/green] No collisions found")

    except CellMotionError as e:
        console.print(f"[red]✗[/red] Failed to check collisions: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()

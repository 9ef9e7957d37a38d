"""
Commands attached to targets.

Commands are plain records. They carry no manufacturer code themselves; each
code emitter matches on the command type and renders its own dialect (see
``cellmotion.postprocessor``). A command runs after the motion to its target
unless ``run_before`` is set.
"""

from typing import Iterable, Iterator, Optional

from cellmotion.core.exceptions import CommandError
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.targets.attributes import TargetAttribute


class Command(TargetAttribute):
    """Base class of all commands."""

    DEFAULT: "Custom"

    def __init__(self, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.run_before = False

    def flatten(self) -> Iterator["Command"]:
        if self is not Command.DEFAULT:
            yield self

    def check_io(self, io: "object") -> None:
        """Raise CommandError when the command addresses IO the system lacks."""
        return None

    def __repr__(self) -> str:
        return f"Command ({self.name})"


class Custom(Command):
    """
    Literal code for one manufacturer (or for all of them).

    Args:
        name: Command name.
        manufacturer: Dialect the code applies to; ``Manufacturer.ALL`` for every dialect.
        command: Code emitted at the target.
        declaration: Code emitted in the declaration block.
    """

    def __init__(
        self,
        name: str = "CustomCommand",
        manufacturer: Manufacturer = Manufacturer.ALL,
        command: Optional[str] = None,
        declaration: Optional[str] = None,
    ) -> None:
        super().__init__(name)
        self.commands: dict[Manufacturer, str] = {}
        self.declarations: dict[Manufacturer, str] = {}
        self.add_command(manufacturer, command, declaration)

    def add_command(
        self, manufacturer: Manufacturer, command: Optional[str], declaration: Optional[str]
    ) -> None:
        if command is not None:
            self.commands[manufacturer] = command
        if declaration is not None:
            self.declarations[manufacturer] = declaration

    def code_for(self, manufacturer: Manufacturer) -> Optional[str]:
        return self.commands.get(manufacturer, self.commands.get(Manufacturer.ALL))

    def declaration_for(self, manufacturer: Manufacturer) -> Optional[str]:
        return self.declarations.get(manufacturer, self.declarations.get(Manufacturer.ALL))


class Group(Command):
    """Ordered list of commands attached to a single target."""

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        super().__init__("GroupCommand")
        self.commands: list[Command] = list(commands)

    def append(self, command: Command) -> None:
        self.commands.append(command)

    def flatten(self) -> Iterator[Command]:
        for command in self.commands:
            yield from command.flatten()

    def __iter__(self) -> Iterator[Command]:
        return iter(self.commands)

    def __len__(self) -> int:
        return len(self.commands)

    def __repr__(self) -> str:
        return f"Command (Group with {len(self.commands)} commands)"


class Wait(Command):
    """Dwell for a number of seconds. Adds to the compiled program duration."""

    def __init__(self, seconds: float, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.seconds = seconds

    def __repr__(self) -> str:
        return f"Command (Wait {self.seconds} secs)"


def _check_index(index: int, names: list[str], kind: str, command: Command) -> None:
    if index < 0 or index > len(names) - 1:
        raise CommandError(
            f"Index of {kind} is too high.",
            command=command.name,
            details={"index": index, "available": len(names)},
        )


class SetDO(Command):
    def __init__(self, do: int, value: bool, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.do = do
        self.value = value

    def check_io(self, io) -> None:
        _check_index(self.do, io.do, "digital output", self)

    def __repr__(self) -> str:
        return f"Command (DO {self.do} set to {self.value})"


class PulseDO(Command):
    def __init__(self, do: int, length: float = 0.2, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.do = do
        self.length = length

    def check_io(self, io) -> None:
        _check_index(self.do, io.do, "digital output", self)

    def __repr__(self) -> str:
        return f"Command (Pulse {self.do} for {self.length:.3f} secs)"


class WaitDI(Command):
    def __init__(self, di: int, value: bool = True, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.di = di
        self.value = value

    def check_io(self, io) -> None:
        _check_index(self.di, io.di, "digital input", self)

    def __repr__(self) -> str:
        return f"Command (WaitDI until {self.di} is {self.value})"


class SetAO(Command):
    def __init__(self, ao: int, value: float, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.ao = ao
        self.value = value

    def check_io(self, io) -> None:
        _check_index(self.ao, io.ao, "analog output", self)

    def __repr__(self) -> str:
        return f'Command (AO {self.ao} set to "{self.value}")'


class Message(Command):
    def __init__(self, message: str, name: Optional[str] = None) -> None:
        super().__init__(name)
        self.message = message

    def __repr__(self) -> str:
        return f'Command (Message "{self.message}")'


class Stop(Command):
    def __repr__(self) -> str:
        return "Command (Stop)"


Command.DEFAULT = Custom("DefaultCommand")

"""
EmitterBase: abstract base class for controller code emitters.

An emitter turns a compiled ``Program`` into controller code laid out as
mechanical groups × files × lines. Numbers are formatted through an explicit
``NumberFormat`` carried by the ``EmitterConfig`` (always a ``.`` decimal
separator, trailing zeros dropped), so the output never depends on the
process locale.

Commands are plain records; each emitter pattern-matches on the command type
in ``command_code`` / ``command_declaration`` and returns ``None`` for
commands its dialect has no rendering for. Those become program warnings.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Dict, List, Optional

from cellmotion.core.logging import get_logger
from cellmotion.core.manufacturers import Manufacturer
from cellmotion.targets.commands import Command
from cellmotion.targets.target import Target

if TYPE_CHECKING:
    from cellmotion.program.program import Program

logger = get_logger(__name__)

Code = List[List[List[str]]]


@dataclass
class NumberFormat:
    """
    Fixed-point number rendering with up to ``decimals`` digits.

    Equivalent to a ``0.###`` pattern: trailing zeros and a dangling
    separator are dropped and negative zero prints as ``0``.
    """
    decimals: int = 3
    separator: str = "."

    def __call__(self, value: float) -> str:
        text = f"{value:.{self.decimals}f}"
        if "." in text:
            text = text.rstrip("0").rstrip(".")
        if text in ("-0", ""):
            text = "0"
        if self.separator != ".":
            text = text.replace(".", self.separator)
        return text

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'NumberFormat':
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in d.items() if k in valid_fields})


@dataclass
class EmitterConfig:
    """Configuration for an emitter instance."""
    format_name: str = "rapid"           # 'rapid' or 'urscript'
    file_extension: str = ".mod"
    line_ending: str = "\r\n"
    indent: str = ""

    # Number formats
    position: NumberFormat = field(default_factory=lambda: NumberFormat(3))
    rotation: NumberFormat = field(default_factory=lambda: NumberFormat(5))
    joints: NumberFormat = field(default_factory=lambda: NumberFormat(4))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'EmitterConfig':
        d = dict(d)
        formats = {
            key: NumberFormat.from_dict(d.pop(key))
            for key in ("position", "rotation", "joints")
            if isinstance(d.get(key), dict)
        }
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        config = cls(**{k: v for k, v in d.items() if k in valid_fields})
        for key, number_format in formats.items():
            setattr(config, key, number_format)
        return config


class EmitterBase(ABC):
    """
    Abstract base class for code emitters.

    Subclasses implement the dialect-specific parts:
    - build(): the code of every group and file
    - command_code() / command_declaration(): command rendering
    - save(): the files written to disk
    """

    manufacturer: ClassVar[Manufacturer]

    def __init__(self, config: Optional[EmitterConfig] = None):
        self.config = config or EmitterConfig()
        self.program: Optional["Program"] = None

    @property
    def format_name(self) -> str:
        return self.config.format_name

    @property
    def file_extension(self) -> str:
        return self.config.file_extension

    def num(self, value: float) -> str:
        return self.config.position(value)

    def rot(self, value: float) -> str:
        return self.config.rotation(value)

    def joint(self, value: float) -> str:
        return self.config.joints(value)

    # ── Abstract methods (must be implemented by subclasses) ───────────

    @abstractmethod
    def build(self, program: "Program") -> Code:
        """Generate the code of every mechanical group and file."""
        ...

    @abstractmethod
    def command_code(self, command: Command, target: Target) -> Optional[str]:
        """Code of a command at a target, ``None`` when the dialect lacks it."""
        ...

    @abstractmethod
    def command_declaration(self, command: Command) -> Optional[str]:
        """Declaration of a command, ``None`` when it needs none."""
        ...

    @abstractmethod
    def save(self, program: "Program", folder: Path) -> List[Path]:
        """Write the program code into ``folder``, returning the written files."""
        ...

    # ── Main generation pipeline ──────────────────────────────────────

    def generate(self, program: "Program") -> Code:
        self.program = program
        code = self.build(program)
        logger.info(
            "code_generated",
            format=self.format_name,
            groups=len(code),
            files=sum(len(group) for group in code),
            lines=sum(len(lines) for group in code for lines in group),
        )
        return code

    def code(self, command: Command, target: Target) -> str:
        """Rendered command, or ``""`` with a program warning when not implemented."""
        program = self.program
        command.check_io(program.robot_system.io)

        text = self.command_code(command, target)
        if text is None:
            program.warnings.append(
                f"Command {command.name} not implemented for {self.manufacturer.value} robots."
            )
            return ""

        return text

    def declaration(self, command: Command) -> str:
        command.check_io(self.program.robot_system.io)
        return self.command_declaration(command) or ""

    def write_lines(self, path: Path, lines: List[str], encoding: str = "utf-8") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.config.line_ending.join(lines), encoding=encoding, newline="")
        return path

"""
cellmotion code emitters

Turns compiled programs into controller code:
- ABB RAPID (.mod)
- Universal Robots URScript (.script)

Each emitter inherits from EmitterBase and renders targets and commands in
its own dialect.
"""

from typing import Optional

from cellmotion.core.exceptions import PostProcessorError
from cellmotion.core.manufacturers import Manufacturer

from .base import EmitterBase, EmitterConfig, NumberFormat
from .rapid import RapidEmitter
from .urscript import URScriptEmitter


def emitter_for(manufacturer: Manufacturer, config: Optional[EmitterConfig] = None) -> EmitterBase:
    """Code emitter of a controller brand."""
    match manufacturer:
        case Manufacturer.ABB:
            return RapidEmitter(config)
        case Manufacturer.UR:
            return URScriptEmitter(config)

    raise PostProcessorError(
        f"Code generation not implemented for {manufacturer.value} robots.",
        details={"manufacturer": manufacturer.value},
    )


__all__ = [
    'EmitterBase',
    'EmitterConfig',
    'NumberFormat',
    'RapidEmitter',
    'URScriptEmitter',
    'emitter_for',
]

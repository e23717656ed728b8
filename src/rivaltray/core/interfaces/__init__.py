"""Component interfaces"""

from .config import IConfigService
from .process import CommandOutput, CommandCallback, ICommandRunner
from .rasterizer import IRasterizer
from .tray import ITrayBackend, MenuCallback, MenuEntry

__all__ = [
    "IConfigService",
    "CommandOutput",
    "CommandCallback",
    "ICommandRunner",
    "IRasterizer",
    "ITrayBackend",
    "MenuCallback",
    "MenuEntry",
]

"""Shell-facing script generation and integration."""

from .commands import CommandGenerator
from .integration import ShellIntegration

__all__ = ["CommandGenerator", "ShellIntegration"]

"""Installation of the envctl shell functions into the user's rc file."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

INTEGRATION_FILENAME = ".envctl-integration.sh"
RC_COMMENT = "# envctl shell integration"
SOURCE_LINE = f"source ~/{INTEGRATION_FILENAME}"

INTEGRATION_SCRIPT = """#!/bin/bash
# envctl Shell Integration
# Auto-generated by envctl setup

# Load a profile into the current shell
envctl-load() {
    if [ -z "$1" ]; then
        echo "Usage: envctl-load <profile>"
        return 1
    fi

    local commands
    commands=$(envctl load "$1" 2>/dev/null)
    if [ $? -eq 0 ]; then
        eval "$commands"
        echo "✓ Loaded profile '$1'"
    else
        echo "✗ Failed to load profile '$1'"
        envctl load "$1" >/dev/null  # show the error
        return 1
    fi
}

# Unload the profile loaded in the current shell
envctl-unload() {
    local commands
    commands=$(envctl unload 2>/dev/null)
    if [ $? -eq 0 ]; then
        eval "$commands"
        echo "✓ Unloaded profile"
    else
        echo "✗ Failed to unload profile"
        envctl unload >/dev/null  # show the error
        return 1
    fi
}

# Replace the loaded profile with another one
envctl-switch() {
    if [ -z "$1" ]; then
        echo "Usage: envctl-switch <profile>"
        return 1
    fi

    local commands
    commands=$(envctl switch "$1" 2>/dev/null)
    if [ $? -eq 0 ]; then
        eval "$commands"
        echo "✓ Switched to profile '$1'"
    else
        echo "✗ Failed to switch to profile '$1'"
        envctl switch "$1" >/dev/null  # show the error
        return 1
    fi
}

alias ecl='envctl-load'
alias ecu='envctl-unload'
alias ecsw='envctl-switch'
alias ecs='envctl status'
alias ecls='envctl list'
"""


class IntegrationResult(BaseModel):
    rc_file: Path
    integration_file: Path
    removed: list[str] = Field(default_factory=list)


def rc_file_for_shell(home: Path, shell: str) -> Path:
    """Pick the rc file for a ``$SHELL`` value such as ``/usr/bin/zsh``."""
    name = shell.rsplit("/", 1)[-1]
    if name == "zsh":
        return home / ".zshrc"
    return home / ".bashrc"


class ShellIntegration:
    """
    Writes and removes the integration script and its ``source`` line.

    Args:
        home: Home directory (defaults to ``Path.home()``)
        shell: Login shell path (defaults to ``$SHELL``)
    """

    def __init__(self, home: Optional[Path] = None, shell: Optional[str] = None):
        self.home = Path(home) if home else Path.home()
        self.shell = shell if shell is not None else os.environ.get("SHELL", "")

    @property
    def rc_file(self) -> Path:
        return rc_file_for_shell(self.home, self.shell)

    @property
    def integration_file(self) -> Path:
        return self.home / INTEGRATION_FILENAME

    def setup(self) -> IntegrationResult:
        self.integration_file.write_text(INTEGRATION_SCRIPT, encoding="utf-8")
        self.integration_file.chmod(0o755)

        rc_content = ""
        if self.rc_file.exists():
            rc_content = self.rc_file.read_text(encoding="utf-8")

        if SOURCE_LINE not in rc_content:
            self.rc_file.parent.mkdir(parents=True, exist_ok=True)
            self.rc_file.write_text(
                f"{rc_content}\n{RC_COMMENT}\n{SOURCE_LINE}\n", encoding="utf-8"
            )
            logger.info("Added envctl integration to %s", self.rc_file)

        return IntegrationResult(rc_file=self.rc_file, integration_file=self.integration_file)

    def unsetup(self) -> IntegrationResult:
        removed: list[str] = []

        if self.integration_file.exists():
            self.integration_file.unlink()
            removed.append(str(self.integration_file))

        if self.rc_file.exists():
            lines = self.rc_file.read_text(encoding="utf-8").split("\n")
            kept = [ln for ln in lines if ln.strip() not in (RC_COMMENT, SOURCE_LINE)]
            if len(kept) != len(lines):
                self.rc_file.write_text("\n".join(kept), encoding="utf-8")
                removed.append(f"{self.rc_file} (removed envctl lines)")

        return IntegrationResult(
            rc_file=self.rc_file,
            integration_file=self.integration_file,
            removed=removed,
        )

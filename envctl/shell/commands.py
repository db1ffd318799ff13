"""Shell script generation for load, unload and switch.

The scripts are meant for ``eval`` in the calling shell; nothing here
touches a process environment. Per session the state is either empty (no
backup file) or loaded with one profile:

    EMPTY --load(p)--> LOADED(p) --unload--> EMPTY

Loading the profile that is already loaded is a reload: the old values are
restored first, then backed up and exported again. Loading a different
profile is refused; switch does unload + load in a single script.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional

from envctl.core.errors import AlreadyLoadedError, NothingLoadedError
from envctl.core.models import Profile
from envctl.storage.backup_store import UNKNOWN_PROFILE, BackupStore

logger = logging.getLogger(__name__)

_DOUBLE_QUOTE_SPECIALS = ("\\", '"', "$", "`")


def double_quote(value: str) -> str:
    """Wrap *value* in double quotes, escaping characters the shell expands."""
    for ch in _DOUBLE_QUOTE_SPECIALS:
        value = value.replace(ch, "\\" + ch)
    return f'"{value}"'


def export_line(key: str, value: str) -> str:
    return f"export {key}={double_quote(value)}"


class CommandGenerator:
    """
    Builds the script text for one session.

    Args:
        backups: The calling session's backup store; its file path is baked
                 into every script, and its recorded values drive restores
    """

    def __init__(self, backups: BackupStore):
        self.backups = backups

    # Fragments

    def load_fragment(self, profile: Profile) -> list[str]:
        """Record previous values, then export the profile's variables."""
        lines = self.backups.write_marker_and_backup(profile.name, profile.keys())
        lines.extend(export_line(k, v) for k, v in profile.variables.items())
        return lines

    def restore_fragment(self, keys: Iterable[str], backup: Mapping[str, str]) -> list[str]:
        """Put every key back to its backed-up value, or unset it if it had none."""
        lines = []
        for key in keys:
            if key in backup:
                lines.append(export_line(key, backup[key]))
            else:
                lines.append(f"unset {key}")
        return lines

    def unload_fragment(self, current: str, profile: Optional[Profile]) -> list[str]:
        """
        Restore lines for the currently loaded profile, without removing the file.

        Covers the profile's keys and every backed-up key, so a key removed
        from the profile while it was loaded still gets its old value back.
        An unmarked backup yields nothing, since the changed keys are unknown.
        A marked backup whose profile is unavailable restores only the keys
        that were backed up.
        """
        if current == UNKNOWN_PROFILE:
            return []

        backup = self.backups.read_backup()
        if profile is None:
            logger.warning(
                "Profile '%s' is not available; restoring %d backed-up variables only",
                current,
                len(backup),
            )
            return self.restore_fragment(backup.keys(), backup)
        keys = [*profile.keys(), *backup]
        return self.restore_fragment(dict.fromkeys(keys), backup)

    # Transitions

    def load(self, target: Profile, current: Optional[str]) -> str:
        """
        Script for ``load``.

        Raises:
            AlreadyLoadedError: If a different profile is loaded
        """
        if current is None:
            return self._render(self.load_fragment(target))
        if current == target.name:
            return self.reload(target)
        raise AlreadyLoadedError(current, target.name)

    def reload(self, target: Profile) -> str:
        logger.info("Reloading profile '%s'", target.name)
        lines = self.unload_fragment(target.name, target)
        lines.extend(self.load_fragment(target))
        return self._render(lines)

    def unload(self, current: Optional[str], profile: Optional[Profile]) -> str:
        """
        Script for ``unload``.

        Raises:
            NothingLoadedError: If no profile is loaded
        """
        if current is None:
            raise NothingLoadedError()
        lines = self.unload_fragment(current, profile)
        lines.append(self.backups.remove())
        return self._render(lines)

    def switch(
        self,
        target: Profile,
        current: Optional[str],
        current_profile: Optional[Profile],
    ) -> str:
        """Script for ``switch``: load, reload, or unload-then-load in one script."""
        if current is None:
            return self._render(self.load_fragment(target))
        if current == target.name:
            return self.reload(target)

        lines = self.unload_fragment(current, current_profile)
        lines.extend(self.load_fragment(target))
        return self._render(lines)

    @staticmethod
    def _render(lines: list[str]) -> str:
        return "\n".join(lines)

"""Per-session backup files.

Each shell session owns one file, ``backup-<session id>.env``::

    # profile:dev
    DATABASE_URL=old

The marker line names the loaded profile. Every following line holds the
value a variable had before the profile overwrote it. Variables that were
unset before loading have no line at all, which is how unload knows to
unset them again. Values are stored raw, without quoting.

Writes happen in the caller's shell, since only the shell knows its own
variables; this module renders those writes as script fragments and reads
the results back in-process.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, Optional

if TYPE_CHECKING:
    from envctl.storage.reaper import OrphanReaper

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup-"
BACKUP_SUFFIX = ".env"
MARKER_PREFIX = "# profile:"
UNKNOWN_PROFILE = "unknown"


def backup_filename(session_id: str) -> str:
    return f"{BACKUP_PREFIX}{session_id}{BACKUP_SUFFIX}"


def iter_backup_files(backup_dir: Path) -> Iterator[tuple[str, Path]]:
    """Yield ``(session_id, path)`` for every backup file in *backup_dir*."""
    if not backup_dir.is_dir():
        return
    for path in sorted(backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}")):
        if not path.is_file():
            continue
        session_id = path.name[len(BACKUP_PREFIX) : -len(BACKUP_SUFFIX)]
        if session_id:
            yield session_id, path


def parse_marker(content: str) -> str:
    """Return the profile named on the first line, or ``"unknown"``."""
    lines = content.splitlines()
    first = lines[0].strip() if lines else ""
    if first.startswith(MARKER_PREFIX):
        name = first[len(MARKER_PREFIX) :].strip()
        if name:
            return name
    return UNKNOWN_PROFILE


def parse_backup(content: str) -> dict[str, str]:
    """Parse backup file content into ``{key: previous value}``."""
    values: dict[str, str] = {}
    for line in content.splitlines():
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        values[key] = value
    return values


class BackupStore:
    """
    Access to the calling session's backup file.

    Args:
        backup_dir: Directory holding all sessions' backup files
        session_id: Id of the calling session
        reaper: Run before reads to clear out other sessions' orphans
    """

    def __init__(
        self,
        backup_dir: Path,
        session_id: str,
        reaper: Optional["OrphanReaper"] = None,
    ):
        self.backup_dir = Path(backup_dir)
        self.session_id = session_id
        self.reaper = reaper
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self.path_for(self.session_id)

    def path_for(self, session_id: str) -> Path:
        return self.backup_dir / backup_filename(session_id)

    def _reap(self) -> None:
        if self.reaper is None:
            return
        try:
            self.reaper.reap(self.session_id)
        except OSError as e:
            logger.debug("Orphan cleanup failed: %s", e)

    def currently_loaded_profile(self) -> Optional[str]:
        """
        Name of the profile loaded in this session.

        Returns:
            The profile name; ``"unknown"`` if the file exists without a
            marker line; None if there is no backup file
        """
        self._reap()
        if not self.path.is_file():
            return None
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Unreadable backup %s: %s", self.path, e)
            return UNKNOWN_PROFILE
        return parse_marker(content)

    def read_backup(self) -> dict[str, str]:
        """Previous values recorded for this session (marker excluded)."""
        if not self.path.is_file():
            return {}
        return parse_backup(self.path.read_text(encoding="utf-8"))

    def write_marker_and_backup(self, profile_name: str, keys: Iterable[str]) -> list[str]:
        """
        Shell lines that recreate the backup file for *profile_name*.

        Each key gets a line only if it is set in the evaluating shell at
        that moment; unset keys are recorded by omission.
        """
        target = shlex.quote(str(self.path))
        marker = shlex.quote(f"{MARKER_PREFIX}{profile_name}")
        lines = [f"printf '%s\\n' {marker} > {target}"]
        for key in keys:
            lines.append(
                f'if [ -n "${{{key}+x}}" ]; then '
                f"printf '%s=%s\\n' '{key}' \"${key}\" >> {target}; fi"
            )
        return lines

    def remove(self) -> str:
        """Shell line that deletes this session's backup file."""
        return f"rm -f {shlex.quote(str(self.path))}"

    def discard(self) -> bool:
        """Delete this session's backup file in-process. Returns True if it existed."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True

    def list_sessions(self) -> dict[str, str]:
        """
        Map every session with a non-empty backup file to its profile name.

        Unreadable files are skipped.
        """
        self._reap()
        sessions: dict[str, str] = {}
        for session_id, path in iter_backup_files(self.backup_dir):
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping unreadable backup %s: %s", path, e)
                continue
            if not content.strip():
                continue
            sessions[session_id] = parse_marker(content)
        return sessions

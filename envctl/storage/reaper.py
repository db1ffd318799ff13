"""Garbage collection of backup files left behind by closed shells."""

from __future__ import annotations

import logging
import os
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from envctl.core.session import session_pid
from envctl.storage.backup_store import iter_backup_files

logger = logging.getLogger(__name__)


class ProcessProbe(ABC):
    """
    Answers whether the process owning a session still exists.

    Platforms without POSIX signals can supply their own implementation.
    """

    @abstractmethod
    def is_alive(self, pid: int) -> bool:
        pass


class SignalProbe(ProcessProbe):
    """Liveness check by sending signal 0 to the pid."""

    def is_alive(self, pid: int) -> bool:
        if pid <= 0:
            return False
        if os.name == "nt":
            # os.kill terminates the target on Windows; never probe there.
            return True
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, owned by someone else.
            return True
        except OSError:
            return False
        return True


class OrphanReaper:
    """
    Deletes backup files whose shell has exited.

    Files younger than the grace window are never touched, so a session that
    is still setting up is not raced. A pid reused by the OS after the owning
    shell exited keeps its stale file alive; that is accepted.
    """

    def __init__(
        self,
        backup_dir: Path,
        probe: ProcessProbe | None = None,
        grace_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ):
        self.backup_dir = Path(backup_dir)
        self.probe = probe or SignalProbe()
        self.grace_seconds = grace_seconds
        self.clock = clock

    def reap(self, current_session_id: str) -> list[Path]:
        """
        Remove orphaned backups belonging to other sessions.

        Args:
            current_session_id: Session to leave alone

        Returns:
            Paths that were deleted
        """
        removed: list[Path] = []
        now = self.clock()

        for session_id, path in iter_backup_files(self.backup_dir):
            if session_id == current_session_id:
                continue

            try:
                age = now - path.stat().st_mtime
            except OSError:
                continue
            if age < self.grace_seconds:
                continue

            pid = session_pid(session_id)
            if pid is not None and self.probe.is_alive(pid):
                continue

            try:
                path.unlink()
            except OSError as e:
                logger.debug("Could not remove orphaned backup %s: %s", path, e)
                continue
            logger.info("Removed orphaned backup for session %s", session_id)
            removed.append(path)

        return removed

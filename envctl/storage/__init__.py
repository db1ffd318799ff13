"""Storage layer for profiles and session backups."""

from .backup_store import UNKNOWN_PROFILE, BackupStore
from .profile_store import ProfileStore
from .reaper import OrphanReaper, ProcessProbe, SignalProbe

__all__ = [
    "UNKNOWN_PROFILE",
    "BackupStore",
    "ProfileStore",
    "OrphanReaper",
    "ProcessProbe",
    "SignalProbe",
]

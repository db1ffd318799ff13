"""Profile management and session-aware load/unload/switch."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Mapping, Optional

from envctl.core.config import EnvctlConfig
from envctl.core.errors import (
    ProfileAlreadyExists,
    ProfileCorruptedError,
    ProfileLoadedDeletionError,
    ProfileNotFound,
    VariableNotFound,
)
from envctl.core.models import (
    Profile,
    ProfileSummary,
    SessionEntry,
    StatusReport,
    SwitchResult,
    UnloadResult,
)
from envctl.core.session import current_session_id
from envctl.shell.commands import CommandGenerator
from envctl.storage import (
    UNKNOWN_PROFILE,
    BackupStore,
    OrphanReaper,
    ProcessProbe,
    ProfileStore,
)
from envctl.utils import parse_env_file, validate_key

logger = logging.getLogger(__name__)


class EnvManager:
    """
    Entry point for every envctl operation.

    Profiles are read from the profile store and never changed by
    load/unload/switch; those only return script text for the caller's
    shell to evaluate.

    Args:
        config: Paths and settings (defaults to ``EnvctlConfig.from_env()``)
        session_id: Session to act for (defaults to the calling shell's id)
        probe: Liveness probe for orphan cleanup (defaults to signal 0)
    """

    def __init__(
        self,
        config: Optional[EnvctlConfig] = None,
        session_id: Optional[str] = None,
        probe: Optional[ProcessProbe] = None,
    ):
        self.config = config or EnvctlConfig.from_env()
        self.session_id = session_id or current_session_id()

        self.profiles = ProfileStore(self.config.profiles_dir)
        self.reaper = OrphanReaper(
            self.config.config_dir,
            probe=probe,
            grace_seconds=self.config.orphan_grace_seconds,
        )
        self.backups = BackupStore(self.config.config_dir, self.session_id, reaper=self.reaper)
        self.commands = CommandGenerator(self.backups)

    # Profile CRUD

    def _require_profile(self, name: str) -> Profile:
        profile = self.profiles.load_profile(name)
        if profile is None:
            raise ProfileNotFound(name)
        return profile

    def get_profile(self, name: str) -> Optional[Profile]:
        return self.profiles.load_profile(name)

    def create_profile(self, name: str) -> Profile:
        if self.profiles.profile_exists(name):
            raise ProfileAlreadyExists(name)
        profile = Profile(name=name)
        self.profiles.save_profile(profile)
        logger.debug("Created profile '%s'", name)
        return profile

    def add_variable(self, profile_name: str, key: str, value: str) -> None:
        self.add_variables(profile_name, {key: value})

    def add_variables(self, profile_name: str, variables: Mapping[str, str]) -> list[str]:
        """Add or overwrite variables. Returns the keys written."""
        profile = self._require_profile(profile_name)
        for key, value in variables.items():
            profile.variables[validate_key(key)] = value
        self.profiles.save_profile(profile)
        return list(variables)

    def add_variables_from_file(self, profile_name: str, file_path: str | Path) -> int:
        """Import a .env file into a profile. Returns the number of variables read."""
        profile = self._require_profile(profile_name)
        variables = parse_env_file(file_path)
        profile.variables.update(variables)
        self.profiles.save_profile(profile)
        return len(variables)

    def remove_variable(self, profile_name: str, key: str) -> None:
        profile = self._require_profile(profile_name)
        if key not in profile.variables:
            raise VariableNotFound(profile_name, key)
        del profile.variables[key]
        self.profiles.save_profile(profile)

    def export_profile(self, name: str) -> str:
        profile = self._require_profile(name)
        return "\n".join(f"{k}={v}" for k, v in profile.variables.items())

    def delete_profile(self, name: str) -> None:
        """
        Delete a profile.

        Raises:
            ProfileLoadedDeletionError: If any session has it loaded
            ProfileNotFound: If it does not exist
        """
        loaded_in = self._sessions_with(name)
        if loaded_in:
            raise ProfileLoadedDeletionError(name, loaded_in)
        if not self.profiles.delete_profile(name):
            raise ProfileNotFound(name)

    # Session operations

    def currently_loaded(self) -> Optional[str]:
        return self.backups.currently_loaded_profile()

    def _loaded_profile(self, current: Optional[str]) -> Optional[Profile]:
        if current is None or current == UNKNOWN_PROFILE:
            return None
        try:
            return self.profiles.load_profile(current)
        except ProfileCorruptedError as e:
            # unload then restores the backed-up keys only
            logger.warning("%s", e)
            return None

    def load(self, name: str) -> str:
        """
        Script that loads *name* into the calling session.

        Raises:
            ProfileNotFound: If the profile does not exist
            AlreadyLoadedError: If another profile is loaded in this session
        """
        profile = self._require_profile(name)
        current = self.currently_loaded()
        return self.commands.load(profile, current)

    def unload(self) -> UnloadResult:
        """
        Script that restores the calling session's environment.

        Raises:
            NothingLoadedError: If nothing is loaded in this session
        """
        current = self.currently_loaded()
        script = self.commands.unload(current, self._loaded_profile(current))
        return UnloadResult(script=script, profile_name=current)

    def switch(self, name: str) -> SwitchResult:
        """
        Script that replaces whatever is loaded with *name*.

        Raises:
            ProfileNotFound: If the target profile does not exist
        """
        target = self._require_profile(name)
        current = self.currently_loaded()
        script = self.commands.switch(target, current, self._loaded_profile(current))
        return SwitchResult(script=script, from_profile=current, to_profile=name)

    # Reporting

    def _variable_count(self, profile_name: Optional[str]) -> int:
        profile = self._loaded_profile(profile_name)
        return len(profile.variables) if profile else 0

    def _sessions_with(self, profile_name: str) -> list[str]:
        return [
            session_id
            for session_id, name in self.backups.list_sessions().items()
            if name == profile_name
        ]

    def status(self) -> StatusReport:
        current = self.currently_loaded()
        sessions = self.backups.list_sessions()

        others = [
            SessionEntry(
                session_id=session_id,
                profile_name=name,
                variable_count=self._variable_count(name),
            )
            for session_id, name in sessions.items()
            if session_id != self.session_id
        ]

        return StatusReport(
            current_session=SessionEntry(
                session_id=self.session_id,
                profile_name=current,
                variable_count=self._variable_count(current),
            ),
            other_sessions=others,
            total_sessions=len(sessions),
        )

    def list_profiles(self) -> list[ProfileSummary]:
        current = self.currently_loaded()
        sessions = self.backups.list_sessions()

        summaries = []
        for name in self.profiles.list_profiles():
            profile = self.profiles.load_profile(name)
            summaries.append(
                ProfileSummary(
                    name=name,
                    is_loaded=current == name,
                    variable_count=len(profile.variables) if profile else 0,
                    loaded_in_sessions=[s for s, n in sessions.items() if n == name],
                )
            )
        return summaries

    # Maintenance

    def cleanup_all_data(self) -> list[str]:
        """
        Remove the whole config directory.

        A missing or corrupt backup file does not stop the cleanup.

        Returns:
            Descriptions of what was removed
        """
        removed: list[str] = []

        try:
            current = self.backups.currently_loaded_profile()
            if current is not None and self.backups.discard():
                removed.append(f"Discarded backup for loaded profile '{current}'")
        except OSError as e:
            logger.debug("Ignoring backup cleanup error: %s", e)

        config_dir = self.config.config_dir
        if config_dir.exists():
            shutil.rmtree(config_dir, ignore_errors=True)
            removed.append(str(config_dir))

        return removed

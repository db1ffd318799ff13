"""Profile storage with CRUD operations."""

import logging
import re
from pathlib import Path

from pydantic import ValidationError

from envctl.core.errors import InvalidNameError, ProfileCorruptedError
from envctl.core.models import Profile
from envctl.storage.backup_store import UNKNOWN_PROFILE

logger = logging.getLogger(__name__)

PROFILE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def validate_profile_name(name: str) -> str:
    """
    Check that *name* can be used as a file name and is not reserved.

    Raises:
        InvalidNameError: If the name is rejected
    """
    if not PROFILE_NAME_PATTERN.match(name or ""):
        raise InvalidNameError(
            f"Invalid profile name '{name}'. Use letters, digits, '.', '_' or '-'."
        )
    if name == UNKNOWN_PROFILE:
        raise InvalidNameError(f"Profile name '{name}' is reserved")
    return name


class ProfileStore:
    """
    Manages persistent storage of profiles.

    Profiles are stored as JSON files in <config_dir>/profiles/
    """

    def __init__(self, profiles_dir: Path):
        self.profiles_dir = Path(profiles_dir)
        self.profiles_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        return self.profiles_dir / f"{name}.json"

    def save_profile(self, profile: Profile) -> None:
        """
        Save profile to disk using atomic write.

        Args:
            profile: Profile to save

        Raises:
            IOError: If save fails
        """
        validate_profile_name(profile.name)
        profile.touch()

        profile_path = self._path(profile.name)
        temp_path = profile_path.with_suffix(".json.tmp")

        try:
            temp_path.write_text(profile.model_dump_json(indent=2), encoding="utf-8")
            temp_path.replace(profile_path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise IOError(f"Failed to save profile {profile.name}: {e}") from e

    def load_profile(self, name: str) -> Profile | None:
        """
        Load a profile from disk.

        Returns:
            Profile, or None if no profile with that name exists

        Raises:
            ProfileCorruptedError: If the profile file is corrupted
        """
        if not PROFILE_NAME_PATTERN.match(name or ""):
            return None

        profile_path = self._path(name)
        if not profile_path.is_file():
            return None

        try:
            return Profile.model_validate_json(profile_path.read_bytes())
        except ValidationError as e:
            raise ProfileCorruptedError(name, str(profile_path)) from e

    def delete_profile(self, name: str) -> bool:
        """Delete a profile. Returns False if it did not exist."""
        if not PROFILE_NAME_PATTERN.match(name or ""):
            return False
        profile_path = self._path(name)
        if not profile_path.is_file():
            return False
        profile_path.unlink()
        logger.debug("Deleted profile file %s", profile_path)
        return True

    def list_profiles(self) -> list[str]:
        """Names of all stored profiles, sorted."""
        return sorted(p.stem for p in self.profiles_dir.glob("*.json") if p.is_file())

    def profile_exists(self, name: str) -> bool:
        return PROFILE_NAME_PATTERN.match(name or "") is not None and self._path(name).is_file()

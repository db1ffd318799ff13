"""Errors raised by envctl operations.

Every error here is terminal and user-facing: the CLI prints the message
and exits non-zero. Nothing in this package retries.
"""


class EnvctlError(Exception):
    """Base class for all envctl errors."""


class ProfileNotFound(EnvctlError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Profile '{name}' does not exist")


class ProfileAlreadyExists(EnvctlError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Profile '{name}' already exists")


class VariableNotFound(EnvctlError):
    def __init__(self, profile_name: str, key: str):
        self.profile_name = profile_name
        self.key = key
        super().__init__(f"Variable '{key}' not found in profile '{profile_name}'")


class AlreadyLoadedError(EnvctlError):
    """A different profile is already loaded in this session."""

    def __init__(self, loaded: str, requested: str):
        self.loaded = loaded
        self.requested = requested
        super().__init__(
            f"Profile '{loaded}' is already loaded. "
            f"Use 'envctl switch {requested}' to switch profiles."
        )


class NothingLoadedError(EnvctlError):
    def __init__(self):
        super().__init__("No profile is currently loaded")


class ProfileLoadedDeletionError(EnvctlError):
    """Delete attempted on a profile that is active in some session."""

    def __init__(self, name: str, session_ids: list[str]):
        self.name = name
        self.session_ids = session_ids
        sessions = ", ".join(session_ids)
        super().__init__(
            f"Cannot delete profile '{name}' while it is loaded "
            f"(sessions: {sessions}). Unload it first."
        )


class InvalidNameError(EnvctlError):
    """A profile name or variable key failed validation."""


class EnvFileError(EnvctlError):
    """An env file could not be read."""


class ProfileCorruptedError(EnvctlError):
    """A stored profile file could not be parsed or failed validation."""

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        super().__init__(f"Corrupted profile file for '{name}': {path}")

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from envctl.utils import VARIABLE_KEY_PATTERN


class Profile(BaseModel):
    """A named set of environment variables.

    Variable order is insertion order and is kept through JSON round-trips,
    so generated scripts list variables the same way every time.
    """

    name: str
    variables: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("variables")
    @classmethod
    def check_variable_names(cls, v: Dict[str, str]) -> Dict[str, str]:
        # keys are pasted unquoted into generated shell script
        for key in v:
            if not VARIABLE_KEY_PATTERN.fullmatch(key):
                raise ValueError(f"Invalid variable name '{key}'")
        return v

    def keys(self) -> List[str]:
        return list(self.variables)

    def touch(self) -> None:
        self.updated_at = datetime.now()


class SessionEntry(BaseModel):
    session_id: str
    profile_name: Optional[str] = None
    variable_count: int = 0


class StatusReport(BaseModel):
    current_session: SessionEntry
    other_sessions: List[SessionEntry] = Field(default_factory=list)
    total_sessions: int = 0


class ProfileSummary(BaseModel):
    name: str
    is_loaded: bool = False  # loaded in the calling session
    variable_count: int = 0
    loaded_in_sessions: List[str] = Field(default_factory=list)


class UnloadResult(BaseModel):
    script: str
    profile_name: str


class SwitchResult(BaseModel):
    script: str
    from_profile: Optional[str] = None
    to_profile: str

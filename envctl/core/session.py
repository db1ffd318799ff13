"""Session identification.

A spawned ``envctl`` process cannot see the shell that launched it except
through its parent pid and the environment it inherited. The session id is
a fingerprint built from exactly those values::

    {parent pid}-{SHLVL}[-{terminal tag}]

The shell running ``eval "$(envctl load dev)"`` sees the same values as
``$$``, ``$SHLVL``, ``$TERM_PROGRAM``/``$SSH_TTY``/``$TERM``, so every
invocation from one shell resolves to the same id. Two shells may still
collide (reused pids in containers, for example); the id is a heuristic.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_SHLVL = "1"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.]")


def _sanitize(tag: str) -> str:
    # Tags end up in a file name.
    return _UNSAFE_CHARS.sub("_", tag)


def terminal_context_tag(environ: Mapping[str, str]) -> str:
    """Return the first available terminal tag, or an empty string."""
    term_program = environ.get("TERM_PROGRAM")
    if term_program:
        return _sanitize(term_program)
    if environ.get("SSH_TTY"):
        return "ssh"
    term = environ.get("TERM")
    if term:
        # "xterm-256color" -> "xterm"
        return _sanitize(term.split("-")[0])
    return ""


def shell_level(environ: Mapping[str, str]) -> str:
    level = environ.get("SHLVL", "").strip()
    return level if level.isdigit() else DEFAULT_SHLVL


def current_session_id(
    environ: Optional[Mapping[str, str]] = None,
    ppid: Optional[int] = None,
) -> str:
    """
    Compute the id of the shell session that invoked this process.

    Args:
        environ: Environment to read (defaults to ``os.environ``)
        ppid: Parent pid to use instead of ``os.getppid()``

    Returns:
        Session id string, e.g. ``"4182-1-iTerm.app"``
    """
    env = os.environ if environ is None else environ

    if ppid is None:
        try:
            ppid = os.getppid()
        except OSError as e:
            logger.warning("Could not determine parent process: %s", e)
            return f"0-{DEFAULT_SHLVL}"

    session_id = f"{ppid}-{shell_level(env)}"
    tag = terminal_context_tag(env)
    if tag:
        session_id += f"-{tag}"
    return session_id


def session_pid(session_id: str) -> Optional[int]:
    """Extract the shell pid from a session id, or None if it is malformed."""
    head = session_id.split("-", 1)[0]
    if not head.isdigit():
        return None
    return int(head)

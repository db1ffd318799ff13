"""
Shared pytest fixtures for envctl tests.

Provides:
- An isolated config directory per test
- A manager bound to a fixed session id with a fake liveness probe
- A helper that evaluates generated scripts with /bin/sh
"""

from __future__ import annotations

import os
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

import pytest

from envctl.core.config import EnvctlConfig
from envctl.manager import EnvManager
from envctl.storage import ProcessProbe

SESSION_ID = "4242-1-test"
OTHER_SESSION_ID = "5151-2-ssh"

ShellRunner = Callable[[str, Mapping[str, str], Iterable[str]], dict[str, Optional[str]]]


class FakeProbe(ProcessProbe):
    """Probe reporting only the configured pids as alive."""

    def __init__(self, alive: Iterable[int] = ()):
        self.alive = set(alive)
        self.calls: list[int] = []

    def is_alive(self, pid: int) -> bool:
        self.calls.append(pid)
        return pid in self.alive


@pytest.fixture
def config(tmp_path: Path) -> EnvctlConfig:
    return EnvctlConfig(config_dir=tmp_path / ".envctl")


@pytest.fixture
def probe() -> FakeProbe:
    return FakeProbe()


@pytest.fixture
def manager(config: EnvctlConfig, probe: FakeProbe) -> EnvManager:
    return EnvManager(config=config, session_id=SESSION_ID, probe=probe)


@pytest.fixture
def other_manager(config: EnvctlConfig, probe: FakeProbe) -> EnvManager:
    return EnvManager(config=config, session_id=OTHER_SESSION_ID, probe=probe)


@pytest.fixture
def dev_profile(manager: EnvManager):
    manager.create_profile("dev")
    manager.add_variables("dev", {"DATABASE_URL": "db://x", "DEBUG": "true"})
    return manager.get_profile("dev")


@pytest.fixture
def run_in_shell() -> ShellRunner:
    """
    Evaluate a script in /bin/sh and report the resulting variables.

    Returns a callable ``(script, env, keys) -> {key: value or None}`` where
    None means the key is unset after the script ran.
    """
    sh = shutil.which("sh")
    if sh is None:
        pytest.skip("no POSIX shell available")

    def run(script: str, env: Mapping[str, str], keys: Iterable[str]) -> dict[str, Optional[str]]:
        keys = list(keys)
        dump = [
            f'if [ -n "${{{k}+x}}" ]; then printf "%s=%s\\n" {k} "${k}"; '
            f'else printf "%s!\\n" {k}; fi'
            for k in keys
        ]
        full_env = {"PATH": os.environ.get("PATH", "/usr/bin:/bin"), **env}
        proc = subprocess.run(
            [sh, "-c", script + "\n" + "\n".join(dump)],
            env=full_env,
            capture_output=True,
            text=True,
            check=True,
        )

        result: dict[str, Optional[str]] = {}
        for line in proc.stdout.splitlines():
            key, sep, value = line.partition("=")
            if sep:
                result[key] = value
            else:
                result[line.rstrip("!")] = None
        return result

    return run


def write_backup(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def age_file(path: Path, seconds: float) -> None:
    """Push a file's mtime into the past."""
    past = path.stat().st_mtime - seconds
    os.utime(path, (past, past))

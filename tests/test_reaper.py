import os
import subprocess
import sys

import pytest
from conftest import SESSION_ID, FakeProbe, age_file, write_backup

from envctl.storage.reaper import OrphanReaper, SignalProbe


@pytest.fixture
def backup_dir(tmp_path):
    d = tmp_path / "cfg"
    d.mkdir()
    return d


def backup(backup_dir, session_id, age=0.0):
    path = write_backup(backup_dir / f"backup-{session_id}.env", "# profile:dev\n")
    if age:
        age_file(path, age)
    return path


class TestOrphanReaper:
    def test_removes_old_backup_of_dead_session(self, backup_dir):
        path = backup(backup_dir, "100-1", age=600)
        reaper = OrphanReaper(backup_dir, probe=FakeProbe(), grace_seconds=300)

        assert reaper.reap(SESSION_ID) == [path]
        assert not path.exists()

    def test_keeps_young_backup_even_if_dead(self, backup_dir):
        path = backup(backup_dir, "100-1", age=10)
        probe = FakeProbe()

        assert OrphanReaper(backup_dir, probe=probe, grace_seconds=300).reap(SESSION_ID) == []
        assert path.exists()
        assert probe.calls == []

    def test_keeps_backup_of_live_session(self, backup_dir):
        path = backup(backup_dir, "100-2-xterm", age=600)
        probe = FakeProbe(alive=[100])

        OrphanReaper(backup_dir, probe=probe, grace_seconds=300).reap(SESSION_ID)

        assert path.exists()
        assert probe.calls == [100]

    def test_never_touches_current_session(self, backup_dir):
        path = backup(backup_dir, SESSION_ID, age=6000)
        OrphanReaper(backup_dir, probe=FakeProbe(), grace_seconds=0).reap(SESSION_ID)
        assert path.exists()

    def test_malformed_session_id_is_treated_as_dead(self, backup_dir):
        path = backup(backup_dir, "garbage", age=600)
        OrphanReaper(backup_dir, probe=FakeProbe(), grace_seconds=300).reap(SESSION_ID)
        assert not path.exists()

    def test_injected_clock_controls_age(self, backup_dir):
        path = backup(backup_dir, "100-1")
        now = path.stat().st_mtime
        reaper = OrphanReaper(backup_dir, probe=FakeProbe(), grace_seconds=300, clock=lambda: now + 299)
        assert reaper.reap(SESSION_ID) == []

        reaper.clock = lambda: now + 301
        assert reaper.reap(SESSION_ID) == [path]

    def test_missing_directory_is_fine(self, tmp_path):
        assert OrphanReaper(tmp_path / "nope", probe=FakeProbe()).reap(SESSION_ID) == []


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals only")
class TestSignalProbe:
    def test_own_process_is_alive(self):
        assert SignalProbe().is_alive(os.getpid())

    def test_non_positive_pid_is_not_alive(self):
        assert not SignalProbe().is_alive(0)
        assert not SignalProbe().is_alive(-1)

    def test_exited_process_is_not_alive(self):
        proc = subprocess.Popen([sys.executable, "-c", "pass"])
        proc.wait()
        assert not SignalProbe().is_alive(proc.pid)

    def test_permission_denied_counts_as_alive(self, monkeypatch):
        def denied(pid, sig):
            raise PermissionError()

        monkeypatch.setattr(os, "kill", denied)
        assert SignalProbe().is_alive(1)

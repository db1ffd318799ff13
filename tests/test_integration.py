import stat

from envctl.shell.integration import (
    INTEGRATION_FILENAME,
    RC_COMMENT,
    SOURCE_LINE,
    ShellIntegration,
    rc_file_for_shell,
)


def test_rc_file_for_shell(tmp_path):
    assert rc_file_for_shell(tmp_path, "/usr/bin/zsh") == tmp_path / ".zshrc"
    assert rc_file_for_shell(tmp_path, "/bin/bash") == tmp_path / ".bashrc"
    assert rc_file_for_shell(tmp_path, "") == tmp_path / ".bashrc"


def test_setup_writes_script_and_source_line(tmp_path):
    rc = tmp_path / ".bashrc"
    rc.write_text("alias ll='ls -l'\n")

    result = ShellIntegration(home=tmp_path, shell="/bin/bash").setup()

    script = tmp_path / INTEGRATION_FILENAME
    assert result.integration_file == script
    assert result.rc_file == rc
    assert "envctl-load()" in script.read_text()
    assert script.stat().st_mode & stat.S_IXUSR
    content = rc.read_text()
    assert content.startswith("alias ll='ls -l'\n")
    assert f"{RC_COMMENT}\n{SOURCE_LINE}\n" in content


def test_setup_is_idempotent(tmp_path):
    integration = ShellIntegration(home=tmp_path, shell="/bin/zsh")
    integration.setup()
    integration.setup()
    assert (tmp_path / ".zshrc").read_text().count(SOURCE_LINE) == 1


def test_unsetup_removes_only_envctl_lines(tmp_path):
    integration = ShellIntegration(home=tmp_path, shell="/bin/bash")
    (tmp_path / ".bashrc").write_text("export EDITOR=vim\n")
    integration.setup()

    result = integration.unsetup()

    assert not (tmp_path / INTEGRATION_FILENAME).exists()
    content = (tmp_path / ".bashrc").read_text()
    assert SOURCE_LINE not in content
    assert RC_COMMENT not in content
    assert "export EDITOR=vim" in content
    assert len(result.removed) == 2


def test_unsetup_without_integration(tmp_path):
    assert ShellIntegration(home=tmp_path, shell="/bin/bash").unsetup().removed == []

import pytest

from dotfiles_bootstrap.lib import command


def test_dry_run_does_not_execute(caplog):
    caplog.set_level("INFO")

    r = command.run_cmd(["definitely-not-a-real-binary", "--flag"], dry_run=True)

    assert r.ok
    assert "CMD definitely-not-a-real-binary --flag" in caplog.text


def test_missing_binary_without_check():
    r = command.run_cmd(["definitely-not-a-real-binary"], check=False)

    assert r.returncode == 127


def test_missing_binary_with_check():
    with pytest.raises(RuntimeError):
        command.run_cmd(["definitely-not-a-real-binary"])


def test_sudo_prefix_for_root(monkeypatch):
    monkeypatch.setattr(command.os, "geteuid", lambda: 0)

    assert command.sudo_prefix() == []


def test_sudo_prefix_for_user(monkeypatch):
    monkeypatch.setattr(command.os, "geteuid", lambda: 1000)

    assert command.sudo_prefix() == ["sudo"]

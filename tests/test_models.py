from pathlib import Path

import pytest
import yaml

from dotfiles_bootstrap.models import (
    ActionResult,
    ActionStatus,
    AppendBlock,
    DeployMode,
    DotfileMapping,
    InstalledSet,
    RunPhase,
    RunReport,
    first_non_blank_line,
)


def test_mapping_from_dict_parses_octal_string():
    m = DotfileMapping.from_dict({"source": ".zshconf", "target": "~/.zshconf", "mode": "overwrite-copy", "file_mode": "0600"})

    assert m.mode is DeployMode.OVERWRITE_COPY
    assert m.file_mode == 0o600


def test_mapping_defaults_to_symlink():
    m = DotfileMapping.from_dict({"source": "vimrc", "target": "~/.vimrc"})

    assert m.mode is DeployMode.SYMLINK_IF_ABSENT
    assert m.exclude == (".git",)


def test_append_mapping_needs_no_source():
    m = DotfileMapping.from_dict({"target": "~/.zshrc", "mode": "append-block-if-missing", "content": "MARK"})

    assert m.source == ""


@pytest.mark.parametrize(
    "raw",
    [
        {"source": "vimrc"},
        {"target": "~/.vimrc", "mode": "sync-tree"},
        {"source": "x", "target": "y", "mode": "hardlink"},
    ],
)
def test_invalid_mappings(raw):
    with pytest.raises(ValueError):
        DotfileMapping.from_dict(raw)


def test_unquoted_yaml_file_mode_is_octal():
    decimal = yaml.safe_load("file_mode: 644")["file_mode"]
    octal = yaml.safe_load("file_mode: 0600")["file_mode"]

    base = {"source": ".zshconf", "target": "~/.zshconf", "mode": "overwrite-copy"}
    assert DotfileMapping.from_dict({**base, "file_mode": decimal}).file_mode == 0o644
    assert DotfileMapping.from_dict({**base, "file_mode": octal}).file_mode == 0o600


@pytest.mark.parametrize("file_mode", [999, "0999", 0o17777, True, 6.44])
def test_invalid_file_mode(file_mode):
    with pytest.raises(ValueError):
        DotfileMapping.from_dict({"source": "a", "target": "b", "mode": "overwrite-copy", "file_mode": file_mode})


def test_resolve_target_expands_home(home):
    m = DotfileMapping(source="a", target="~/.a", mode=DeployMode.SYMLINK_IF_ABSENT)

    assert m.resolve_target() == home / ".a"
    assert m.resolve_source(Path("/repo")) == Path("/repo/a")


def test_first_non_blank_line():
    assert first_non_blank_line("\n   \n  MARK\nrest") == "  MARK"
    assert first_non_blank_line(" \n") is None
    assert AppendBlock("zsh", Path("/x"), "\nsource ~/.zshconf").marker == "source ~/.zshconf"


def test_installed_set():
    s = InstalledSet.from_names(["a", "b"], ["b", "c"])

    assert "a" in s and "c" not in s
    assert s.missing() == ["a"]
    s.mark_present("a")
    assert s.missing() == []


def test_report_as_dict():
    report = RunReport(
        flow="install",
        phase=RunPhase.DONE,
        results=[ActionResult("install", "fd", ActionStatus.APPLIED, "pacman")],
        warnings=[{"kind": "Service", "message": "x"}],
    )

    d = report.as_dict()

    assert d["phase"] == "DONE"
    assert d["results"] == [{"action": "install", "subject": "fd", "status": "applied", "detail": "pacman"}]
    assert "error" not in d

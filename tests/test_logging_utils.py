import logging

import pytest

from dotfiles_bootstrap.logging_utils import configure_logging


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    yield root
    for h in list(root.handlers):
        if h not in before:
            root.removeHandler(h)
            h.close()
    for attr in ("_dotfiles_bootstrap_configured", "_dotfiles_bootstrap_log_path"):
        if hasattr(root, attr):
            delattr(root, attr)
    root.setLevel(level)


def test_writes_to_requested_file(tmp_path, clean_root_logger):
    path = tmp_path / "state" / "bootstrap.log"

    actual = configure_logging(str(path), also_console=False)
    logging.getLogger("dotfiles_bootstrap.test").debug("decision recorded")

    assert actual == str(path)
    assert "decision recorded" in path.read_text()


def test_second_call_is_a_no_op(tmp_path, clean_root_logger):
    first = configure_logging(str(tmp_path / "a.log"), also_console=False)
    count = len(clean_root_logger.handlers)

    second = configure_logging(str(tmp_path / "b.log"), also_console=False)

    assert second == first
    assert len(clean_root_logger.handlers) == count


def test_falls_back_to_working_directory(tmp_path, monkeypatch, clean_root_logger):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    monkeypatch.chdir(tmp_path)

    actual = configure_logging(str(blocker / "bootstrap.log"), also_console=False)

    assert actual == str(tmp_path / "dotfiles-bootstrap.log")

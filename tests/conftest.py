"""Shared fixtures: a non-interactive run context and in-memory package managers.

Nothing here touches the real package database or the user's home.
"""

from pathlib import Path
from typing import Iterable, List, Sequence, Set

import pytest

from dotfiles_bootstrap.context import RunContext
from dotfiles_bootstrap.lib.command import CmdResult
from dotfiles_bootstrap.lib.pkg import Homebrew, Pacman, PackageManager
from dotfiles_bootstrap.reconciler import Reconciler


class _FakeMixin:
    def _setup(self, installed: Iterable[str], fail: Iterable[str], repo: Iterable[str] | None) -> None:
        self.present: Set[str] = set(installed)
        self.fail: Set[str] = set(fail)
        self.repo = None if repo is None else set(repo)
        self.install_calls: List[List[str]] = []
        self.upgrades = 0

    def installed(self, names: Sequence[str]) -> Set[str]:
        return self.present & set(names)

    def install(self, names: Sequence[str]) -> CmdResult:
        self.install_calls.append(list(names))
        for n in names:
            if n in self.fail:
                raise RuntimeError(f"Command failed (1): install {n}")
        self.present.update(names)
        return CmdResult(argv=["install", *names], returncode=0, stdout="", stderr="")

    def in_repo(self, name: str) -> bool:
        return True if self.repo is None else name in self.repo

    def upgrade_system(self) -> CmdResult:
        self.upgrades += 1
        return CmdResult(argv=["upgrade"], returncode=0, stdout="", stderr="")


class FakeManager(_FakeMixin, PackageManager):
    def __init__(self, name="fake", installed=(), fail=(), repo=None):
        super().__init__()
        self.name = name
        self._setup(installed, fail, repo)


class FakePacman(_FakeMixin, Pacman):
    def __init__(self, installed=(), fail=(), repo=None):
        super().__init__()
        self._setup(installed, fail, repo)


class FakeBrew(_FakeMixin, Homebrew):
    def __init__(self, installed=(), fail=(), repo=None):
        super().__init__()
        self._setup(installed, fail, repo)


@pytest.fixture
def ctx():
    c = RunContext(interactive=False)
    yield c
    c.cleanup()


@pytest.fixture
def system():
    return FakeManager(name="system")


@pytest.fixture
def helper():
    return FakeManager(name="helper")


@pytest.fixture
def reconciler(ctx, system, helper):
    return Reconciler(ctx, system=system, helper=helper)


@pytest.fixture
def home(tmp_path, monkeypatch):
    h = tmp_path / "home"
    h.mkdir()
    monkeypatch.setenv("HOME", str(h))
    return h


def write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path

from __future__ import annotations

import logging
import platform
from pathlib import Path
from typing import Optional, Sequence, Set

from .command import CmdResult, have_cmd, run_cmd, sudo_prefix

logger = logging.getLogger(__name__)

HOMEBREW_INSTALL_URL = "https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh"
YAY_BIN_REPO = "https://aur.archlinux.org/yay-bin.git"


class PackageManager:
    """Interface shared by the system package manager and the helper."""

    name = "package-manager"

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run

    def installed(self, names: Sequence[str]) -> Set[str]:
        raise NotImplementedError

    def install(self, names: Sequence[str]) -> CmdResult:
        raise NotImplementedError

    def in_repo(self, name: str) -> bool:
        return True

    def upgrade_system(self) -> CmdResult:
        raise NotImplementedError


def _first_column(stdout: str) -> Set[str]:
    return {line.split()[0] for line in stdout.splitlines() if line.strip()}


class Pacman(PackageManager):
    name = "pacman"

    def installed(self, names: Sequence[str]) -> Set[str]:
        if not names:
            return set()
        # pacman -Q exits non-zero if any name is missing but still lists the found ones.
        r = run_cmd(["pacman", "-Q", *names], check=False)
        return _first_column(r.stdout) & set(names)

    def install(self, names: Sequence[str]) -> CmdResult:
        return run_cmd(
            [*sudo_prefix(), "pacman", "-S", "--needed", "--noconfirm", *names],
            capture=False,
            dry_run=self.dry_run,
        )

    def in_repo(self, name: str) -> bool:
        r = run_cmd(["pacman", "-Si", name], check=False)
        return r.returncode == 0

    def upgrade_system(self) -> CmdResult:
        return run_cmd([*sudo_prefix(), "pacman", "-Syu", "--noconfirm"], capture=False, dry_run=self.dry_run)


class Yay(Pacman):
    """AUR helper. Queries go through pacman, installs through yay (never as root)."""

    name = "yay"

    def install(self, names: Sequence[str]) -> CmdResult:
        return run_cmd(["yay", "-S", "--needed", "--noconfirm", *names], capture=False, dry_run=self.dry_run)


class Homebrew(PackageManager):
    name = "brew"

    def installed(self, names: Sequence[str]) -> Set[str]:
        if not names:
            return set()
        have: Set[str] = set()
        for kind in ("--formula", "--cask"):
            r = run_cmd(["brew", "list", kind, "-1"], check=False)
            have |= _first_column(r.stdout)
        return have & set(names)

    def install(self, names: Sequence[str]) -> CmdResult:
        return run_cmd(["brew", "install", *names], capture=False, dry_run=self.dry_run)

    def upgrade_system(self) -> CmdResult:
        return run_cmd(["brew", "update"], capture=False, dry_run=self.dry_run)


def detect_system_manager(preferred: str = "auto", *, dry_run: bool = False) -> Optional[PackageManager]:
    """Pick the system package manager: pacman first, then Homebrew."""

    candidates = {"pacman": Pacman, "brew": Homebrew}
    if preferred != "auto":
        cls = candidates.get(preferred)
        if cls is None:
            raise ValueError(f"Unknown package manager: {preferred}")
        return cls(dry_run=dry_run) if have_cmd(cls.name) else None
    for cls in (Pacman, Homebrew):
        if have_cmd(cls.name):
            return cls(dry_run=dry_run)
    return None


def is_macos() -> bool:
    return platform.system().lower() == "darwin"


def bootstrap_homebrew(*, dry_run: bool = False) -> Homebrew:
    logger.info("Installing Homebrew")
    run_cmd(
        ["/bin/bash", "-c", f'/bin/bash -c "$(curl -fsSL {HOMEBREW_INSTALL_URL})"'],
        env={"NONINTERACTIVE": "1"},
        capture=False,
        dry_run=dry_run,
    )
    if not dry_run and not have_cmd("brew"):
        raise RuntimeError("Homebrew install script finished but 'brew' is not on PATH")
    return Homebrew(dry_run=dry_run)


def bootstrap_yay(workdir: Path, *, dry_run: bool = False) -> Yay:
    """Build and install yay-bin from the AUR inside ``workdir``."""

    logger.info("Installing prerequisites for building AUR packages")
    run_cmd([*sudo_prefix(), "pacman", "-S", "--needed", "--noconfirm", "git", "base-devel"], capture=False, dry_run=dry_run)
    checkout = workdir / "yay-bin"
    run_cmd(["git", "clone", YAY_BIN_REPO, str(checkout)], dry_run=dry_run)
    run_cmd(["makepkg", "-si", "--noconfirm"], cwd=str(checkout), capture=False, dry_run=dry_run)
    if not dry_run and not have_cmd("yay"):
        raise RuntimeError("makepkg finished but 'yay' is not on PATH")
    return Yay(dry_run=dry_run)

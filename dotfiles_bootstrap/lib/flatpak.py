from __future__ import annotations

import logging
from typing import Optional, Set

from .command import run_cmd

logger = logging.getLogger(__name__)

FLATHUB = "flathub"
FLATHUB_URL = "https://flathub.org/repo/flathub.flatpakrepo"


def remote_present(name: str = FLATHUB) -> bool:
    r = run_cmd(["flatpak", "remote-list", "--columns=name"], check=False)
    return name in {line.strip() for line in r.stdout.splitlines()}


def add_flathub(*, dry_run: bool = False) -> None:
    run_cmd(["flatpak", "remote-add", "--if-not-exists", FLATHUB, FLATHUB_URL], dry_run=dry_run)


def installed_apps() -> Set[str]:
    r = run_cmd(["flatpak", "list", "--app", "--columns=application"], check=False)
    return {line.strip() for line in r.stdout.splitlines() if line.strip()}


def install_app(ref: str, *, remote: Optional[str] = FLATHUB, dry_run: bool = False) -> None:
    """Install an app from ``remote``; ``remote=None`` lets flatpak pick one."""
    argv = ["flatpak", "install", "-y", *([remote] if remote else []), ref]
    run_cmd(argv, capture=False, dry_run=dry_run)
    logger.info("Installed Flatpak %s", ref)

"""Login shell registration and switching (``/etc/shells`` + ``chsh``)."""

from __future__ import annotations

import logging
import pwd
from pathlib import Path
from typing import Optional

from .command import run_cmd, sudo_prefix

logger = logging.getLogger(__name__)

SHELLS_FILE = Path("/etc/shells")


def shell_listed(shell: str, shells_file: Path = SHELLS_FILE) -> bool:
    try:
        lines = shells_file.read_text(encoding="utf-8", errors="replace").splitlines()
    except FileNotFoundError:
        return False
    return shell in (line.strip() for line in lines)


def register_shell(shell: str, *, shells_file: Path = SHELLS_FILE, dry_run: bool = False) -> bool:
    """Add ``shell`` to the list of valid login shells. Returns True if it was added."""
    if shell_listed(shell, shells_file):
        return False
    lead = ""
    if shells_file.is_file():
        data = shells_file.read_bytes()
        if data and not data.endswith(b"\n"):
            lead = "\n"
    run_cmd([*sudo_prefix(), "tee", "-a", str(shells_file)], input_text=f"{lead}{shell}\n", dry_run=dry_run)
    logger.info("Added %s to %s", shell, shells_file)
    return True


def login_shell(user: str) -> Optional[str]:
    try:
        return pwd.getpwnam(user).pw_shell
    except KeyError:
        return None


def change_login_shell(user: str, shell: str, *, dry_run: bool = False) -> None:
    run_cmd([*sudo_prefix(), "chsh", "-s", shell, user], dry_run=dry_run)
    logger.info("Login shell for %s is now %s", user, shell)

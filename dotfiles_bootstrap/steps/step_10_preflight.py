from __future__ import annotations

import logging
import os

from ..errors import FatalBootstrapError
from ..lib.command import have_cmd
from ..lib.net import is_online
from ..lib.pkg import Pacman, Yay, bootstrap_homebrew, detect_system_manager, is_macos
from ..pipeline import Session

logger = logging.getLogger(__name__)


class PreflightStep:
    """Obtain the package manager and make sure the network is reachable.

    Anything missing here is fatal: every later step depends on it.
    """

    step_id = "10_preflight"

    def applies(self, session: Session) -> bool:
        return True

    def run(self, session: Session) -> None:
        ctx = session.ctx
        cfg = session.config

        if not is_online(dry_run=ctx.dry_run):
            raise FatalBootstrapError("No network connectivity")

        try:
            system = detect_system_manager(cfg.package_manager, dry_run=ctx.dry_run)
        except ValueError as e:
            raise FatalBootstrapError(str(e)) from e

        if system is None and is_macos() and cfg.package_manager in {"auto", "brew"}:
            try:
                system = bootstrap_homebrew(dry_run=ctx.dry_run)
            except RuntimeError as e:
                raise FatalBootstrapError(f"Homebrew bootstrap failed: {e}") from e

        if system is None:
            raise FatalBootstrapError("No supported package manager found (pacman or brew)")

        if isinstance(system, Pacman):
            if os.geteuid() != 0 and not have_cmd("sudo"):
                raise FatalBootstrapError("sudo is required. Install and configure sudo, then re-run.")
            if have_cmd("yay"):
                session.helper = Yay(dry_run=ctx.dry_run)

        session.system = system
        logger.info(
            "Package manager: %s (helper: %s)",
            system.name,
            session.helper.name if session.helper else "none",
        )

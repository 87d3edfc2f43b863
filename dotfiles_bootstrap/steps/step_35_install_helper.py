from __future__ import annotations

import logging

from ..errors import FatalBootstrapError
from ..lib.pkg import bootstrap_yay
from ..pipeline import Session

logger = logging.getLogger(__name__)


class InstallHelperStep:
    """Build yay when it is missing. Without it the helper packages cannot install."""

    step_id = "35_install_helper"

    def applies(self, session: Session) -> bool:
        return session.on_pacman

    def run(self, session: Session) -> None:
        if session.helper is not None:
            logger.info("yay already installed; skipping")
            return
        ctx = session.ctx
        try:
            session.helper = bootstrap_yay(ctx.scratch_dir(), dry_run=ctx.dry_run)
        except RuntimeError as e:
            raise FatalBootstrapError(f"Could not install the yay AUR helper: {e}") from e

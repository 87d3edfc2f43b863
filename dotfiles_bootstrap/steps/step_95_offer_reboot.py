from __future__ import annotations

import logging

from ..lib.command import run_cmd, sudo_prefix
from ..lib.prompt import ask_yes_no
from ..pipeline import Session

logger = logging.getLogger(__name__)


class OfferRebootStep:
    step_id = "95_offer_reboot"

    def applies(self, session: Session) -> bool:
        return session.on_pacman and session.config.offer_reboot

    def run(self, session: Session) -> None:
        ctx = session.ctx
        question = "Would you like to reboot now to apply kernel and shell changes?"
        if not ask_yes_no(ctx, question, default=False):
            logger.info("Not rebooting; reboot later to apply kernel and shell changes.")
            return
        try:
            run_cmd([*sudo_prefix(), "reboot"], dry_run=ctx.dry_run)
        except RuntimeError as e:
            ctx.warn(f"reboot failed: {e}", kind="Reboot")

from __future__ import annotations

import logging

import requests

from ..errors import PackageInstallWarning
from ..lib.prompt import ask_yes_no
from ..lib.repos import setup_cachyos, setup_chaotic_aur
from ..pipeline import Session

logger = logging.getLogger(__name__)


class ThirdPartyReposStep:
    step_id = "30_third_party_repos"

    def applies(self, session: Session) -> bool:
        return session.on_pacman

    def run(self, session: Session) -> None:
        ctx = session.ctx
        cfg = session.config

        if cfg.offer_cachyos:
            if ask_yes_no(ctx, "Would you like to add/configure the CachyOS repository (optional)?", default=False):
                try:
                    setup_cachyos(ctx.scratch_dir(), dry_run=ctx.dry_run)
                except (RuntimeError, OSError, requests.RequestException) as e:
                    ctx.warn(PackageInstallWarning(f"CachyOS repository setup failed: {e}"))
            else:
                logger.info("Skipping CachyOS setup.")

        if cfg.offer_chaotic_aur:
            if ask_yes_no(ctx, "Would you like to add/configure the Chaotic AUR repository (optional)?", default=False):
                try:
                    setup_chaotic_aur(dry_run=ctx.dry_run)
                except (RuntimeError, OSError) as e:
                    ctx.warn(PackageInstallWarning(f"Chaotic AUR setup failed: {e}"))
            else:
                logger.info("Skipping Chaotic AUR setup.")

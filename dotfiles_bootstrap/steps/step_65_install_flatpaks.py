from __future__ import annotations

import logging

from ..lib import flatpak
from ..lib.command import have_cmd
from ..models import ActionResult, ActionStatus
from ..pipeline import Session

logger = logging.getLogger(__name__)


class InstallFlatpaksStep:
    """Flatpak apps from Flathub. Every failure is a warning."""

    step_id = "65_install_flatpaks"

    def applies(self, session: Session) -> bool:
        return session.on_pacman

    def run(self, session: Session) -> None:
        ctx = session.ctx
        try:
            apps = session.config.flatpak_apps
        except ValueError as e:
            ctx.warn(str(e), kind="Flatpak")
            return
        if not apps:
            return
        if not have_cmd("flatpak"):
            ctx.warn("flatpak not found; skipping Flatpak apps", kind="Flatpak")
            return

        if not flatpak.remote_present():
            try:
                flatpak.add_flathub(dry_run=ctx.dry_run)
            except RuntimeError as e:
                ctx.warn(f"could not add the Flathub remote: {e}", kind="Flatpak")
                return

        present = flatpak.installed_apps()
        for app in apps:
            if app.app_id in present:
                logger.info("Flatpak %s already installed", app.app_id)
                ctx.record(ActionResult("flatpak", app.app_id, ActionStatus.SATISFIED))
                continue
            try:
                flatpak.install_app(app.app_id, dry_run=ctx.dry_run)
            except RuntimeError as e:
                if not app.fallback:
                    ctx.warn(f"failed to install {app.app_id}: {e}", kind="Flatpak")
                    ctx.record(ActionResult("flatpak", app.app_id, ActionStatus.FAILED, str(e)))
                    continue
                logger.info("Retrying %s as %s", app.app_id, app.fallback)
                try:
                    flatpak.install_app(app.fallback, remote=None, dry_run=ctx.dry_run)
                except RuntimeError as e2:
                    ctx.warn(f"failed to install {app.app_id}: {e2}", kind="Flatpak")
                    ctx.record(ActionResult("flatpak", app.app_id, ActionStatus.FAILED, str(e2)))
                    continue
            status = ActionStatus.WOULD_APPLY if ctx.dry_run else ActionStatus.APPLIED
            ctx.record(ActionResult("flatpak", app.app_id, status))

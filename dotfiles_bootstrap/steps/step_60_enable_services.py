from __future__ import annotations

import logging

from ..lib.command import have_cmd
from ..lib.services import enable_service
from ..pipeline import Session

logger = logging.getLogger(__name__)


class EnableServicesStep:
    step_id = "60_enable_services"

    def applies(self, session: Session) -> bool:
        return have_cmd("systemctl")

    def run(self, session: Session) -> None:
        ctx = session.ctx
        try:
            services = session.config.services
        except ValueError as e:
            ctx.warn(str(e), kind="Service")
            return
        for svc in services:
            label = f"{svc.unit} (user)" if svc.user else svc.unit
            try:
                if not enable_service(svc.unit, user=svc.user, dry_run=ctx.dry_run):
                    ctx.warn(f"systemd unit {label} not found; skipping", kind="Service")
            except RuntimeError as e:
                ctx.warn(f"failed to enable {label}: {e}", kind="Service")

from __future__ import annotations

import logging

from ..errors import PackageInstallWarning
from ..pipeline import Session

logger = logging.getLogger(__name__)


class SystemUpdateStep:
    step_id = "20_system_update"

    def applies(self, session: Session) -> bool:
        return session.system is not None

    def run(self, session: Session) -> None:
        assert session.system is not None
        logger.info("Refreshing package databases and updating system")
        try:
            session.system.upgrade_system()
        except RuntimeError as e:
            session.ctx.warn(PackageInstallWarning(f"system upgrade failed: {e}"))

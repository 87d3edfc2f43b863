from __future__ import annotations

import logging

from ..models import RunPhase
from ..pipeline import Session

logger = logging.getLogger(__name__)


class ReportStep:
    """Print the warnings collected during the run."""

    step_id = "90_report"

    def applies(self, session: Session) -> bool:
        return True

    def run(self, session: Session) -> None:
        ctx = session.ctx
        ctx.set_phase(RunPhase.REPORT)
        if not ctx.warnings:
            logger.info("Completed without warnings")
            return
        logger.warning("Completed with %d warning(s):", len(ctx.warnings))
        for w in ctx.warnings:
            logger.warning("  - %s: %s", w["kind"], w["message"])

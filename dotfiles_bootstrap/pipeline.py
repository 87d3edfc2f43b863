from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence

from .config import BootstrapConfig
from .context import RunContext
from .errors import FatalBootstrapError
from .lib.pkg import Homebrew, PackageManager, Pacman
from .models import RunPhase
from .reconciler import Reconciler

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """What every step sees: the run context, configuration and dotfiles root.

    ``system`` and ``helper`` are filled in by the preflight step.
    """

    ctx: RunContext
    config: BootstrapConfig
    root: Path
    system: Optional[PackageManager] = None
    helper: Optional[PackageManager] = None

    @property
    def on_pacman(self) -> bool:
        return isinstance(self.system, Pacman)

    @property
    def on_homebrew(self) -> bool:
        return isinstance(self.system, Homebrew)

    def reconciler(self) -> Reconciler:
        return Reconciler(self.ctx, system=self.system, helper=self.helper)


class Step(Protocol):
    """A single idempotent step."""

    step_id: str

    def applies(self, session: Session) -> bool:
        ...

    def run(self, session: Session) -> None:
        ...


@dataclass(frozen=True)
class PipelineResult:
    ran_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)


def run_pipeline(session: Session, steps: Sequence[Step]) -> PipelineResult:
    """Run steps in order; each is attempted exactly once.

    A FatalBootstrapError moves the run to FAILED and propagates. Anything a
    step records as a warning leaves the run on course for DONE.
    """

    ctx = session.ctx
    ctx.set_phase(RunPhase.INIT)
    ran: List[str] = []
    skipped: List[str] = []

    for step in steps:
        if not step.applies(session):
            logger.debug("Skipping step %s (not applicable)", step.step_id)
            skipped.append(step.step_id)
            continue
        logger.info("Running step %s", step.step_id)
        try:
            step.run(session)
        except FatalBootstrapError:
            ctx.set_phase(RunPhase.FAILED)
            raise
        ran.append(step.step_id)

    return PipelineResult(ran_steps=ran, skipped_steps=skipped)

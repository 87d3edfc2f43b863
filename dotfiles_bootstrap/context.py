from __future__ import annotations

import logging
import shutil
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .errors import BootstrapError
from .models import ActionResult, RunPhase

logger = logging.getLogger(__name__)


def _stdin_is_tty() -> bool:
    try:
        return sys.stdin is not None and sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


@dataclass
class RunContext:
    """Everything a run mutates, threaded explicitly through each operation.

    Warnings are logged the moment they are recorded and summarised by the
    report step. The scratch directory is created on first use and removed by
    ``cleanup()`` unless ``keep_scratch`` was set along the way.
    """

    yes: bool = False
    dry_run: bool = False
    force: bool = False
    interactive: Optional[bool] = None
    phase: RunPhase = RunPhase.INIT
    warnings: List[Dict[str, str]] = field(default_factory=list)
    results: List[ActionResult] = field(default_factory=list)
    keep_scratch: bool = False
    scratch_prefix: str = "dotfiles-bootstrap-"
    _scratch: Optional[Path] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.interactive is None:
            self.interactive = _stdin_is_tty()

    def set_phase(self, phase: RunPhase) -> None:
        if phase is not self.phase:
            logger.debug("Phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def warn(self, error: BootstrapError | str, *, kind: Optional[str] = None) -> None:
        if isinstance(error, BootstrapError):
            kind = kind or type(error).__name__
        message = str(error)
        kind = kind or "Warning"
        logger.warning("%s: %s", kind, message)
        self.warnings.append({"kind": kind, "message": message})

    def record(self, result: ActionResult) -> ActionResult:
        self.results.append(result)
        return result

    def scratch_dir(self) -> Path:
        if self._scratch is None:
            self._scratch = Path(tempfile.mkdtemp(prefix=self.scratch_prefix))
            logger.debug("Scratch directory %s", self._scratch)
        return self._scratch

    def cleanup(self) -> None:
        if self._scratch is None:
            return
        if self.keep_scratch:
            logger.info("Keeping scratch directory %s", self._scratch)
            return
        shutil.rmtree(self._scratch, ignore_errors=True)
        logger.debug("Removed scratch directory %s", self._scratch)
        self._scratch = None

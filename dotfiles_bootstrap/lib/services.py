from __future__ import annotations

import logging
import re

from .command import have_cmd, run_cmd, sudo_prefix

logger = logging.getLogger(__name__)


def unit_known(unit: str, *, user: bool = False) -> bool:
    argv = ["systemctl", *(["--user"] if user else []), "list-unit-files", "--no-legend", unit]
    r = run_cmd(argv, check=False)
    pattern = re.compile(rf"^{re.escape(unit)}\b", re.MULTILINE)
    return bool(pattern.search(r.stdout))


def enable_service(unit: str, *, user: bool = False, dry_run: bool = False) -> bool:
    """Enable and start a unit. Returns False when the unit does not exist.

    Raises RuntimeError if systemctl itself fails.
    """

    if not have_cmd("systemctl") and not dry_run:
        raise RuntimeError("systemctl not available")
    if not unit_known(unit, user=user):
        return False
    if user:
        run_cmd(["systemctl", "--user", "enable", "--now", unit], dry_run=dry_run)
    else:
        run_cmd([*sudo_prefix(), "systemctl", "enable", "--now", unit], dry_run=dry_run)
    logger.info("Enabled %s%s", unit, " (user)" if user else "")
    return True

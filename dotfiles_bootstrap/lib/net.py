from __future__ import annotations

import logging

from .command import run_cmd
from .pkg import is_macos

logger = logging.getLogger(__name__)

PROBE_HOST = "1.1.1.1"


def is_online(*, host: str = PROBE_HOST, dry_run: bool = False) -> bool:
    """Best-effort online check."""

    # BSD ping takes the timeout in milliseconds via -W, Linux in seconds.
    timeout = ["-W", "2000"] if is_macos() else ["-W", "2"]
    try:
        r = run_cmd(["ping", "-c", "1", *timeout, host], check=False, dry_run=dry_run)
    except RuntimeError:
        return False
    if r.returncode != 0:
        logger.debug("ping %s failed (%s)", host, r.returncode)
    return r.returncode == 0

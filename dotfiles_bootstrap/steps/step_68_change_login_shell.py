from __future__ import annotations

import logging
import os
import shutil

from ..lib import shell
from ..models import ActionResult, ActionStatus
from ..pipeline import Session

logger = logging.getLogger(__name__)


class ChangeLoginShellStep:
    """Make the configured shell (zsh) the login shell of the invoking user and root."""

    step_id = "68_change_login_shell"

    def applies(self, session: Session) -> bool:
        return session.on_pacman and bool(session.config.login_shell)

    def run(self, session: Session) -> None:
        ctx = session.ctx
        name = session.config.login_shell
        assert name is not None
        path = shutil.which(name) or f"/usr/bin/{name}"
        if not os.access(path, os.X_OK):
            ctx.warn(f"{name} not found at {path}; skipping shell change", kind="Shell")
            return

        try:
            shell.register_shell(path, dry_run=ctx.dry_run)
        except RuntimeError as e:
            ctx.warn(f"could not add {path} to {shell.SHELLS_FILE}: {e}", kind="Shell")

        users = []
        for user in (os.environ.get("SUDO_USER") or os.environ.get("USER"), "root"):
            if user and user not in users:
                users.append(user)

        for user in users:
            if shell.login_shell(user) == path:
                logger.info("%s already uses %s", user, path)
                ctx.record(ActionResult("login-shell", user, ActionStatus.SATISFIED, path))
                continue
            try:
                shell.change_login_shell(user, path, dry_run=ctx.dry_run)
            except RuntimeError as e:
                ctx.warn(f"failed to change the login shell of {user}: {e}", kind="Shell")
                ctx.record(ActionResult("login-shell", user, ActionStatus.FAILED, str(e)))
                continue
            status = ActionStatus.WOULD_APPLY if ctx.dry_run else ActionStatus.APPLIED
            ctx.record(ActionResult("login-shell", user, status, path))

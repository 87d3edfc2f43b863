from __future__ import annotations

from ..lib.fetch import sync_checkout
from ..pipeline import Session


class SyncRepositoryStep:
    """Fast-forward the dotfiles checkout before redeploying it."""

    step_id = "25_sync_repository"

    def applies(self, session: Session) -> bool:
        return True

    def run(self, session: Session) -> None:
        for problem in sync_checkout(session.root, dry_run=session.ctx.dry_run):
            session.ctx.warn(problem, kind="RepositorySync")

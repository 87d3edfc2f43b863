from __future__ import annotations

import logging

import yaml

from ..errors import DeploymentWarning
from ..pipeline import Session

logger = logging.getLogger(__name__)


class DeployDotfilesStep:
    """Deploy the flow's dotfile profile.

    On Homebrew a ``<profile>-brew`` profile is used when one is defined.
    """

    step_id = "50_deploy_dotfiles"

    def __init__(self, profile: str) -> None:
        self.profile = profile

    def applies(self, session: Session) -> bool:
        return True

    def _profile_for(self, session: Session) -> str:
        brew = f"{self.profile}-brew"
        if session.on_homebrew and session.config.has_profile(brew):
            return brew
        return self.profile

    def run(self, session: Session) -> None:
        try:
            profile = self._profile_for(session)
            mappings = session.config.dotfiles(profile)
        except (OSError, ValueError, yaml.YAMLError) as e:
            session.ctx.warn(DeploymentWarning(f"dotfiles profile '{self.profile}' unusable: {e}"))
            return
        if not mappings:
            logger.info("Dotfiles profile '%s' is empty", profile)
            return
        logger.info("Deploying %d dotfile mappings (profile %s) from %s", len(mappings), profile, session.root)
        session.reconciler().reconcile_dotfiles(mappings, session.root)

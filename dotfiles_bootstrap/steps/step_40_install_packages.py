from __future__ import annotations

import logging
from typing import List

from ..models import PackageSource, PackageSpec
from ..packages import packages_all, packages_brew
from ..pipeline import Session
from ..reconciler import Reconciler

logger = logging.getLogger(__name__)


class InstallPackagesStep:
    """Install whatever the declared lists name and the system lacks.

    With ``resolve_from_repo`` (update flow, pacman only) the installer for a
    missing package is picked by asking pacman whether a repo carries it,
    instead of trusting the declared source.
    """

    step_id = "40_install_packages"

    def __init__(self, *, resolve_from_repo: bool = False) -> None:
        self.resolve_from_repo = resolve_from_repo

    def applies(self, session: Session) -> bool:
        return session.system is not None

    def _specs(self, session: Session) -> List[PackageSpec]:
        manifest = session.config.packages_manifest
        if session.on_homebrew:
            brew = packages_brew(manifest)
            if brew:
                return brew
        specs = packages_all(manifest)
        if session.helper is None and not session.on_pacman:
            # Homebrew has no helper; it is the only installer.
            specs = [s.with_source(PackageSource.SYSTEM_REPO) for s in specs]
        return specs

    def run(self, session: Session) -> None:
        specs = self._specs(session)
        if not specs:
            logger.info("No packages declared; skipping package installation")
            return

        reconciler = session.reconciler()
        if self.resolve_from_repo and session.on_pacman:
            system = session.system
            assert system is not None

            def from_repo(pkg: PackageSpec) -> PackageSource:
                return PackageSource.SYSTEM_REPO if system.in_repo(pkg.name) else PackageSource.THIRD_PARTY_HELPER

            reconciler = Reconciler(session.ctx, system=system, helper=session.helper, resolve_source=from_repo)

        results = reconciler.reconcile_packages(specs)
        failed = [r.subject for r in results if not r.ok]
        if failed:
            logger.warning("Packages that failed to install: %s", " ".join(failed))

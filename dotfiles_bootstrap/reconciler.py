"""Converge observed system state to the declared desired state.

Every operation is idempotent: a second run with no external change in
between performs presence checks only. Per-entry failures become warnings on
the run context; nothing here aborts a run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from .context import RunContext
from .errors import DeploymentWarning, PackageInstallWarning, UserDeclinedOverwrite
from .lib.dotfiles import append_block, block_present, create_symlink, install_copy, mirror_tree, remove_path
from .lib.pkg import PackageManager
from .lib.prompt import confirm_destructive
from .models import (
    ActionResult,
    ActionStatus,
    AppendBlock,
    DeployMode,
    DotfileMapping,
    InstalledSet,
    PackageSource,
    PackageSpec,
    RunPhase,
    first_non_blank_line,
)

logger = logging.getLogger(__name__)


class Reconciler:
    def __init__(
        self,
        ctx: RunContext,
        *,
        system: Optional[PackageManager] = None,
        helper: Optional[PackageManager] = None,
        resolve_source: Optional[Callable[[PackageSpec], PackageSource]] = None,
    ) -> None:
        self.ctx = ctx
        self.system = system
        self.helper = helper
        # Decides the installer for a missing package at apply time (update flow).
        self.resolve_source = resolve_source

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def _backend_for(self, pkg: PackageSpec) -> Optional[PackageManager]:
        if pkg.source is PackageSource.THIRD_PARTY_HELPER:
            return self.helper
        return self.system

    def probe(self, specs: Sequence[PackageSpec]) -> InstalledSet:
        """Query the package database once for every declared name."""
        names = [s.name for s in specs]
        if self.system is None:
            return InstalledSet.from_names(names, [])
        return InstalledSet.from_names(names, self.system.installed(names))

    @staticmethod
    def diff(specs: Sequence[PackageSpec], installed: InstalledSet) -> List[PackageSpec]:
        return [s for s in specs if not installed.is_present(s.name)]

    def ensure_installed(self, pkg: PackageSpec, installed: Optional[InstalledSet] = None) -> ActionResult:
        if installed is None:
            installed = self.probe([pkg])
        if installed.is_present(pkg.name):
            logger.debug("%s already installed", pkg.name)
            return self.ctx.record(ActionResult("install", pkg.name, ActionStatus.SATISFIED))

        if self.resolve_source is not None:
            pkg = pkg.with_source(self.resolve_source(pkg))
        backend = self._backend_for(pkg)
        if backend is None:
            self.ctx.warn(PackageInstallWarning(f"{pkg.name}: no installer available for {pkg.source.value} packages"))
            return self.ctx.record(ActionResult("install", pkg.name, ActionStatus.FAILED, "no installer"))

        logger.info("Installing %s via %s", pkg.name, backend.name)
        try:
            backend.install([pkg.name])
        except RuntimeError as e:
            self.ctx.warn(PackageInstallWarning(f"{pkg.name}: {e}"))
            return self.ctx.record(ActionResult("install", pkg.name, ActionStatus.FAILED, str(e)))

        installed.mark_present(pkg.name)
        status = ActionStatus.WOULD_APPLY if self.ctx.dry_run else ActionStatus.APPLIED
        return self.ctx.record(ActionResult("install", pkg.name, status, backend.name))

    def reconcile_packages(self, specs: Sequence[PackageSpec]) -> List[ActionResult]:
        specs = _dedupe(specs)
        self.ctx.set_phase(RunPhase.PROBE)
        installed = self.probe(specs)

        self.ctx.set_phase(RunPhase.DIFF)
        missing = self.diff(specs, installed)
        if missing:
            logger.info("Missing packages: %s", " ".join(p.name for p in missing))
        else:
            logger.info("All %d listed packages are already installed", len(specs))

        self.ctx.set_phase(RunPhase.APPLY)
        results = []
        for pkg in specs:
            if installed.is_present(pkg.name):
                results.append(self.ctx.record(ActionResult("install", pkg.name, ActionStatus.SATISFIED)))
            else:
                results.append(self.ensure_installed(pkg, installed))
        return results

    # ------------------------------------------------------------------
    # Dotfiles
    # ------------------------------------------------------------------

    def _deploy_failed(self, action: str, subject: Path, e: Exception) -> ActionResult:
        self.ctx.warn(DeploymentWarning(f"{action} {subject}: {e}"))
        return self.ctx.record(ActionResult(action, str(subject), ActionStatus.FAILED, str(e)))

    def _applied(self, action: str, subject: Path, detail: str = "") -> ActionResult:
        status = ActionStatus.WOULD_APPLY if self.ctx.dry_run else ActionStatus.APPLIED
        return self.ctx.record(ActionResult(action, str(subject), status, detail))

    def ensure_symlink(self, src: Path, dest: Path, *, force: bool = False) -> ActionResult:
        if dest.is_symlink():
            return self.ctx.record(ActionResult("symlink", str(dest), ActionStatus.SATISFIED, "already a symlink"))

        try:
            if dest.exists():
                if not force:
                    self.ctx.warn(DeploymentWarning(f"{dest} exists and is not a symlink; leaving it alone"))
                    return self.ctx.record(ActionResult("symlink", str(dest), ActionStatus.SKIPPED, "not a symlink"))
                try:
                    confirm_destructive(self.ctx, f"Replace existing {dest} with a symlink to {src}?")
                except UserDeclinedOverwrite as e:
                    self.ctx.warn(e)
                    return self.ctx.record(ActionResult("symlink", str(dest), ActionStatus.SKIPPED, "declined"))
                if not self.ctx.dry_run:
                    remove_path(dest)
            if not self.ctx.dry_run:
                create_symlink(src, dest)
        except OSError as e:
            return self._deploy_failed("symlink", dest, e)
        return self._applied("symlink", dest, str(src))

    def ensure_append_block(self, path: Path, content: str) -> ActionResult:
        marker = first_non_blank_line(content)
        if marker is None:
            self.ctx.warn(DeploymentWarning(f"append {path}: block has no non-blank line"))
            return self.ctx.record(ActionResult("append", str(path), ActionStatus.FAILED, "empty block"))
        try:
            if block_present(path, content):
                logger.info("Block already present in %s: %s", path, marker)
                return self.ctx.record(ActionResult("append", str(path), ActionStatus.SATISFIED, marker))
            if not self.ctx.dry_run:
                append_block(path, content)
        except OSError as e:
            return self._deploy_failed("append", path, e)
        return self._applied("append", path, marker)

    def append(self, block: AppendBlock) -> ActionResult:
        return self.ensure_append_block(block.target, block.content)

    def sync_tree(
        self,
        src_dir: Path,
        dest_dir: Path,
        *,
        delete: bool = False,
        exclude: Iterable[str] = (".git",),
    ) -> ActionResult:
        if self.ctx.dry_run:
            logger.info("Would mirror %s -> %s (delete=%s)", src_dir, dest_dir, delete)
            return self._applied("sync", dest_dir, str(src_dir))
        try:
            changes = mirror_tree(src_dir, dest_dir, delete=delete, exclude=exclude)
        except (OSError, ValueError) as e:
            return self._deploy_failed("sync", dest_dir, e)
        if not changes.changed:
            return self.ctx.record(ActionResult("sync", str(dest_dir), ActionStatus.SATISFIED))
        detail = f"copied={changes.copied} deleted={changes.deleted}"
        logger.info("Mirrored %s -> %s (%s)", src_dir, dest_dir, detail)
        return self._applied("sync", dest_dir, detail)

    def install_copy(self, src: Path, dest: Path, *, file_mode: int = 0o644) -> ActionResult:
        try:
            if self.ctx.dry_run:
                if not src.is_file():
                    raise FileNotFoundError(str(src))
                return self._applied("copy", dest, str(src))
            if not install_copy(src, dest, file_mode):
                return self.ctx.record(ActionResult("copy", str(dest), ActionStatus.SATISFIED))
        except OSError as e:
            return self._deploy_failed("copy", dest, e)
        return self._applied("copy", dest, str(src))

    def deploy(self, mapping: DotfileMapping, root: Path) -> ActionResult:
        dest = mapping.resolve_target()
        if mapping.mode is DeployMode.APPEND_BLOCK_IF_MISSING:
            content = mapping.content
            if content is None:
                try:
                    content = mapping.resolve_source(root).read_text(encoding="utf-8")
                except OSError as e:
                    return self._deploy_failed("append", dest, e)
            return self.append(AppendBlock(name=mapping.source or dest.name, target=dest, content=content))

        src = mapping.resolve_source(root)
        if not src.exists() and not src.is_symlink():
            self.ctx.warn(DeploymentWarning(f"source not found: {src}"))
            return self.ctx.record(ActionResult(mapping.mode.value, str(dest), ActionStatus.SKIPPED, "source not found"))

        if mapping.mode is DeployMode.SYMLINK_IF_ABSENT:
            return self.ensure_symlink(src, dest, force=mapping.force)
        if mapping.mode is DeployMode.OVERWRITE_COPY:
            return self.install_copy(src, dest, file_mode=mapping.file_mode)
        return self.sync_tree(src, dest, delete=mapping.delete, exclude=mapping.exclude)

    def reconcile_dotfiles(self, mappings: Sequence[DotfileMapping], root: Path) -> List[ActionResult]:
        self.ctx.set_phase(RunPhase.APPLY)
        return [self.deploy(m, root) for m in mappings]

    def reconcile(
        self,
        packages: Sequence[PackageSpec],
        dotfiles: Sequence[DotfileMapping],
        root: Path,
    ) -> List[ActionResult]:
        """Full PROBE -> DIFF -> APPLY pass over packages, then dotfiles."""
        results = self.reconcile_packages(packages)
        results.extend(self.reconcile_dotfiles(dotfiles, root))
        return results


def _dedupe(specs: Iterable[PackageSpec]) -> List[PackageSpec]:
    seen = set()
    out: List[PackageSpec] = []
    for s in specs:
        if s.name in seen:
            continue
        seen.add(s.name)
        out.append(s)
    return out

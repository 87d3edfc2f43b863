from __future__ import annotations

import argparse
import logging
import signal
import tarfile
from pathlib import Path
from typing import Optional, Tuple

import requests
import yaml

from .config import ENTRY_POINT, BootstrapConfig, load_config_for_root
from .context import RunContext
from .errors import EntryPointMissing, FatalBootstrapError, UserDeclinedOverwrite
from .lib.fetch import KeepDirOccupied, fetch_state, persist_copy
from .lib.prompt import confirm_destructive
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .models import RunPhase, RunReport
from .pipeline import Session, run_pipeline
from .report import save_report, summarize
from .steps import FLOWS, build_steps

logger = logging.getLogger(__name__)


def _terminate(signum, frame) -> None:
    raise SystemExit(128 + signum)


def _load_config(root: Path, path: Optional[str] = None) -> BootstrapConfig:
    try:
        return load_config_for_root(root, path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise FatalBootstrapError(f"Invalid configuration: {e}") from e


def _keep_copy(ctx: RunContext, root: Path, keep_dir: Path) -> Path:
    try:
        try:
            return persist_copy(root, keep_dir)
        except KeepDirOccupied as e:
            confirm_destructive(ctx, f"{e}. Replace its contents with the fetched state?")
            return persist_copy(root, keep_dir, replace=True)
    except UserDeclinedOverwrite as e:
        raise FatalBootstrapError(f"Not replacing --keep-dir {keep_dir}") from e
    except OSError as e:
        raise FatalBootstrapError(f"Could not keep fetched state at {keep_dir}: {e}") from e


def resolve_root(
    ctx: RunContext,
    *,
    source: Optional[str] = None,
    config_path: Optional[str] = None,
    ref: Optional[str] = None,
    keep_dir: Optional[str] = None,
    archive_only: bool = False,
) -> Tuple[Path, BootstrapConfig]:
    """Work out the dotfiles root, fetching it when asked to.

    A local ``--source`` is used as is. Without one, state is fetched when a
    fetch option is given or when ``--config`` names a remote source;
    otherwise the working directory is the root.
    """

    local = Path(source or ".").expanduser().resolve()
    cfg = _load_config(local, config_path)

    wants_fetch = source is None and bool(
        ref or keep_dir or archive_only or (config_path and (cfg.repo_url or cfg.archive_url))
    )
    if not wants_fetch:
        return local, cfg

    if not (cfg.repo_url or cfg.archive_url):
        raise FatalBootstrapError("Fetching requires source.repo_url or source.archive_url in the configuration")

    try:
        fetched = fetch_state(
            workdir=ctx.scratch_dir(),
            repo_url=cfg.repo_url,
            archive_url=cfg.archive_url,
            ref=ref or cfg.default_ref,
            archive_only=archive_only,
            dry_run=ctx.dry_run,
        )
    except (RuntimeError, OSError, requests.RequestException, tarfile.TarError) as e:
        raise FatalBootstrapError(f"Could not fetch dotfile state: {e}") from e
    logger.info("Fetched dotfile state via %s into %s", fetched.strategy, fetched.root)

    if ctx.dry_run:
        return fetched.root, BootstrapConfig(raw=cfg.raw, root=fetched.root)

    root = fetched.root
    if not (root / ENTRY_POINT).exists():
        raise EntryPointMissing(f"Fetched state has no {ENTRY_POINT} at {root}")
    if keep_dir:
        root = _keep_copy(ctx, root, Path(keep_dir))
        ctx.keep_scratch = True
    return root, _load_config(root)


def run(
    *,
    flow: str = "install",
    source: Optional[str] = None,
    config_path: Optional[str] = None,
    ref: Optional[str] = None,
    keep_dir: Optional[str] = None,
    archive_only: bool = False,
    log_path: str = DEFAULT_LOG_PATH,
    report_path: Optional[str] = None,
    yes: bool = False,
    dry_run: bool = False,
    force: bool = False,
    verbose: bool = False,
    ctx: Optional[RunContext] = None,
) -> RunReport:
    """Run one flow end to end and return its report.

    Fatal errors propagate after the report is written; the scratch
    directory is cleaned up on every exit path.
    """

    actual_log_path = configure_logging(log_path=log_path, level=logging.DEBUG if verbose else logging.INFO)
    if ctx is None:
        ctx = RunContext(yes=yes, dry_run=dry_run, force=force)
    report = RunReport(flow=flow, phase=ctx.phase)
    logger.info("Starting %s flow (log: %s)", flow, actual_log_path)

    try:
        root, cfg = resolve_root(
            ctx,
            source=source,
            config_path=config_path,
            ref=ref,
            keep_dir=keep_dir,
            archive_only=archive_only,
        )
        session = Session(ctx=ctx, config=cfg, root=root)
        result = run_pipeline(session, build_steps(flow))
        report.ran_steps = result.ran_steps
        ctx.set_phase(RunPhase.DONE)
        return report
    except FatalBootstrapError as e:
        ctx.set_phase(RunPhase.FAILED)
        report.error = str(e)
        raise
    except Exception as e:
        logger.exception("Bootstrap failed")
        ctx.set_phase(RunPhase.FAILED)
        report.error = str(e)
        raise
    finally:
        report.phase = ctx.phase
        report.results = list(ctx.results)
        report.warnings = list(ctx.warnings)
        logger.info(summarize(report))
        if report_path:
            save_report(report_path, report)
        ctx.cleanup()


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="dotfiles-bootstrap",
        description="Install packages and deploy dotfiles; safe to re-run.",
    )
    p.add_argument("--yes", action="store_true", help="Accept default answers without prompting")
    p.add_argument("--keep-dir", default=None, help="Persist a copy of fetched state at this path")
    p.add_argument("--ref", default=None, help="Branch, tag or commit of the state to fetch")
    p.add_argument("--archive-only", action="store_true", help="Fetch state as an archive even if git is available")
    p.add_argument("--flow", choices=FLOWS, default="install", help="install (first run) or update (re-sync)")
    p.add_argument("--source", default=None, help="Local dotfiles root (default: current directory)")
    p.add_argument("--config", default=None, help=f"Configuration file (default: <root>/{ENTRY_POINT})")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to log file")
    p.add_argument("--report", default=None, help="Write a run report (json|yaml)")
    p.add_argument("--dry-run", action="store_true", help="Log commands and changes without making them")
    p.add_argument("--force", action="store_true", help="Answer yes to overwrite prompts")
    p.add_argument("--verbose", action="store_true", help="Show debug output on the console")

    args = p.parse_args(argv)

    signal.signal(signal.SIGTERM, _terminate)

    try:
        run(
            flow=args.flow,
            source=args.source,
            config_path=args.config,
            ref=args.ref,
            keep_dir=args.keep_dir,
            archive_only=args.archive_only,
            log_path=args.log,
            report_path=args.report,
            yes=args.yes,
            dry_run=args.dry_run,
            force=args.force,
            verbose=args.verbose,
        )
    except FatalBootstrapError as e:
        logger.error("%s", e)
        return e.exit_code
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130
    return 0

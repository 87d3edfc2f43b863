"""Obtain dotfile state: git checkout when possible, tarball otherwise."""

from __future__ import annotations

import logging
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import requests

from .command import have_cmd, run_cmd

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT = 60
KEEP_MARKER = ".dotfiles-bootstrap-keep"


class KeepDirOccupied(RuntimeError):
    """The keep-dir holds files that an earlier kept copy did not put there."""


@dataclass(frozen=True)
class FetchResult:
    root: Path
    strategy: str
    ref: Optional[str] = None


def download_file(url: str, dest: Path, *, timeout: int = DOWNLOAD_TIMEOUT) -> Path:
    logger.info("Downloading %s", url)
    dest.parent.mkdir(parents=True, exist_ok=True)
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with dest.open("wb") as f:
            for chunk in response.iter_content(chunk_size=64 * 1024):
                if chunk:
                    f.write(chunk)
    return dest


def extract_archive(archive: Path, dest: Path) -> Path:
    """Extract a tarball and return the directory holding its content.

    Archives with a single top-level directory (as forges produce) are
    unwrapped to that directory.
    """

    dest.mkdir(parents=True, exist_ok=True)
    with tarfile.open(archive, "r:*") as tf:
        # The "data" filter rejects absolute paths and members escaping dest.
        tf.extractall(dest, filter="data")

    entries = list(dest.iterdir())
    if len(entries) == 1 and entries[0].is_dir():
        return entries[0]
    return dest


def _is_remote_ref(url: str, ref: str) -> bool:
    r = run_cmd(["git", "ls-remote", "--exit-code", url, ref], check=False)
    return r.returncode == 0


def git_clone(url: str, dest: Path, *, ref: Optional[str] = None, dry_run: bool = False) -> Path:
    """Shallow clone ``url``; ``ref`` may be a branch, a tag or a commit.

    ``--branch`` only accepts names the remote advertises, so anything
    else is fetched by id into a fresh repository.
    """

    if ref and not _is_remote_ref(url, ref):
        run_cmd(["git", "init", "--quiet", str(dest)], dry_run=dry_run)
        run_cmd(["git", "-C", str(dest), "remote", "add", "origin", url], dry_run=dry_run)
        run_cmd(["git", "-C", str(dest), "fetch", "--depth", "1", "origin", ref], dry_run=dry_run)
        run_cmd(["git", "-C", str(dest), "checkout", "--quiet", "FETCH_HEAD"], dry_run=dry_run)
        return dest

    argv = ["git", "clone", "--depth", "1"]
    if ref:
        argv += ["--branch", ref]
    argv += [url, str(dest)]
    run_cmd(argv, dry_run=dry_run)
    return dest


def fetch_state(
    *,
    workdir: Path,
    repo_url: Optional[str],
    archive_url: Optional[str],
    ref: Optional[str] = None,
    archive_only: bool = False,
    dry_run: bool = False,
) -> FetchResult:
    """Fetch dotfile state into ``workdir``.

    git is used when it is installed and ``archive_only`` is not set; the
    archive URL (``{ref}`` substituted, default ``main``) is the fallback.
    """

    if repo_url and not archive_only and have_cmd("git"):
        root = git_clone(repo_url, workdir / "checkout", ref=ref, dry_run=dry_run)
        return FetchResult(root=root, strategy="git", ref=ref)

    if not archive_url:
        if archive_only:
            raise RuntimeError("--archive-only requested but no archive_url is configured")
        raise RuntimeError("git is not available and no archive_url is configured")

    url = archive_url.format(ref=ref or "main")
    if dry_run:
        logger.info("Would download and extract %s", url)
        return FetchResult(root=workdir / "archive", strategy="archive", ref=ref)
    archive = download_file(url, workdir / "state.tar.gz")
    root = extract_archive(archive, workdir / "archive")
    return FetchResult(root=root, strategy="archive", ref=ref)


def persist_copy(src: Path, keep_dir: Path, *, replace: bool = False) -> Path:
    """Copy fetched state to ``keep_dir``.

    An empty directory or an earlier kept copy (recognized by
    ``KEEP_MARKER``) is replaced. Anything else raises ``KeepDirOccupied``
    unless ``replace`` is set.
    """

    keep_dir = keep_dir.expanduser()
    if keep_dir.exists() or keep_dir.is_symlink():
        if not keep_dir.is_dir() or keep_dir.is_symlink():
            raise NotADirectoryError(f"--keep-dir is not a directory: {keep_dir}")
        occupied = any(keep_dir.iterdir()) and not (keep_dir / KEEP_MARKER).is_file()
        if occupied and not replace:
            raise KeepDirOccupied(f"{keep_dir} is not empty and was not created by an earlier run")
        shutil.rmtree(keep_dir)
    keep_dir.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(src, keep_dir, symlinks=True)
    (keep_dir / KEEP_MARKER).write_text(f"{src}\n", encoding="utf-8")
    logger.info("Kept fetched state at %s", keep_dir)
    return keep_dir


def sync_checkout(root: Path, *, dry_run: bool = False) -> list[str]:
    """Fast-forward the checkout at ``root``. Returns problems, never raises."""

    problems: list[str] = []
    if not have_cmd("git"):
        return ["git not found; skipping repository synchronization"]
    r = run_cmd(["git", "-C", str(root), "rev-parse", "--is-inside-work-tree"], check=False)
    if r.returncode != 0:
        return [f"{root} is not a git work tree; skipping git sync"]

    r = run_cmd(["git", "-C", str(root), "fetch", "--all", "--prune", "--quiet"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        problems.append("git fetch failed")

    r = run_cmd(["git", "-C", str(root), "pull", "--ff-only", "--quiet"], check=False, dry_run=dry_run)
    if r.returncode != 0:
        problems.append(f"fast-forward pull failed; run: git -C {root} status")
    else:
        logger.info("Repository updated (fast-forward)")
    return problems

from __future__ import annotations

import filecmp
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Set

from ..models import first_non_blank_line

logger = logging.getLogger(__name__)


class PathEscapesRoot(ValueError):
    pass


@dataclass(frozen=True)
class TreeChanges:
    copied: int = 0
    deleted: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.copied or self.deleted)


def _inside(root: Path, path: Path) -> bool:
    # Resolve the parent only: the leaf may itself be a symlink we must not follow.
    parent = Path(os.path.realpath(path.parent))
    real_root = Path(os.path.realpath(root))
    try:
        parent.relative_to(real_root)
    except ValueError:
        return False
    return True


def create_symlink(src: Path, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.symlink_to(src)
    logger.info("Linked %s -> %s", dest, src)


def remove_path(path: Path) -> None:
    if path.is_symlink() or not path.is_dir():
        path.unlink()
    else:
        shutil.rmtree(path)


def block_present(path: Path, content: str) -> bool:
    """True when ``path`` exists and already contains the block's marker line."""
    marker = first_non_blank_line(content)
    if marker is None:
        raise ValueError("Block has no non-blank line to use as a marker")
    if not path.is_file():
        return False
    return marker in path.read_text(encoding="utf-8", errors="replace")


def append_block(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    # Start on a fresh line if the file lacks a trailing newline.
    lead = "\n" if path.is_file() and path.stat().st_size and not path.read_bytes().endswith(b"\n") else ""
    with path.open("a", encoding="utf-8") as f:
        f.write(lead + content.rstrip("\n") + "\n")
    logger.info("Appended block to %s: %s", path, first_non_blank_line(content))


def same_content(src: Path, dest: Path) -> bool:
    if dest.is_symlink() or not dest.is_file():
        return False
    return filecmp.cmp(str(src), str(dest), shallow=False)


def install_copy(src: Path, dest: Path, file_mode: int = 0o644) -> bool:
    """Copy ``src`` over ``dest`` when their bytes differ. Returns True if written."""

    if not src.is_file():
        raise FileNotFoundError(str(src))
    changed = False
    if not same_content(src, dest):
        dest.parent.mkdir(parents=True, exist_ok=True)
        if dest.is_symlink() or dest.is_dir():
            remove_path(dest)
        shutil.copyfile(src, dest)
        changed = True
        logger.info("Installed %s -> %s", src, dest)
    if (dest.stat().st_mode & 0o777) != file_mode:
        os.chmod(dest, file_mode)
        changed = True
    return changed


def _walk_source(src: Path, exclude: Set[str]) -> tuple[Set[Path], Set[Path]]:
    files: Set[Path] = set()
    dirs: Set[Path] = set()
    for dirpath, dirnames, filenames in os.walk(src):
        dirnames[:] = [d for d in dirnames if d not in exclude]
        base = Path(dirpath)
        for d in dirnames:
            full = base / d
            # Symlinked directories are mirrored as links, not descended into.
            if full.is_symlink():
                files.add(full.relative_to(src))
            else:
                dirs.add(full.relative_to(src))
        for name in filenames:
            if name not in exclude:
                files.add((base / name).relative_to(src))
    return files, dirs


def _copy_entry(item: Path, out: Path) -> bool:
    if item.is_symlink():
        link = os.readlink(item)
        if out.is_symlink() and os.readlink(out) == link:
            return False
        if out.exists() or out.is_symlink():
            remove_path(out)
        out.parent.mkdir(parents=True, exist_ok=True)
        os.symlink(link, out)
        return True
    if same_content(item, out):
        return False
    if out.is_symlink() or out.is_dir():
        remove_path(out)
    out.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(item, out)
    return True


def mirror_tree(
    src: Path,
    dest: Path,
    *,
    delete: bool = False,
    exclude: Iterable[str] = (".git",),
) -> TreeChanges:
    """One-way mirror of ``src`` into ``dest``; the source wins.

    With ``delete`` set, destination entries absent from the source are
    removed. Nothing outside ``dest`` is ever touched.
    """

    if not src.is_dir():
        raise FileNotFoundError(str(src))
    excluded = set(exclude)
    files, dirs = _walk_source(src, excluded)

    dest.mkdir(parents=True, exist_ok=True)
    copied = 0
    for rel in sorted(dirs):
        out = dest / rel
        if out.is_symlink() or (out.exists() and not out.is_dir()):
            remove_path(out)
        out.mkdir(parents=True, exist_ok=True)
    for rel in sorted(files):
        if _copy_entry(src / rel, dest / rel):
            copied += 1

    deleted = 0
    if delete:
        for dirpath, dirnames, filenames in os.walk(dest, topdown=False):
            base = Path(dirpath)
            rel_base = base.relative_to(dest)
            if any(part in excluded for part in rel_base.parts):
                continue
            for name in filenames + [d for d in dirnames if (base / d).is_symlink()]:
                rel = rel_base / name
                if name in excluded or rel in files:
                    continue
                target = base / name
                if not _inside(dest, target):
                    raise PathEscapesRoot(f"Refusing to delete outside {dest}: {target}")
                target.unlink()
                deleted += 1
                logger.info("Deleted %s", target)
            for name in dirnames:
                rel = rel_base / name
                target = base / name
                if name in excluded or rel in dirs or target.is_symlink() or not target.exists():
                    continue
                if not _inside(dest, target):
                    raise PathEscapesRoot(f"Refusing to delete outside {dest}: {target}")
                shutil.rmtree(target)
                deleted += 1
                logger.info("Deleted %s", target)

    return TreeChanges(copied=copied, deleted=deleted)

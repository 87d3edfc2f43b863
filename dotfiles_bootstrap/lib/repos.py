from __future__ import annotations

import logging
import re
from pathlib import Path

from .command import run_cmd, sudo_prefix
from .dotfiles import block_present
from .fetch import download_file, extract_archive

logger = logging.getLogger(__name__)

PACMAN_CONF = Path("/etc/pacman.conf")

CACHYOS_REPO_TARBALL = "https://mirror.cachyos.org/cachyos-repo.tar.xz"

CHAOTIC_KEY = "3056513887B78AEB"
CHAOTIC_KEYSERVER = "keyserver.ubuntu.com"
CHAOTIC_PACKAGES = (
    "https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-keyring.pkg.tar.zst",
    "https://cdn-mirror.chaotic.cx/chaotic-aur/chaotic-mirrorlist.pkg.tar.zst",
)
CHAOTIC_BLOCK = """
[chaotic-aur]
Include = /etc/pacman.d/chaotic-mirrorlist
"""


def repo_configured(section: str, conf: Path = PACMAN_CONF) -> bool:
    """True if pacman.conf has a section header starting with ``[section``."""
    try:
        text = conf.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False
    return re.search(rf"^\[{re.escape(section)}", text, re.IGNORECASE | re.MULTILINE) is not None


def append_system_block(path: Path, content: str, *, dry_run: bool = False) -> bool:
    """Append-once for root-owned files. Returns True if the block was written."""
    if block_present(path, content):
        logger.info("Block already present in %s", path)
        return False
    run_cmd([*sudo_prefix(), "tee", "-a", str(path)], input_text=content + "\n", dry_run=dry_run)
    return True


def setup_cachyos(workdir: Path, *, conf: Path = PACMAN_CONF, dry_run: bool = False) -> bool:
    """Run the upstream CachyOS repo helper. Returns False if already configured."""
    if repo_configured("cachyos", conf):
        logger.info("CachyOS repository already configured; skipping")
        return False
    if dry_run:
        logger.info("Would download and run %s", CACHYOS_REPO_TARBALL)
        return True
    archive = download_file(CACHYOS_REPO_TARBALL, workdir / "cachyos-repo.tar.xz")
    helper_dir = extract_archive(archive, workdir / "cachyos-repo")
    run_cmd([*sudo_prefix(), "./cachyos-repo.sh"], cwd=str(helper_dir), capture=False)
    return True


def setup_chaotic_aur(*, conf: Path = PACMAN_CONF, dry_run: bool = False) -> bool:
    """Import keys, install keyring/mirrorlist, register the repo, then sync."""
    sudo = sudo_prefix()
    changed = False
    if repo_configured("chaotic-aur", conf):
        logger.info("Chaotic AUR already configured")
    else:
        run_cmd([*sudo, "pacman-key", "--recv-key", CHAOTIC_KEY, "--keyserver", CHAOTIC_KEYSERVER], dry_run=dry_run)
        run_cmd([*sudo, "pacman-key", "--lsign-key", CHAOTIC_KEY], dry_run=dry_run)
        for url in CHAOTIC_PACKAGES:
            run_cmd([*sudo, "pacman", "-U", "--noconfirm", url], capture=False, dry_run=dry_run)
        changed = append_system_block(conf, CHAOTIC_BLOCK, dry_run=dry_run)
    run_cmd([*sudo, "pacman", "-Syu", "--noconfirm"], capture=False, dry_run=dry_run)
    return changed

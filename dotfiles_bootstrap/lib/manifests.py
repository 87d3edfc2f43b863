from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional

import yaml


def _manifests_dir() -> Path:
    # dotfiles_bootstrap/lib/manifests.py -> dotfiles_bootstrap/manifests
    return Path(__file__).resolve().parents[1] / "manifests"


def load_yaml(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Manifest must be a mapping/dict: {path}")
    return data


def load_manifest(name: str, override: Optional[str | Path] = None) -> Dict[str, Any]:
    """Load a bundled manifest (``manifests/<name>.yaml``) or an override file."""
    if override:
        return load_yaml(Path(override).expanduser())
    return load_yaml(_manifests_dir() / f"{name}.yaml")

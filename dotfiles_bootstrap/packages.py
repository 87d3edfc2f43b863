"""Declared package lists.

Both flows call these producers so there is a single source of truth. The
lists come from the bundled ``manifests/packages.yaml`` unless a path to
another manifest with the same shape is given.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

from .lib.manifests import load_manifest
from .models import PackageSource, PackageSpec


def _clean(value: Any) -> Any:
    # Allow a trailing "# comment" on an entry.
    if isinstance(value, str):
        return value.split("#", 1)[0].strip()
    return value


def _load_list(key: str, default_source: PackageSource, manifest: Optional[str | Path]) -> List[PackageSpec]:
    raw = load_manifest("packages", manifest).get(key) or []
    if not isinstance(raw, list):
        raise ValueError(f"packages manifest: '{key}' must be a list")

    specs: List[PackageSpec] = []
    seen = set()
    for entry in raw:
        entry = _clean(entry)
        if not entry:
            continue
        spec = PackageSpec.from_value(entry, default_source=default_source)
        if spec.name in seen:
            continue
        seen.add(spec.name)
        specs.append(spec)
    return specs


def packages_base(manifest: Optional[str | Path] = None) -> List[PackageSpec]:
    return _load_list("base", PackageSource.SYSTEM_REPO, manifest)


def packages_extra(manifest: Optional[str | Path] = None) -> List[PackageSpec]:
    return _load_list("extra", PackageSource.THIRD_PARTY_HELPER, manifest)


def packages_all(manifest: Optional[str | Path] = None) -> List[PackageSpec]:
    """Base then extra; a name listed in both keeps its base entry."""
    out = packages_base(manifest)
    names = {p.name for p in out}
    out.extend(p for p in packages_extra(manifest) if p.name not in names)
    return out


def packages_brew(manifest: Optional[str | Path] = None) -> List[PackageSpec]:
    """The macOS list; Homebrew installs it instead of base and extra."""
    return _load_list("brew", PackageSource.SYSTEM_REPO, manifest)

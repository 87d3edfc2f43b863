from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .lib.manifests import load_manifest
from .models import DotfileMapping

ENTRY_POINT = "bootstrap.yaml"

DEFAULT_SERVICES: List[Dict[str, Any]] = [
    {"unit": "reflector.service"},
    {"unit": "reflector.timer"},
    {"unit": "docker.service"},
    {"unit": "opentabletdriver.service", "user": True},
]

DEFAULT_FLATPAK_APPS: List[Dict[str, Any]] = [
    {"id": "com.usebottles.bottles", "fallback": "bottles"},
    {"id": "org.vinegarhq.Sober"},
]


@dataclass(frozen=True)
class ServiceSpec:
    unit: str
    user: bool = False


@dataclass(frozen=True)
class FlatpakApp:
    app_id: str
    # Tried without a remote if the Flathub install fails.
    fallback: Optional[str] = None


@dataclass(frozen=True)
class BootstrapConfig:
    raw: Dict[str, Any]
    root: Path = field(default_factory=Path.cwd)

    def _section(self, name: str) -> Dict[str, Any]:
        value = self.raw.get(name) or {}
        if not isinstance(value, dict):
            raise ValueError(f"{ENTRY_POINT}: '{name}' must be a mapping")
        return value

    def _rel(self, value: Optional[str]) -> Optional[Path]:
        if not value:
            return None
        p = Path(str(value)).expanduser()
        return p if p.is_absolute() else self.root / p

    @property
    def package_manager(self) -> str:
        return str(self.raw.get("package_manager") or "auto")

    @property
    def packages_manifest(self) -> Optional[Path]:
        return self._rel(self._section("packages").get("manifest"))

    @property
    def dotfiles_manifest(self) -> Optional[Path]:
        return self._rel(self._section("dotfiles").get("manifest"))

    @property
    def repo_url(self) -> Optional[str]:
        return self._section("source").get("repo_url")

    @property
    def archive_url(self) -> Optional[str]:
        return self._section("source").get("archive_url")

    @property
    def default_ref(self) -> Optional[str]:
        return self._section("source").get("ref")

    @property
    def offer_cachyos(self) -> bool:
        return bool(self._section("repos").get("cachyos", True))

    @property
    def offer_chaotic_aur(self) -> bool:
        return bool(self._section("repos").get("chaotic_aur", True))

    @property
    def offer_kernel(self) -> bool:
        return bool(self._section("kernel").get("offer", True))

    @property
    def flatpak_apps(self) -> List[FlatpakApp]:
        raw = self._section("flatpak").get("apps")
        if raw is None:
            raw = DEFAULT_FLATPAK_APPS
        if not isinstance(raw, list):
            raise ValueError(f"{ENTRY_POINT}: 'flatpak.apps' must be a list")
        out: List[FlatpakApp] = []
        for item in raw:
            if isinstance(item, str):
                out.append(FlatpakApp(app_id=item))
            elif isinstance(item, dict) and item.get("id"):
                fallback = item.get("fallback")
                out.append(FlatpakApp(app_id=str(item["id"]), fallback=str(fallback) if fallback else None))
            else:
                raise ValueError(f"{ENTRY_POINT}: flatpak entry without 'id': {item!r}")
        return out

    @property
    def login_shell(self) -> Optional[str]:
        """Shell to make the login shell; ``shell.login: null`` leaves it alone."""
        section = self._section("shell")
        if "login" not in section:
            return "zsh"
        return str(section["login"]) if section["login"] else None

    @property
    def offer_reboot(self) -> bool:
        return bool(self._section("reboot").get("offer", True))

    @property
    def services(self) -> List[ServiceSpec]:
        raw = self.raw.get("services")
        if raw is None:
            raw = DEFAULT_SERVICES
        if not isinstance(raw, list):
            raise ValueError(f"{ENTRY_POINT}: 'services' must be a list")
        out: List[ServiceSpec] = []
        for item in raw:
            if isinstance(item, str):
                out.append(ServiceSpec(unit=item))
            elif isinstance(item, dict) and item.get("unit"):
                out.append(ServiceSpec(unit=str(item["unit"]), user=bool(item.get("user", False))))
            else:
                raise ValueError(f"{ENTRY_POINT}: service entry without 'unit': {item!r}")
        return out

    def _profiles(self, profile: str) -> Dict[str, Any]:
        profiles = self._section("dotfiles").get("profiles")
        if not isinstance(profiles, dict) or profile not in profiles:
            profiles = load_manifest("dotfiles", self.dotfiles_manifest).get("profiles") or {}
        return profiles

    def has_profile(self, profile: str) -> bool:
        return profile in self._profiles(profile)

    def dotfiles(self, profile: str) -> List[DotfileMapping]:
        """Mappings for a profile: inline ``dotfiles.profiles`` win over the manifest."""
        entries = self._profiles(profile).get(profile) or []
        if not isinstance(entries, list):
            raise ValueError(f"dotfiles profile '{profile}' must be a list")
        return [DotfileMapping.from_dict(e) for e in entries]


def load_config(path: str | Path, *, root: Optional[Path] = None) -> BootstrapConfig:
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(str(p))

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("bootstrap config must be YAML")

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{p.name} must contain a mapping/object")

    return BootstrapConfig(raw=raw, root=root or p.resolve().parent)


def load_config_for_root(root: Path, path: Optional[str | Path] = None) -> BootstrapConfig:
    """Explicit path wins; otherwise ``<root>/bootstrap.yaml`` if present; else defaults."""
    if path:
        return load_config(path, root=root)
    candidate = root / ENTRY_POINT
    if candidate.exists():
        return load_config(candidate, root=root)
    return BootstrapConfig(raw={}, root=root)

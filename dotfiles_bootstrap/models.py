from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple


class PackageSource(str, Enum):
    SYSTEM_REPO = "system-repo"
    THIRD_PARTY_HELPER = "third-party-helper"


class DeployMode(str, Enum):
    SYMLINK_IF_ABSENT = "symlink-if-absent"
    OVERWRITE_COPY = "overwrite-copy"
    APPEND_BLOCK_IF_MISSING = "append-block-if-missing"
    SYNC_TREE = "sync-tree"


class ActionStatus(str, Enum):
    SATISFIED = "satisfied"
    APPLIED = "applied"
    WOULD_APPLY = "would-apply"
    SKIPPED = "skipped"
    FAILED = "failed"


class RunPhase(str, Enum):
    INIT = "INIT"
    PROBE = "PROBE"
    DIFF = "DIFF"
    APPLY = "APPLY"
    REPORT = "REPORT"
    DONE = "DONE"
    FAILED = "FAILED"


@dataclass(frozen=True)
class PackageSpec:
    name: str
    source: PackageSource = PackageSource.SYSTEM_REPO

    @classmethod
    def from_value(cls, value: Any, *, default_source: PackageSource = PackageSource.SYSTEM_REPO) -> "PackageSpec":
        """Build from a manifest entry: either ``"name"`` or ``{name, source}``."""
        if isinstance(value, str):
            return cls(name=value.strip(), source=default_source)
        if isinstance(value, Mapping):
            name = str(value.get("name") or "").strip()
            if not name:
                raise ValueError(f"Package entry without a name: {value!r}")
            return cls(name=name, source=PackageSource(value.get("source") or default_source))
        raise ValueError(f"Invalid package entry: {value!r}")

    def with_source(self, source: PackageSource) -> "PackageSpec":
        return PackageSpec(name=self.name, source=source)


class InstalledSet:
    """Package name -> present on system, built fresh at the start of a run."""

    def __init__(self, present: Optional[Mapping[str, bool]] = None) -> None:
        self._present: Dict[str, bool] = dict(present or {})

    @classmethod
    def from_names(cls, wanted: Iterable[str], installed: Iterable[str]) -> "InstalledSet":
        have = set(installed)
        return cls({name: name in have for name in wanted})

    def __contains__(self, name: object) -> bool:
        return name in self._present

    def is_present(self, name: str) -> bool:
        return bool(self._present.get(name, False))

    def mark_present(self, name: str) -> None:
        self._present[name] = True

    def missing(self) -> list[str]:
        return [name for name, present in self._present.items() if not present]

    def as_dict(self) -> Dict[str, bool]:
        return dict(self._present)


def _file_mode(value: Any) -> int:
    """Permission bits from a manifest value.

    Strings are octal. YAML reads ``0644`` as an octal number but ``644`` as
    decimal, so an integer too large to be mode bits is read by its digits.
    """

    if isinstance(value, str):
        mode = int(value, 8)
    elif isinstance(value, int) and not isinstance(value, bool):
        mode = int(str(value), 8) if value > 0o777 else value
    else:
        raise ValueError(f"file_mode must be an octal string like \"0644\", not {value!r}")
    if not 0 <= mode <= 0o7777:
        raise ValueError(f"file_mode out of range: {value!r}")
    return mode


@dataclass(frozen=True)
class DotfileMapping:
    """One entry of a dotfile profile.

    Attributes:
        source: path relative to the dotfiles root (unused when ``content`` is set)
        target: destination path, ``~`` expanded at resolve time
        mode: how the destination is converged
        force: symlink mode may replace a non-symlink after confirmation
        delete: sync-tree mode mirrors deletions
        content: literal block for append mode
        file_mode: permission bits applied by overwrite-copy
        exclude: names skipped by sync-tree
    """

    source: str
    target: str
    mode: DeployMode
    force: bool = False
    delete: bool = False
    content: Optional[str] = None
    file_mode: int = 0o644
    exclude: Tuple[str, ...] = (".git",)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "DotfileMapping":
        if "target" not in raw:
            raise ValueError(f"Dotfile mapping without a target: {dict(raw)!r}")
        mode = DeployMode(raw.get("mode") or DeployMode.SYMLINK_IF_ABSENT.value)
        if mode is not DeployMode.APPEND_BLOCK_IF_MISSING and not raw.get("source"):
            raise ValueError(f"Dotfile mapping for {raw['target']} needs a source")
        file_mode = _file_mode(raw.get("file_mode", 0o644))
        return cls(
            source=str(raw.get("source") or ""),
            target=str(raw["target"]),
            mode=mode,
            force=bool(raw.get("force", False)),
            delete=bool(raw.get("delete", False)),
            content=raw.get("content"),
            file_mode=file_mode,
            exclude=tuple(raw.get("exclude") or (".git",)),
        )

    def resolve_source(self, root: Path) -> Path:
        return Path(root) / self.source

    def resolve_target(self) -> Path:
        return Path(self.target).expanduser()


@dataclass(frozen=True)
class AppendBlock:
    name: str
    target: Path
    content: str

    @property
    def marker(self) -> Optional[str]:
        return first_non_blank_line(self.content)


def first_non_blank_line(text: str) -> Optional[str]:
    for line in text.splitlines():
        if line.strip():
            return line
    return None


@dataclass(frozen=True)
class ActionResult:
    action: str
    subject: str
    status: ActionStatus
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not ActionStatus.FAILED

    def as_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"action": self.action, "subject": self.subject, "status": self.status.value}
        if self.detail:
            d["detail"] = self.detail
        return d


@dataclass
class RunReport:
    flow: str
    phase: RunPhase
    ran_steps: list[str] = field(default_factory=list)
    results: list[ActionResult] = field(default_factory=list)
    warnings: list[Dict[str, str]] = field(default_factory=list)
    error: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "flow": self.flow,
            "phase": self.phase.value,
            "ran_steps": list(self.ran_steps),
            "results": [r.as_dict() for r in self.results],
            "warnings": list(self.warnings),
        }
        if self.error:
            d["error"] = self.error
        return d

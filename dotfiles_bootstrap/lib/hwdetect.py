"""NVIDIA generation detection.

Pattern matching over lspci free text is best-effort by nature: rules are an
ordered table of (pattern, classification) pairs, first match wins, and
anything unmatched falls back to ``unknown``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .command import have_cmd, run_cmd

logger = logging.getLogger(__name__)

NONE = "none"
NEWER = "newer"  # newer than Turing: Ampere / Ada / Blackwell
TURING = "turing"
OLDER = "older"  # Pascal / Maxwell / Kepler
UNKNOWN = "unknown"

DRIVER_PROPRIETARY = "linux-cachyos-nvidia"
DRIVER_OPEN = "linux-cachyos-nvidia-open"

# Series of the first 3-4 digit group: leading two digits of "4060", leading
# digit of "980".
_SERIES_RULES: Sequence[Tuple[range, str]] = (
    (range(30, 100), NEWER),
    (range(20, 21), TURING),
    (range(16, 17), TURING),
    (range(0, 16), OLDER),
)

_TEXT_RULES: Sequence[Tuple[re.Pattern[str], str]] = (
    (re.compile(r"blackwell|\bGB[0-9]+", re.IGNORECASE), NEWER),
    (re.compile(r"\bAD[0-9A-Z]*\b|ada|lovelace", re.IGNORECASE), NEWER),
    (re.compile(r"\bGA[0-9]+|ampere|rtx\s*30", re.IGNORECASE), NEWER),
    (re.compile(r"\bTU[0-9]+|turing|rtx\s*20|gtx\s*16", re.IGNORECASE), TURING),
    (re.compile(r"pascal|gtx\s*10|kepler|maxwell|\bgf|\bgk", re.IGNORECASE), OLDER),
)

_NUMBER = re.compile(r"\b[0-9]{3,4}\b")


@dataclass(frozen=True)
class GpuInfo:
    generation: str
    model: str

    @property
    def present(self) -> bool:
        return self.generation != NONE


def clean_model(lspci_line: str) -> str:
    """Reduce an lspci -nn line to the marketing name, or the chip name if absent.

    ``01:00.0 VGA compatible controller [0300]: NVIDIA Corporation AD107 [GeForce RTX 4060] [10de:2882] (rev a1)``
    becomes ``GeForce RTX 4060``.
    """
    text = re.sub(r"^[^:]+:[^:]*:\s*", "", lspci_line.strip(), count=1)
    text = re.sub(r"\s*\[[0-9a-fA-F]{4}(:[0-9a-fA-F]{4})?\]", "", text)
    text = re.sub(r"\s*\(rev [^)]*\)", "", text)
    named = re.search(r"\[([^\]]+)\]", text)
    if named:
        return named.group(1).strip()
    return text.strip()


def classify_model(model: str) -> str:
    m = _NUMBER.search(model)
    if m:
        digits = m.group(0)
        major = int(digits[:2] if len(digits) == 4 else digits[:1])
        for series, generation in _SERIES_RULES:
            if major in series:
                return generation
        return UNKNOWN
    for pattern, generation in _TEXT_RULES:
        if pattern.search(model):
            return generation
    return UNKNOWN


def pick_nvidia_line(lspci_output: str) -> Optional[str]:
    """Prefer VGA controllers, fall back to 3D controllers."""
    lines = [ln for ln in lspci_output.splitlines() if "nvidia" in ln.lower()]
    for kind in ("vga", "3d controller"):
        for ln in lines:
            if kind in ln.lower():
                return ln
    return None


def detect_nvidia() -> GpuInfo:
    if not have_cmd("lspci"):
        return GpuInfo(generation=NONE, model="lspci-missing")
    r = run_cmd(["lspci", "-nn"], check=False)
    line = pick_nvidia_line(r.stdout)
    if line is None:
        return GpuInfo(generation=NONE, model="no-nvidia-detected")
    model = clean_model(line)
    info = GpuInfo(generation=classify_model(model), model=model)
    logger.info("NVIDIA GPU: %s (%s)", info.model, info.generation)
    return info


def lib32_companion(driver_pkg: str) -> str:
    return "lib32-" + driver_pkg[len("linux-cachyos-"):] if driver_pkg.startswith("linux-cachyos-") else f"lib32-{driver_pkg}"

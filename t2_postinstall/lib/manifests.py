from __future__ import annotations

from pathlib import Path
from typing import List

from ..errors import MissingManifestError

# Installed by the AUR bootstrap step, never by pacman.
DEFERRED_PACKAGES = frozenset({"yay"})


def parse_package_list(text: str) -> List[str]:
    """One package per line; blank lines and #-comments are skipped."""

    packages: List[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line in DEFERRED_PACKAGES:
            continue
        packages.append(line)
    return packages


def load_package_list(path: str) -> List[str]:
    p = Path(path)
    if not p.is_file():
        raise MissingManifestError(path)
    return parse_package_list(p.read_text(encoding="utf-8"))

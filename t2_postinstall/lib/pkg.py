from __future__ import annotations

import logging
from typing import Sequence

from .command import Policy, run_as_user, run_cmd

logger = logging.getLogger(__name__)


def pacman_sync_upgrade(*, dry_run: bool = False) -> None:
    run_cmd(["pacman", "-Syu", "--noconfirm"], dry_run=dry_run)


def pacman_install(packages: Sequence[str], *, dry_run: bool = False) -> None:
    if not packages:
        logger.info("No packages to install")
        return
    run_cmd(["pacman", "-S", "--needed", "--noconfirm", *packages], dry_run=dry_run)


def pacman_is_installed(package: str, *, dry_run: bool = False) -> bool:
    """Return True if pacman reports the package as installed."""
    if dry_run:
        # Assume installed so the dry-run plan shows the removal.
        return True
    r = run_cmd(["pacman", "-Qi", package], policy=Policy.QUERY)
    return r.returncode == 0


def pacman_remove(package: str, *, dry_run: bool = False) -> bool:
    """Best-effort removal; returns True if pacman succeeded."""
    r = run_cmd(["pacman", "-Rns", "--noconfirm", package], policy=Policy.BEST_EFFORT, dry_run=dry_run)
    return r.ok


def aur_install(user: str, packages: Sequence[str], *, helper: str = "yay", dry_run: bool = False) -> None:
    if not packages:
        return
    run_as_user(user, [helper, "-S", "--needed", "--noconfirm", *packages], dry_run=dry_run)

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from .command import have_cmd, run_as_user
from .pkg import pacman_install

logger = logging.getLogger(__name__)

YAY_REPO = "https://aur.archlinux.org/yay.git"
BUILD_DEPS = ["git", "base-devel"]


def bootstrap_yay(user: str, *, repo_url: str = YAY_REPO, dry_run: bool = False) -> bool:
    """Build and install yay as the given user.

    Returns False when yay is already on PATH and nothing was done.
    """

    if have_cmd("yay"):
        logger.info("yay already installed.")
        return False

    pacman_install(BUILD_DEPS, dry_run=dry_run)

    if dry_run:
        run_as_user(user, ["git", "clone", repo_url, "<tmpdir>/yay"], dry_run=True)
        run_as_user(user, ["makepkg", "-si", "--noconfirm"], dry_run=True)
        return True

    tmpdir = tempfile.mkdtemp(prefix="yay-build.")
    try:
        # makepkg refuses to run as root, so the build dir belongs to the user.
        shutil.chown(tmpdir, user=user, group=user)
        build_dir = Path(tmpdir) / "yay"
        run_as_user(user, ["git", "clone", repo_url, str(build_dir)])
        run_as_user(user, ["makepkg", "-si", "--noconfirm"], cwd=str(build_dir))
    finally:
        shutil.rmtree(tmpdir, ignore_errors=True)

    logger.info("yay installed")
    return True

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def copy_tree(src: str, dst: str, *, dry_run: bool = False) -> List[Path]:
    """Copy src over dst, merging into existing directories. Returns written paths."""

    s = Path(src)
    d = Path(dst)
    if not s.exists():
        raise FileNotFoundError(src)

    if dry_run:
        logger.info("Would copy tree %s -> %s", str(s), str(d))
        return []

    written: List[Path] = []
    d.mkdir(parents=True, exist_ok=True)
    for item in s.rglob("*"):
        rel = item.relative_to(s)
        out = d / rel
        if item.is_dir():
            out.mkdir(parents=True, exist_ok=True)
        else:
            out.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(item, out)
        written.append(out)
    return written


def chown_tree(root: str, user: str, *, dry_run: bool = False) -> None:
    r = Path(root)
    if dry_run:
        logger.info("Would chown -R %s:%s %s", user, user, str(r))
        return
    shutil.chown(r, user=user, group=user)
    for p in r.rglob("*"):
        shutil.chown(p, user=user, group=user)


def make_executable(paths: Iterable[str], user: str, *, dry_run: bool = False) -> List[str]:
    """chmod +x (and chown) the paths that exist; missing ones are skipped."""

    done: List[str] = []
    for f in paths:
        p = Path(f)
        if not p.is_file():
            continue
        if dry_run:
            logger.info("Would chmod +x %s", f)
        else:
            mode = p.stat().st_mode
            os.chmod(p, mode | 0o111)
            shutil.chown(p, user=user, group=user)
        done.append(f)
    return done


def install_file(path: str, contents: str, *, mode: int = 0o644, dry_run: bool = False) -> None:
    """Write a file, creating parent directories (like `install -D`)."""

    p = Path(path)
    if dry_run:
        logger.info("Would write %s", str(p))
        return
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(contents, encoding="utf-8")
    os.chmod(p, mode)

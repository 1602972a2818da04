from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path
from typing import Any, Dict, List

from ..lib.assets import chown_tree, copy_tree, make_executable
from ..pipeline import SetupCtx
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class CopyDotfilesStep:
    step_id = "70_copy_dotfiles"
    title = "Copying dotfiles"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg
        src = Path(cfg.dotfiles_dir)
        home = Path(cfg.real_home)
        config_dir = home / ".config"
        copied: List[str] = []

        logger.info("Copying dotfiles to %s", home)
        if ctx.dry_run:
            logger.info("Would create %s", config_dir)
        else:
            config_dir.mkdir(parents=True, exist_ok=True)
            os.chmod(config_dir, 0o755)

        if (src / ".config").is_dir():
            copy_tree(str(src / ".config"), str(config_dir), dry_run=ctx.dry_run)
            chown_tree(str(config_dir), cfg.real_user, dry_run=ctx.dry_run)
            copied.append(".config")
        elif not src.is_dir():
            logger.info("Dotfiles directory %s not found; nothing to copy", src)

        xinitrc = src / ".xinitrc"
        if xinitrc.is_file():
            target = home / ".xinitrc"
            if ctx.dry_run:
                logger.info("Would copy %s -> %s", xinitrc, target)
            else:
                shutil.copyfile(xinitrc, target)
                shutil.chown(target, user=cfg.real_user, group=cfg.real_user)
            copied.append(".xinitrc")

        scripts = make_executable(
            [str(home / rel) for rel in cfg.executables],
            cfg.real_user,
            dry_run=ctx.dry_run,
        )
        record_decision(state, "dotfiles", {"copied": copied, "executables": scripts})
        return state

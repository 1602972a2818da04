from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.assets import install_file
from ..lib.command import Policy, have_cmd, run_cmd
from ..lib.pkg import aur_install, pacman_is_installed, pacman_remove
from ..pipeline import SetupCtx
from ..state_store import record_decision, record_ignored

logger = logging.getLogger(__name__)


class InstallT2KernelStep:
    step_id = "50_install_t2_kernel"
    title = "Installing T2 kernel, headers, firmware and audio config (AUR)"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg

        aur_install(cfg.real_user, cfg.aur_packages, dry_run=ctx.dry_run)

        if cfg.modules:
            install_file(cfg.modules_conf, "\n".join(cfg.modules) + "\n", mode=0o644, dry_run=ctx.dry_run)
            logger.info("Early module list written: %s", cfg.modules_conf)

        # The alternate kernel is installed by now, so dropping the stock one keeps the system bootable.
        removed: List[str] = []
        for pkg in cfg.remove_packages:
            if not pacman_is_installed(pkg, dry_run=ctx.dry_run):
                continue
            logger.info("Removing stock package %r", pkg)
            if pacman_remove(pkg, dry_run=ctx.dry_run):
                removed.append(pkg)
            else:
                record_ignored(state, self.step_id, f"pacman -Rns {pkg}")
        record_decision(state, "removed_packages", removed)

        if ctx.dry_run or have_cmd("mkinitcpio"):
            logger.info("Running mkinitcpio -P (safety)")
            r = run_cmd(["mkinitcpio", "-P"], policy=Policy.BEST_EFFORT, dry_run=ctx.dry_run)
            if not r.ok:
                record_ignored(state, self.step_id, "mkinitcpio -P")

        record_decision(state, "kernel", f"{cfg.kernel_base}-{cfg.alt_suffix}")
        return state

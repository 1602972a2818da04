from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.bootloader import has_systemd_boot, patch_entries, regenerate_grub
from ..lib.command import have_cmd
from ..pipeline import SetupCtx
from ..state_store import record_decision, record_ignored

logger = logging.getLogger(__name__)


class PatchBootloaderStep:
    step_id = "60_patch_bootloader"
    title = "Pointing the bootloader at the T2 kernel"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg

        if has_systemd_boot(cfg.boot_dir):
            logger.info("Patching systemd-boot entries to use %s-%s", cfg.kernel_base, cfg.alt_suffix)
            ucode_image = cfg.ucode_image
            if ucode_image and cfg.ucode_loader_path is None:
                logger.warning("Microcode image %s is outside %s; not adding it to boot entries", ucode_image, cfg.boot_dir)
                ucode_image = None
            report = patch_entries(
                cfg.entries_dir,
                cfg.alt_suffix,
                ucode_image,
                ucode_loader_path=cfg.ucode_loader_path,
                base=cfg.kernel_base,
                dry_run=ctx.dry_run,
            )
            logger.info(
                "Boot entries: inspected=%d modified=%d errors=%d",
                report.inspected,
                report.modified_count,
                len(report.errors),
            )
            for path in report.errors:
                record_ignored(state, self.step_id, f"patch {path}")
            record_decision(state, "bootloader", "systemd-boot")
            record_decision(state, "boot_entries", report.to_dict())
        elif have_cmd("grub-mkconfig"):
            logger.info("Regenerating GRUB config")
            regenerate_grub(cfg.grub_cfg, dry_run=ctx.dry_run)
            record_decision(state, "bootloader", "grub")
        else:
            logger.warning("Bootloader not detected; skip patching. Verify manually.")
            record_decision(state, "bootloader", None)

        return state

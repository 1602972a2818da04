from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    boot_dir: str = "/boot"
    grub_cfg: str = "/boot/grub/grub.cfg"
    modules_load_dir: str = "/etc/modules-load.d"
    state_default: str = "/var/lib/t2-postinstall/state.json"
    log_default: str = "/var/log/t2-postinstall.log"


PATHS = Paths()

from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass, replace
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple

import yaml

from .errors import ConfigError, SetupError
from .lib.env import PATHS

logger = logging.getLogger(__name__)


DEFAULT_PKG_FILE = "packages.txt"
DEFAULT_DOTFILES_DIR = "dotfiles"

T2_AUR_PACKAGES = (
    "linux-t2",
    "linux-t2-headers",
    "apple-bcm-firmware",
    "apple-t2-audio-config",
)
T2_AUDIO_MODULES = (
    "apple_bce",
    "snd_hda_intel",
    "snd_soc_avs",
    "snd_sof_pci_intel_cnl",
)


@dataclass(frozen=True)
class SetupConfig:
    """Everything the steps need, resolved once at startup."""

    real_user: str
    real_home: str
    pkg_file: str = DEFAULT_PKG_FILE
    dotfiles_dir: str = DEFAULT_DOTFILES_DIR

    kernel_base: str = "linux"
    alt_suffix: str = "t2"
    aur_packages: Tuple[str, ...] = T2_AUR_PACKAGES
    remove_packages: Tuple[str, ...] = ("linux", "linux-headers")

    boot_dir: str = PATHS.boot_dir
    grub_cfg: str = PATHS.grub_cfg
    ucode_image: Optional[str] = "/boot/intel-ucode.img"

    modules: Tuple[str, ...] = T2_AUDIO_MODULES
    modules_conf: str = f"{PATHS.modules_load_dir}/t2-audio.conf"

    services: Tuple[str, ...] = ("NetworkManager", "sshd", "ufw", "fail2ban")
    user_services: Tuple[str, ...] = ("pipewire", "pipewire-pulse", "wireplumber")
    firewall_enabled: bool = True
    firewall_allow: Tuple[str, ...] = ("OpenSSH|22/tcp",)

    executables: Tuple[str, ...] = (
        ".config/scripts/set-resolution.sh",
        ".config/polybar/launch.sh",
    )

    dry_run: bool = False

    @property
    def entries_dir(self) -> str:
        return str(Path(self.boot_dir) / "loader/entries")

    @property
    def ucode_loader_path(self) -> Optional[str]:
        """The microcode image path as seen by the boot loader (relative to the ESP/boot mount)."""
        if not self.ucode_image:
            return None
        img = PurePosixPath(self.ucode_image)
        try:
            return "/" + str(img.relative_to(self.boot_dir))
        except ValueError:
            # Not on the boot partition, so the loader cannot read it.
            return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "real_user": self.real_user,
            "real_home": self.real_home,
            "pkg_file": self.pkg_file,
            "dotfiles_dir": self.dotfiles_dir,
            "kernel": f"{self.kernel_base}-{self.alt_suffix}",
            "boot_dir": self.boot_dir,
            "dry_run": self.dry_run,
        }


def detect_real_user(
    env: Mapping[str, str],
    passwd: Optional[Iterable[Any]] = None,
) -> Optional[str]:
    """SUDO_USER, then REAL_USER, then the first regular account (uid >= 1000)."""

    for key in ("SUDO_USER", "REAL_USER"):
        user = (env.get(key) or "").strip()
        if user and user != "root":
            return user

    entries = pwd.getpwall() if passwd is None else passwd
    for p in entries:
        if p.pw_uid >= 1000 and p.pw_name != "nobody":
            return p.pw_name
    return None


def home_of(user: str) -> str:
    try:
        return pwd.getpwnam(user).pw_dir
    except KeyError:
        return f"/home/{user}"


def load_config_file(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {path}")
    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError(f"Config file must be YAML: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")
    return raw


def _tuple(v: Any, key: str) -> Tuple[str, ...]:
    if not isinstance(v, (list, tuple)):
        raise ConfigError(f"config {key} must be a list")
    return tuple(str(x) for x in v)


def apply_overrides(cfg: SetupConfig, raw: Mapping[str, Any]) -> SetupConfig:
    """Overlay the sections of a YAML config file onto cfg."""

    changes: Dict[str, Any] = {}

    kernel = raw.get("kernel") or {}
    if "base" in kernel:
        changes["kernel_base"] = str(kernel["base"])
    if "alt_suffix" in kernel:
        changes["alt_suffix"] = str(kernel["alt_suffix"])
    if "aur_packages" in kernel:
        changes["aur_packages"] = _tuple(kernel["aur_packages"], "kernel.aur_packages")
    if "remove_packages" in kernel:
        changes["remove_packages"] = _tuple(kernel["remove_packages"], "kernel.remove_packages")

    boot = raw.get("boot") or {}
    if "mount" in boot:
        changes["boot_dir"] = str(boot["mount"])
    if "grub_cfg" in boot:
        changes["grub_cfg"] = str(boot["grub_cfg"])
    if "ucode_image" in boot:
        changes["ucode_image"] = str(boot["ucode_image"]) if boot["ucode_image"] else None

    if "modules" in raw:
        changes["modules"] = _tuple(raw["modules"], "modules")
    if "services" in raw:
        changes["services"] = _tuple(raw["services"], "services")
    if "user_services" in raw:
        changes["user_services"] = _tuple(raw["user_services"], "user_services")

    firewall = raw.get("firewall") or {}
    if "enabled" in firewall:
        changes["firewall_enabled"] = bool(firewall["enabled"])
    if "allow" in firewall:
        changes["firewall_allow"] = _tuple(firewall["allow"], "firewall.allow")

    dotfiles = raw.get("dotfiles") or {}
    if "executables" in dotfiles:
        changes["executables"] = _tuple(dotfiles["executables"], "dotfiles.executables")

    return replace(cfg, **changes)


def resolve_config(
    env: Optional[Mapping[str, str]] = None,
    *,
    config_path: Optional[str] = None,
    dry_run: bool = False,
    passwd: Optional[Iterable[Any]] = None,
) -> SetupConfig:
    env = os.environ if env is None else env

    user = detect_real_user(env, passwd)
    if not user:
        raise SetupError("Could not determine the real (non-root) user; set SUDO_USER or REAL_USER")

    cfg = SetupConfig(
        real_user=user,
        real_home=home_of(user),
        pkg_file=env.get("PKG_FILE") or DEFAULT_PKG_FILE,
        dotfiles_dir=env.get("DOTFILES_DIR") or DEFAULT_DOTFILES_DIR,
        dry_run=dry_run,
    )
    if config_path:
        cfg = apply_overrides(cfg, load_config_file(config_path))

    logger.info("Resolved config: %s", cfg.to_dict())
    return cfg

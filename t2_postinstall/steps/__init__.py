from .step_10_enable_ntp import EnableNtpStep
from .step_20_sync_upgrade import SyncUpgradeStep
from .step_30_install_packages import InstallPackagesStep
from .step_40_bootstrap_aur_helper import BootstrapAurHelperStep
from .step_50_install_t2_kernel import InstallT2KernelStep
from .step_60_patch_bootloader import PatchBootloaderStep
from .step_70_copy_dotfiles import CopyDotfilesStep
from .step_80_enable_services import EnableServicesStep
from .step_90_summary import SummaryStep

__all__ = [
    "EnableNtpStep",
    "SyncUpgradeStep",
    "InstallPackagesStep",
    "BootstrapAurHelperStep",
    "InstallT2KernelStep",
    "PatchBootloaderStep",
    "CopyDotfilesStep",
    "EnableServicesStep",
    "SummaryStep",
]

from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.manifests import load_package_list
from ..lib.pkg import pacman_install
from ..pipeline import SetupCtx
from ..state_store import record_decision

logger = logging.getLogger(__name__)


class InstallPackagesStep:
    step_id = "30_install_packages"
    title = "Installing Arch packages from the package manifest"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        packages = load_package_list(ctx.cfg.pkg_file)
        logger.info("%d packages listed in %s", len(packages), ctx.cfg.pkg_file)

        pacman_install(packages, dry_run=ctx.dry_run)
        record_decision(state, "packages_installed", len(packages))
        return state

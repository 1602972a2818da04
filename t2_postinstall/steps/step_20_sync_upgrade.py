from __future__ import annotations

from typing import Any, Dict

from ..lib.pkg import pacman_sync_upgrade
from ..pipeline import SetupCtx


class SyncUpgradeStep:
    step_id = "20_sync_upgrade"
    title = "Refreshing package databases & upgrading"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        pacman_sync_upgrade(dry_run=ctx.dry_run)
        return state

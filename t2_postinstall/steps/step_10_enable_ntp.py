from __future__ import annotations

from typing import Any, Dict

from ..lib.services import enable_ntp
from ..pipeline import SetupCtx
from ..state_store import record_ignored


class EnableNtpStep:
    step_id = "10_enable_ntp"
    title = "Enabling NTP time sync"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        if not enable_ntp(dry_run=ctx.dry_run):
            record_ignored(state, self.step_id, "timedatectl set-ntp true")
        return state

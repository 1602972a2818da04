from __future__ import annotations

from typing import Any, Dict

from ..lib.aur import bootstrap_yay
from ..pipeline import SetupCtx
from ..state_store import record_decision


class BootstrapAurHelperStep:
    step_id = "40_bootstrap_aur_helper"
    title = "Bootstrapping yay (AUR helper)"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        built = bootstrap_yay(ctx.cfg.real_user, dry_run=ctx.dry_run)
        record_decision(state, "yay_bootstrapped", built)
        return state

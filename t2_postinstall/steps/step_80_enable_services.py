from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.services import configure_ufw, enable_linger, enable_units, enable_user_units
from ..pipeline import SetupCtx
from ..state_store import record_decision, record_ignored

logger = logging.getLogger(__name__)


class EnableServicesStep:
    step_id = "80_enable_services"
    title = "Enabling services and firewall defaults"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg

        logger.info("Enabling services: %s", ", ".join(cfg.services))
        for unit in enable_units(cfg.services, dry_run=ctx.dry_run):
            record_ignored(state, self.step_id, f"systemctl enable {unit}")

        firewall = False
        if cfg.firewall_enabled:
            firewall = configure_ufw(cfg.firewall_allow, dry_run=ctx.dry_run)
        record_decision(state, "firewall_configured", firewall)

        # PipeWire runs as a user service; lingering keeps it up across logouts.
        if not enable_linger(cfg.real_user, dry_run=ctx.dry_run):
            record_ignored(state, self.step_id, f"loginctl enable-linger {cfg.real_user}")
        for action, ok in enable_user_units(cfg.real_user, cfg.user_services, dry_run=ctx.dry_run).items():
            if not ok:
                record_ignored(state, self.step_id, f"systemctl --user {action}")

        return state

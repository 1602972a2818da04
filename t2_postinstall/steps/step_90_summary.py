from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..pipeline import SetupCtx

logger = logging.getLogger(__name__)


def summary_lines(kernel: str, ignored: List[Dict[str, Any]]) -> List[str]:
    lines = [
        "Setup complete.",
        f"Next: reboot to use the {kernel} kernel.",
        "",
        "Quick checks after reboot:",
        "  uname -r                                   # should show *-t2",
        "  aplay -l                                   # AppleT2x1 + HDA Intel PCH",
        "  systemctl --user status pipewire-pulse     # running",
        "  pactl info                                 # Server: PulseAudio (on PipeWire ...)",
        "  ufw status                                 # active",
    ]
    if ignored:
        lines += ["", "Skipped after failure (best-effort):"]
        lines += [f"  [{i.get('step')}] {i.get('what')}" for i in ignored]
    return lines


class SummaryStep:
    step_id = "90_summary"
    title = "Summary"

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg
        ignored = (state.get("execution") or {}).get("ignored") or []
        for line in summary_lines(f"{cfg.kernel_base}-{cfg.alt_suffix}", ignored):
            print(line)
        logger.info("Decisions: %s", (state.get("execution") or {}).get("decisions") or {})
        return state

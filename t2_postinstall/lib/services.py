from __future__ import annotations

import logging
from typing import Dict, List, Sequence

from .command import Policy, have_cmd, run_as_user, run_cmd

logger = logging.getLogger(__name__)


def enable_ntp(*, dry_run: bool = False) -> bool:
    return run_cmd(["timedatectl", "set-ntp", "true"], policy=Policy.BEST_EFFORT, dry_run=dry_run).ok


def enable_units(units: Sequence[str], *, dry_run: bool = False) -> List[str]:
    """systemctl enable each unit; returns the units that failed."""

    failed: List[str] = []
    for unit in units:
        r = run_cmd(["systemctl", "enable", unit], policy=Policy.BEST_EFFORT, dry_run=dry_run)
        if not r.ok:
            failed.append(unit)
    return failed


def configure_ufw(allow: Sequence[str], *, dry_run: bool = False) -> bool:
    """Default deny incoming, allow outgoing, open the given rules, enable.

    Each allow entry may carry a fallback as "rule|fallback" (e.g. "OpenSSH|22/tcp").
    Returns False when ufw is not installed.
    """

    if not dry_run and not have_cmd("ufw"):
        logger.info("ufw not installed; skipping firewall defaults")
        return False

    run_cmd(["ufw", "--force", "default", "deny", "incoming"], dry_run=dry_run)
    run_cmd(["ufw", "--force", "default", "allow", "outgoing"], dry_run=dry_run)
    for spec in allow:
        rule, _, fallback = spec.partition("|")
        if fallback:
            r = run_cmd(["ufw", "--force", "allow", rule], policy=Policy.BEST_EFFORT, dry_run=dry_run)
            if not r.ok:
                run_cmd(["ufw", "--force", "allow", fallback], dry_run=dry_run)
        else:
            run_cmd(["ufw", "--force", "allow", rule], dry_run=dry_run)
    run_cmd(["ufw", "--force", "enable"], dry_run=dry_run)
    return True


def enable_linger(user: str, *, dry_run: bool = False) -> bool:
    if not dry_run and not have_cmd("loginctl"):
        return False
    return run_cmd(["loginctl", "enable-linger", user], policy=Policy.BEST_EFFORT, dry_run=dry_run).ok


def enable_user_units(user: str, units: Sequence[str], *, dry_run: bool = False) -> Dict[str, bool]:
    """Enable and start user units (e.g. PipeWire) for the given user."""

    if not units:
        return {}
    results: Dict[str, bool] = {}
    for action in ("enable", "start"):
        r = run_as_user(
            user,
            ["systemctl", "--user", action, *units],
            policy=Policy.BEST_EFFORT,
            dry_run=dry_run,
        )
        results[action] = r.ok
    return results

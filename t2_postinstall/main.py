from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Any, Dict, Optional

from .config import resolve_config
from .errors import EXIT_COMMAND_FAILED, EXIT_OK, NotRootError, SetupError
from .lib.env import PATHS
from .logging_utils import DEFAULT_LOG_PATH, configure_logging
from .pipeline import SetupCtx, run_pipeline
from .state_store import ensure_defaults, load_state, save_state
from .steps import (
    BootstrapAurHelperStep,
    CopyDotfilesStep,
    EnableNtpStep,
    EnableServicesStep,
    InstallPackagesStep,
    InstallT2KernelStep,
    PatchBootloaderStep,
    SummaryStep,
    SyncUpgradeStep,
)

logger = logging.getLogger(__name__)


DEFAULT_STATE_PATH = PATHS.state_default


def build_steps():
    return [
        EnableNtpStep(),
        SyncUpgradeStep(),
        InstallPackagesStep(),
        BootstrapAurHelperStep(),
        InstallT2KernelStep(),
        PatchBootloaderStep(),
        CopyDotfilesStep(),
        EnableServicesStep(),
        SummaryStep(),
    ]


def require_root() -> None:
    if os.geteuid() != 0:
        raise NotRootError()


def run(
    *,
    state_path: str = DEFAULT_STATE_PATH,
    config_path: Optional[str] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
    dry_run: bool = False,
) -> Dict[str, Any]:
    """Run the post-install pipeline, persisting state for resume."""

    cfg = resolve_config(config_path=config_path, dry_run=dry_run)
    ctx = SetupCtx(cfg=cfg)

    state = ensure_defaults(load_state(state_path))
    state["config"] = cfg.to_dict()

    try:
        result = run_pipeline(
            ctx=ctx,
            state=state,
            steps=build_steps(),
            start_at=start_at,
            stop_after=stop_after,
            force=force,
        )
        state = result.state
        state.setdefault("execution", {}).setdefault("summary", {})["ran_steps"] = result.ran_steps
        state.setdefault("execution", {}).setdefault("summary", {})["skipped_steps"] = result.skipped_steps
        return state
    except Exception as e:
        logger.exception("Setup failed")
        state.setdefault("execution", {}).setdefault("errors", []).append(
            {
                "step": (state.get("execution") or {}).get("current_step"),
                "error": str(e),
            }
        )
        raise
    finally:
        if not dry_run:
            save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(
        prog="t2-postinstall",
        description="Post-install setup for Arch Linux on a T2 Mac (run as root).",
    )
    p.add_argument("--config", default=None, help="Optional YAML config overriding the defaults")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Path to run state (json|yaml)")
    p.add_argument("--log", default=DEFAULT_LOG_PATH, help="Path to log file")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 60_patch_bootloader)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--force", action="store_true", help="Re-run steps even if marked completed")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    p.add_argument("-v", "--verbose", action="store_true", help="Also log command output")

    args = p.parse_args(argv)

    configure_logging(log_path=args.log, level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        if not args.dry_run:
            require_root()
        run(
            state_path=args.state,
            config_path=args.config,
            start_at=args.start_at,
            stop_after=args.stop_after,
            force=bool(args.force),
            dry_run=bool(args.dry_run),
        )
    except SetupError as e:
        print(str(e), file=sys.stderr)
        return e.exit_code
    except Exception as e:
        logger.exception("Unexpected error")
        print(f"Setup failed: {e}", file=sys.stderr)
        return EXIT_COMMAND_FAILED
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())

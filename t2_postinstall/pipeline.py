from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .config import SetupConfig
from .errors import ConfigError
from .state_store import clear_ignored, is_step_completed, mark_step_completed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetupCtx:
    cfg: SetupConfig

    @property
    def dry_run(self) -> bool:
        return self.cfg.dry_run


class Step(Protocol):
    """A single idempotent step."""

    step_id: str
    title: str

    def run(self, ctx: SetupCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]


def run_pipeline(
    *,
    ctx: SetupCtx,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    force: bool = False,
) -> PipelineResult:
    """Run steps in order with resume/idempotency semantics."""

    known = {s.step_id for s in steps}
    for name, value in (("start_at", start_at), ("stop_after", stop_after)):
        if value is not None and value not in known:
            raise ConfigError(f"Unknown step for {name}: {value}")

    ran: List[str] = []
    skipped: List[str] = []

    started = start_at is None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                continue

        state.setdefault("execution", {})["current_step"] = step.step_id

        if (not force) and is_step_completed(state, step.step_id):
            logger.info("Skipping step %s (already completed)", step.step_id)
            skipped.append(step.step_id)
        else:
            logger.info("==> %s", step.title)
            clear_ignored(state, step.step_id)
            state = step.run(ctx, state)
            if not ctx.dry_run:
                mark_step_completed(state, step.step_id)
            ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    state.setdefault("execution", {})["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)

from __future__ import annotations

import enum
import logging
import os
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

from ..errors import CommandError

logger = logging.getLogger(__name__)


class Policy(enum.Enum):
    """How a non-zero exit status is treated."""

    REQUIRED = "required"
    BEST_EFFORT = "best_effort"
    # The exit status is the answer (e.g. pacman -Qi); non-zero is not a failure.
    QUERY = "query"


class Outcome(enum.Enum):
    """Result of a command that returned; a fatal failure raises CommandError instead."""

    OK = "ok"
    IGNORED = "ignored"


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str
    outcome: Outcome = Outcome.OK

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def have_cmd(name: str) -> bool:
    return shutil.which(name) is not None


def run_cmd(
    argv: Sequence[str],
    *,
    policy: Policy = Policy.REQUIRED,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command with consistent logging and failure classification.

    - Always logs the command.
    - REQUIRED commands raise CommandError on a non-zero exit.
    - BEST_EFFORT commands return an IGNORED result and log a warning.
    - QUERY commands return an IGNORED result without a warning.
    - A missing executable is reported as return code 127.
    - dry_run logs but does not execute.
    """

    argv_list = list(argv)
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    try:
        p = subprocess.run(
            argv_list,
            input=input_text,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
            env=dict(os.environ, **(env or {})),
        )
        returncode, stdout, stderr = p.returncode, p.stdout or "", p.stderr or ""
    except FileNotFoundError as e:
        returncode, stdout, stderr = 127, "", str(e)

    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())

    if returncode == 0:
        return CmdResult(argv=argv_list, returncode=0, stdout=stdout, stderr=stderr)

    if policy is Policy.QUERY:
        logger.debug("Query returned %s: %s", returncode, fmt_argv(argv_list))
    elif policy is Policy.BEST_EFFORT:
        logger.warning("Ignoring failure (%s): %s", returncode, fmt_argv(argv_list))

    if policy is not Policy.REQUIRED:
        return CmdResult(
            argv=argv_list,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            outcome=Outcome.IGNORED,
        )

    raise CommandError(argv_list, returncode, stderr)


def run_as_user(
    user: str,
    argv: Sequence[str],
    *,
    policy: Policy = Policy.REQUIRED,
    cwd: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run a command as the unprivileged user via sudo."""

    return run_cmd(["sudo", "-u", user, *argv], policy=policy, cwd=cwd, dry_run=dry_run)

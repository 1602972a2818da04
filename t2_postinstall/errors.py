from __future__ import annotations

from typing import Sequence

EXIT_OK = 0
EXIT_NOT_ROOT = 1
EXIT_MISSING_MANIFEST = 2
EXIT_COMMAND_FAILED = 3


class SetupError(RuntimeError):
    """Fatal error that aborts the run with a specific exit code."""

    exit_code = EXIT_COMMAND_FAILED


class ConfigError(SetupError):
    """Bad command-line or config-file input."""


class NotRootError(SetupError):
    exit_code = EXIT_NOT_ROOT

    def __init__(self) -> None:
        super().__init__("This script must run as root (archinstall post-install).")


class MissingManifestError(SetupError):
    exit_code = EXIT_MISSING_MANIFEST

    def __init__(self, path: str) -> None:
        super().__init__(f"Missing package manifest: {path}")
        self.path = path


class CommandError(SetupError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = "") -> None:
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        if stderr.strip():
            msg += f"\n{stderr.strip()}"
        super().__init__(msg)

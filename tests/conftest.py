from __future__ import annotations

import subprocess
from typing import Dict, List

import pytest

from t2_postinstall.config import SetupConfig
from t2_postinstall.pipeline import SetupCtx
from t2_postinstall.state_store import ensure_defaults


class FakeRunner:
    """Stands in for subprocess.run; records argv and returns canned exit codes."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.returncodes: Dict[str, int] = {}

    def fail(self, prefix: str, returncode: int = 1) -> None:
        self.returncodes[prefix] = returncode

    def __call__(self, argv, **kwargs):
        argv = list(argv)
        self.calls.append(argv)
        joined = " ".join(argv)
        rc = 0
        for prefix, code in self.returncodes.items():
            if joined.startswith(prefix):
                rc = code
        return subprocess.CompletedProcess(argv, rc, stdout="", stderr="boom" if rc else "")

    def joined(self) -> List[str]:
        return [" ".join(c) for c in self.calls]


@pytest.fixture
def fake_run(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr("t2_postinstall.lib.command.subprocess.run", runner)
    return runner


@pytest.fixture
def cfg(tmp_path) -> SetupConfig:
    boot = tmp_path / "boot"
    (boot / "loader/entries").mkdir(parents=True)
    return SetupConfig(
        real_user="alice",
        real_home=str(tmp_path / "home/alice"),
        pkg_file=str(tmp_path / "packages.txt"),
        dotfiles_dir=str(tmp_path / "dotfiles"),
        boot_dir=str(boot),
        ucode_image=str(boot / "intel-ucode.img"),
        modules_conf=str(tmp_path / "etc/modules-load.d/t2-audio.conf"),
    )


@pytest.fixture
def ctx(cfg) -> SetupCtx:
    return SetupCtx(cfg=cfg)


@pytest.fixture
def state():
    return ensure_defaults({})

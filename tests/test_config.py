from __future__ import annotations

from types import SimpleNamespace

import pytest

from t2_postinstall.config import (
    SetupConfig,
    apply_overrides,
    detect_real_user,
    load_config_file,
    resolve_config,
)
from t2_postinstall.errors import ConfigError, SetupError

PASSWD = [
    SimpleNamespace(pw_name="root", pw_uid=0, pw_dir="/root"),
    SimpleNamespace(pw_name="nobody", pw_uid=65534, pw_dir="/"),
    SimpleNamespace(pw_name="bob", pw_uid=1000, pw_dir="/home/bob"),
    SimpleNamespace(pw_name="carol", pw_uid=1001, pw_dir="/home/carol"),
]


def test_sudo_user_wins():
    assert detect_real_user({"SUDO_USER": "alice", "REAL_USER": "zed"}, PASSWD) == "alice"


def test_real_user_env_used_without_sudo():
    assert detect_real_user({"REAL_USER": "zed"}, PASSWD) == "zed"


def test_first_regular_account_is_used_and_nobody_skipped():
    passwd = [PASSWD[0], PASSWD[1], PASSWD[3], PASSWD[2]]
    assert detect_real_user({}, passwd) == "carol"


def test_sudo_user_root_falls_through():
    assert detect_real_user({"SUDO_USER": "root"}, PASSWD) == "bob"


def test_no_user_found():
    assert detect_real_user({}, PASSWD[:2]) is None
    with pytest.raises(SetupError):
        resolve_config({}, passwd=PASSWD[:2])


def test_resolve_config_reads_env():
    cfg = resolve_config(
        {"SUDO_USER": "t2-test-user-that-does-not-exist", "PKG_FILE": "/tmp/p.txt", "DOTFILES_DIR": "/tmp/dots"},
        passwd=PASSWD,
        dry_run=True,
    )
    assert cfg.real_user == "t2-test-user-that-does-not-exist"
    assert cfg.real_home == "/home/t2-test-user-that-does-not-exist"
    assert cfg.pkg_file == "/tmp/p.txt"
    assert cfg.dotfiles_dir == "/tmp/dots"
    assert cfg.dry_run is True


def test_defaults():
    cfg = resolve_config({"SUDO_USER": "t2-test-user-that-does-not-exist"}, passwd=PASSWD)
    assert cfg.pkg_file == "packages.txt"
    assert cfg.dotfiles_dir == "dotfiles"
    assert cfg.entries_dir == "/boot/loader/entries"
    assert cfg.ucode_loader_path == "/intel-ucode.img"
    assert "linux-t2" in cfg.aur_packages


def test_ucode_outside_boot_dir_has_no_loader_path():
    cfg = SetupConfig(real_user="a", real_home="/home/a", boot_dir="/efi")
    assert cfg.ucode_image == "/boot/intel-ucode.img"
    assert cfg.ucode_loader_path is None


def test_yaml_overrides(tmp_path):
    p = tmp_path / "config.yaml"
    p.write_text(
        "kernel:\n"
        "  alt_suffix: custom\n"
        "boot:\n"
        "  mount: /efi\n"
        "  ucode_image: null\n"
        "services: [sshd]\n"
        "firewall:\n"
        "  enabled: false\n",
        encoding="utf-8",
    )
    cfg = apply_overrides(SetupConfig(real_user="a", real_home="/home/a"), load_config_file(str(p)))

    assert cfg.alt_suffix == "custom"
    assert cfg.entries_dir == "/efi/loader/entries"
    assert cfg.ucode_image is None
    assert cfg.ucode_loader_path is None
    assert cfg.services == ("sshd",)
    assert cfg.firewall_enabled is False


def test_config_file_must_be_yaml_mapping(tmp_path):
    p = tmp_path / "config.json"
    p.write_text("{}", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config_file(str(p))

    y = tmp_path / "config.yaml"
    y.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config_file(str(y))


def test_list_overrides_must_be_lists():
    with pytest.raises(ConfigError):
        apply_overrides(SetupConfig(real_user="a", real_home="/home/a"), {"services": "sshd"})


def test_missing_or_broken_config_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config_file(str(tmp_path / "nope.yaml"))

    bad = tmp_path / "bad.yaml"
    bad.write_text("kernel: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config_file(str(bad))

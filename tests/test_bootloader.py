from __future__ import annotations

from pathlib import Path

import pytest

from t2_postinstall.lib import bootloader
from t2_postinstall.lib.bootloader import (
    ensure_ucode_first,
    has_systemd_boot,
    patch_entries,
    regenerate_grub,
)

STOCK_ENTRY = (
    "title   Arch Linux\n"
    "linux   /vmlinuz-linux\n"
    "initrd  /initramfs-linux.img\n"
    "options root=PARTUUID=1234 rw\n"
)

FALLBACK_ENTRY = (
    "title   Arch Linux (fallback initramfs)\n"
    "linux   /vmlinuz-linux\n"
    "initrd  /initramfs-linux-fallback.img\n"
    "options root=PARTUUID=1234 rw\n"
)


@pytest.fixture
def entries(tmp_path) -> Path:
    d = tmp_path / "entries"
    d.mkdir()
    (d / "arch.conf").write_text(STOCK_ENTRY, encoding="utf-8")
    (d / "arch-fallback.conf").write_text(FALLBACK_ENTRY, encoding="utf-8")
    return d


@pytest.fixture
def ucode(tmp_path) -> Path:
    p = tmp_path / "intel-ucode.img"
    p.write_bytes(b"\x00")
    return p


def _lines(p: Path):
    return p.read_text(encoding="utf-8").splitlines()


def test_kernel_and_initrd_paths_rewritten(entries):
    report = patch_entries(entries, "t2")

    assert report.inspected == 2
    assert report.modified_count == 2
    assert report.errors == {}
    assert _lines(entries / "arch.conf") == [
        "title   Arch Linux",
        "linux   /vmlinuz-linux-t2",
        "initrd  /initramfs-linux-t2.img",
        "options root=PARTUUID=1234 rw",
    ]
    assert "initrd  /initramfs-linux-t2-fallback.img" in _lines(entries / "arch-fallback.conf")


def test_second_pass_is_a_no_op(entries, ucode):
    patch_entries(entries, "t2", ucode, ucode_loader_path="/intel-ucode.img")
    first = (entries / "arch.conf").read_text(encoding="utf-8")

    report = patch_entries(entries, "t2", ucode, ucode_loader_path="/intel-ucode.img")

    assert report.inspected == 2
    assert report.modified == []
    assert (entries / "arch.conf").read_text(encoding="utf-8") == first
    assert "linux   /vmlinuz-linux-t2-t2" not in first


def test_ucode_inserted_once_before_other_initrd_lines(entries, ucode):
    patch_entries(entries, "t2", ucode, ucode_loader_path="/intel-ucode.img")

    lines = _lines(entries / "arch.conf")
    initrd = [i for i, l in enumerate(lines) if l.startswith("initrd")]
    ucode_lines = [i for i, l in enumerate(lines) if "/intel-ucode.img" in l]
    assert len(ucode_lines) == 1
    assert ucode_lines[0] == initrd[0]
    assert lines[ucode_lines[0]] == "initrd  /intel-ucode.img"


def test_ucode_already_referenced_is_not_duplicated(tmp_path, ucode):
    d = tmp_path / "entries"
    d.mkdir()
    text = (
        "title   Arch Linux\n"
        "linux   /vmlinuz-linux-t2\n"
        "initrd  /intel-ucode.img\n"
        "initrd  /initramfs-linux-t2.img\n"
    )
    (d / "arch.conf").write_text(text, encoding="utf-8")

    report = patch_entries(d, "t2", ucode, ucode_loader_path="/intel-ucode.img")

    assert report.modified == []
    assert (d / "arch.conf").read_text(encoding="utf-8") == text


def test_missing_ucode_image_is_not_inserted(entries, tmp_path):
    patch_entries(entries, "t2", tmp_path / "missing-ucode.img")
    assert not any("ucode" in l for l in _lines(entries / "arch.conf"))


def test_ucode_line_uses_host_path_without_loader_path(entries, ucode):
    patch_entries(entries, "t2", ucode)
    assert f"initrd  {ucode}" in _lines(entries / "arch.conf")


def test_unrelated_kernel_names_are_inspected_but_untouched(tmp_path):
    d = tmp_path / "entries"
    d.mkdir()
    text = "title LTS\nlinux /vmlinuz-linux-lts\ninitrd /initramfs-linux-lts.img\n"
    (d / "lts.conf").write_text(text, encoding="utf-8")

    report = patch_entries(d, "t2")

    assert report.inspected == 1
    assert report.modified == []
    assert (d / "lts.conf").read_text(encoding="utf-8") == text


@pytest.mark.parametrize("make_dir", [True, False])
def test_empty_or_absent_directory_reports_no_entries(tmp_path, make_dir):
    d = tmp_path / "entries"
    if make_dir:
        d.mkdir()

    report = patch_entries(d, "t2")

    assert report.no_entries is True
    assert report.inspected == 0
    assert report.modified_count == 0


def test_non_conf_files_are_ignored(entries):
    (entries / "README").write_text("linux /vmlinuz-linux\n", encoding="utf-8")
    report = patch_entries(entries, "t2")
    assert report.inspected == 2
    assert (entries / "README").read_text(encoding="utf-8") == "linux /vmlinuz-linux\n"


def test_write_failure_is_recorded_and_pass_continues(entries, monkeypatch):
    real_write = bootloader.write_entry_atomic

    def flaky_write(entry):
        if entry.path.name == "arch-fallback.conf":
            raise PermissionError(f"Not writable: {entry.path}")
        real_write(entry)

    monkeypatch.setattr(bootloader, "write_entry_atomic", flaky_write)

    report = patch_entries(entries, "t2")

    assert report.inspected == 2
    assert report.modified == [str(entries / "arch.conf")]
    assert list(report.errors) == [str(entries / "arch-fallback.conf")]
    assert "linux   /vmlinuz-linux-t2" in _lines(entries / "arch.conf")
    assert (entries / "arch-fallback.conf").read_text(encoding="utf-8") == FALLBACK_ENTRY


def test_read_only_file_is_reported(entries):
    import os

    if os.geteuid() == 0:
        pytest.skip("root can write read-only files")
    (entries / "arch-fallback.conf").chmod(0o444)

    report = patch_entries(entries, "t2")

    assert str(entries / "arch-fallback.conf") in report.errors
    assert str(entries / "arch.conf") in report.modified


def test_rewrite_keeps_file_mode_and_leaves_no_temp_files(entries):
    (entries / "arch.conf").chmod(0o600)
    patch_entries(entries, "t2")

    assert (entries / "arch.conf").stat().st_mode & 0o777 == 0o600
    assert sorted(p.name for p in entries.iterdir()) == ["arch-fallback.conf", "arch.conf"]


def test_dry_run_reports_without_writing(entries):
    report = patch_entries(entries, "t2", dry_run=True)
    assert report.modified_count == 2
    assert (entries / "arch.conf").read_text(encoding="utf-8") == STOCK_ENTRY


def test_leading_whitespace_and_trailing_args_are_handled(tmp_path):
    d = tmp_path / "entries"
    d.mkdir()
    (d / "a.conf").write_text("  linux\t/vmlinuz-linux quiet\n", encoding="utf-8")

    patch_entries(d, "t2")

    assert _lines(d / "a.conf") == ["linux   /vmlinuz-linux-t2 quiet"]


def test_ensure_ucode_first_without_initrd_line_is_a_no_op():
    lines = ["title x\n", "linux /vmlinuz-linux-t2\n"]
    assert ensure_ucode_first(lines, "/intel-ucode.img") == lines


def test_has_systemd_boot(tmp_path):
    assert not has_systemd_boot(tmp_path)
    (tmp_path / "loader").mkdir()
    (tmp_path / "loader/loader.conf").write_text("default arch.conf\n", encoding="utf-8")
    assert has_systemd_boot(tmp_path)


def test_regenerate_grub_runs_mkconfig(fake_run):
    regenerate_grub("/boot/grub/grub.cfg")
    assert fake_run.joined() == ["grub-mkconfig -o /boot/grub/grub.cfg"]


def test_ucode_goes_before_every_existing_initrd_line(tmp_path, ucode):
    d = tmp_path / "entries"
    d.mkdir()
    (d / "arch.conf").write_text(
        "title   Arch Linux\n"
        "linux   /vmlinuz-linux\n"
        "initrd  /amd-ucode.img\n"
        "initrd  /initramfs-linux.img\n"
        "options root=PARTUUID=1234 rw\n",
        encoding="utf-8",
    )

    patch_entries(d, "t2", ucode, ucode_loader_path="/intel-ucode.img")

    assert _lines(d / "arch.conf") == [
        "title   Arch Linux",
        "linux   /vmlinuz-linux-t2",
        "initrd  /intel-ucode.img",
        "initrd  /amd-ucode.img",
        "initrd  /initramfs-linux-t2.img",
        "options root=PARTUUID=1234 rw",
    ]


def test_unwritable_entry_is_reported_by_the_real_writer(entries, monkeypatch):
    import os

    real_access = os.access

    def access(path, mode, **kwargs):
        if str(path).endswith("arch-fallback.conf") and mode == os.W_OK:
            return False
        return real_access(path, mode, **kwargs)

    monkeypatch.setattr(bootloader.os, "access", access)

    report = patch_entries(entries, "t2")

    assert "Not writable" in report.errors[str(entries / "arch-fallback.conf")]
    assert report.modified == [str(entries / "arch.conf")]
    assert (entries / "arch-fallback.conf").read_text(encoding="utf-8") == FALLBACK_ENTRY
    assert sorted(p.name for p in entries.iterdir()) == ["arch-fallback.conf", "arch.conf"]

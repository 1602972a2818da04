from __future__ import annotations

import pytest

from t2_postinstall.errors import EXIT_MISSING_MANIFEST, MissingManifestError
from t2_postinstall.lib.manifests import load_package_list, parse_package_list


def test_comments_blank_lines_and_yay_are_skipped():
    text = "# base\nnetworkmanager\n\n   \n  openssh  \n  # indented comment\nyay\nufw\n"
    assert parse_package_list(text) == ["networkmanager", "openssh", "ufw"]


def test_yay_prefixed_packages_are_kept():
    assert parse_package_list("yay-bin\nyayfoo\n") == ["yay-bin", "yayfoo"]


def test_missing_manifest_raises_with_exit_code(tmp_path):
    with pytest.raises(MissingManifestError) as ei:
        load_package_list(str(tmp_path / "packages.txt"))
    assert ei.value.exit_code == EXIT_MISSING_MANIFEST


def test_load_package_list(tmp_path):
    p = tmp_path / "packages.txt"
    p.write_text("git\nvim\n", encoding="utf-8")
    assert load_package_list(str(p)) == ["git", "vim"]

from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .command import run_cmd

logger = logging.getLogger(__name__)

ENTRIES_REL = "loader/entries"
LOADER_CONF_REL = "loader/loader.conf"
GRUB_CFG = "/boot/grub/grub.cfg"


@dataclass
class BootEntry:
    """One systemd-boot entry file, held as lines (line endings kept)."""

    path: Path
    lines: List[str]

    @classmethod
    def read(cls, path: Path) -> "BootEntry":
        return cls(path=path, lines=path.read_text(encoding="utf-8").splitlines(keepends=True))

    def text(self) -> str:
        return "".join(self.lines)


@dataclass(frozen=True)
class RewriteRule:
    """Anchored line rewrite.

    The pattern must match at the start of the line and must not match an
    already rewritten line; the rest of the line after the match is kept.
    """

    name: str
    pattern: "re.Pattern[str]"
    replacement: str

    def apply(self, line: str) -> Optional[str]:
        m = self.pattern.match(line)
        if not m:
            return None
        return self.replacement + line[m.end():]


@dataclass
class PatchReport:
    entries_dir: str
    inspected: int = 0
    modified: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)
    no_entries: bool = False

    @property
    def modified_count(self) -> int:
        return len(self.modified)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries_dir": self.entries_dir,
            "inspected": self.inspected,
            "modified": list(self.modified),
            "errors": dict(self.errors),
            "no_entries": self.no_entries,
        }


def build_rules(base: str, alt_suffix: str) -> List[RewriteRule]:
    b = re.escape(base)
    # (?=\s|$) keeps "/vmlinuz-linux" from matching "/vmlinuz-linux-t2".
    end = r"(?=\s|$)"
    return [
        RewriteRule(
            name="kernel",
            pattern=re.compile(rf"^\s*linux\s+/vmlinuz-{b}{end}"),
            replacement=f"linux   /vmlinuz-{base}-{alt_suffix}",
        ),
        RewriteRule(
            name="initramfs",
            pattern=re.compile(rf"^\s*initrd\s+/initramfs-{b}\.img{end}"),
            replacement=f"initrd  /initramfs-{base}-{alt_suffix}.img",
        ),
        RewriteRule(
            name="initramfs-fallback",
            pattern=re.compile(rf"^\s*initrd\s+/initramfs-{b}-fallback\.img{end}"),
            replacement=f"initrd  /initramfs-{base}-{alt_suffix}-fallback.img",
        ),
    ]


def find_entries(entries_dir: Path) -> List[Path]:
    if not entries_dir.is_dir():
        return []
    return sorted(p for p in entries_dir.glob("*.conf") if p.is_file())


def rewrite_lines(lines: Sequence[str], rules: Sequence[RewriteRule]) -> List[str]:
    out: List[str] = []
    for line in lines:
        for rule in rules:
            new = rule.apply(line)
            if new is not None:
                line = new
                break
        out.append(line)
    return out


_INITRD_RE = re.compile(r"^\s*initrd\s+")


def ensure_ucode_first(lines: Sequence[str], loader_path: str) -> List[str]:
    """Insert an initrd line for the microcode image before the first initrd line.

    No-op when any initrd line already references the image, or when the entry
    has no initrd line at all.
    """

    out = list(lines)
    ref = re.compile(rf"^\s*initrd\s+.*{re.escape(loader_path)}(?=\s|$)")
    if any(ref.match(line) for line in out):
        return out

    for i, line in enumerate(out):
        if _INITRD_RE.match(line):
            out.insert(i, f"initrd  {loader_path}\n")
            break
    return out


def write_entry_atomic(entry: BootEntry) -> None:
    """Replace the entry file via temp file + rename, keeping its mode."""

    path = entry.path
    if not os.access(path, os.W_OK):
        raise PermissionError(f"Not writable: {path}")

    mode = path.stat().st_mode & 0o7777
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(entry.text())
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, str(path))
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def patch_entries(
    entries_dir: str | Path,
    alt_suffix: str,
    ucode_image: str | Path | None = None,
    *,
    ucode_loader_path: str | None = None,
    base: str = "linux",
    dry_run: bool = False,
) -> PatchReport:
    """Point every boot entry at the <base>-<alt_suffix> kernel variant.

    ucode_image is checked on the host; the inserted initrd line uses
    ucode_loader_path (the path as the boot loader sees it), defaulting to
    ucode_image itself. A failure on one entry is recorded and the pass
    continues with the next.
    """

    d = Path(entries_dir)
    report = PatchReport(entries_dir=str(d))
    entries = find_entries(d)
    if not entries:
        report.no_entries = True
        logger.info("No boot entries found in %s", d)
        return report

    rules = build_rules(base, alt_suffix)

    loader_path: Optional[str] = None
    if ucode_image is not None and Path(ucode_image).is_file():
        loader_path = ucode_loader_path or str(ucode_image)
    elif ucode_image is not None:
        logger.info("Microcode image not present, not inserting: %s", ucode_image)

    for path in entries:
        report.inspected += 1
        try:
            entry = BootEntry.read(path)
            lines = rewrite_lines(entry.lines, rules)
            if loader_path:
                lines = ensure_ucode_first(lines, loader_path)
            if lines == entry.lines:
                logger.info("Entry already up to date: %s", path)
                continue

            entry.lines = lines
            if dry_run:
                logger.info("Would rewrite %s", path)
            else:
                write_entry_atomic(entry)
                logger.info("Patched %s", path)
            report.modified.append(str(path))
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Failed to patch %s: %s", path, e)
            report.errors[str(path)] = str(e)

    return report


def has_systemd_boot(boot_dir: str | Path) -> bool:
    b = Path(boot_dir)
    return (b / LOADER_CONF_REL).is_file() or (b / ENTRIES_REL).is_dir()


def regenerate_grub(output: str = GRUB_CFG, *, dry_run: bool = False) -> None:
    """Regenerate grub.cfg. The result cannot be verified beyond the exit status."""

    run_cmd(["grub-mkconfig", "-o", output], dry_run=dry_run)
    logger.info("GRUB config regenerated: %s", output)

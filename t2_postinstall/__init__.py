"""Post-install setup for Arch Linux on Apple T2 Macs.

- Resumable step pipeline (state persisted as JSON/YAML)
- Idempotent steps; best-effort failures recorded, not hidden
- systemd-boot entries patched in place for the T2 kernel
- Centralized logging
"""

__version__ = "0.1.0"

"""Root checks for the sync tool (BlueZ state and mounting both need UID 0)."""
from __future__ import annotations

import os
import platform
import shutil
import sys


def is_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def ensure_root() -> None:
    """Re-exec the current command as root via ``sudo`` or ``pkexec``.

    Returns immediately when not on Linux or when already root. Exits with
    status 1 if neither elevation helper is installed.
    """

    if platform.system() != "Linux" or is_root():
        return

    script = os.path.abspath(sys.argv[0])
    if os.path.basename(script) == "__main__.py":
        args = [sys.executable, "-m", "bt_sync", *sys.argv[1:]]
    else:
        args = [sys.executable, script, *sys.argv[1:]]

    if shutil.which("sudo"):
        os.execvp("sudo", ["sudo", *args])

    if shutil.which("pkexec"):
        os.execvp("pkexec", ["pkexec", *args])

    sys.stderr.write("[ERROR] This tool must be run as root (sudo/pkexec not found).\n")
    sys.exit(1)


__all__ = ["ensure_root", "is_root"]

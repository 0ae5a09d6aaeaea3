from __future__ import annotations

import platform
import re
import subprocess
from typing import Sequence, Tuple


BASE_DIR = "/var/lib/bluetooth"


def format_mac(raw_key_name: str, separator: str = ":") -> str:
    """Format a registry-style MAC string (e.g. ``001a7dda710b``) as ``00:1A:7D:DA:71:0B``.

    Any even-length hex string is split into byte pairs, so the result always
    round-trips back to the input by removing ``separator``.

    Raises:
        ValueError: If the input is not an even-length hex string.
    """

    s = raw_key_name.replace(":", "").replace("-", "").strip()
    if len(s) % 2 != 0 or not re.fullmatch(r"[0-9A-Fa-f]*", s):
        raise ValueError(f"Invalid MAC key name: {raw_key_name}")

    parts = [s[i : i + 2] for i in range(0, len(s), 2)]
    return separator.join(p.upper() for p in parts)


def looks_like_device_dir(name: str) -> bool:
    """True if a BlueZ directory name looks like a device address.

    Only the colon is checked; directories that do not follow the
    ``XX:XX:...`` convention at all are never considered.
    """

    return ":" in name


# bluetoothd reads info files only at startup.
RESTART_COMMANDS = (
    ("systemctl", "restart", "bluetooth"),
    ("service", "bluetooth", "restart"),
)


def reload_bluetooth(commands: Sequence[Sequence[str]] = RESTART_COMMANDS) -> Tuple[bool, str]:
    """Restart bluetoothd after pairing files were rewritten.

    ``commands`` are tried in order until one exits successfully. Returns
    ``(True, command)`` for the command that worked, or ``(False, reasons)``
    with one reason per failed attempt.
    """

    system = platform.system()
    if system != "Linux":
        return False, f"cannot restart bluetoothd on {system}"

    failures: list[str] = []
    for cmd in commands:
        command_line = " ".join(cmd)
        try:
            subprocess.run(list(cmd), check=True, capture_output=True, text=True)
        except FileNotFoundError:
            failures.append(f"{command_line}: {cmd[0]} is not installed")
            continue
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() or f"exit status {exc.returncode}"
            failures.append(f"{command_line}: {detail}")
            continue
        return True, command_line

    return False, "; ".join(failures)


__all__ = [
    "BASE_DIR",
    "RESTART_COMMANDS",
    "format_mac",
    "looks_like_device_dir",
    "reload_bluetooth",
]

"""BlueZ ``info`` file handling: matching, key rewrite and directory rename."""
from __future__ import annotations

import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, Optional

from .windows import BtDeviceInfo

LONG_TERM_KEY_SECTION = "LongTermKey"
INFO_FILENAME = "info"

_SECTION_RE = re.compile(r"\[([^\[\]]*)\]")
_LINE_RE = re.compile(r"[^\n]*\n|[^\n]+\Z")
_NAME_RE = re.compile(r"^Name=(.*?)\r?$", re.MULTILINE)


@dataclass
class LocalDeviceRecord:
    directory_identifier: str
    display_name: Optional[str]
    raw_content: str
    device_dir: str


@dataclass
class ReconciliationResult:
    display_name: str
    old_directory_identifier: str
    new_mac: str
    old_ltk: str
    new_ltk: str
    rename_error: Optional[str] = None
    changed: bool = True


def _split_terminator(line: str) -> tuple[str, str]:
    if line.endswith("\r\n"):
        return line[:-2], "\r\n"
    if line.endswith(("\n", "\r")):
        return line[:-1], line[-1]
    return line, ""


def _section_name(body: str) -> Optional[str]:
    match = _SECTION_RE.fullmatch(body.strip())
    return match.group(1) if match else None


def _long_term_key_lines(content: str) -> Iterator[tuple[bool, str, str]]:
    """Yield ``(in_ltk_section, body, terminator)`` for every line of ``content``."""

    in_ltk = False
    # Lines end at "\n" only; other separators stay part of the line body.
    for line in _LINE_RE.findall(content):
        body, terminator = _split_terminator(line)
        section = _section_name(body)
        if section is not None:
            in_ltk = section == LONG_TERM_KEY_SECTION
        yield in_ltk, body, terminator


def find_display_name(content: str) -> Optional[str]:
    """Return the value of the first ``Name=`` line anywhere in ``content``."""

    match = _NAME_RE.search(content)
    return match.group(1) if match else None


def read_ltk(content: str) -> str:
    """Return the ``Key=`` value of the ``[LongTermKey]`` section, or ``""``."""

    for in_ltk, body, _ in _long_term_key_lines(content):
        if in_ltk and body.startswith("Key="):
            return body[len("Key="):]
    return ""


def rewrite_info(content: str, info: BtDeviceInfo) -> str:
    """Replace ``Key``, ``EDiv`` and ``Rand`` inside ``[LongTermKey]``.

    Every other line, including its line terminator, is copied unchanged.
    """

    replacements = (
        ("Key=", info.ltk),
        ("EDiv=", info.ediv),
        ("Rand=", info.erand),
    )

    out: list[str] = []
    for in_ltk, body, terminator in _long_term_key_lines(content):
        if in_ltk:
            for prefix, new_value in replacements:
                if body.startswith(prefix):
                    body = f"{prefix}{new_value}"
                    break
        out.append(body + terminator)
    return "".join(out)


def read_info(info_path: str) -> str:
    # newline="" keeps \r\n and the final terminator exactly as on disk.
    with open(info_path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def write_info_atomic(info_path: str, content: str, *, backup: bool = False) -> Optional[str]:
    """Replace ``info_path`` with ``content`` via a temp file and ``os.replace``.

    Returns the path of the ``info.<timestamp>.bak`` copy when ``backup`` is set.
    """

    backup_path = None
    if backup:
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        backup_path = f"{info_path}.{timestamp}.bak"
        shutil.copy2(info_path, backup_path)

    fd, temp_path = tempfile.mkstemp(
        prefix=f"{INFO_FILENAME}.", suffix=".tmp", dir=os.path.dirname(info_path)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as tmp_file:
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        shutil.copymode(info_path, temp_path)
        os.replace(temp_path, info_path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise

    return backup_path


def read_device_record(device_dir: str) -> LocalDeviceRecord:
    """Read a paired device's ``info`` file.

    Raises:
        OSError: If the file is missing or unreadable.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """

    content = read_info(os.path.join(device_dir, INFO_FILENAME))
    return LocalDeviceRecord(
        directory_identifier=os.path.basename(os.path.normpath(device_dir)),
        display_name=find_display_name(content),
        raw_content=content,
        device_dir=device_dir,
    )


def reconcile_device(
    device_dir: str,
    records: dict[str, BtDeviceInfo],
    *,
    backup: bool = False,
) -> Optional[ReconciliationResult]:
    """Bring one device directory in line with its Windows record.

    Devices without a ``Name=`` line, or whose name has no exact match in
    ``records``, are left untouched and ``None`` is returned. On a match the
    ``info`` file is rewritten first and the directory renamed to the Windows
    MAC second; a failed rename is recorded on the result instead of raised.
    A device that already matches is returned with ``changed=False``.
    """

    record = read_device_record(device_dir)
    if record.display_name is None:
        return None

    info = records.get(record.display_name)
    if info is None:
        return None

    old_ltk = read_ltk(record.raw_content)
    new_content = rewrite_info(record.raw_content, info)
    rewritten = new_content != record.raw_content
    if rewritten:
        write_info_atomic(os.path.join(device_dir, INFO_FILENAME), new_content, backup=backup)

    result = ReconciliationResult(
        display_name=record.display_name,
        old_directory_identifier=record.directory_identifier,
        new_mac=info.mac,
        old_ltk=old_ltk,
        new_ltk=info.ltk,
        changed=rewritten or record.directory_identifier != info.mac,
    )

    if record.directory_identifier != info.mac:
        target = os.path.join(os.path.dirname(os.path.normpath(device_dir)), info.mac)
        try:
            if os.path.exists(target):
                raise FileExistsError(f"{target} already exists")
            os.rename(device_dir, target)
        except OSError as exc:
            result.rename_error = str(exc)

    return result


__all__ = [
    "INFO_FILENAME",
    "LONG_TERM_KEY_SECTION",
    "LocalDeviceRecord",
    "ReconciliationResult",
    "find_display_name",
    "read_device_record",
    "read_info",
    "read_ltk",
    "reconcile_device",
    "rewrite_info",
    "write_info_atomic",
]

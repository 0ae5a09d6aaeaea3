"""Locate the Windows ``SYSTEM`` hive on NTFS partitions."""
from __future__ import annotations

import os
import random
import re
import subprocess
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .bluetooth.windows import BtDeviceInfo, Notify, read_windows_records
from .hive import load_hive

WINDOWS_HIVE_RELATIVE_PATH = os.path.join("Windows", "System32", "config", "SYSTEM")
NTFS_FSTYPES = ("ntfs", "ntfs3")
DEFAULT_MOUNT_ROOT = "/mnt"

_LSBLK_PAIR_RE = re.compile(r'NAME="([^"]*)" FSTYPE="([^"]*)" MOUNTPOINT="([^"]*)"')


@dataclass
class BlockDevice:
    name: str
    fstype: str
    mountpoint: str

    @property
    def path(self) -> str:
        return f"/dev/{self.name}"


@dataclass
class WindowsSource:
    device: str
    hive_path: str
    records: dict[str, BtDeviceInfo]


def list_block_devices() -> list[BlockDevice]:
    """Parse ``lsblk --pairs`` output; an unavailable ``lsblk`` yields ``[]``."""

    try:
        out = subprocess.check_output(
            ["lsblk", "-o", "NAME,FSTYPE,MOUNTPOINT", "--pairs", "--noheadings"],
            text=True,
            stderr=subprocess.DEVNULL,
        )
    except (FileNotFoundError, subprocess.CalledProcessError):
        return []

    devices: list[BlockDevice] = []
    for match in _LSBLK_PAIR_RE.finditer(out):
        name, fstype, mountpoint = match.groups()
        devices.append(BlockDevice(name=name, fstype=fstype, mountpoint=mountpoint))
    return devices


def _run_quiet(cmd: list[str]) -> bool:
    try:
        result = subprocess.run(
            cmd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0


def mount_partition(device: str, mountpoint: str, fstype: str = "ntfs3") -> bool:
    return _run_quiet(["mount", "-t", fstype, "-o", "ro", device, mountpoint])


def unmount_partition(mountpoint: str) -> bool:
    return _run_quiet(["umount", mountpoint])


@contextmanager
def temporary_mount(device: str, mount_root: str = DEFAULT_MOUNT_ROOT) -> Iterator[Optional[str]]:
    """Mount ``device`` read-only under ``mount_root`` for the duration of the block.

    Yields the mount point, or ``None`` when mounting failed. The mount point
    directory is removed afterwards if it is empty.
    """

    stamp = int(time.time() * 1000)
    mountpoint = os.path.join(mount_root, f"temp_{stamp}_{random.getrandbits(32)}")
    os.makedirs(mountpoint, exist_ok=True)

    mounted = mount_partition(device, mountpoint)
    try:
        yield mountpoint if mounted else None
    finally:
        if mounted:
            mounted = not unmount_partition(mountpoint)
        if not mounted and os.path.isdir(mountpoint) and not os.listdir(mountpoint):
            os.rmdir(mountpoint)


def hive_path_for(mountpoint: str) -> str:
    return os.path.join(mountpoint, WINDOWS_HIVE_RELATIVE_PATH)


def read_records_from_hive(
    hive_path: str,
    control_set: Optional[str] = None,
    notify: Optional[Notify] = None,
) -> dict[str, BtDeviceInfo]:
    """Parse a hive file and return its Bluetooth records.

    Raises:
        HiveParseError: If the file cannot be read or is not a valid hive.
    """

    hive = load_hive(hive_path)
    return read_windows_records(hive, control_set, notify=notify)


def find_windows_records(
    mount_root: str = DEFAULT_MOUNT_ROOT,
    control_set: Optional[str] = None,
    notify: Optional[Notify] = None,
) -> Optional[WindowsSource]:
    """Return the first NTFS partition whose ``SYSTEM`` hive has Bluetooth records.

    Partitions that are already mounted are read in place; the others are
    mounted temporarily and unmounted again before this function returns.
    """

    for device in list_block_devices():
        if device.fstype.lower() not in NTFS_FSTYPES:
            continue

        if device.mountpoint:
            hive_path = hive_path_for(device.mountpoint)
            if not os.path.isfile(hive_path):
                continue
            records = read_records_from_hive(hive_path, control_set, notify)
            if records:
                return WindowsSource(device=device.path, hive_path=hive_path, records=records)
            continue

        with temporary_mount(device.path, mount_root) as mountpoint:
            if mountpoint is None:
                if notify:
                    notify(f"Could not mount {device.path}")
                continue
            hive_path = hive_path_for(mountpoint)
            if not os.path.isfile(hive_path):
                continue
            records = read_records_from_hive(hive_path, control_set, notify)
            if records:
                return WindowsSource(device=device.path, hive_path=hive_path, records=records)

    return None


__all__ = [
    "DEFAULT_MOUNT_ROOT",
    "NTFS_FSTYPES",
    "WINDOWS_HIVE_RELATIVE_PATH",
    "BlockDevice",
    "WindowsSource",
    "find_windows_records",
    "hive_path_for",
    "list_block_devices",
    "mount_partition",
    "read_records_from_hive",
    "temporary_mount",
    "unmount_partition",
]

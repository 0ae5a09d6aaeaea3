"""Walk the BlueZ state directory and apply Windows pairing records to it."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, Optional, Tuple

from .common import BASE_DIR, looks_like_device_dir, reload_bluetooth
from .linux import ReconciliationResult, reconcile_device
from .windows import BtDeviceInfo

RestartService = Callable[[], Tuple[bool, str]]


@dataclass
class DeviceError:
    device_path: str
    reason: str


@dataclass
class SyncReport:
    results: list[ReconciliationResult] = field(default_factory=list)
    errors: list[DeviceError] = field(default_factory=list)
    restart_attempted: bool = False
    restart_ok: Optional[bool] = None
    restart_detail: str = ""

    @property
    def has_updates(self) -> bool:
        return any(result.changed for result in self.results)


def iter_adapter_dirs(base_dir: str = BASE_DIR) -> list[str]:
    return [
        os.path.join(base_dir, entry)
        for entry in sorted(os.listdir(base_dir))
        if os.path.isdir(os.path.join(base_dir, entry))
    ]


def iter_device_dirs(adapter_dir: str) -> list[str]:
    return [
        os.path.join(adapter_dir, entry)
        for entry in sorted(os.listdir(adapter_dir))
        if looks_like_device_dir(entry) and os.path.isdir(os.path.join(adapter_dir, entry))
    ]


def sync_adapter(
    adapter_dir: str,
    records: dict[str, BtDeviceInfo],
    *,
    backup: bool = False,
) -> tuple[list[ReconciliationResult], list[DeviceError]]:
    """Reconcile every device directory of one adapter.

    A device whose ``info`` file cannot be read, decoded or written is recorded
    as a :class:`DeviceError`; the remaining devices are still processed.
    """

    results: list[ReconciliationResult] = []
    errors: list[DeviceError] = []

    try:
        device_dirs = iter_device_dirs(adapter_dir)
    except OSError as exc:
        errors.append(DeviceError(device_path=adapter_dir, reason=str(exc)))
        return results, errors

    for device_dir in device_dirs:
        try:
            result = reconcile_device(device_dir, records, backup=backup)
        except UnicodeDecodeError as exc:
            errors.append(DeviceError(device_path=device_dir, reason=f"info is not UTF-8: {exc}"))
            continue
        except OSError as exc:
            errors.append(DeviceError(device_path=device_dir, reason=str(exc)))
            continue

        if result is not None:
            results.append(result)

    return results, errors


def sync_bluetooth_devices(
    records: dict[str, BtDeviceInfo],
    base_dir: str = BASE_DIR,
    *,
    restart: bool = True,
    restart_service: RestartService = reload_bluetooth,
    backup: bool = False,
) -> SyncReport:
    """Apply ``records`` to every paired device below ``base_dir``.

    The restart collaborator runs at most once, after all adapters have been
    processed, and only if at least one device was rewritten or renamed.

    Raises:
        FileNotFoundError: If ``base_dir`` does not exist.
    """

    if not os.path.isdir(base_dir):
        raise FileNotFoundError(f"Bluetooth directory not found at: {base_dir}")

    report = SyncReport()
    for adapter_dir in iter_adapter_dirs(base_dir):
        results, errors = sync_adapter(adapter_dir, records, backup=backup)
        report.results.extend(results)
        report.errors.extend(errors)

    if report.has_updates and restart:
        report.restart_attempted = True
        report.restart_ok, report.restart_detail = restart_service()

    return report


__all__ = [
    "DeviceError",
    "RestartService",
    "SyncReport",
    "iter_adapter_dirs",
    "iter_device_dirs",
    "sync_adapter",
    "sync_bluetooth_devices",
]

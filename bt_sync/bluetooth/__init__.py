from __future__ import annotations

from .common import (
    BASE_DIR,
    format_mac,
    looks_like_device_dir,
    reload_bluetooth,
)
from .linux import (
    LocalDeviceRecord,
    ReconciliationResult,
    find_display_name,
    read_device_record,
    read_ltk,
    reconcile_device,
    rewrite_info,
    write_info_atomic,
)
from .sync import (
    DeviceError,
    SyncReport,
    iter_adapter_dirs,
    iter_device_dirs,
    sync_adapter,
    sync_bluetooth_devices,
)
from .windows import (
    DEFAULT_CONTROL_SET,
    BtDeviceInfo,
    build_device_name_index,
    build_key_records,
    decode_bt_name,
    read_windows_records,
    resolve_control_set,
)

__all__ = [
    "BASE_DIR",
    "DEFAULT_CONTROL_SET",
    "BtDeviceInfo",
    "DeviceError",
    "LocalDeviceRecord",
    "ReconciliationResult",
    "SyncReport",
    "build_device_name_index",
    "build_key_records",
    "decode_bt_name",
    "find_display_name",
    "format_mac",
    "iter_adapter_dirs",
    "iter_device_dirs",
    "looks_like_device_dir",
    "read_device_record",
    "read_ltk",
    "read_windows_records",
    "reconcile_device",
    "reload_bluetooth",
    "resolve_control_set",
    "rewrite_info",
    "sync_adapter",
    "sync_bluetooth_devices",
    "write_info_atomic",
]

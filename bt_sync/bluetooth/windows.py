"""Bluetooth pairing records read from an offline Windows ``SYSTEM`` hive."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from ..hive import (
    REG_BINARY,
    REG_DWORD,
    REG_QWORD,
    Hive,
    Inline,
    decode_dword,
    decode_qword,
)
from .common import format_mac

# Offline hives have no CurrentControlSet link; it is resolved through Select.
DEFAULT_CONTROL_SET = "ControlSet001"
WIN_BT_PARAMETERS_SUBPATH = ("Services", "BTHPORT", "Parameters")
WIN_BT_DEVICES_SUBPATH = WIN_BT_PARAMETERS_SUBPATH + ("Devices",)
WIN_BT_KEYS_SUBPATH = WIN_BT_PARAMETERS_SUBPATH + ("Keys",)

Notify = Callable[[str], None]


@dataclass(frozen=True)
class BtDeviceInfo:
    mac: str
    ltk: str
    erand: str
    ediv: str


def resolve_control_set(hive: Hive) -> str:
    """Return the name of the control set Windows booted with last.

    Falls back to ``ControlSet001`` when ``Select\\Current`` is missing or
    points at a control set that does not exist in this hive.
    """

    root = hive.root()
    select = hive.subpath(root, ["Select"])
    if select is None:
        return DEFAULT_CONTROL_SET

    current = decode_dword(hive.value(select, "Current", accept=(REG_DWORD,)))
    if current is None:
        return DEFAULT_CONTROL_SET

    name = f"ControlSet{current:03d}"
    if hive.subpath(root, [name]) is None:
        return DEFAULT_CONTROL_SET
    return name


def decode_bt_name(raw_value: bytes) -> str:
    """Decode a ``Devices\\<mac>\\Name`` blob.

    Windows stores the name as UTF-8 terminated by a zero byte; everything from
    the first zero byte on is ignored.

    Raises:
        UnicodeDecodeError: If the bytes before the terminator are not UTF-8.
    """

    end = raw_value.find(b"\x00")
    if end != -1:
        raw_value = raw_value[:end]
    return raw_value.decode("utf-8")


def build_device_name_index(
    hive: Hive,
    control_set: Optional[str] = None,
    notify: Optional[Notify] = None,
) -> dict[str, str]:
    """Map raw device key names (``001a7dda710b``) to display names."""

    control_set = control_set or resolve_control_set(hive)
    devices = hive.subpath(hive.root(), (control_set,) + WIN_BT_DEVICES_SUBPATH)
    if devices is None:
        return {}

    names: dict[str, str] = {}
    for raw_name, device in hive.subkeys(devices):
        value = hive.value(device, "Name")
        if not isinstance(value, Inline):
            continue
        try:
            display_name = decode_bt_name(value.data)
        except UnicodeDecodeError as exc:
            if notify:
                notify(f"Skipping device {raw_name}: name is not valid UTF-8 ({exc})")
            continue
        if display_name:
            names[raw_name] = display_name

    return names


def build_key_records(
    hive: Hive,
    name_index: dict[str, str],
    control_set: Optional[str] = None,
    notify: Optional[Notify] = None,
) -> dict[str, BtDeviceInfo]:
    """Collect LE key material per device, keyed by display name.

    Keys without a non-empty inline ``LTK`` value, and keys whose device has no display
    name in ``name_index``, are dropped. When two devices share a display name
    the one enumerated last wins.
    """

    control_set = control_set or resolve_control_set(hive)
    keys = hive.subpath(hive.root(), (control_set,) + WIN_BT_KEYS_SUBPATH)
    if keys is None:
        return {}

    records: dict[str, BtDeviceInfo] = {}
    for _adapter_raw, adapter in hive.subkeys(keys):
        for device_raw, device in hive.subkeys(adapter):
            ltk_value = hive.value(device, "LTK")
            if not isinstance(ltk_value, Inline) or not ltk_value.data:
                continue

            ltk = ltk_value.data.hex().upper()
            erand = decode_qword(hive.value(device, "ERand", accept=(REG_QWORD, REG_BINARY))) or 0
            ediv = decode_dword(hive.value(device, "EDIV", accept=(REG_DWORD, REG_BINARY))) or 0

            try:
                mac = format_mac(device_raw)
            except ValueError:
                if notify:
                    notify(f"Skipping key {device_raw}: not a hex device address")
                continue

            display_name = name_index.get(device_raw)
            if display_name is None:
                continue

            if display_name in records and notify:
                notify(
                    f"Duplicate device name {display_name!r}: "
                    f"{records[display_name].mac} replaced by {mac}"
                )

            records[display_name] = BtDeviceInfo(
                mac=mac,
                ltk=ltk,
                erand=str(erand),
                ediv=str(ediv),
            )

    return records


def read_windows_records(
    hive: Hive,
    control_set: Optional[str] = None,
    notify: Optional[Notify] = None,
) -> dict[str, BtDeviceInfo]:
    """Build the canonical ``display name -> BtDeviceInfo`` mapping for ``hive``."""

    control_set = control_set or resolve_control_set(hive)
    name_index = build_device_name_index(hive, control_set, notify=notify)
    return build_key_records(hive, name_index, control_set, notify=notify)


__all__ = [
    "DEFAULT_CONTROL_SET",
    "WIN_BT_DEVICES_SUBPATH",
    "WIN_BT_KEYS_SUBPATH",
    "BtDeviceInfo",
    "build_device_name_index",
    "build_key_records",
    "decode_bt_name",
    "read_windows_records",
    "resolve_control_set",
]

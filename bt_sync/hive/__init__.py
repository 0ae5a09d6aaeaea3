from __future__ import annotations

from .reader import (
    REG_BINARY,
    REG_DWORD,
    REG_QWORD,
    REG_SZ,
    Hive,
    HiveParseError,
    HiveValue,
    Inline,
    RegistryKeyNode,
    Segmented,
    decode_dword,
    decode_qword,
    decode_uint,
    load_hive,
    open_hive,
)

__all__ = [
    "REG_BINARY",
    "REG_DWORD",
    "REG_QWORD",
    "REG_SZ",
    "Hive",
    "HiveParseError",
    "HiveValue",
    "Inline",
    "RegistryKeyNode",
    "Segmented",
    "decode_dword",
    "decode_qword",
    "decode_uint",
    "load_hive",
    "open_hive",
]

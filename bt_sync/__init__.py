"""Sync Bluetooth LE pairing keys from a Windows registry hive into BlueZ."""
from __future__ import annotations

__version__ = "0.1.0"

"""Command-line entry point: copy Windows LE pairing keys into BlueZ."""
from __future__ import annotations

import argparse
from typing import List, Optional

from .bluetooth.sync import sync_bluetooth_devices
from .config import SyncConfig, load_config, save_config
from .hive import HiveParseError
from .partitions import find_windows_records, read_records_from_hive
from .permissions import ensure_root
from .report import error, info, print_sync_report, print_windows_records, warn


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Copy Bluetooth LE pairing keys from a Windows installation on this "
            "machine into the BlueZ pairing files of the running Linux system."
        )
    )
    parser.add_argument("--config", help="JSON file with saved defaults (default: ~/.bt_sync.json)")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Store the effective settings as the new defaults.",
    )
    parser.add_argument("--base-dir", help="BlueZ state directory (default: /var/lib/bluetooth)")
    parser.add_argument(
        "--hive",
        dest="hive_path",
        help="Path to a Windows SYSTEM hive; skips NTFS partition discovery.",
    )
    parser.add_argument("--control-set", help="Registry control set to read (e.g. ControlSet001)")
    parser.add_argument("--mount-root", help="Where NTFS partitions are mounted temporarily (default: /mnt)")
    parser.add_argument(
        "--no-restart",
        action="store_true",
        help="Do not restart the bluetooth service after updating devices.",
    )
    parser.add_argument(
        "--no-backup",
        action="store_true",
        help="Do not keep an info.<timestamp>.bak copy of rewritten files.",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="Only print the keys found on Windows; do not touch BlueZ files.",
    )
    parser.add_argument(
        "--no-elevate",
        action="store_true",
        help="Do not re-run through sudo when started as a regular user.",
    )
    return parser


def resolve_config(args: argparse.Namespace) -> SyncConfig:
    try:
        config = load_config(args.config)
    except ValueError as exc:
        warn(f"Ignoring config file: {exc}")
        config = SyncConfig()

    if args.base_dir:
        config.base_dir = args.base_dir
    if args.hive_path:
        config.hive_path = args.hive_path
    if args.control_set:
        config.control_set = args.control_set
    if args.mount_root:
        config.mount_root = args.mount_root
    if args.no_restart:
        config.restart_service = False
    if args.no_backup:
        config.backup = False
    return config


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = resolve_config(args)

    if args.save_config:
        try:
            info(f"Saved defaults to {save_config(config, args.config)}")
        except OSError as exc:
            warn(f"Failed to save config: {exc}")

    if not args.no_elevate:
        ensure_root()

    # The hive is parsed (and any temporary mount released) before BlueZ files are touched.
    try:
        if config.hive_path:
            records = read_records_from_hive(config.hive_path, config.control_set, notify=warn)
            source = config.hive_path
        else:
            found = find_windows_records(config.mount_root, config.control_set, notify=warn)
            if found is None:
                error("No Windows SYSTEM hive with Bluetooth keys found on NTFS partitions.")
                return 1
            records = found.records
            source = found.device
    except HiveParseError as exc:
        error(str(exc))
        return 1

    if not records:
        info("No LTK to show.")
        return 0

    print_windows_records(records, source)
    if args.list:
        return 0

    try:
        report = sync_bluetooth_devices(
            records,
            config.base_dir,
            restart=config.restart_service,
            backup=config.backup,
        )
    except FileNotFoundError as exc:
        error(str(exc))
        return 1

    print_sync_report(report, config.base_dir)
    return 0


__all__ = ["build_parser", "main", "resolve_config"]

"""Console tables for the sync run."""
from __future__ import annotations

import sys
from typing import Optional, TextIO

from .bluetooth.sync import SyncReport
from .bluetooth.windows import BtDeviceInfo

RULE = "-" * 102


def info(message: str, stream: Optional[TextIO] = None) -> None:
    print(f"[INFO] {message}", file=stream or sys.stdout)


def warn(message: str, stream: Optional[TextIO] = None) -> None:
    print(f"[WARN] {message}", file=stream or sys.stderr)


def error(message: str, stream: Optional[TextIO] = None) -> None:
    print(f"[ERROR] {message}", file=stream or sys.stderr)


def print_windows_records(
    records: dict[str, BtDeviceInfo],
    source: str,
    stream: Optional[TextIO] = None,
) -> None:
    out = stream or sys.stdout
    print(f"=== Windows bluetooth info from {source} ===", file=out)
    print(f"{'Device Name':<30} |      {'Address':<24} |      {'Key':<40}", file=out)
    print(RULE, file=out)
    for name, record in records.items():
        print(f"{name:<30} |      {record.mac:<24} |      {record.ltk:<40}", file=out)


def print_sync_report(report: SyncReport, base_dir: str, stream: Optional[TextIO] = None) -> None:
    out = stream or sys.stdout

    for device_error in report.errors:
        print(f"[WARN] Skipped {device_error.device_path}: {device_error.reason}", file=out)

    if not report.results:
        print(f"\n=== No matching Linux bluetooth devices found in {base_dir} ===", file=out)
        return
    if not report.has_updates:
        print(f"\n=== Linux bluetooth info in {base_dir} is already up to date ===", file=out)
        return

    print("\n=== Updated Linux bluetooth info ===", file=out)
    print(f"{'Device Name':<30} |      {'Address':<24} |      {'Key':<40}", file=out)
    print(RULE, file=out)
    for result in report.results:
        if not result.changed:
            continue
        print(
            f"{result.display_name:<30} | FROM {result.old_directory_identifier:<24} "
            f"| FROM {result.old_ltk:<40}",
            file=out,
        )
        print(f"{'':<30} |   TO {result.new_mac:<24} |   TO {result.new_ltk:<40}", file=out)
        if result.rename_error:
            print(
                f"[WARN] {result.display_name}: keys updated but directory was not renamed "
                f"({result.rename_error})",
                file=out,
            )

    if report.restart_attempted:
        if report.restart_ok:
            print(f"\n=== Bluetooth service restarted ({report.restart_detail}) ===", file=out)
        else:
            print(f"\n[ERROR] Failed to restart Bluetooth service: {report.restart_detail}", file=out)


__all__ = [
    "error",
    "info",
    "print_sync_report",
    "print_windows_records",
    "warn",
]

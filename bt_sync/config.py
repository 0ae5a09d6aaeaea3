from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

from .bluetooth.common import BASE_DIR
from .partitions import DEFAULT_MOUNT_ROOT

CONFIG_PATH = Path.home() / ".bt_sync.json"


@dataclass
class SyncConfig:
    base_dir: str = BASE_DIR
    hive_path: Optional[str] = None
    control_set: Optional[str] = None
    restart_service: bool = True
    backup: bool = True
    mount_root: str = DEFAULT_MOUNT_ROOT

    @classmethod
    def from_dict(cls, data: dict) -> "SyncConfig":
        if not isinstance(data, dict):
            raise ValueError("Config must be a JSON object.")

        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            if key not in known:
                continue
            # Annotations are strings here because of the __future__ import.
            kind = known[key].type
            if kind == "bool":
                if not isinstance(value, bool):
                    raise ValueError(f"Field '{key}' must be true or false.")
            elif kind == "str":
                if not isinstance(value, str) or not value:
                    raise ValueError(f"Field '{key}' must be a non-empty string.")
            elif value is not None and not isinstance(value, str):
                raise ValueError(f"Field '{key}' must be a string or null.")
            values[key] = value
        return cls(**values)

    def to_dict(self) -> dict:
        return asdict(self)


def load_config(path: Optional[os.PathLike] = None) -> SyncConfig:
    """Load saved defaults; a missing file gives the built-in defaults.

    Raises:
        ValueError: If the file exists but is not a valid config object.
    """

    path = Path(path) if path else CONFIG_PATH
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return SyncConfig()
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    return SyncConfig.from_dict(data)


def save_config(config: SyncConfig, path: Optional[os.PathLike] = None) -> str:
    path = Path(path) if path else CONFIG_PATH
    with open(path, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
    return str(path)


__all__ = ["CONFIG_PATH", "SyncConfig", "load_config", "save_config"]

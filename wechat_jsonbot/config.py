"""Host configuration file access for the CLI and the standalone app."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = "config/openclaw.json"


def config_path_from_env() -> str:
    return os.environ.get("WECHAT_JSONBOT_CONFIG", DEFAULT_CONFIG_PATH)


def load_host_config(path: str | Path) -> dict[str, Any]:
    """Load a host config JSON file. A missing file is an empty config."""
    config_file = Path(path)
    if not config_file.exists():
        return {}
    data = json.loads(config_file.read_text())
    if not isinstance(data, dict):
        raise ValueError(f"{config_file}: expected a JSON object")
    return data


def save_host_config(path: str | Path, cfg: Mapping[str, Any]) -> None:
    config_file = Path(path)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(cfg, indent=2) + "\n")

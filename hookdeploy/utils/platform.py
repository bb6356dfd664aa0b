"""XDG config and data path resolution.

The server runs deploy scripts through a POSIX shell and kills them by
process group, so only POSIX hosts are supported.
"""

from __future__ import annotations

import os
from pathlib import Path


def get_config_dir() -> Path:
    env = os.environ.get("HOOKDEPLOY_CONFIG_DIR")
    if env:
        return Path(env)
    xdg = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
    return Path(xdg) / "hookdeploy"


def get_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share")
    return Path(xdg) / "hookdeploy"


def normalize_path(path: str | Path) -> Path:
    return Path(path).expanduser().resolve()

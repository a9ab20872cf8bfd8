from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple

STORE_FILENAME = "store.json"
HOME_ENV_VAR = "PACKAGE_TRACKER_HOME"


def default_home() -> Path:
    """$PACKAGE_TRACKER_HOME, else ~/.package_tracker."""
    raw = os.getenv(HOME_ENV_VAR)
    if raw:
        return Path(raw).expanduser()
    return Path.home() / ".package_tracker"


def derive_store_paths(store_path: Optional[Path] = None) -> Tuple[Path, Path]:
    """
    Return (store_json_path, log_path). The log sits next to the store with a
    `.log` extension (e.g., ~/.package_tracker/store.json -> store.log).
    """
    p = Path(store_path) if store_path else default_home() / STORE_FILENAME
    return p, p.with_suffix(".log")

# src/package_tracker/io/store.py
from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Sequence

from package_tracker.models import Package

# Keys kept from the original browser storage layout
PACKAGES_KEY = "pakke-tracker-data"
OUTLOOK_TOKEN_KEY = "outlook-token"
LAST_SYNC_KEY = "last-sync-time"

_LOG = logging.getLogger("package_tracker.io.store")


class LocalStore:
    """
    Durable per-device key/value store backed by one JSON file.

    Values are JSON-serialisable. A missing file reads as empty. A corrupt file
    reads as empty too (logged); the next write replaces it.
    """

    def __init__(self, path: Path, *, logger: Optional[logging.Logger] = None) -> None:
        self.path = Path(path)
        self.logger = logger or _LOG

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as ex:
            self.logger.error("Could not read store %s: %s", self.path, ex)
            return {}
        if not isinstance(data, dict):
            self.logger.error(
                "Store %s does not hold a JSON object (got %s); treating as empty",
                self.path,
                type(data).__name__,
            )
            return {}
        return data

    def _write_all(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            prefix=self.path.name + ".", suffix=".tmp", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._read_all().get(key, default)

    def set(self, key: str, value: Any) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, *keys: str) -> None:
        data = self._read_all()
        if any(k in data for k in keys):
            for k in keys:
                data.pop(k, None)
            self._write_all(data)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


def load_packages(store: LocalStore) -> list[Package]:
    """
    Read the persisted collection. Never raises:
      - nothing stored / unparseable -> []
      - individual malformed entries are skipped
    """
    raw = store.get(PACKAGES_KEY)
    if raw is None:
        return []
    # Older writers stored the list as a JSON string
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as ex:
            store.logger.error("Stored packages are not valid JSON: %s", ex)
            return []
    if not isinstance(raw, list):
        store.logger.error(
            "Stored packages are not a list (got %s); starting empty", type(raw).__name__)
        return []

    out: list[Package] = []
    for i, entry in enumerate(raw):
        try:
            out.append(Package.from_dict(entry))
        except (KeyError, TypeError, ValueError) as ex:
            store.logger.warning("Skipping malformed stored package #%d: %s", i, ex)
    return out


def save_packages(store: LocalStore, packages: Sequence[Package]) -> None:
    store.set(PACKAGES_KEY, [p.to_dict() for p in packages])

# src/package_tracker/api/client.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Protocol, Any, List
import hashlib
import json

from package_tracker.models import ParseResult


class ExtractionClient(Protocol):
    def extract_from_text(self, text: str) -> Optional[ParseResult]:
        ...

    def extract_from_image(self, data: bytes, mime_type: str) -> Optional[ParseResult]:
        ...


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass
class ReplayExtractionClient:
    """Replay client that serves canned extraction results from a single JSON file.

    The file may contain a single JSON object or a JSON array of entries shaped
    like ``{"text": "...", "result": {...}}`` (matched on stripped text) or
    ``{"sha256": "...", "result": {...}}`` (matched on the image bytes' digest).
    Unknown inputs return None, the same as a failed live extraction.
    """

    replay_file: Path
    _by_text: dict[str, Any] = field(default_factory=dict)
    _by_digest: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.replay_file = Path(self.replay_file)
        if not self.replay_file.exists():
            raise ValueError(f"Replay file does not exist: {self.replay_file}")
        if not self.replay_file.is_file():
            raise ValueError(
                "ReplayExtractionClient requires a single JSON file; directories are not supported."
            )

        raw = json.loads(self.replay_file.read_text(encoding="utf-8"))
        entries: List[Any] = raw if isinstance(raw, list) else [raw]

        for entry in entries:
            if not isinstance(entry, dict):
                continue
            result = entry.get("result")
            if "text" in entry:
                self._by_text[str(entry["text"]).strip()] = result
            if "sha256" in entry:
                self._by_digest[str(entry["sha256"]).lower()] = result

    @staticmethod
    def _to_result(value: Any) -> Optional[ParseResult]:
        if not isinstance(value, dict):
            return None
        return ParseResult.from_dict(value)

    def extract_from_text(self, text: str) -> Optional[ParseResult]:
        return self._to_result(self._by_text.get((text or "").strip()))

    def extract_from_image(self, data: bytes, mime_type: str) -> Optional[ParseResult]:
        return self._to_result(self._by_digest.get(sha256_hex(data)))

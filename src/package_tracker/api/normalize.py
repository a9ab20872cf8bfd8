# src/package_tracker/api/normalize.py
from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from package_tracker.models import ParseResult

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


def _candidate_text(payload: Dict[str, Any]) -> str:
    """
    Concatenate the text parts of candidates[0].content.parts[*].
    Returns "" when the envelope has no usable candidate.
    """
    candidates = payload.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content") or {}
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [str(p.get("text")) for p in parts if isinstance(p, dict) and p.get("text")]
    return "".join(texts).strip()


def parse_result_text(text: str) -> Optional[ParseResult]:
    """
    Parse the model's JSON answer into a ParseResult.
    Tolerates a ```json fenced block. Returns None if it isn't a JSON object.
    """
    t = (text or "").strip()
    if not t:
        return None
    m = _FENCE_RE.match(t)
    if m:
        t = m.group(1)
    try:
        data = json.loads(t)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    return ParseResult.from_dict(data)


def normalize_generate_content(payload: Dict[str, Any]) -> Optional[ParseResult]:
    """
    Produce a ParseResult from a generateContent response body.

    Defaulting happens in ParseResult.from_dict:
      - carrier -> Other when missing/unknown
      - status  -> In Transit when missing/unknown
      - blank trackingNumber/sender -> None
    """
    if not isinstance(payload, dict):
        return None
    return parse_result_text(_candidate_text(payload))

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import base64
import json
import logging

from package_tracker.models import Carrier, PackageStatus, ParseResult
from .normalize import normalize_generate_content
from .transport import RequestsTransport

DEFAULT_MODEL = "gemini-3-flash-preview"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

SYSTEM_PROMPT = (
    "Extract package tracking information from this Danish message (SMS or Email).\n"
    "Identify the carrier (PostNord, GLS, DAO, Bring, etc.), the tracking number, "
    "the sender name (if available), and whether the package is currently ready "
    "for pickup or still in transit.\n"
    'Common Danish terms: "klar til afhentning" (Ready for Pickup), '
    '"pakken er på vej" (In Transit).'
)

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "trackingNumber": {"type": "STRING", "description": "The tracking ID/barcode number."},
        "carrier": {
            "type": "STRING",
            "enum": [c.value for c in Carrier],
            "description": "The shipping company.",
        },
        "sender": {"type": "STRING", "description": "Who the package is from."},
        "status": {
            "type": "STRING",
            "enum": [s.value for s in PackageStatus],
            "description": "Current delivery state based on the text.",
        },
    },
    "required": ["carrier", "status"],
}


@dataclass
class GeminiConfig:
    api_key: str
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL


def _truncate(text: Optional[str], limit: int = 2000) -> Optional[str]:
    if text and len(text) > limit:
        return text[:limit] + "..."
    return text


class GeminiExtractionClient:
    """Single-shot extraction against the Generative Language generateContent API.

    Responsibilities:
    - extract_from_text(text): prompt + message text -> ParseResult | None
    - extract_from_image(data, mime_type): inline base64 image + prompt -> ParseResult | None

    Every failure (transport, HTTP status, empty candidate, bad JSON) is logged
    and reported as None. Nothing is retried.
    """

    def __init__(
        self,
        cfg: GeminiConfig,
        transport: Optional[RequestsTransport] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.cfg = cfg
        self.transport = transport or RequestsTransport.single_shot()
        self.logger: logging.Logger = logger or logging.getLogger(
            "package_tracker.api.gemini"
        )

    def _endpoint(self) -> str:
        base = self.cfg.base_url.rstrip("/")
        return f"{base}/models/{self.cfg.model}:generateContent"

    def _body(self, parts: List[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": RESPONSE_SCHEMA,
            },
        }

    def extract_from_text(self, text: str) -> Optional[ParseResult]:
        prompt = f'{SYSTEM_PROMPT}\n\nMessage:\n"{text}"'
        return self._generate([{"text": prompt}], kind="text")

    def extract_from_image(self, data: bytes, mime_type: str) -> Optional[ParseResult]:
        encoded = base64.b64encode(data).decode("ascii")
        parts = [
            {"inlineData": {"mimeType": mime_type, "data": encoded}},
            {"text": SYSTEM_PROMPT},
        ]
        return self._generate(parts, kind="image")

    def _generate(self, parts: List[Dict[str, Any]], *, kind: str) -> Optional[ParseResult]:
        if not self.cfg.api_key:
            self.logger.warning("Gemini API key is not configured; skipping %s extraction", kind)
            return None

        endpoint = self._endpoint()
        headers = {"Content-Type": "application/json", "x-goog-api-key": self.cfg.api_key}
        self.logger.debug("Gemini POST endpoint=%s kind=%s", endpoint, kind)

        try:
            resp = self.transport.post(endpoint, headers=headers, json=self._body(parts))
        except Exception as ex:  # network/transport error
            self.logger.warning("Gemini %s extraction request failed: %s", kind, ex)
            return None

        status = getattr(resp, "status_code", None)
        try:
            resp.raise_for_status()
            payload = resp.json()
        except Exception as ex:
            self.logger.warning(
                "Gemini %s extraction returned error status=%s exception=%s response_body=%s",
                kind,
                status,
                ex,
                _truncate(getattr(resp, "text", None)),
            )
            return None

        result = normalize_generate_content(payload)
        if result is None:
            self.logger.warning(
                "Gemini %s extraction had no usable payload: %s",
                kind,
                _truncate(json.dumps(payload, ensure_ascii=False)),
            )
            return None

        self.logger.debug(
            "Gemini %s extraction -> tracking=%s carrier=%s status=%s",
            kind,
            result.tracking_number,
            result.carrier.value,
            result.status.value,
        )
        return result

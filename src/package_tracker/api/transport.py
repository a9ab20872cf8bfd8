from __future__ import annotations

from typing import Any, Dict, Optional
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

USER_AGENT = "package-tracker/0.1"


class RequestsTransport:
    """Shared requests session for the remote collaborators.

    Mail reads retry on transient errors (429/5xx) with backoff. Extraction
    calls are single-shot: build them with ``RequestsTransport.single_shot()``.
    """

    def __init__(self, timeout: int = 60, max_retries: int = 3, backoff_factor: float = 0.3) -> None:
        self.session = requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        self.timeout = timeout
        self.max_retries = int(max_retries)

        retry: Retry | int = 0
        if self.max_retries > 0:
            retry = Retry(
                total=self.max_retries,
                backoff_factor=backoff_factor,
                status_forcelist=(429, 500, 502, 503, 504),
                allowed_methods=("GET", "POST"),
                raise_on_status=False,
            )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("https://", adapter)
        self.session.mount("http://", adapter)

    @classmethod
    def single_shot(cls, timeout: int = 60) -> "RequestsTransport":
        return cls(timeout=timeout, max_retries=0)

    def post(self, url: str, *, headers: Optional[Dict[str, str]] = None, json: Any = None, params: Optional[Dict[str, Any]] = None):
        return self.session.post(url, headers=headers, json=json, params=params, timeout=self.timeout)

    def get(self, url: str, *, headers: Optional[Dict[str, str]] = None, params: Optional[Dict[str, Any]] = None):
        return self.session.get(url, headers=headers, params=params, timeout=self.timeout)

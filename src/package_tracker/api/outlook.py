from __future__ import annotations

from typing import Any, Dict, List, Optional
import logging

from package_tracker.models import MailMessage
from .transport import RequestsTransport

GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"
MOCK_ACCESS_TOKEN = "MOCK_ACCESS_TOKEN"
DEFAULT_FOLDER = "Packages"


class MailSyncError(RuntimeError):
    """Raised when the mail folder cannot be resolved or read."""


def _message_from_graph(item: Dict[str, Any]) -> MailMessage:
    sender = ((item.get("from") or {}).get("emailAddress") or {})
    body = item.get("body") or {}
    return MailMessage(
        id=str(item.get("id") or ""),
        subject=str(item.get("subject") or ""),
        body_preview=str(item.get("bodyPreview") or ""),
        full_body=str(body.get("content") or ""),
        sender_name=str(sender.get("name") or ""),
        sender_address=str(sender.get("address") or ""),
    )


class OutlookClient:
    """Microsoft Graph mail reader.

    The login is simulated: obtain_access_token() returns a configured token or
    a placeholder. Messages are never fed into reconciliation here; callers pass
    each one through extraction themselves.
    """

    def __init__(
        self,
        access_token: str = "",
        transport: Optional[RequestsTransport] = None,
        *,
        base_url: str = GRAPH_BASE_URL,
        top: int = 10,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.access_token = access_token
        self.transport = transport or RequestsTransport()
        self.base_url = base_url.rstrip("/")
        self.top = int(top)
        self.logger: logging.Logger = logger or logging.getLogger(
            "package_tracker.api.outlook"
        )

    def obtain_access_token(self) -> str:
        if self.access_token:
            return self.access_token
        self.logger.info("No Outlook token configured; using simulated login")
        return MOCK_ACCESS_TOKEN

    def _get_json(self, url: str, token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"}
        try:
            resp = self.transport.get(url, headers=headers, params=params)
            resp.raise_for_status()
            return resp.json()
        except Exception as ex:
            raise MailSyncError(f"Graph request failed for {url}: {ex}") from ex

    def list_candidate_messages(self, token: str, folder_label: str = DEFAULT_FOLDER) -> List[MailMessage]:
        """Resolve the folder by display name, then fetch its latest messages."""
        folders = self._get_json(
            f"{self.base_url}/me/mailFolders",
            token,
            params={"$filter": f"displayName eq '{folder_label}'"},
        )
        values = folders.get("value") or []
        if not values:
            raise MailSyncError(
                f"Folder '{folder_label}' not found. Please create it in Outlook.")

        folder_id = values[0].get("id")
        messages = self._get_json(
            f"{self.base_url}/me/mailFolders/{folder_id}/messages",
            token,
            params={"$top": str(self.top), "$select": "id,subject,bodyPreview,body,from"},
        )
        out = [_message_from_graph(m) for m in (messages.get("value") or []) if isinstance(m, dict)]
        self.logger.debug("Fetched %d message(s) from folder '%s'", len(out), folder_label)
        return out

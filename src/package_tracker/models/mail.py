from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class MailMessage:
    """One candidate notification pulled from the mail folder."""
    subject: str
    body_preview: str
    full_body: str
    sender_name: str
    sender_address: str
    id: str = ""

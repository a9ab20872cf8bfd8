from __future__ import annotations

import re
from dataclasses import dataclass, asdict, replace
from enum import Enum
from typing import Any, Optional


def _fold(value: str) -> str:
    # "Ready for Pickup", "READY_FOR_PICKUP", "readyForPickup" -> "readyforpickup"
    return re.sub(r"[\s_\-]+", "", value).casefold()


class Carrier(str, Enum):
    POSTNORD = "PostNord"
    GLS = "GLS"
    DAO = "DAO"
    BRING = "Bring"
    DHL = "DHL"
    UPS = "UPS"
    FEDEX = "FedEx"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: Any) -> "Carrier":
        """Map a best-effort carrier guess onto the closed set (Other when unknown)."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            return cls.OTHER
        key = _fold(value)
        for member in cls:
            if key in (_fold(member.value), _fold(member.name)):
                return member
        return cls.OTHER


class PackageStatus(str, Enum):
    IN_TRANSIT = "In Transit"
    READY_FOR_PICKUP = "Ready for Pickup"
    PICKED_UP = "Picked Up"

    @classmethod
    def parse(cls, value: Any) -> "PackageStatus":
        """Map a best-effort status guess onto the closed set (In Transit when unknown)."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value.strip():
            return cls.IN_TRANSIT
        key = _fold(value)
        for member in cls:
            if key in (_fold(member.value), _fold(member.name)):
                return member
        return cls.IN_TRANSIT


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class ParseResult:
    """Extraction output. Every field is a guess; only the reconciler consumes it."""
    tracking_number: Optional[str]
    carrier: Carrier = Carrier.OTHER
    sender: Optional[str] = None
    status: PackageStatus = PackageStatus.IN_TRANSIT

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParseResult":
        return cls(
            tracking_number=_blank_to_none(
                data.get("trackingNumber", data.get("tracking_number"))),
            carrier=Carrier.parse(data.get("carrier")),
            sender=_blank_to_none(data.get("sender")),
            status=PackageStatus.parse(data.get("status")),
        )


@dataclass(frozen=True)
class Package:
    # identity
    id: str
    tracking_number: str
    carrier: Carrier

    # mutable through reconciliation / toggle
    sender: str
    status: PackageStatus

    # ISO-8601 UTC timestamps
    received_date: str
    last_updated: str

    # raw source kept for audit
    original_text: str = ""

    def with_changes(self, **changes: Any) -> "Package":
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Stored shape (camelCase keys, enum display values)."""
        return {
            "id": self.id,
            "trackingNumber": self.tracking_number,
            "carrier": self.carrier.value,
            "sender": self.sender,
            "status": self.status.value,
            "receivedDate": self.received_date,
            "originalText": self.original_text,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Package":
        """Rebuild from the stored shape. Raises KeyError/TypeError/ValueError on malformed rows."""
        if not isinstance(data, dict):
            raise TypeError(f"package entry must be an object, got {type(data).__name__}")
        package_id = _blank_to_none(data["id"])
        tracking_number = _blank_to_none(data["trackingNumber"])
        if package_id is None or tracking_number is None:
            raise ValueError("package entry needs a non-empty id and trackingNumber")
        return cls(
            id=package_id,
            tracking_number=tracking_number,
            carrier=Carrier.parse(data.get("carrier")),
            sender=str(data.get("sender") or ""),
            status=PackageStatus.parse(data.get("status")),
            received_date=str(data.get("receivedDate") or ""),
            last_updated=str(data.get("lastUpdated") or ""),
            original_text=str(data.get("originalText") or ""),
        )

    def to_row(self) -> dict[str, Any]:
        """Flat row for tabular export."""
        row = asdict(self)
        row["carrier"] = self.carrier.value
        row["status"] = self.status.value
        return row

# src/package_tracker/rules/reconcile.py
from __future__ import annotations

import datetime as dt
import uuid
from typing import Callable, Optional, Sequence

from package_tracker.models import Package, ParseResult

# Sender shown when the extraction could not name one
SENDER_PLACEHOLDER = "Unknown supplier"


def utc_now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def new_package_id() -> str:
    return uuid.uuid4().hex


def find_by_tracking_number(packages: Sequence[Package], tracking_number: str) -> int:
    """Index of the package with exactly this tracking number, or -1."""
    for i, pkg in enumerate(packages):
        if pkg.tracking_number == tracking_number:
            return i
    return -1


def reconcile(
    result: Optional[ParseResult],
    source_text: str,
    packages: Sequence[Package],
    *,
    now: Optional[Callable[[], str]] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> tuple[list[Package], bool]:
    """
    Merge one extraction result into the collection.

    Returns (packages, accepted). The input sequence is never mutated.
      - no result / no tracking number -> unchanged, False
      - tracking number already tracked -> status/sender/lastUpdated updated in place, True
      - otherwise -> new package prepended (most recent first), True

    Tracking numbers are compared verbatim (case-sensitive).
    """
    current = list(packages)
    if result is None or not (result.tracking_number or "").strip():
        return current, False

    stamp = (now or utc_now_iso)()
    idx = find_by_tracking_number(current, result.tracking_number)

    if idx > -1:
        existing = current[idx]
        current[idx] = existing.with_changes(
            status=result.status,
            sender=result.sender or existing.sender,
            last_updated=stamp,
        )
        return current, True

    created = Package(
        id=(id_factory or new_package_id)(),
        tracking_number=result.tracking_number,
        carrier=result.carrier,
        sender=result.sender or SENDER_PLACEHOLDER,
        status=result.status,
        received_date=stamp,
        last_updated=stamp,
        original_text=source_text,
    )
    return [created, *current], True

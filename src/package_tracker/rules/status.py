# src/package_tracker/rules/status.py
from __future__ import annotations

from typing import Sequence

from package_tracker.models import Package, PackageStatus

VIEW_CURRENT = "current"
VIEW_HISTORY = "history"
VIEW_ALL = "all"
VIEWS: tuple[str, ...] = (VIEW_CURRENT, VIEW_HISTORY, VIEW_ALL)


def toggle_status(status: PackageStatus) -> PackageStatus:
    """
    Manual pickup toggle.

    PickedUp goes back to ReadyForPickup (never InTransit); anything else
    becomes PickedUp. Not a rotation through all three states.
    """
    if status is PackageStatus.PICKED_UP:
        return PackageStatus.READY_FOR_PICKUP
    return PackageStatus.PICKED_UP


def toggle_package(packages: Sequence[Package], package_id: str) -> list[Package]:
    """Return a new collection with the package's status toggled. Unknown ids are a no-op."""
    return [
        p.with_changes(status=toggle_status(p.status)) if p.id == package_id else p
        for p in packages
    ]


def delete_package(packages: Sequence[Package], package_id: str) -> list[Package]:
    return [p for p in packages if p.id != package_id]


def filter_view(packages: Sequence[Package], view: str = VIEW_CURRENT) -> list[Package]:
    """
    Derive a view from the authoritative collection (order preserved):
      current -> not picked up
      history -> picked up
      all     -> everything
    """
    if view == VIEW_CURRENT:
        return [p for p in packages if p.status is not PackageStatus.PICKED_UP]
    if view == VIEW_HISTORY:
        return [p for p in packages if p.status is PackageStatus.PICKED_UP]
    if view == VIEW_ALL:
        return list(packages)
    raise ValueError(f"Unknown view: {view!r} (expected one of {', '.join(VIEWS)})")

from .reconcile import SENDER_PLACEHOLDER, reconcile
from .status import delete_package, filter_view, toggle_package, toggle_status

__all__ = [
    "SENDER_PLACEHOLDER",
    "reconcile",
    "toggle_status",
    "toggle_package",
    "delete_package",
    "filter_view",
]

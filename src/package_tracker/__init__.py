# src/package_tracker/__init__.py
from .pipelines.intake import IntakeProcessor
from .rules.reconcile import reconcile

__all__ = [
    "IntakeProcessor",
    "reconcile",
]

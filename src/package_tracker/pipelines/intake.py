from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional

from package_tracker.api.client import ExtractionClient
from package_tracker.api.outlook import MailSyncError
from package_tracker.io.store import (
    LAST_SYNC_KEY,
    OUTLOOK_TOKEN_KEY,
    LocalStore,
    load_packages,
    save_packages,
)
from package_tracker.models import Package, ParseResult
from package_tracker.rules.reconcile import find_by_tracking_number, reconcile, utc_now_iso
from package_tracker.rules.status import (
    VIEW_CURRENT,
    delete_package,
    filter_view,
    toggle_package,
)

NOT_FOUND_MESSAGE = "Could not find package data"
SCREENSHOT_PREFIX = "Screenshot: "


class IntakeBusyError(RuntimeError):
    """Raised when a submission arrives while another extraction is in flight."""


@dataclass(frozen=True)
class IntakeOutcome:
    accepted: bool
    package: Optional[Package] = None
    message: str = ""


@dataclass(frozen=True)
class SyncReport:
    fetched: int
    accepted: int
    synced_at: str


class IntakeProcessor:
    """Orchestrates extraction, reconciliation and persistence for one store.

    The in-memory collection is authoritative for the session: it is loaded
    once here and written back after every successful mutation.
    """

    def __init__(
        self,
        logger,
        *,
        store: LocalStore,
        client: Optional[ExtractionClient] = None,
        now: Optional[Callable[[], str]] = None,
    ) -> None:
        self.logger = logger
        self.store = store
        self.client = client
        self.now = now
        self.busy = False
        self.packages: list[Package] = load_packages(store)
        self.logger.debug("Loaded %d package(s) from %s", len(self.packages), store.path)

    # ---- views -------------------------------------------------------------

    def view(self, view: str = VIEW_CURRENT) -> list[Package]:
        return filter_view(self.packages, view)

    def get(self, package_id: str) -> Optional[Package]:
        return next((p for p in self.packages if p.id == package_id), None)

    # ---- submissions -------------------------------------------------------

    def submit_text(self, text: str) -> IntakeOutcome:
        return self._submit(lambda c: c.extract_from_text(text), text)

    def submit_image(self, data: bytes, mime_type: str, name: str = "image") -> IntakeOutcome:
        return self._submit(
            lambda c: c.extract_from_image(data, mime_type),
            f"{SCREENSHOT_PREFIX}{name}",
        )

    def _submit(self, extract: Callable[[ExtractionClient], Optional[ParseResult]], source_text: str) -> IntakeOutcome:
        if self.client is None:
            raise RuntimeError("No extraction client configured")
        if self.busy:
            raise IntakeBusyError("An extraction is already in progress")

        self.busy = True
        try:
            result = extract(self.client)
        except Exception as ex:
            self.logger.warning("Extraction failed: %s", ex)
            result = None
        finally:
            self.busy = False

        return self._apply(result, source_text)

    def _apply(self, result: Optional[ParseResult], source_text: str) -> IntakeOutcome:
        updated, accepted = reconcile(result, source_text, self.packages, now=self.now)
        if not accepted:
            self.logger.info("No trackable package in submission")
            return IntakeOutcome(False, None, NOT_FOUND_MESSAGE)

        self._commit(updated)
        idx = find_by_tracking_number(self.packages, result.tracking_number)
        pkg = self.packages[idx]
        self.logger.info(
            "Tracked %s (%s) status=%s", pkg.tracking_number, pkg.carrier.value, pkg.status.value)
        return IntakeOutcome(True, pkg, f"{pkg.carrier.value} {pkg.tracking_number}: {pkg.status.value}")

    # ---- manual edits ------------------------------------------------------

    def toggle(self, package_id: str) -> Optional[Package]:
        if self.get(package_id) is None:
            self.logger.warning("Toggle requested for unknown package id %s", package_id)
            return None
        self._commit(toggle_package(self.packages, package_id))
        return self.get(package_id)

    def delete(self, package_id: str) -> bool:
        if self.get(package_id) is None:
            self.logger.warning("Delete requested for unknown package id %s", package_id)
            return False
        self._commit(delete_package(self.packages, package_id))
        self.logger.info("Deleted package %s", package_id)
        return True

    def clear_all(self) -> None:
        """Drop every package plus the mail token and sync time (this device only)."""
        self.packages = []
        self.store.clear()
        self.logger.info("Cleared all local data")

    def sign_out(self) -> None:
        self.store.remove(OUTLOOK_TOKEN_KEY)

    def _commit(self, packages: list[Package]) -> None:
        self.packages = packages
        save_packages(self.store, packages)

    # ---- mail --------------------------------------------------------------

    @property
    def last_sync(self) -> Optional[str]:
        return self.store.get(LAST_SYNC_KEY)

    def sync_mail(self, mail_client: Any, folder_label: str = "Packages") -> SyncReport:
        """
        Pull candidate messages and feed each full body through extraction and
        reconciliation. Raises MailSyncError when the folder can't be read.
        """
        token = self.store.get(OUTLOOK_TOKEN_KEY)
        if not token:
            token = mail_client.obtain_access_token()
            self.store.set(OUTLOOK_TOKEN_KEY, token)

        try:
            messages = mail_client.list_candidate_messages(token, folder_label)
        except MailSyncError:
            raise
        except Exception as ex:
            raise MailSyncError(f"Mail sync failed: {ex}") from ex

        accepted = 0
        for msg in messages:
            body = msg.full_body or msg.body_preview
            if not body.strip():
                continue
            if self.submit_text(body).accepted:
                accepted += 1

        synced_at = (self.now or utc_now_iso)()
        self.store.set(LAST_SYNC_KEY, synced_at)
        self.logger.info(
            "Mail sync: %d message(s), %d accepted", len(messages), accepted)
        return SyncReport(len(messages), accepted, synced_at)
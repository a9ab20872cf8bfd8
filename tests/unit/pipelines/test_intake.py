from pathlib import Path

import pytest

from package_tracker.api.outlook import MailSyncError
from package_tracker.io.store import (
    LAST_SYNC_KEY,
    OUTLOOK_TOKEN_KEY,
    LocalStore,
    load_packages,
)
from package_tracker.models import Carrier, MailMessage, PackageStatus, ParseResult
from package_tracker.pipelines.intake import (
    NOT_FOUND_MESSAGE,
    IntakeBusyError,
    IntakeProcessor,
)
from package_tracker.rules.reconcile import SENDER_PLACEHOLDER

STAMP = "2025-03-01T10:00:00+00:00"


class QL:
    def debug(self, *a, **k): pass
    def info(self, *a, **k): pass
    def warning(self, *a, **k): pass
    def error(self, *a, **k): pass


class DictClient:
    """Extraction stub: text -> ParseResult, images keyed by bytes."""

    def __init__(self, by_text=None, by_image=None):
        self.by_text = by_text or {}
        self.by_image = by_image or {}
        self.seen = []

    def extract_from_text(self, text):
        self.seen.append(("text", text))
        return self.by_text.get(text)

    def extract_from_image(self, data, mime_type):
        self.seen.append(("image", mime_type))
        return self.by_image.get(data)


class FakeMail:
    def __init__(self, messages=None, exc=None):
        self.messages = messages or []
        self.exc = exc
        self.tokens = []

    def obtain_access_token(self):
        return "MOCK_ACCESS_TOKEN"

    def list_candidate_messages(self, token, folder_label):
        self.tokens.append((token, folder_label))
        if self.exc:
            raise self.exc
        return self.messages


def _proc(tmp_path: Path, client=None) -> IntakeProcessor:
    return IntakeProcessor(QL(), store=LocalStore(tmp_path / "store.json"),
                           client=client, now=lambda: STAMP)


def test_submit_text_creates_and_persists(tmp_path: Path):
    client = DictClient({"hello": ParseResult("TNT123", Carrier.GLS, None, PackageStatus.IN_TRANSIT)})
    proc = _proc(tmp_path, client)

    outcome = proc.submit_text("hello")

    assert outcome.accepted is True
    assert outcome.package.tracking_number == "TNT123"
    assert outcome.package.sender == SENDER_PLACEHOLDER
    assert outcome.package.original_text == "hello"
    assert proc.busy is False

    reloaded = load_packages(LocalStore(tmp_path / "store.json"))
    assert [p.tracking_number for p in reloaded] == ["TNT123"]


def test_submit_text_update_path_returns_updated_package(tmp_path: Path):
    client = DictClient({
        "first": ParseResult("TNT123", Carrier.GLS, None, PackageStatus.IN_TRANSIT),
        "second": ParseResult("TNT123", Carrier.GLS, "ACME", PackageStatus.READY_FOR_PICKUP),
    })
    proc = _proc(tmp_path, client)
    proc.submit_text("first")
    outcome = proc.submit_text("second")

    assert outcome.accepted is True
    assert len(proc.packages) == 1
    assert outcome.package.status is PackageStatus.READY_FOR_PICKUP
    assert outcome.package.sender == "ACME"
    assert outcome.package.original_text == "first"


@pytest.mark.parametrize("result", [None, ParseResult(None, Carrier.OTHER, None, PackageStatus.IN_TRANSIT)])
def test_rejected_submission_does_not_save(tmp_path: Path, result):
    client = DictClient({"x": result})
    proc = _proc(tmp_path, client)

    outcome = proc.submit_text("x")

    assert outcome.accepted is False
    assert outcome.message == NOT_FOUND_MESSAGE
    assert proc.packages == []
    assert not (tmp_path / "store.json").exists()


def test_submit_image_uses_screenshot_label(tmp_path: Path):
    client = DictClient(by_image={b"img": ParseResult("IMG1", Carrier.DAO)})
    proc = _proc(tmp_path, client)

    outcome = proc.submit_image(b"img", "image/jpeg", "IMG_0042.jpg")

    assert outcome.accepted is True
    assert outcome.package.original_text == "Screenshot: IMG_0042.jpg"
    assert client.seen == [("image", "image/jpeg")]


def test_reentrant_submission_is_refused_while_busy(tmp_path: Path):
    proc = _proc(tmp_path)

    class ReentrantClient:
        def extract_from_text(self, text):
            assert proc.busy is True
            with pytest.raises(IntakeBusyError):
                proc.submit_text("again")
            return ParseResult("R1")

    proc.client = ReentrantClient()
    assert proc.submit_text("once").accepted is True
    assert proc.busy is False


def test_client_error_is_treated_as_no_result(tmp_path: Path):
    class Boom:
        def extract_from_text(self, text):
            raise RuntimeError("kaput")

    proc = _proc(tmp_path, Boom())
    outcome = proc.submit_text("x")

    assert outcome.accepted is False
    assert outcome.message == NOT_FOUND_MESSAGE
    assert proc.busy is False
    assert proc.packages == []


def test_submit_without_client_raises(tmp_path: Path):
    with pytest.raises(RuntimeError):
        _proc(tmp_path).submit_text("x")


def test_toggle_delete_and_views_persist(tmp_path: Path):
    client = DictClient({
        "a": ParseResult("A"),
        "b": ParseResult("B", status=PackageStatus.READY_FOR_PICKUP),
    })
    proc = _proc(tmp_path, client)
    proc.submit_text("a")
    proc.submit_text("b")
    a_id = next(p.id for p in proc.packages if p.tracking_number == "A")
    b_id = next(p.id for p in proc.packages if p.tracking_number == "B")

    assert proc.toggle(b_id).status is PackageStatus.PICKED_UP
    assert [p.tracking_number for p in proc.view("current")] == ["A"]
    assert [p.tracking_number for p in proc.view("history")] == ["B"]

    assert proc.toggle("nope") is None
    assert proc.delete(a_id) is True
    assert proc.delete(a_id) is False

    reloaded = _proc(tmp_path)
    assert [(p.tracking_number, p.status) for p in reloaded.packages] == [
        ("B", PackageStatus.PICKED_UP)]


def test_startup_with_corrupt_store_starts_empty(tmp_path: Path):
    (tmp_path / "store.json").write_text("]]", encoding="utf-8")
    assert _proc(tmp_path).packages == []


def test_clear_all_drops_packages_token_and_sync_time(tmp_path: Path):
    proc = _proc(tmp_path, DictClient({"a": ParseResult("A")}))
    proc.submit_text("a")
    proc.store.set(OUTLOOK_TOKEN_KEY, "tok")
    proc.store.set(LAST_SYNC_KEY, STAMP)

    proc.clear_all()

    assert proc.packages == []
    assert not proc.store.path.exists()
    assert proc.store.get(OUTLOOK_TOKEN_KEY) is None
    assert proc.last_sync is None
    assert _proc(tmp_path).packages == []


def test_sign_out_keeps_packages(tmp_path: Path):
    proc = _proc(tmp_path, DictClient({"a": ParseResult("A")}))
    proc.submit_text("a")
    proc.store.set(OUTLOOK_TOKEN_KEY, "tok")

    proc.sign_out()

    assert proc.store.get(OUTLOOK_TOKEN_KEY) is None
    assert len(_proc(tmp_path).packages) == 1


def _mail(body: str, preview: str = "") -> MailMessage:
    return MailMessage(subject="s", body_preview=preview, full_body=body,
                       sender_name="PostNord", sender_address="x@postnord.dk")


def test_sync_mail_feeds_each_body_through_extraction(tmp_path: Path):
    client = DictClient({
        "body one": ParseResult("M1", Carrier.POSTNORD),
        "preview two": ParseResult("M2", Carrier.GLS),
    })
    mail = FakeMail([_mail("body one"), _mail("", "preview two"), _mail("no data"), _mail("  ")])
    proc = _proc(tmp_path, client)

    report = proc.sync_mail(mail, "Packages")

    assert report.fetched == 4
    assert report.accepted == 2
    assert report.synced_at == STAMP
    assert [p.tracking_number for p in proc.packages] == ["M2", "M1"]
    assert mail.tokens == [("MOCK_ACCESS_TOKEN", "Packages")]
    assert proc.store.get(OUTLOOK_TOKEN_KEY) == "MOCK_ACCESS_TOKEN"
    assert proc.last_sync == STAMP


def test_sync_mail_reuses_stored_token(tmp_path: Path):
    proc = _proc(tmp_path, DictClient())
    proc.store.set(OUTLOOK_TOKEN_KEY, "stored")
    mail = FakeMail([])
    proc.sync_mail(mail, "Pakker")
    assert mail.tokens == [("stored", "Pakker")]


def test_sync_mail_wraps_unexpected_errors(tmp_path: Path):
    proc = _proc(tmp_path, DictClient())
    with pytest.raises(MailSyncError):
        proc.sync_mail(FakeMail(exc=ConnectionError("down")))
    with pytest.raises(MailSyncError, match="not found"):
        proc.sync_mail(FakeMail(exc=MailSyncError("Folder 'Packages' not found.")))
    assert proc.last_sync is None


def test_sync_mail_continues_past_failing_message(tmp_path: Path):
    class FlakyClient:
        def extract_from_text(self, text):
            if text == "bad":
                raise RuntimeError("remote 500")
            return ParseResult("GOOD1", Carrier.GLS)

    proc = _proc(tmp_path, FlakyClient())
    report = proc.sync_mail(FakeMail([_mail("bad"), _mail("good")]))

    assert report.fetched == 2
    assert report.accepted == 1
    assert [p.tracking_number for p in proc.packages] == ["GOOD1"]
    assert proc.last_sync == STAMP

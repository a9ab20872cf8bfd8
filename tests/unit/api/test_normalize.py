import json

from package_tracker.api.normalize import normalize_generate_content, parse_result_text
from package_tracker.models import Carrier, PackageStatus


def _envelope(text: str) -> dict:
    return {"candidates": [{"content": {"role": "model", "parts": [{"text": text}]}}]}


def test_normalize_reads_first_candidate_json():
    body = _envelope(json.dumps({
        "trackingNumber": "00370726200012345678",
        "carrier": "PostNord",
        "sender": "Zalando",
        "status": "Ready for Pickup",
    }))
    r = normalize_generate_content(body)
    assert r is not None
    assert r.tracking_number == "00370726200012345678"
    assert r.carrier is Carrier.POSTNORD
    assert r.sender == "Zalando"
    assert r.status is PackageStatus.READY_FOR_PICKUP


def test_normalize_joins_split_parts():
    body = {"candidates": [{"content": {"parts": [
        {"text": '{"trackingNumber": "GLS1", '},
        {"text": '"carrier": "GLS", "status": "In Transit"}'},
    ]}}]}
    r = normalize_generate_content(body)
    assert r.tracking_number == "GLS1"
    assert r.carrier is Carrier.GLS


def test_normalize_tolerates_fenced_json():
    r = parse_result_text('```json\n{"trackingNumber": "X1", "carrier": "DAO"}\n```')
    assert r.tracking_number == "X1"
    assert r.carrier is Carrier.DAO


def test_normalize_returns_none_for_empty_or_bad_payloads():
    assert normalize_generate_content({}) is None
    assert normalize_generate_content({"candidates": []}) is None
    assert normalize_generate_content(_envelope("not json at all")) is None
    assert normalize_generate_content(_envelope("[1, 2, 3]")) is None
    assert normalize_generate_content("nope") is None


def test_normalize_keeps_result_without_tracking_number():
    r = normalize_generate_content(_envelope('{"carrier": "Budbee", "status": "Delivered"}'))
    assert r is not None
    assert r.tracking_number is None
    assert r.carrier is Carrier.OTHER
    assert r.status is PackageStatus.IN_TRANSIT

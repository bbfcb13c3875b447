import json

import pytest

from poolsafe.booking import CustomerDetails
from poolsafe.catalog import CPR_SIGN_ID, build_order
from poolsafe.errors import InvalidMetadata
from poolsafe.payments.metadata import (
    amount_display,
    booking_summary,
    check_metadata,
    extract_metadata,
    make_metadata,
)


def test_make_metadata_flattens_order_and_customer():
    details = CustomerDetails(first_name="Jane", last_name="Citizen", email="a@b.com", preferred_date="2030-01-15")
    metadata = make_metadata(build_order([CPR_SIGN_ID]), details, now_ms=1700000000000)

    assert json.loads(metadata["items"]) == ["Pool Safety Inspection", "CPR Sign"]
    assert metadata["includeCprSign"] == "true"
    assert metadata["total"] == "240.00"
    assert metadata["createdAt"] == "1700000000000"
    assert metadata["preferredDate"] == "2030-01-15"
    assert metadata["notes"] == ""
    assert all(isinstance(v, str) for v in metadata.values())


def test_make_metadata_without_customer():
    metadata = make_metadata(build_order([]), now_ms=1)
    assert metadata["includeCprSign"] == "false"
    assert "email" not in metadata


@pytest.mark.parametrize(
    "metadata",
    [
        {f"k{i}": "v" for i in range(51)},
        {"k" * 41: "v"},
        {"notes": "x" * 501},
    ],
)
def test_stripe_metadata_limits(metadata):
    with pytest.raises(InvalidMetadata):
        check_metadata(metadata)


def test_extract_metadata_is_tolerant():
    assert extract_metadata({}) == {}
    assert extract_metadata({"data": {"object": {}}}) == {}
    event = {"data": {"object": {"metadata": {"email": "a@b.com", "total": 240}}}}
    assert extract_metadata(event) == {"email": "a@b.com", "total": "240"}


def test_booking_summary_reads_snapshot():
    metadata = {
        "firstName": "Jane",
        "lastName": "Citizen",
        "items": '["Pool Safety Inspection"]',
        "includeCprSign": "false",
        "total": "210.00",
    }
    summary = booking_summary(metadata, fallback_email="receipt@b.com")
    assert summary["name"] == "Jane Citizen"
    assert summary["email"] == "receipt@b.com"
    assert summary["items"] == ["Pool Safety Inspection"]
    assert summary["includeCprSign"] is False
    assert summary["suburb"] == ""


def test_booking_summary_with_broken_items_json():
    assert booking_summary({"items": "not json"})["items"] == []


def test_amount_display():
    assert amount_display(24000) == "$240.00"
    assert amount_display(None) == "$0.00"

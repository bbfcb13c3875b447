from datetime import timedelta

import pytest
import stripe

from poolsafe.booking import CustomerDetails
from poolsafe.catalog import CPR_SIGN_ID, INSPECTION_ID
from poolsafe.errors import AmountMismatch, InvalidMetadata, RemoteUnavailable
from poolsafe.payments.intents import PaymentIntentClient


def _client(fake_stripe):
    return PaymentIntentClient(currency="aud", stale_after=timedelta(minutes=30), clock=lambda: fake_stripe.now)


def _details(email="a@b.com"):
    return CustomerDetails(
        first_name="Jane", last_name="Citizen", email=email, phone="0412345678",
        address="1 Beach Rd", suburb="Glenelg", postcode="5045", preferred_date="2030-01-15",
    )


def test_amount_mismatch_rejected_before_any_remote_call(fake_stripe):
    intents = _client(fake_stripe)
    with pytest.raises(AmountMismatch) as exc:
        intents.create_or_update_intent(amount=21000, selected_option_ids=[INSPECTION_ID, CPR_SIGN_ID])
    assert exc.value.provided == 21000
    assert exc.value.expected == 24000
    assert fake_stripe.calls == []


def test_create_intent_attaches_metadata_snapshot(fake_stripe):
    intents = _client(fake_stripe)
    handle = intents.create_or_update_intent(
        amount=24000, selected_option_ids=[INSPECTION_ID, CPR_SIGN_ID], customer_details=_details()
    )
    intent = fake_stripe.intents[handle.intent_id]
    assert handle.client_secret == intent["client_secret"]
    assert intent["amount"] == 24000
    assert intent["currency"] == "aud"
    assert intent["receipt_email"] == "a@b.com"
    assert intent["description"] == "Pool Safety Inspection with CPR Sign"
    assert intent["setup_future_usage"] == "off_session"
    assert intent["metadata"]["includeCprSign"] == "true"
    assert intent["metadata"]["total"] == "240.00"
    assert intent["metadata"]["firstName"] == "Jane"
    assert intent["metadata"]["email"] == "a@b.com"


def test_update_preserves_intent_id(fake_stripe):
    intents = _client(fake_stripe)
    first = intents.create_or_update_intent(amount=21000, selected_option_ids=[INSPECTION_ID])

    second = intents.create_or_update_intent(
        amount=24000, selected_option_ids=[INSPECTION_ID, CPR_SIGN_ID], existing_intent_id=first.intent_id
    )

    assert second.intent_id == first.intent_id
    assert second.amount == 24000
    assert fake_stripe.count("create") == 1
    assert fake_stripe.count("update") == 1
    assert fake_stripe.intents[first.intent_id]["metadata"]["includeCprSign"] == "true"


def test_update_of_finished_intent_falls_back_to_create(fake_stripe):
    intents = _client(fake_stripe)
    fake_stripe.add_intent("pi_done", status="succeeded")

    handle = intents.create_or_update_intent(amount=21000, selected_option_ids=[], existing_intent_id="pi_done")

    assert handle.intent_id != "pi_done"
    assert fake_stripe.count("create") == 1


def test_express_checkout_always_creates(fake_stripe):
    intents = _client(fake_stripe)
    first = intents.create_or_update_intent(amount=21000, selected_option_ids=[])
    express = intents.create_or_update_intent(
        amount=21000, selected_option_ids=[], existing_intent_id=first.intent_id, express=True
    )
    assert express.intent_id != first.intent_id
    assert fake_stripe.intents[express.intent_id]["setup_future_usage"] is None
    assert fake_stripe.count("update") == 0


def test_create_cancels_stale_intents_of_same_customer(fake_stripe):
    intents = _client(fake_stripe)
    fake_stripe.add_intent("pi_old_mine", age_seconds=3600, email="a@b.com")
    fake_stripe.add_intent("pi_old_other", age_seconds=3600, email="other@b.com")
    fake_stripe.add_intent("pi_recent_mine", age_seconds=60, email="a@b.com")
    fake_stripe.add_intent("pi_old_paid", age_seconds=3600, email="a@b.com", status="succeeded")

    intents.create_or_update_intent(amount=21000, selected_option_ids=[], customer_details=_details())

    assert fake_stripe.intents["pi_old_mine"]["status"] == "canceled"
    assert fake_stripe.intents["pi_old_other"]["status"] == "requires_payment_method"
    assert fake_stripe.intents["pi_recent_mine"]["status"] == "requires_payment_method"
    assert fake_stripe.intents["pi_old_paid"]["status"] == "succeeded"


def test_cancel_stale_intents_without_email_is_global(fake_stripe):
    intents = _client(fake_stripe)
    fake_stripe.add_intent("pi_a", age_seconds=3600, email="a@b.com")
    fake_stripe.add_intent("pi_b", age_seconds=7200)
    fake_stripe.add_intent("pi_c", age_seconds=3600, status="requires_action")

    assert intents.cancel_stale_intents() == 3
    assert intents.cancel_stale_intents(exclude="pi_a") == 0


def test_cancel_stale_intents_swallows_remote_errors(fake_stripe, monkeypatch, caplog):
    intents = _client(fake_stripe)

    def _boom(**kwargs):
        raise RemoteUnavailable("stripe down")

    monkeypatch.setattr("poolsafe.payments.intents.stripe_client.list_intents", _boom)
    with caplog.at_level("ERROR"):
        assert intents.cancel_stale_intents("a@b.com") == 0
    assert "cleanup failed" in caplog.text


def test_metadata_rejection_is_invalid_metadata(fake_stripe, monkeypatch):
    intents = _client(fake_stripe)

    def _reject(**kwargs):
        raise stripe.InvalidRequestError("Metadata values can have up to 500 characters", param="metadata[notes]")

    monkeypatch.setattr("poolsafe.payments.intents.stripe_client.create_intent", _reject)
    with pytest.raises(InvalidMetadata):
        intents.create_or_update_intent(amount=21000, selected_option_ids=[])


def test_overlong_notes_rejected_locally(fake_stripe):
    intents = _client(fake_stripe)
    details = CustomerDetails(email="a@b.com", notes="x" * 501)
    with pytest.raises(InvalidMetadata):
        intents.create_or_update_intent(amount=21000, selected_option_ids=[], customer_details=details)
    assert fake_stripe.count("create") == 0


def test_retrieve_status(fake_stripe):
    intents = _client(fake_stripe)
    handle = intents.create_or_update_intent(amount=21000, selected_option_ids=[])
    assert intents.retrieve_status(handle.intent_id) == {
        "paymentIntentId": handle.intent_id,
        "status": "requires_payment_method",
        "amount": 21000,
    }

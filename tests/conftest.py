import os

# Avant tout import de l'app: pas d'init Redis pour le rate limiting
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")

import time
import pytest
from typing import Any, Dict, Generator, List, Optional, Tuple
from fastapi.testclient import TestClient

import stripe

from poolsafe.app import app as fastapi_app
from poolsafe.errors import NotificationFailure
from poolsafe.payments import stripe_client
from poolsafe.payments.ledger import ProcessedEventLedger
from poolsafe.payments.views import get_intent_client, get_ledger, get_mailer
from poolsafe.payments.intents import PaymentIntentClient


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeStripe:
    """Stripe en mémoire: mêmes signatures que poolsafe.payments.stripe_client."""

    def __init__(self):
        self.intents: Dict[str, Dict[str, Any]] = {}
        self.customers: Dict[str, Dict[str, Any]] = {}
        self.calls: List[Tuple[Any, ...]] = []
        self.now = int(time.time())

    # --- PaymentIntents ---
    def create_intent(self, *, amount, currency, metadata, description, receipt_email=None, express=False):
        self.calls.append(("create", amount))
        pi_id = f"pi_test_{len(self.intents) + 1}"
        intent = {
            "id": pi_id,
            "client_secret": f"{pi_id}_secret_abc",
            "amount": amount,
            "currency": currency,
            "metadata": dict(metadata),
            "description": description,
            "receipt_email": receipt_email,
            "setup_future_usage": None if express else "off_session",
            "status": "requires_payment_method",
            "created": self.now,
        }
        self.intents[pi_id] = intent
        return dict(intent)

    def update_intent(self, intent_id, *, amount, metadata, description, receipt_email=None):
        self.calls.append(("update", intent_id, amount))
        intent = self.intents.get(intent_id)
        if intent is None or intent["status"] not in stripe_client.NON_TERMINAL_STATUSES:
            raise stripe.InvalidRequestError(f"No such updatable payment_intent: '{intent_id}'", param="intent")
        intent.update(amount=amount, metadata=dict(metadata), description=description)
        if receipt_email:
            intent["receipt_email"] = receipt_email
        return dict(intent)

    def annotate_intent(self, intent_id, *, receipt_email, description):
        self.calls.append(("annotate", intent_id))
        intent = self.intents.setdefault(intent_id, {"id": intent_id, "status": "succeeded", "metadata": {}})
        intent.update(receipt_email=receipt_email, description=description)
        return dict(intent)

    def retrieve_intent(self, intent_id):
        self.calls.append(("retrieve", intent_id))
        if intent_id not in self.intents:
            raise stripe.InvalidRequestError(f"No such payment_intent: '{intent_id}'", param="intent")
        return dict(self.intents[intent_id])

    def cancel_intent(self, intent_id):
        self.calls.append(("cancel", intent_id))
        self.intents[intent_id]["status"] = "canceled"
        return dict(self.intents[intent_id])

    def list_intents(self, *, created_before=None, limit=100):
        self.calls.append(("list", created_before))
        rows = [dict(pi) for pi in self.intents.values()]
        if created_before is not None:
            rows = [pi for pi in rows if int(pi.get("created") or 0) < created_before]
        return rows[:limit]

    # --- Customers ---
    def find_customer_by_email(self, email):
        for customer in self.customers.values():
            if customer["email"] == email:
                return dict(customer)
        return None

    def create_customer(self, *, email, name, phone, metadata):
        cus_id = f"cus_test_{len(self.customers) + 1}"
        self.customers[cus_id] = {"id": cus_id, "email": email, "name": name, "phone": phone, "metadata": dict(metadata)}
        return dict(self.customers[cus_id])

    def update_customer(self, customer_id, *, name, phone, metadata):
        self.customers[customer_id].update(name=name, phone=phone, metadata=dict(metadata))
        return dict(self.customers[customer_id])

    # --- helpers de test ---
    def add_intent(self, pi_id: str, *, status="requires_payment_method", age_seconds=0, email: Optional[str] = None, amount=21000):
        self.intents[pi_id] = {
            "id": pi_id,
            "client_secret": f"{pi_id}_secret",
            "amount": amount,
            "metadata": {"email": email} if email else {},
            "receipt_email": None,
            "status": status,
            "created": self.now - age_seconds,
        }
        return self.intents[pi_id]

    def count(self, kind: str) -> int:
        return sum(1 for c in self.calls if c[0] == kind)


class FakeMailer:
    def __init__(self):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for: set = set()

    def send(self, to, subject, html, reply_to=None):
        if to in self.fail_for:
            raise NotificationFailure(f"Error sending email to {to}")
        self.sent.append({"to": to, "subject": subject, "html": html, "reply_to": reply_to})

    def close(self):
        pass


# Aucun appel Stripe réel: toutes les fonctions de l'adaptateur sont remplacées
@pytest.fixture(autouse=True)
def fake_stripe(monkeypatch) -> FakeStripe:
    fake = FakeStripe()
    for name in (
        "create_intent",
        "update_intent",
        "annotate_intent",
        "retrieve_intent",
        "cancel_intent",
        "list_intents",
        "find_customer_by_email",
        "create_customer",
        "update_customer",
    ):
        monkeypatch.setattr(stripe_client, name, getattr(fake, name), raising=True)
    return fake


@pytest.fixture()
def fake_mailer() -> FakeMailer:
    return FakeMailer()


@pytest.fixture()
def valid_details() -> Dict[str, str]:
    return {
        "firstName": "Jane",
        "lastName": "Citizen",
        "email": "a@b.com",
        "phone": "0412 345 678",
        "address": "1 Beach Rd",
        "suburb": "Glenelg",
        "postcode": "5045",
        "preferredDate": "2030-01-15",
        "notes": "Gate code 1234",
    }


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app, fake_mailer) -> Generator[TestClient, None, None]:
    # Dépendances fraîches par test: registre d'événements vide, mailer factice
    ledger = ProcessedEventLedger()
    intents = PaymentIntentClient()
    app.dependency_overrides[get_mailer] = lambda: fake_mailer
    app.dependency_overrides[get_ledger] = lambda: ledger
    app.dependency_overrides[get_intent_client] = lambda: intents
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()

"""
Réconciliation des événements Stripe (webhook).

Après vérification de la signature, le traitement est toujours acquitté:
une erreur interne (email, nettoyage, upsert client) est journalisée mais ne
renvoie jamais d'échec à Stripe, pour éviter des relivraisons en boucle.
Les effets de bord sont idempotents (upsert client par email), un rejeu
manuel reste donc sans risque.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from poolsafe import config
from poolsafe.errors import CheckoutError, NotificationFailure
from poolsafe.notifications import EmailSender, messages
from . import metadata as meta
from . import stripe_client
from .intents import PaymentIntentClient
from .ledger import ProcessedEventLedger

logger = logging.getLogger(__name__)

PAYMENT_SUCCEEDED = "payment_intent.succeeded"
PAYMENT_FAILED = "payment_intent.payment_failed"
CHARGE_REFUNDED = "charge.refunded"

# Champs client recopiés sur le Customer Stripe
_CUSTOMER_FIELDS = ("firstName", "lastName", "phone", "address", "suburb", "postcode", "preferredDate", "notes", "includeCprSign")


class WebhookReconciler:
    def __init__(
        self,
        intents: PaymentIntentClient,
        mailer: EmailSender,
        ledger: Optional[ProcessedEventLedger] = None,
        business_email: Optional[str] = None,
    ):
        self.intents = intents
        self.mailer = mailer
        self.ledger = ledger or ProcessedEventLedger()
        self.business_email = business_email or config.BUSINESS_EMAIL
        self._handlers: Dict[str, Callable[[Dict[str, Any], bool], Dict[str, Any]]] = {
            PAYMENT_SUCCEEDED: self._on_payment_succeeded,
            PAYMENT_FAILED: self._on_payment_failed,
            CHARGE_REFUNDED: self._on_charge_refunded,
        }

    def handle(self, event: Dict[str, Any]) -> Dict[str, Any]:
        """
        Traite un événement déjà authentifié.
        Retour: résumé {"type", "status", ...} (journalisation / tests), jamais d'exception.
        """
        event_type = (event or {}).get("type") or ""
        event_id = (event or {}).get("id")
        handler = self._handlers.get(event_type)
        result: Dict[str, Any] = {"type": event_type, "status": "ignored"}
        if handler is not None:
            first = self.ledger.first_delivery(event_id)
            if not first:
                logger.info("payments.webhook redelivery event_id=%s type=%s", event_id, event_type)
            try:
                result = {"type": event_type, **handler(event, first)}
            except Exception:
                logger.exception("payments.webhook processing failed event_id=%s type=%s", event_id, event_type)
                result = {"type": event_type, "status": "error"}
        result["cancelled_stale"] = self.intents.cancel_stale_intents()
        return result

    # --- payment_intent.succeeded ---
    def _on_payment_succeeded(self, event: Dict[str, Any], first_delivery: bool) -> Dict[str, Any]:
        intent = event["data"]["object"]
        metadata = meta.extract_metadata(event)
        email = metadata.get("email") or intent.get("receipt_email")
        if not email:
            logger.error("payments.webhook no customer email found in payment intent id=%s", intent.get("id"))
            return {"status": "no_email"}

        booking = meta.booking_summary(metadata, fallback_email=email)
        customer_id = self._upsert_customer(email, booking, metadata, intent.get("id"))
        self._annotate_intent(intent.get("id"), email, metadata)

        sent: List[str] = []
        if first_delivery:
            amount = meta.amount_display(intent.get("amount_received") or intent.get("amount"))
            sent = self._notify([
                (self.business_email, messages.booking_business(booking, intent.get("id"), amount), email),
                (email, messages.booking_customer(booking, intent.get("id"), amount), None),
            ])
        return {"status": "ok", "customer_id": customer_id, "email": email, "notified": sent}

    def _upsert_customer(self, email: str, booking: Dict[str, Any], metadata: Dict[str, str], intent_id: Optional[str]) -> Optional[str]:
        """Crée le Customer Stripe s'il n'existe pas (clé: email), sinon met à jour ses métadonnées."""
        customer_meta = {"paymentIntentId": intent_id or ""}
        customer_meta.update({k: metadata.get(k, "") for k in _CUSTOMER_FIELDS})
        if not metadata.get("includeCprSign"):
            customer_meta["includeCprSign"] = "false"
        try:
            existing = stripe_client.find_customer_by_email(email)
            if existing:
                stripe_client.update_customer(existing["id"], name=booking["name"], phone=booking["phone"], metadata=customer_meta)
                logger.info("payments.webhook customer updated id=%s email=%s", existing["id"], email)
                return existing["id"]
            created = stripe_client.create_customer(email=email, name=booking["name"], phone=booking["phone"], metadata=customer_meta)
            logger.info("payments.webhook customer created id=%s email=%s", created.get("id"), email)
            return created.get("id")
        except Exception:
            logger.exception("payments.webhook customer upsert failed email=%s", email)
            return None

    def _annotate_intent(self, intent_id: Optional[str], email: str, metadata: Dict[str, str]) -> None:
        if not intent_id:
            return
        description = "Pool Safety Inspection" + (" with CPR Sign" if metadata.get("includeCprSign") == "true" else "")
        try:
            stripe_client.annotate_intent(intent_id, receipt_email=email, description=description)
        except Exception:
            logger.exception("payments.webhook receipt update failed id=%s", intent_id)

    # --- payment_intent.payment_failed ---
    def _on_payment_failed(self, event: Dict[str, Any], first_delivery: bool) -> Dict[str, Any]:
        intent = event["data"]["object"]
        error = (intent.get("last_payment_error") or {}).get("message")
        logger.error("payments.webhook payment failed id=%s error=%s", intent.get("id"), error)
        return {"status": "logged"}

    # --- charge.refunded ---
    def _on_charge_refunded(self, event: Dict[str, Any], first_delivery: bool) -> Dict[str, Any]:
        charge = event["data"]["object"]
        metadata = meta.extract_metadata(event)
        if not metadata.get("email") and charge.get("payment_intent"):
            try:
                intent = stripe_client.retrieve_intent(charge["payment_intent"])
                metadata = {str(k): str(v) for k, v in (intent.get("metadata") or {}).items()}
            except CheckoutError:
                logger.exception("payments.webhook refund metadata lookup failed charge=%s", charge.get("id"))
        email = (
            metadata.get("email")
            or charge.get("receipt_email")
            or (charge.get("billing_details") or {}).get("email")
        )
        if not email:
            logger.error("payments.webhook no customer email found for refunded charge id=%s", charge.get("id"))
            return {"status": "no_email"}
        if not first_delivery:
            return {"status": "ok", "email": email, "notified": []}

        booking = meta.booking_summary(metadata, fallback_email=email)
        amount = meta.amount_display(charge.get("amount_refunded") or charge.get("amount"))
        sent = self._notify([
            (email, messages.refund_customer(booking, charge.get("id"), amount), None),
            (self.business_email, messages.refund_business(booking, charge.get("id"), amount), email),
        ])
        return {"status": "ok", "email": email, "notified": sent}

    def _notify(self, outgoing: List[Tuple[str, Tuple[str, str], Optional[str]]]) -> List[str]:
        """Tente chaque envoi indépendamment; un échec est journalisé, sans nouvelle tentative."""
        sent: List[str] = []
        for to, (subject, html), reply_to in outgoing:
            try:
                self.mailer.send(to, subject, html, reply_to=reply_to)
                sent.append(to)
            except NotificationFailure as e:
                logger.error("payments.webhook notification failed to=%s: %s", to, e)
        return sent

"""
Cas d'usage 'intents': crée, met à jour et nettoie les PaymentIntents d'une réservation.
Orchestre catalog (prix), metadata et stripe_client.
"""
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Iterable, Optional

import stripe

from poolsafe import config
from poolsafe.booking.form import CustomerDetails
from poolsafe.catalog import build_order, describe
from poolsafe.errors import AmountMismatch, InvalidMetadata, RemoteUnavailable
from . import metadata as meta
from . import stripe_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentHandle:
    intent_id: str
    client_secret: str
    amount: int


class PaymentIntentClient:
    """
    Une session de checkout correspond à au plus un intent vivant:
    un id existant est mis à jour sur place plutôt que recréé (sauf paiement express).
    """

    def __init__(
        self,
        currency: Optional[str] = None,
        stale_after: Optional[timedelta] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.currency = currency or config.CURRENCY
        self.stale_after = stale_after or timedelta(minutes=config.STALE_INTENT_MINUTES)
        self._clock = clock

    def create_or_update_intent(
        self,
        amount: int,
        selected_option_ids: Iterable[str],
        customer_details: Optional[CustomerDetails] = None,
        existing_intent_id: Optional[str] = None,
        express: bool = False,
    ) -> IntentHandle:
        """
        amount: total en centimes que le client s'apprête à payer.
        - AmountMismatch si amount diffère du total calculé (aucun appel Stripe).
        - InvalidMetadata si le snapshot dépasse les limites Stripe.
        - RemoteUnavailable si Stripe est injoignable.
        """
        order = build_order(selected_option_ids)
        if amount != order.total:
            logger.error("payments.intent amount mismatch provided=%s expected=%s options=%s",
                         amount, order.total, sorted(order.selected_option_ids))
            raise AmountMismatch(provided=amount, expected=order.total)

        metadata = meta.make_metadata(order, customer_details, now_ms=int(self._clock() * 1000))
        email = customer_details.email if customer_details and customer_details.email else None
        description = describe(order)

        if existing_intent_id and not express:
            try:
                intent = stripe_client.update_intent(
                    existing_intent_id,
                    amount=order.total,
                    metadata=metadata,
                    description=description,
                    receipt_email=email,
                )
                logger.info("payments.intent updated id=%s amount=%s", intent.get("id"), intent.get("amount"))
                return self._handle(intent)
            except stripe.InvalidRequestError as e:
                # Intent terminé (payé, annulé) ou introuvable: on en recrée un
                logger.warning("payments.intent update failed id=%s, creating a new one: %s", existing_intent_id, e)

        if email:
            self.cancel_stale_intents(email, exclude=existing_intent_id)

        try:
            intent = stripe_client.create_intent(
                amount=order.total,
                currency=self.currency,
                metadata=metadata,
                description=description,
                receipt_email=email,
                express=express,
            )
        except stripe.InvalidRequestError as e:
            if (getattr(e, "param", None) or "").startswith("metadata"):
                raise InvalidMetadata(e.user_message or str(e)) from e
            raise RemoteUnavailable("Payment provider rejected the request") from e
        logger.info("payments.intent created id=%s amount=%s status=%s express=%s",
                    intent.get("id"), intent.get("amount"), intent.get("status"), express)
        return self._handle(intent)

    def cancel_stale_intents(
        self,
        customer_email: Optional[str] = None,
        window: Optional[timedelta] = None,
        exclude: Optional[str] = None,
    ) -> int:
        """
        Annule (best-effort) les intents non finalisés plus anciens que window.
        - customer_email: restreint aux intents de ce client (metadata.email ou receipt_email).
        - Ne lève jamais: un échec est journalisé et ne bloque pas la création d'un intent.
        Retour: nombre d'intents annulés.
        """
        window = window or self.stale_after
        cutoff = int(self._clock() - window.total_seconds())
        cancelled = 0
        try:
            intents = stripe_client.list_intents(created_before=cutoff)
            for pi in intents:
                if pi.get("id") == exclude:
                    continue
                if pi.get("status") not in stripe_client.NON_TERMINAL_STATUSES:
                    continue
                if int(pi.get("created") or 0) >= cutoff:
                    continue
                if customer_email and not _belongs_to(pi, customer_email):
                    continue
                stripe_client.cancel_intent(pi["id"])
                cancelled += 1
        except Exception:
            logger.exception("payments.intent cleanup failed email=%s", customer_email)
        if cancelled:
            logger.info("payments.intent cancelled %s stale intent(s) email=%s", cancelled, customer_email)
        return cancelled

    def retrieve_status(self, intent_id: str) -> dict:
        intent = stripe_client.retrieve_intent(intent_id)
        return {
            "paymentIntentId": intent.get("id"),
            "status": intent.get("status"),
            "amount": intent.get("amount"),
        }

    @staticmethod
    def _handle(intent: dict) -> IntentHandle:
        if not intent.get("id") or not intent.get("client_secret"):
            raise RemoteUnavailable("No client secret or payment intent ID in response")
        return IntentHandle(intent_id=intent["id"], client_secret=intent["client_secret"], amount=int(intent.get("amount") or 0))


def _belongs_to(intent: dict, email: str) -> bool:
    target = email.strip().lower()
    meta_email = str((intent.get("metadata") or {}).get("email") or "").strip().lower()
    receipt = str(intent.get("receipt_email") or "").strip().lower()
    return target in (meta_email, receipt)

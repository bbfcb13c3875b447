import logging
from functools import lru_cache
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from poolsafe import config
from poolsafe.booking import BookingFormState
from poolsafe.catalog import CATALOG, selection_from_items, to_cents
from poolsafe.errors import ValidationError
from poolsafe.notifications import EmailSender
from poolsafe.utils.rate_limit import optional_rate_limit
from . import stripe_client
from .intents import PaymentIntentClient
from .ledger import ProcessedEventLedger
from .schemas import PaymentIntentRequest, PaymentIntentResponse
from .webhook import WebhookReconciler

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

NO_STORE = {"Cache-Control": "no-store"}


# Dépendances (remplaçables via app.dependency_overrides en tests)
@lru_cache(maxsize=1)
def get_intent_client() -> PaymentIntentClient:
    return PaymentIntentClient()


@lru_cache(maxsize=1)
def get_mailer() -> EmailSender:
    return EmailSender()


@lru_cache(maxsize=1)
def get_ledger() -> ProcessedEventLedger:
    return ProcessedEventLedger.from_config()


def get_reconciler(
    intents: PaymentIntentClient = Depends(get_intent_client),
    mailer: EmailSender = Depends(get_mailer),
    ledger: ProcessedEventLedger = Depends(get_ledger),
) -> WebhookReconciler:
    return WebhookReconciler(intents=intents, mailer=mailer, ledger=ledger)


# module poolsafe.payments.views
@router.post(
    "/intent",
    response_model=PaymentIntentResponse,
    dependencies=[Depends(optional_rate_limit(times=20, seconds=60))],
)
def create_payment_intent(body: PaymentIntentRequest, intents: PaymentIntentClient = Depends(get_intent_client)):
    """
    Crée ou met à jour le PaymentIntent d'une réservation.
    - Entrée JSON: {amount, items[], includeAddOn, customerDetails?, paymentIntentId?, isExpressCheckout?}
    - Étapes:
      1) Valider la requête (montant, items, coordonnées si fournies)
      2) Déduire la sélection depuis le catalogue (le prix client est ignoré)
      3) PaymentIntentClient.create_or_update_intent (rejet AmountMismatch avant tout appel Stripe)
    - Sortie: {clientSecret, paymentIntentId}; erreurs rendues en {error, code}
    """
    if not body.amount or not body.items:
        raise ValidationError("Invalid request data")

    selection = selection_from_items([it.model_dump() for it in body.items], include_add_on=body.include_add_on)

    details = None
    if body.customer_details:
        form = BookingFormState.from_mapping(body.customer_details)
        if not body.is_express_checkout and not form.is_complete():
            raise ValidationError("Invalid customer details", fields=form.errors)
        details = form.to_details()

    handle = intents.create_or_update_intent(
        amount=to_cents(body.amount),
        selected_option_ids=selection,
        customer_details=details,
        existing_intent_id=body.payment_intent_id,
        express=body.is_express_checkout,
    )
    return JSONResponse(
        {"clientSecret": handle.client_secret, "paymentIntentId": handle.intent_id},
        headers=NO_STORE,
    )


@router.get("/config")
def payments_config() -> Dict[str, Any]:
    """Clé publique Stripe + catalogue, pour initialiser le formulaire de paiement."""
    return {
        "publishableKey": config.STRIPE_PUBLIC_KEY,
        "currency": config.CURRENCY,
        "catalog": [
            {
                "id": o.id,
                "name": o.name,
                "price": o.unit_amount / 100,
                "description": o.description,
                "mandatory": o.mandatory,
            }
            for o in CATALOG.values()
        ],
    }


@router.get("/confirm")
def confirm_payment_intent(payment_intent: str, intents: PaymentIntentClient = Depends(get_intent_client)):
    """
    Page de confirmation: relit le statut d'un intent (référence de paiement).
    - Ne crée rien: la finalisation passe par le webhook.
    """
    if not payment_intent.startswith("pi_"):
        raise ValidationError("Invalid payment reference", fields={"payment_intent": "Invalid payment reference"})
    return JSONResponse(intents.retrieve_status(payment_intent), headers=NO_STORE)


@router.post("/webhook", include_in_schema=False)
async def stripe_webhook(request: Request, reconciler: WebhookReconciler = Depends(get_reconciler)):
    """
    Webhook Stripe: payment_intent.succeeded / payment_failed, charge.refunded.
    - Signature: stripe_client.construct_event (Stripe-Signature + STRIPE_WEBHOOK_SECRET);
      échec -> AuthenticationError (400), aucun traitement
    - Après vérification: toujours {"received": true}, même si un email échoue
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    event = await run_in_threadpool(stripe_client.construct_event, payload, sig_header)
    # Appels Stripe et SMTP bloquants: hors de la boucle d'événements
    result = await run_in_threadpool(reconciler.handle, event)
    logger.info("payments.webhook event_id=%s result=%s", event.get("id"), result)
    return JSONResponse({"received": True})

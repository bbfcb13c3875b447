"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
Seul module du projet qui importe le SDK; les erreurs réseau/API du SDK sont
traduites en RemoteUnavailable, les erreurs de signature en AuthenticationError.
"""
import functools
import json
import logging
from typing import Any, Dict, List, Optional

import stripe

from poolsafe import config
from poolsafe.errors import AuthenticationError, RemoteUnavailable

logger = logging.getLogger(__name__)

# Statuts d'un PaymentIntent encore en attente d'une action du client
NON_TERMINAL_STATUSES = ("requires_payment_method", "requires_confirmation", "requires_action")

_TRANSIENT_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
    stripe.APIError,
    stripe.AuthenticationError,
    stripe.PermissionError,
)


# module poolsafe.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l'emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY.
    - RemoteUnavailable si la clé est absente (configuration serveur incomplète).
    """
    if not config.STRIPE_SECRET_KEY:
        raise RemoteUnavailable("STRIPE_SECRET_KEY is not set")
    stripe.api_key = config.STRIPE_SECRET_KEY
    return stripe


def _translate_errors(fn):
    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except _TRANSIENT_ERRORS as e:
            logger.warning("stripe.%s failed: %s", fn.__name__, e)
            raise RemoteUnavailable("Payment provider unavailable, please try again") from e
    return wrapper


def _as_dict(obj: Any) -> Dict[str, Any]:
    # stripe retourne un StripeObject; on le traite comme dict-compatible
    return dict(obj) if obj is not None else {}


@_translate_errors
def create_intent(
    *,
    amount: int,
    currency: str,
    metadata: Dict[str, str],
    description: str,
    receipt_email: Optional[str] = None,
    express: bool = False,
) -> Dict[str, Any]:
    """
    Crée un PaymentIntent (montant en centimes).
    - Paiement express (wallet): pas de setup_future_usage, l'identité du payeur est inconnue.
    Retour: dict intent incluant "id", "client_secret", "amount", "status".
    """
    require_stripe()
    params: Dict[str, Any] = {
        "amount": amount,
        "currency": currency,
        "metadata": metadata,
        "description": description,
        "automatic_payment_methods": {"enabled": True},
    }
    if receipt_email:
        params["receipt_email"] = receipt_email
    if not express:
        params["setup_future_usage"] = "off_session"
    return _as_dict(stripe.PaymentIntent.create(**params))


@_translate_errors
def update_intent(
    intent_id: str,
    *,
    amount: int,
    metadata: Dict[str, str],
    description: str,
    receipt_email: Optional[str] = None,
) -> Dict[str, Any]:
    """Met à jour un PaymentIntent existant (montant + métadonnées), l'id est conservé."""
    require_stripe()
    params: Dict[str, Any] = {"amount": amount, "metadata": metadata, "description": description}
    if receipt_email:
        params["receipt_email"] = receipt_email
    return _as_dict(stripe.PaymentIntent.modify(intent_id, **params))


@_translate_errors
def annotate_intent(intent_id: str, *, receipt_email: str, description: str) -> Dict[str, Any]:
    require_stripe()
    return _as_dict(stripe.PaymentIntent.modify(intent_id, receipt_email=receipt_email, description=description))


@_translate_errors
def retrieve_intent(intent_id: str) -> Dict[str, Any]:
    require_stripe()
    return _as_dict(stripe.PaymentIntent.retrieve(intent_id))


@_translate_errors
def cancel_intent(intent_id: str) -> Dict[str, Any]:
    require_stripe()
    return _as_dict(stripe.PaymentIntent.cancel(intent_id))


@_translate_errors
def list_intents(*, created_before: Optional[int] = None, limit: int = 100) -> List[Dict[str, Any]]:
    """Liste les intents récents; created_before (epoch s) restreint aux plus anciens."""
    require_stripe()
    params: Dict[str, Any] = {"limit": limit}
    if created_before is not None:
        params["created"] = {"lt": created_before}
    result = stripe.PaymentIntent.list(**params)
    return [_as_dict(pi) for pi in (result.get("data") or [])]


@_translate_errors
def find_customer_by_email(email: str) -> Optional[Dict[str, Any]]:
    require_stripe()
    result = stripe.Customer.list(email=email, limit=1)
    rows = result.get("data") or []
    return _as_dict(rows[0]) if rows else None


@_translate_errors
def create_customer(*, email: str, name: str, phone: str, metadata: Dict[str, str]) -> Dict[str, Any]:
    require_stripe()
    return _as_dict(stripe.Customer.create(email=email, name=name, phone=phone, metadata=metadata))


@_translate_errors
def update_customer(customer_id: str, *, name: str, phone: str, metadata: Dict[str, str]) -> Dict[str, Any]:
    require_stripe()
    return _as_dict(stripe.Customer.modify(customer_id, name=name, phone=phone, metadata=metadata))


def construct_event(payload: bytes, sig_header: Optional[str]) -> Dict[str, Any]:
    """
    Valide et parse un événement Stripe signé (webhook).
    - Valide la signature via Webhook.construct_event (STRIPE_WEBHOOK_SECRET)
    - AuthenticationError si l'en-tête, le secret ou la signature manquent/échouent.
    """
    if not sig_header or not config.STRIPE_WEBHOOK_SECRET:
        raise AuthenticationError("Missing signature or endpoint secret")
    try:
        stripe.Webhook.construct_event(payload, sig_header, config.STRIPE_WEBHOOK_SECRET)
    except stripe.SignatureVerificationError as e:
        raise AuthenticationError(f"Webhook Error: {e}") from e
    except ValueError as e:
        raise AuthenticationError(f"Webhook Error: invalid payload ({e})") from e
    # Signature valide: le corps brut donne l'événement en dicts simples
    return json.loads(payload)


def stripe_health_info() -> Dict[str, Any]:
    return {
        "secret_key": bool(config.STRIPE_SECRET_KEY),
        "publishable_key": bool(config.STRIPE_PUBLIC_KEY),
        "webhook_secret": bool(config.STRIPE_WEBHOOK_SECRET),
        "live_mode": config.STRIPE_SECRET_KEY.startswith("sk_live_"),
    }

"""
Client HTTP (httpx) de l'endpoint /api/v1/payments/intent.
Joue le rôle du navigateur: l'orchestrateur l'utilise comme n'importe quel
client d'intents. Un timeout ou une panne réseau devient RemoteUnavailable,
sans nouvelle tentative automatique (risque d'intent en double).
"""
import logging
from typing import Any, Dict, Iterable, Optional

import httpx

from poolsafe import config
from poolsafe.booking.form import CustomerDetails
from poolsafe.catalog import CATALOG, build_order
from poolsafe.errors import AmountMismatch, CheckoutError, InvalidMetadata, RemoteUnavailable, ValidationError
from poolsafe.payments.intents import IntentHandle

logger = logging.getLogger(__name__)

INTENT_PATH = "/api/v1/payments/intent"


def error_from_response(status_code: int, data: Dict[str, Any]) -> CheckoutError:
    message = str(data.get("error") or f"Unexpected response ({status_code})")
    code = data.get("code")
    if code == AmountMismatch.code:
        return AmountMismatch(message=message)
    if code == ValidationError.code:
        return ValidationError(message, fields=data.get("fields"))
    if code == InvalidMetadata.code:
        return InvalidMetadata(message)
    return RemoteUnavailable(message)


class IntentApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._client = httpx.Client(
            base_url=base_url or config.BASE_URL,
            timeout=timeout or config.HTTP_TIMEOUT_SECONDS,
            transport=transport,
        )

    def create_or_update_intent(
        self,
        amount: int,
        selected_option_ids: Iterable[str],
        customer_details: Optional[CustomerDetails] = None,
        existing_intent_id: Optional[str] = None,
        express: bool = False,
    ) -> IntentHandle:
        order = build_order(selected_option_ids)
        payload: Dict[str, Any] = {
            "amount": amount / 100,
            "items": [
                {"id": o.id, "name": o.name, "price": o.unit_amount / 100, "description": o.description}
                for o in CATALOG.values()
                if o.id in order.selected_option_ids
            ],
            "includeAddOn": order.includes_add_on,
            "isExpressCheckout": express,
        }
        if customer_details is not None:
            payload["customerDetails"] = customer_details.to_camel()
        if existing_intent_id:
            payload["paymentIntentId"] = existing_intent_id

        try:
            res = self._client.post(INTENT_PATH, json=payload)
        except httpx.HTTPError as e:
            logger.warning("checkout.api intent request failed: %s", e)
            raise RemoteUnavailable("Error initializing payment. Please try again.") from e
        try:
            data = res.json()
        except ValueError:
            data = {}
        if res.status_code >= 400:
            raise error_from_response(res.status_code, data)
        if not data.get("clientSecret") or not data.get("paymentIntentId"):
            raise RemoteUnavailable("No client secret or payment intent ID in response")
        return IntentHandle(intent_id=data["paymentIntentId"], client_secret=data["clientSecret"], amount=amount)

    def close(self) -> None:
        self._client.close()

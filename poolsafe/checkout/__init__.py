"""
Parcours de réservation côté client: orchestrateur à états et client HTTP de l'API d'intents.
"""
from poolsafe.checkout.api_client import IntentApiClient, error_from_response
from poolsafe.checkout.orchestrator import CheckoutOrchestrator, CheckoutStep, IntentStatus, PaymentConfirmer

__all__ = [
    "CheckoutOrchestrator",
    "CheckoutStep",
    "IntentStatus",
    "PaymentConfirmer",
    "IntentApiClient",
    "error_from_response",
]

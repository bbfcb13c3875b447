"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client Stripe, métadonnées, cycle de vie des PaymentIntents et réconciliation webhook.
"""

from .metadata import make_metadata, extract_metadata, booking_summary
from .stripe_client import require_stripe, construct_event
from .intents import IntentHandle, PaymentIntentClient
from .ledger import ProcessedEventLedger
from .webhook import WebhookReconciler

__all__ = [
    # metadata
    "make_metadata",
    "extract_metadata",
    "booking_summary",
    # stripe
    "require_stripe",
    "construct_event",
    # intents
    "IntentHandle",
    "PaymentIntentClient",
    # webhook
    "ProcessedEventLedger",
    "WebhookReconciler",
]

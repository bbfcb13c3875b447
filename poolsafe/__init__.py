"""
Backend de réservation Pool Compliance SA: checkout, PaymentIntents Stripe et notifications.
"""

__version__ = "0.1.0"

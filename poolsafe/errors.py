"""
Taxonomie des erreurs du flux de réservation/paiement.

- ValidationError: champ(s) invalide(s), corrigeable par l'utilisateur.
- AmountMismatch: le montant envoyé ne correspond pas au total calculé (aucun appel Stripe).
- RemoteUnavailable: Stripe injoignable ou en erreur, l'utilisateur peut réessayer.
- InvalidMetadata: les métadonnées dépassent les limites Stripe.
- AuthenticationError: signature webhook absente ou invalide.
- NotificationFailure: envoi d'email échoué (journalisé, jamais propagé au webhook).

Chaque erreur porte un status_code HTTP et un code stable, rendus par
poolsafe.app_setup.exceptions en {"error": ..., "code": ...}.
"""
from typing import Dict, Optional


class CheckoutError(Exception):
    status_code = 400
    code = "checkout_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> Dict[str, object]:
        return {"error": self.message, "code": self.code}


class ValidationError(CheckoutError):
    code = "validation_error"

    def __init__(self, message: str = "Invalid request data", fields: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.fields = dict(fields or {})

    def to_dict(self) -> Dict[str, object]:
        data = super().to_dict()
        if self.fields:
            data["fields"] = self.fields
        return data


class AmountMismatch(CheckoutError):
    code = "amount_mismatch"

    def __init__(self, provided: Optional[int] = None, expected: Optional[int] = None, message: str = "Amount mismatch detected"):
        super().__init__(message)
        self.provided = provided
        self.expected = expected


class RemoteUnavailable(CheckoutError):
    status_code = 503
    code = "remote_unavailable"


class InvalidMetadata(CheckoutError):
    code = "invalid_metadata"


class AuthenticationError(CheckoutError):
    code = "authentication_error"


class NotificationFailure(CheckoutError):
    status_code = 500
    code = "notification_failure"

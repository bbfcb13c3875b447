"""
Orchestrateur du checkout: une machine à états explicite.

    DETAILS -> REVIEW -> PAYMENT -> CONFIRMATION

- Un intent n'est jamais créé avant que le formulaire soit complet et valide.
- Tant qu'un intent existe, tout changement du total (option CPR) ou des
  coordonnées est poussé au client d'intents: le montant distant ne diverge
  jamais du total affiché.
- La confirmation du paiement est une capacité injectée par le formulaire de
  paiement (confirm_payment), pas un callback global.
"""
import enum
import logging
from typing import Any, Callable, Dict, Optional, Protocol, Set, Iterable

from poolsafe.booking import BookingFormState, CustomerDetails
from poolsafe.catalog import CPR_SIGN_ID, INSPECTION_ID, Order, build_order
from poolsafe.errors import CheckoutError
from poolsafe.payments.intents import IntentHandle

logger = logging.getLogger(__name__)


class CheckoutStep(str, enum.Enum):
    DETAILS = "details"
    REVIEW = "review"
    PAYMENT = "payment"
    CONFIRMATION = "confirmation"


class IntentStatus(str, enum.Enum):
    NONE = "none"
    PENDING = "pending"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class IntentGateway(Protocol):
    def create_or_update_intent(
        self,
        amount: int,
        selected_option_ids: Iterable[str],
        customer_details: Optional[CustomerDetails] = None,
        existing_intent_id: Optional[str] = None,
        express: bool = False,
    ) -> IntentHandle: ...


# Reçoit le client secret, retourne le statut Stripe final ("succeeded", ...)
PaymentConfirmer = Callable[[str], str]


class CheckoutOrchestrator:
    def __init__(
        self,
        intents: IntentGateway,
        confirm_payment: Optional[PaymentConfirmer] = None,
        form: Optional[BookingFormState] = None,
        express: bool = False,
    ):
        self.intents = intents
        self.confirm_payment = confirm_payment
        self.form = form or BookingFormState()
        self.express = express
        self.step = CheckoutStep.DETAILS
        self.intent_status = IntentStatus.NONE
        self.intent_id: Optional[str] = None
        self.client_secret: Optional[str] = None
        self.pushed_amount: Optional[int] = None
        self.error: Optional[str] = None
        self._options: Set[str] = {INSPECTION_ID}
        self._closed = False
        # Dernière mise à jour distante en échec: le montant Stripe peut différer du total affiché
        self._out_of_sync = False

    # --- commande ---
    @property
    def order(self) -> Order:
        return build_order(self._options)

    @property
    def total(self) -> int:
        return self.order.total

    def set_add_on(self, include: bool) -> None:
        """Ajoute/retire le panneau CPR; met à jour l'intent existant si le total change."""
        before = self.total
        if include:
            self._options.add(CPR_SIGN_ID)
        else:
            self._options.discard(CPR_SIGN_ID)
        if self.total != before and self._has_live_intent():
            self._push_update()

    def toggle_add_on(self) -> None:
        self.set_add_on(CPR_SIGN_ID not in self._options)

    # --- formulaire ---
    def update_field(self, name: str, value: Any) -> Optional[str]:
        message = self.form.update_field(name, value)
        if self._has_live_intent() and self.form.is_complete():
            self._push_update()
        return message

    # --- transitions ---
    def go_to_review(self) -> bool:
        if self.step != CheckoutStep.DETAILS:
            return self.step == CheckoutStep.REVIEW
        if not self.form.is_complete():
            self.error = "Please complete the required fields"
            return False
        self.error = None
        self.step = CheckoutStep.REVIEW
        return True

    def go_to_payment(self) -> bool:
        """
        REVIEW -> PAYMENT: crée (ou met à jour) l'intent puis conserve le client secret.
        Échec: reste sur REVIEW avec l'erreur affichée (nouvel essai possible).
        """
        if self.step != CheckoutStep.REVIEW:
            return self.step == CheckoutStep.PAYMENT
        if not self.form.is_complete():
            self.step = CheckoutStep.DETAILS
            self.error = "Please complete the required fields"
            return False
        try:
            handle = self._request_intent()
        except CheckoutError as e:
            logger.warning("checkout.payment intent request failed code=%s: %s", e.code, e.message)
            self.error = e.message
            return False
        self._store(handle)
        self.error = None
        self.step = CheckoutStep.PAYMENT
        return True

    def submit_payment(self) -> bool:
        """
        PAYMENT -> CONFIRMATION uniquement si le formulaire de paiement rapporte 'succeeded'.
        Tout autre statut (ou exception) laisse l'utilisateur sur PAYMENT avec une erreur.
        """
        if self.step != CheckoutStep.PAYMENT or not self.client_secret:
            return self.step == CheckoutStep.CONFIRMATION
        if self.confirm_payment is None:
            self.error = "Payment form not initialized"
            return False
        if not self._resync_before_confirm():
            return False
        self.intent_status = IntentStatus.CONFIRMING
        try:
            status = self.confirm_payment(self.client_secret)
        except Exception as e:
            logger.warning("checkout.payment confirmation raised id=%s: %s", self.intent_id, e)
            self.intent_status = IntentStatus.FAILED
            self.error = str(e) or "Payment failed"
            return False
        if status == "succeeded":
            self.intent_status = IntentStatus.SUCCEEDED
            self.step = CheckoutStep.CONFIRMATION
            self.error = None
            logger.info("checkout.payment succeeded id=%s amount=%s", self.intent_id, self.pushed_amount)
            return True
        self.intent_status = IntentStatus.FAILED
        self.error = "Payment failed"
        logger.info("checkout.payment not completed id=%s status=%s", self.intent_id, status)
        return False

    def edit_order(self) -> bool:
        """REVIEW/PAYMENT -> DETAILS. L'intent est conservé pour être mis à jour ensuite."""
        if self.step not in (CheckoutStep.REVIEW, CheckoutStep.PAYMENT):
            return False
        self.step = CheckoutStep.DETAILS
        if self.intent_status in (IntentStatus.CONFIRMING, IntentStatus.FAILED):
            self.intent_status = IntentStatus.PENDING
        self.error = None
        return True

    def close(self) -> None:
        """Abandonne le travail en cours (fermeture du client HTTP si applicable)."""
        self._closed = True
        close = getattr(self.intents, "close", None)
        if callable(close):
            close()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "step": self.step.value,
            "intentStatus": self.intent_status.value,
            "paymentIntentId": self.intent_id,
            "clientSecret": self.client_secret if self.step == CheckoutStep.PAYMENT else None,
            "total": self.total,
            "includeAddOn": CPR_SIGN_ID in self._options,
            "errors": dict(self.form.errors),
            "warnings": dict(self.form.warnings),
            "error": self.error,
        }

    # --- interne ---
    def _has_live_intent(self) -> bool:
        return bool(self.intent_id) and self.intent_status in (IntentStatus.PENDING, IntentStatus.FAILED)

    def _request_intent(self) -> IntentHandle:
        details = self.form.to_details() if self.form.is_complete() else None
        return self.intents.create_or_update_intent(
            amount=self.total,
            selected_option_ids=frozenset(self._options),
            customer_details=details,
            existing_intent_id=self.intent_id,
            express=self.express,
        )

    def _push_update(self) -> None:
        if self._closed:
            return
        try:
            self._store(self._request_intent())
        except CheckoutError as e:
            logger.warning("checkout.intent update failed id=%s code=%s: %s", self.intent_id, e.code, e.message)
            self.error = e.message
            self._out_of_sync = True

    def _resync_before_confirm(self) -> bool:
        """
        Le paiement n'est confirmé que si le montant distant égale le total affiché.
        Une mise à jour précédemment en échec est retentée une fois; nouvel échec -> erreur inline.
        """
        if not self._out_of_sync and self.pushed_amount == self.total:
            return True
        try:
            handle = self._request_intent()
        except CheckoutError as e:
            logger.warning("checkout.payment blocked, intent out of sync id=%s code=%s: %s", self.intent_id, e.code, e.message)
            self.error = e.message
            return False
        self._store(handle)
        return True

    def _store(self, handle: IntentHandle) -> None:
        if self.intent_id and handle.intent_id != self.intent_id:
            logger.info("checkout.intent replaced old=%s new=%s", self.intent_id, handle.intent_id)
        self.intent_id = handle.intent_id
        self.client_secret = handle.client_secret
        self.pushed_amount = self.total
        self.intent_status = IntentStatus.PENDING
        self._out_of_sync = False

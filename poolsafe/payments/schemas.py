from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IntentItem(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    # Prix affiché côté client: informatif, jamais utilisé pour le calcul
    price: Optional[float] = None
    description: Optional[str] = None


class PaymentIntentRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    amount: float = Field(default=0, allow_inf_nan=False)
    items: List[IntentItem] = Field(default_factory=list)
    include_add_on: bool = Field(default=False, validation_alias=AliasChoices("includeAddOn", "includeCprSign"))
    customer_details: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("customerDetails", "customer_details"))
    payment_intent_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("paymentIntentId", "payment_intent_id"))
    is_express_checkout: bool = Field(default=False, validation_alias=AliasChoices("isExpressCheckout", "is_express_checkout"))


class PaymentIntentResponse(BaseModel):
    clientSecret: str
    paymentIntentId: str

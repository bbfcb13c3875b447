"""
État du formulaire de réservation (coordonnées, adresse, date souhaitée).

Les erreurs de validation sont des messages par champ, jamais des exceptions:
elles sont affichées à côté du champ et bloquent seulement la progression.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Callable, Dict, Mapping, Optional

from . import validators

logger = logging.getLogger(__name__)

# Nom interne -> clé camelCase (requêtes JSON, métadonnées Stripe)
FIELD_ALIASES: Dict[str, str] = {
    "first_name": "firstName",
    "last_name": "lastName",
    "email": "email",
    "phone": "phone",
    "address": "address",
    "suburb": "suburb",
    "postcode": "postcode",
    "preferred_date": "preferredDate",
    "notes": "notes",
}
_BY_ALIAS = {alias: name for name, alias in FIELD_ALIASES.items()}

FIELD_VALIDATORS: Dict[str, Callable[[str], Optional[str]]] = {
    "first_name": lambda v: validators.validate_required(v, "First name is required"),
    "last_name": lambda v: validators.validate_required(v, "Last name is required"),
    "email": validators.validate_email,
    "phone": validators.validate_phone,
    "address": lambda v: validators.validate_required(v, "Address is required"),
    "suburb": lambda v: validators.validate_required(v, "Suburb is required"),
    "postcode": validators.validate_postcode,
    "preferred_date": validators.validate_preferred_date,
}
REQUIRED_FIELDS = tuple(FIELD_VALIDATORS)


@dataclass(frozen=True)
class CustomerDetails:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    suburb: str = ""
    postcode: str = ""
    preferred_date: str = ""
    notes: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def to_camel(self) -> Dict[str, str]:
        return {FIELD_ALIASES[k]: v for k, v in asdict(self).items()}


def canonical_field(name: str) -> Optional[str]:
    """Accepte 'preferredDate' ou 'preferred_date'; None si le champ est inconnu."""
    if name in FIELD_ALIASES:
        return name
    return _BY_ALIAS.get(name)


class BookingFormState:
    def __init__(self, today: Optional[Callable[[], date]] = None):
        self._today = today or date.today
        self.values: Dict[str, str] = {name: "" for name in FIELD_ALIASES}
        self.errors: Dict[str, str] = {}
        self.warnings: Dict[str, str] = {}
        self._complete = False
        for name in REQUIRED_FIELDS:
            self._validate_field(name)
        self._refresh_completeness()

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], today: Optional[Callable[[], date]] = None) -> "BookingFormState":
        form = cls(today=today)
        for key, value in (data or {}).items():
            form.update_field(key, value)
        return form

    def update_field(self, name: str, value: Any) -> Optional[str]:
        """
        Met à jour un champ puis revalide ce champ seul et la complétude globale.
        Retourne le message d'erreur du champ (None si valide).
        """
        field = canonical_field(name)
        if field is None:
            logger.warning("booking.form unknown field=%s ignored", name)
            return None
        self.values[field] = "" if value is None else str(value)
        self._validate_field(field)
        self._refresh_completeness()
        return self.errors.get(field)

    def _validate_field(self, field: str) -> None:
        validator = FIELD_VALIDATORS.get(field)
        if validator is None:
            # notes: toujours valide
            return
        message = validator(self.values[field])
        if message:
            self.errors[field] = message
        else:
            self.errors.pop(field, None)
        if field == "preferred_date":
            self._check_past_date()

    def _check_past_date(self) -> None:
        parsed = validators.parse_date(self.values["preferred_date"])
        if parsed is not None and parsed < self._today():
            self.warnings["preferred_date"] = "Preferred date is in the past"
        else:
            self.warnings.pop("preferred_date", None)

    def _refresh_completeness(self) -> None:
        self._complete = not any(f in self.errors for f in REQUIRED_FIELDS)

    def is_complete(self) -> bool:
        return self._complete

    def error_for(self, name: str) -> Optional[str]:
        field = canonical_field(name)
        return self.errors.get(field) if field else None

    def to_details(self) -> CustomerDetails:
        return CustomerDetails(**{k: v.strip() for k, v in self.values.items()})

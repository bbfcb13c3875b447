"""
Sérialisation/désérialisation des métadonnées Stripe (snapshot de réservation).
Sans base de données, ce snapshot attaché au PaymentIntent est le seul
enregistrement durable de la réservation.
"""
import json
import time
from typing import Any, Dict, Optional

from poolsafe.booking.form import FIELD_ALIASES, CustomerDetails
from poolsafe.catalog import Order, format_amount, line_items
from poolsafe.errors import InvalidMetadata

# Limites Stripe sur les métadonnées
MAX_KEYS = 50
MAX_KEY_LENGTH = 40
MAX_VALUE_LENGTH = 500


# module poolsafe.payments.metadata
def make_metadata(order: Order, customer: Optional[CustomerDetails] = None, now_ms: Optional[int] = None) -> Dict[str, str]:
    """
    Aplatit commande + coordonnées en {str: str}.
    - items: JSON des noms de prestations
    - includeCprSign: "true" / "false"
    - total: montant en dollars (2 décimales)
    - champs client en camelCase (firstName, preferredDate, ...), si fournis
    """
    metadata: Dict[str, str] = {
        "items": json.dumps([name for name, _ in line_items(order)]),
        "includeCprSign": "true" if order.includes_add_on else "false",
        "total": f"{order.total / 100:.2f}",
        "createdAt": str(now_ms if now_ms is not None else int(time.time() * 1000)),
    }
    if customer is not None:
        metadata.update({k: str(v or "") for k, v in customer.to_camel().items()})
    check_metadata(metadata)
    return metadata


def check_metadata(metadata: Dict[str, str]) -> None:
    if len(metadata) > MAX_KEYS:
        raise InvalidMetadata(f"Too many metadata keys ({len(metadata)} > {MAX_KEYS})")
    for key, value in metadata.items():
        if len(key) > MAX_KEY_LENGTH:
            raise InvalidMetadata(f"Metadata key too long: {key[:MAX_KEY_LENGTH]}...")
        if len(value) > MAX_VALUE_LENGTH:
            raise InvalidMetadata(f"'{key}' is too long (max {MAX_VALUE_LENGTH} characters)")


def extract_metadata(event: Dict[str, Any]) -> Dict[str, str]:
    """
    Extrait le snapshot depuis un event Stripe (webhook).
    - Attend event.data.object.metadata
    - Tolérant: retourne {} si la structure est absente
    """
    data_obj = (event or {}).get("data", {}).get("object", {}) if isinstance(event, dict) else {}
    return {str(k): str(v) for k, v in (data_obj.get("metadata") or {}).items()}


def booking_summary(metadata: Dict[str, str], fallback_email: Optional[str] = None) -> Dict[str, Any]:
    """
    Relit un snapshot pour les emails: coordonnées + prestations + total affichable.
    Tolérant aux erreurs: items vide si le JSON est illisible.
    """
    try:
        items = json.loads(metadata.get("items") or "[]")
    except ValueError:
        items = []
    summary: Dict[str, Any] = {alias: metadata.get(alias, "") for alias in FIELD_ALIASES.values()}
    summary["email"] = metadata.get("email") or fallback_email or ""
    summary["name"] = f"{summary['firstName']} {summary['lastName']}".strip()
    summary["items"] = items if isinstance(items, list) else []
    summary["includeCprSign"] = metadata.get("includeCprSign") == "true"
    summary["total"] = metadata.get("total", "")
    return summary


def amount_display(cents: Optional[int]) -> str:
    return format_amount(int(cents or 0))

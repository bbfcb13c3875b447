"""
Logique de prix pure (pas de Stripe, pas d'I/O).
"""
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Tuple

from poolsafe.errors import ValidationError
from .offerings import CATALOG, CPR_SIGN_ID, mandatory_ids


@dataclass(frozen=True)
class Order:
    selected_option_ids: FrozenSet[str]
    total: int

    @property
    def includes_add_on(self) -> bool:
        return CPR_SIGN_ID in self.selected_option_ids


def normalize_selection(selected_option_ids: Iterable[str]) -> FrozenSet[str]:
    """
    Valide une sélection d'options et y ajoute les prestations obligatoires.
    - Soulève ValidationError si un id est inconnu du catalogue (jamais ignoré).
    """
    ids = {str(i).strip() for i in (selected_option_ids or []) if str(i).strip()}
    unknown = sorted(i for i in ids if i not in CATALOG)
    if unknown:
        raise ValidationError(
            f"Unknown option(s): {', '.join(unknown)}",
            fields={"items": "Unknown option id"},
        )
    return frozenset(ids.union(mandatory_ids()))


def compute_total(selected_option_ids: Iterable[str]) -> int:
    """
    Total en centimes: somme des prix unitaires des options sélectionnées,
    prestations obligatoires toujours incluses.
    """
    return sum(CATALOG[i].unit_amount for i in normalize_selection(selected_option_ids))


def build_order(selected_option_ids: Iterable[str]) -> Order:
    ids = normalize_selection(selected_option_ids)
    return Order(selected_option_ids=ids, total=sum(CATALOG[i].unit_amount for i in ids))


def selection_from_items(items: Iterable[Dict[str, Any]], include_add_on: bool = False) -> FrozenSet[str]:
    """
    Convertit les items bruts de la requête [{id, name, price, ...}] en sélection.
    - include_add_on=True ajoute le panneau CPR même s'il est absent des items.
    - Le prix fourni par le client est ignoré: seul le catalogue fait foi.
    """
    ids = [str((it or {}).get("id") or "").strip() for it in (items or [])]
    if include_add_on:
        ids.append(CPR_SIGN_ID)
    return normalize_selection(i for i in ids if i)


def line_items(order: Order) -> List[Tuple[str, int]]:
    """(nom, montant) dans l'ordre du catalogue, pour les métadonnées et les emails."""
    return [(o.name, o.unit_amount) for o in CATALOG.values() if o.id in order.selected_option_ids]


def describe(order: Order) -> str:
    return "Pool Safety Inspection" + (" with CPR Sign" if order.includes_add_on else "")


def to_cents(amount: Any) -> int:
    """Montant en dollars (str|float|int) -> centimes; ValidationError si non numérique."""
    try:
        return int(round(float(amount) * 100))
    except (TypeError, ValueError, OverflowError):
        raise ValidationError("Invalid amount", fields={"amount": "Amount must be a number"})


def format_amount(cents: int) -> str:
    return f"${cents / 100:.2f}"

"""
Module 'catalog': prestations proposées et calcul du total d'une commande.
"""

from .offerings import CATALOG, CPR_SIGN_ID, INSPECTION_ID, ServiceOffering
from .pricing import (
    Order,
    build_order,
    compute_total,
    describe,
    format_amount,
    line_items,
    selection_from_items,
    to_cents,
)

__all__ = [
    "CATALOG",
    "CPR_SIGN_ID",
    "INSPECTION_ID",
    "ServiceOffering",
    "Order",
    "build_order",
    "compute_total",
    "describe",
    "format_amount",
    "line_items",
    "selection_from_items",
    "to_cents",
]

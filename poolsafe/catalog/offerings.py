"""
Catalogue fixe des prestations (défini au build, non modifiable par l'utilisateur).
Montants en centimes AUD.
"""
from dataclasses import dataclass
from typing import Dict, Tuple

INSPECTION_ID = "pool-inspection"
CPR_SIGN_ID = "cpr-sign"


@dataclass(frozen=True)
class ServiceOffering:
    id: str
    name: str
    unit_amount: int
    description: str
    mandatory: bool = False


CATALOG: Dict[str, ServiceOffering] = {
    INSPECTION_ID: ServiceOffering(
        id=INSPECTION_ID,
        name="Pool Safety Inspection",
        unit_amount=21000,
        description="Comprehensive pool safety inspection to ensure compliance with current regulations.",
        mandatory=True,
    ),
    CPR_SIGN_ID: ServiceOffering(
        id=CPR_SIGN_ID,
        name="CPR Sign",
        unit_amount=3000,
        description="CPR Sign for pool safety",
    ),
}


def mandatory_ids() -> Tuple[str, ...]:
    return tuple(o.id for o in CATALOG.values() if o.mandatory)

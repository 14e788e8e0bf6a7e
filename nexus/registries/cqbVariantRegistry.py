"""
CQB Variant Registry

Close-quarters battle variants. Each variant names the macro set and TTL
profile it runs with.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class CqbVariant:
    id: str
    name: str
    macroSetId: str
    ttlProfileId: str
    description: str = ""


def _variant(index: int, name: str, description: str) -> CqbVariant:
    return CqbVariant(
        id=f"CQB-0{index}",
        name=name,
        macroSetId=f"MACRO-CQB-0{index}",
        ttlProfileId=f"TTL-CQB-0{index}",
        description=description,
    )


CQB_VARIANTS: Tuple[CqbVariant, ...] = (
    _variant(1, "Dynamic Entry", "Stack, enter and clear rooms in sequence."),
    _variant(2, "Ship Boarding", "Breach and clear a hostile hull."),
    _variant(3, "Defensive Hold", "Hold sectors against assault."),
    _variant(4, "Casualty Extraction", "Recover downed members or a VIP."),
    _variant(5, "Low Visibility", "Operate dark with intel markers."),
    _variant(6, "Synchronized Breach", "Multi-team breach on a shared timer."),
    _variant(7, "Counter-Boarding", "Retake compartments from boarders."),
    _variant(8, "Training Lane", "Drill runs graded for after-action review."),
)

CQB_VARIANT_BY_ID: Dict[str, CqbVariant] = {variant.id: variant for variant in CQB_VARIANTS}


def getCqbVariant(variantId: str) -> Optional[CqbVariant]:
    return CQB_VARIANT_BY_ID.get(variantId)

"""
Macro Registry

CQB macro sets keyed by CQB variant. A macro is a structured event emitter
bound to explicit operator input.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class CqbMacro:
    id: str
    label: str
    eventType: str
    payloadTemplate: Dict[str, Any] = field(default_factory=dict)
    phrases: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CqbMacroSet:
    id: str
    variantId: str
    macros: Tuple[CqbMacro, ...] = ()


def _brevityMacros(prefix: str) -> Tuple[CqbMacro, ...]:
    """Brevity calls shared by every set."""
    return (
        CqbMacro(f"{prefix}-ROGER", "ROGER", "ROGER", {"acknowledgement": "understood"}, ("roger",)),
        CqbMacro(f"{prefix}-WILCO", "WILCO", "WILCO", {"acknowledgement": "will_comply"}, ("wilco",)),
        CqbMacro(f"{prefix}-STANDBY", "Stand by", "STAND_BY", {"waitSeconds": 15}, ("stand by", "wait one")),
        CqbMacro(f"{prefix}-SAYAGAIN", "Say again", "SAY_AGAIN", {"requestRepeat": True}, ("say again",)),
        CqbMacro(f"{prefix}-ONME", "On Me", "ON_ME", {"regroup": True}, ("on me",)),
        CqbMacro(f"{prefix}-HOLD", "Hold", "HOLD", {"haltMovement": True}, ("hold",)),
        CqbMacro(f"{prefix}-RELOADING", "Reloading", "RELOADING", {"cycle": "magazine"}, ("reloading",)),
        CqbMacro(f"{prefix}-CEASEFIRE", "Cease fire", "CEASE_FIRE", {"stopAllFire": True}, ("cease fire",)),
    )


def _macroSet(index: int, macros: Tuple[CqbMacro, ...]) -> CqbMacroSet:
    return CqbMacroSet(
        id=f"MACRO-CQB-0{index}",
        variantId=f"CQB-0{index}",
        macros=macros + _brevityMacros(f"MAC-CQB0{index}"),
    )


MACRO_SETS: Tuple[CqbMacroSet, ...] = (
    _macroSet(1, (
        CqbMacro("MAC-CQB01-STACK", "Stack Up", "STACK", {"lane": "main", "team": "alpha"}, ("stack up",)),
        CqbMacro("MAC-CQB01-ENTRY", "Entry", "ENTRY", {"route": "primary", "speed": "deliberate"}, ("entry now",)),
        CqbMacro("MAC-CQB01-CLEAR", "Room Clear", "CLEAR", {"roomStatus": "clear"}, ("room clear",)),
    )),
    _macroSet(2, (
        CqbMacro("MAC-CQB02-BREACH", "Breach", "BREACH", {"breachType": "charge"}, ("breach breach",)),
        CqbMacro("MAC-CQB02-CONTACT", "Contact", "CONTACT", {"direction": "forward", "count": 1}, ("contact front",)),
        CqbMacro("MAC-CQB02-EXTRACT", "Extract Team", "EXTRACT", {"route": "egress-1"}, ("extract now",)),
    )),
    _macroSet(3, (
        CqbMacro("MAC-CQB03-HOLD-SECTOR", "Hold Sector", "HOLD", {"sector": "alpha", "durationSeconds": 60}),
        CqbMacro("MAC-CQB03-SUPPRESS", "Suppress Lane", "SUPPRESS", {"lane": "north"}),
        CqbMacro("MAC-CQB03-RETREAT", "Fallback", "RETREAT", {"fallbackPoint": "anchor-1"}),
    )),
    _macroSet(4, (
        CqbMacro("MAC-CQB04-DOWNED", "Member Down", "DOWNED", {"casualtyCount": 1}),
        CqbMacro("MAC-CQB04-REVIVE", "Revive In Progress", "REVIVE", {"etaSeconds": 20}),
        CqbMacro("MAC-CQB04-EXTRACT", "VIP Extract", "EXTRACT", {"package": "vip", "route": "med-evac"}),
    )),
    _macroSet(5, (
        CqbMacro("MAC-CQB05-INTEL", "Mark Intel", "INTEL_MARKER", {"markerType": "sound"}),
        CqbMacro("MAC-CQB05-THREAT", "Threat Update", "THREAT_UPDATE", {"threatLevel": "elevated"}),
    )),
    _macroSet(6, (
        CqbMacro("MAC-CQB06-SYNC", "Synchronized Breach", "BREACH", {"syncWindowSeconds": 5}),
        CqbMacro("MAC-CQB06-FLANK", "Flank Order", "FLANK", {"direction": "west", "team": "bravo"}),
        CqbMacro("MAC-CQB06-SECURE", "Objective Secured", "OBJECTIVE_SECURED", {"objectiveId": "primary"}),
    )),
    _macroSet(7, (
        CqbMacro("MAC-CQB07-CONTACT", "Counter-Board Contact", "CONTACT", {"compartment": "midship", "count": 2}),
        CqbMacro("MAC-CQB07-SUPPRESS", "Suppress Boarding Route", "SUPPRESS", {"route": "airlock-2"}),
        CqbMacro("MAC-CQB07-RETREAT", "Compartment Retreat", "RETREAT", {"fallbackCompartment": "engineering"}),
    )),
    _macroSet(8, (
        CqbMacro("MAC-CQB08-STACK", "Training Stack", "STACK", {"drill": "entry-1"}),
        CqbMacro("MAC-CQB08-CLEAR", "Training Clear Call", "CLEAR", {"gradingTag": "clear-call"}),
        CqbMacro("MAC-CQB08-SECURE", "Drill Complete", "OBJECTIVE_SECURED", {"drillState": "complete"}),
    )),
)

MACRO_SET_BY_ID: Dict[str, CqbMacroSet] = {macroSet.id: macroSet for macroSet in MACRO_SETS}


def getMacroSet(macroSetId: str) -> Optional[CqbMacroSet]:
    return MACRO_SET_BY_ID.get(macroSetId)


def getMacrosForVariant(variantId: str) -> List[CqbMacro]:
    for macroSet in MACRO_SETS:
        if macroSet.variantId == variantId:
            return list(macroSet.macros)
    return []

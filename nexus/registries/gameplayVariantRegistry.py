"""
Gameplay Variant Registry

Playable scenarios, each bound to a CQB variant and a comms template.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class GameplayVariant:
    id: str
    name: str
    cqbVariantId: str
    commsTemplateId: str
    description: str = ""


GAMEPLAY_VARIANTS: Tuple[GameplayVariant, ...] = (
    GameplayVariant("GV-BUNKER-CLEAR", "Bunker Clear", "CQB-01", "FIRETEAM_PRIMARY",
                    "Ground team clears an outpost bunker."),
    GameplayVariant("GV-DERELICT-BOARDING", "Derelict Boarding", "CQB-02", "FIRETEAM_PRIMARY",
                    "Board and secure a derelict hull."),
    GameplayVariant("GV-OUTPOST-DEFENSE", "Outpost Defense", "CQB-03", "SQUAD_NETS",
                    "Hold an outpost until relief arrives."),
    GameplayVariant("GV-RESCUE-BEACON", "Rescue Beacon", "CQB-04", "SQUAD_NETS",
                    "Answer a beacon and extract the caller."),
    GameplayVariant("GV-DARK-CAVE", "Dark Cave Sweep", "CQB-05", "OPS_MINIMAL",
                    "Sweep an unlit cave system."),
    GameplayVariant("GV-STATION-ASSAULT", "Station Assault", "CQB-06", "COMMAND_NET",
                    "Coordinated multi-team station breach."),
    GameplayVariant("GV-HULL-DEFENSE", "Hull Defense", "CQB-07", "COMMAND_NET",
                    "Repel boarders from a capital ship."),
    GameplayVariant("GV-TRAINING-DRILL", "Training Drill", "CQB-08", "OPS_MINIMAL",
                    "Graded entry drills."),
)

GAMEPLAY_VARIANT_BY_ID: Dict[str, GameplayVariant] = {variant.id: variant for variant in GAMEPLAY_VARIANTS}


def getGameplayVariant(variantId: str) -> Optional[GameplayVariant]:
    return GAMEPLAY_VARIANT_BY_ID.get(variantId)

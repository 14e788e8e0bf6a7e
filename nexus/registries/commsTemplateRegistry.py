"""
Comms Template Registry

Net layouts an operation can apply. Posture defaults: FOCUSED -> COMMAND_NET,
CASUAL -> SQUAD_NETS.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class CommsNet:
    code: str
    label: str
    discipline: str = "CASUAL"


@dataclass(frozen=True)
class CommsTemplate:
    id: str
    name: str
    nets: Tuple[CommsNet, ...]
    description: str = ""


COMMS_TEMPLATES: Tuple[CommsTemplate, ...] = (
    CommsTemplate("SQUAD_NETS", "Squad Nets", (
        CommsNet("COMMAND", "Command"),
        CommsNet("ALPHA", "Alpha Squad"),
        CommsNet("BRAVO", "Bravo Squad"),
        CommsNet("LOGI", "Logistics"),
    ), "One net per squad plus command."),
    CommsTemplate("COMMAND_NET", "Command Net", (
        CommsNet("COMMAND", "Command", "FOCUSED"),
        CommsNet("ALPHA", "Alpha Squad", "FOCUSED"),
        CommsNet("BRAVO", "Bravo Squad", "FOCUSED"),
        CommsNet("AIR", "Air Wing", "FOCUSED"),
        CommsNet("LOGI", "Logistics"),
    ), "Disciplined command net with monitored squad nets."),
    CommsTemplate("FIRETEAM_PRIMARY", "Fireteam Primary", (
        CommsNet("FT1", "Fireteam 1", "FOCUSED"),
        CommsNet("FT2", "Fireteam 2", "FOCUSED"),
        CommsNet("LEAD", "Team Lead", "FOCUSED"),
    ), "Fireteam nets for close-quarters work."),
    CommsTemplate("OPS_MINIMAL", "Ops Minimal", (
        CommsNet("OPS", "Operations"),
    ), "Single shared net."),
)

COMMS_TEMPLATE_BY_ID: Dict[str, CommsTemplate] = {template.id: template for template in COMMS_TEMPLATES}


def getCommsTemplate(templateId: str) -> Optional[CommsTemplate]:
    return COMMS_TEMPLATE_BY_ID.get(templateId)

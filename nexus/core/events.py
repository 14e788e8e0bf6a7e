"""
Nexus Event Envelopes

Defines the input records consumed by the projection builders:
- Operation events: tagged union keyed by `kind`. Every known kind has its
  own class with typed fields pulled out of the raw payload; any other kind
  parses to UnknownOperationEvent so consumers always have an explicit arm
  for it.
- Comms overlay records: callouts, command bus entries and speak requests.
  Each source keeps its own native field names (createdDate, requestId);
  adapters normalize, never assume a shared schema.

EventId Construction (events appended without an id):
  "evt_" + SHA256(evtV1 + opId + kind + createdBy + createdAt + canonicalPayload)[:24]
  Same content -> same id, so identical re-appends dedupe.
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .canonical_json import canonicalJson


class TimelineSource(str, Enum):
    """Timeline entry source"""
    OPERATION_EVENT = "OPERATION_EVENT"
    COMMS_CALLOUT = "COMMS_CALLOUT"
    COMMAND_BUS = "COMMAND_BUS"
    SPEAK_REQUEST = "SPEAK_REQUEST"


class CommsPriority(str, Enum):
    """Priority carried by timeline entries and callouts"""
    STANDARD = "STANDARD"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class OperationEventKind(str, Enum):
    """Operation event kinds with a typed envelope"""
    DECLARE_DEPARTURE = "DECLARE_DEPARTURE"
    DECLARE_ARRIVAL = "DECLARE_ARRIVAL"
    DECLARE_HOLD = "DECLARE_HOLD"
    REQUEST_PATROL = "REQUEST_PATROL"
    MARK_AVOID = "MARK_AVOID"
    REPORT_CONTACT = "REPORT_CONTACT"


def computeEventId(opId: str, kind: str, createdBy: str, createdAt: str, payload: Dict[str, Any]) -> str:
    """
    Compute a content-derived operation event id.

    Args:
        opId: Owning operation id
        kind: Event kind
        createdBy: Actor id
        createdAt: ISO-8601 timestamp
        payload: Event payload (canonicalized before hashing)

    Returns:
        'evt_' followed by 24 hex characters
    """
    hasher = hashlib.sha256()
    hasher.update(b"evtV1")
    for part in (opId, kind, createdBy, createdAt):
        hasher.update(str(part or '').encode('utf-8'))
        hasher.update(b"|")
    hasher.update(canonicalJson(payload or {}).encode('utf-8'))
    return f"evt_{hasher.hexdigest()[:24]}"


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _firstText(payload: Dict[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        text = _text(payload.get(key))
        if text:
            return text
    return None


def parsePositiveNumber(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number <= 0 or number == float('inf'):
        return None
    return number


def _number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float('inf'), float('-inf')):
        return None
    return number


# ============================================================================
# Operation events (tagged union)
# ============================================================================

@dataclass
class OperationEvent:
    """
    Common operation event envelope.

    `kind` is the raw kind string; the concrete class is the tag.
    """
    eventId: str
    opId: Optional[str]
    kind: str
    createdBy: str
    createdAt: str
    payload: Dict[str, Any] = field(default_factory=dict)

    def toDict(self) -> Dict[str, Any]:
        return {
            "id": self.eventId,
            "opId": self.opId,
            "kind": self.kind,
            "createdBy": self.createdBy,
            "createdAt": self.createdAt,
            "payload": dict(self.payload),
        }


@dataclass
class RoutedOperationEvent(OperationEvent):
    """Shared typed fields of logistics events that describe a lane between nodes."""
    route: Optional[str] = None
    fromNodeId: Optional[str] = None
    toNodeId: Optional[str] = None
    ttlSeconds: Optional[float] = None
    label: Optional[str] = None
    confidence: Optional[float] = None


@dataclass
class DepartureDeclared(RoutedOperationEvent):
    pass


@dataclass
class ArrivalDeclared(RoutedOperationEvent):
    pass


@dataclass
class HoldDeclared(RoutedOperationEvent):
    """Hold between two nodes, or in place when only nodeId is given."""
    nodeId: Optional[str] = None


@dataclass
class PatrolRequested(RoutedOperationEvent):
    zoneId: Optional[str] = None


@dataclass
class AvoidMarked(RoutedOperationEvent):
    pass


@dataclass
class ContactReported(OperationEvent):
    nodeId: Optional[str] = None
    notes: Optional[str] = None
    hostileCount: Optional[int] = None


@dataclass
class UnknownOperationEvent(OperationEvent):
    """Any kind without a typed envelope."""
    pass


OperationEventUnion = Union[
    DepartureDeclared, ArrivalDeclared, HoldDeclared, PatrolRequested,
    AvoidMarked, ContactReported, UnknownOperationEvent
]

_ROUTED_CLASSES = {
    OperationEventKind.DECLARE_DEPARTURE.value: DepartureDeclared,
    OperationEventKind.DECLARE_ARRIVAL.value: ArrivalDeclared,
    OperationEventKind.DECLARE_HOLD.value: HoldDeclared,
    OperationEventKind.REQUEST_PATROL.value: PatrolRequested,
    OperationEventKind.MARK_AVOID.value: AvoidMarked,
}


def _routedFields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "route": _text(payload.get("route") or payload.get("corridor") or payload.get("routeTag")),
        "fromNodeId": _firstText(payload, "fromNodeId", "originNodeId", "from", "origin"),
        "toNodeId": _firstText(payload, "toNodeId", "destinationNodeId", "to", "destination"),
        "ttlSeconds": parsePositiveNumber(payload.get("ttlSeconds", payload.get("ttl"))),
        "label": _text(payload.get("label") or payload.get("notes")),
        "confidence": _number(payload.get("confidence")),
    }


def operationEventFromDict(data: Dict[str, Any]) -> OperationEventUnion:
    """
    Parse a raw operation event dict into its tagged envelope.

    Never raises for a dict input: missing fields become None/empty and an
    unrecognized kind yields UnknownOperationEvent.
    """
    payload = data.get("payload")
    if not isinstance(payload, dict):
        payload = {}

    base = {
        "eventId": _text(data.get("id") or data.get("eventId")) or "",
        "opId": _text(data.get("opId")),
        "kind": _text(data.get("kind")) or "",
        "createdBy": _text(data.get("createdBy")) or "",
        "createdAt": data.get("createdAt") if isinstance(data.get("createdAt"), str) else "",
        "payload": payload,
    }
    kind = base["kind"]

    if kind in _ROUTED_CLASSES:
        fields = _routedFields(payload)
        if kind == OperationEventKind.DECLARE_HOLD.value:
            fields["nodeId"] = _text(payload.get("nodeId") or data.get("nodeId"))
        elif kind == OperationEventKind.REQUEST_PATROL.value:
            fields["zoneId"] = _text(payload.get("zoneId") or data.get("zoneId"))
        return _ROUTED_CLASSES[kind](**base, **fields)
    elif kind == OperationEventKind.REPORT_CONTACT.value:
        count = _number(payload.get("count", payload.get("hostileCount")))
        return ContactReported(
            **base,
            nodeId=_text(payload.get("nodeId") or data.get("nodeId")),
            notes=_text(payload.get("notes")),
            hostileCount=int(count) if count is not None else None,
        )
    else:
        return UnknownOperationEvent(**base)


def coerceOperationEvent(record: Any) -> Optional[OperationEventUnion]:
    """Accept an already-parsed envelope or a raw dict; anything else is None."""
    if isinstance(record, OperationEvent):
        return record
    if isinstance(record, dict):
        return operationEventFromDict(record)
    return None


# ============================================================================
# Comms overlay records
# ============================================================================

@dataclass
class CommsCallout:
    """Voice/text callout on a comms net. Scoped by eventId (operation id)."""
    id: str
    eventId: Optional[str]
    netId: Optional[str]
    lane: Optional[str]
    priority: str
    message: str
    createdDate: Optional[str]

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'CommsCallout':
        priority = _text(data.get("priority")) or CommsPriority.STANDARD.value
        return CommsCallout(
            id=_text(data.get("id")) or "",
            eventId=_text(data.get("eventId")),
            netId=_text(data.get("netId")),
            lane=_text(data.get("lane")),
            priority=priority.upper(),
            message=_text(data.get("message")) or "",
            createdDate=data.get("createdDate"),
        )


@dataclass
class CommandBusEntry:
    """Command bus action issued on a net."""
    id: str
    eventId: Optional[str]
    netId: Optional[str]
    action: str
    payload: Dict[str, Any]
    actorMemberProfileId: Optional[str]
    createdDate: Optional[str]

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'CommandBusEntry':
        payload = data.get("payload")
        return CommandBusEntry(
            id=_text(data.get("id")) or "",
            eventId=_text(data.get("eventId")),
            netId=_text(data.get("netId")),
            action=_text(data.get("action")) or "",
            payload=payload if isinstance(payload, dict) else {},
            actorMemberProfileId=_text(data.get("actorMemberProfileId")),
            createdDate=data.get("createdDate"),
        )


@dataclass
class SpeakRequest:
    """Request for the floor on a disciplined net. Identified by requestId."""
    requestId: str
    eventId: Optional[str]
    netId: Optional[str]
    requesterMemberProfileId: Optional[str]
    status: str
    reason: str
    createdDate: Optional[str]

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'SpeakRequest':
        return SpeakRequest(
            requestId=_text(data.get("requestId") or data.get("id")) or "",
            eventId=_text(data.get("eventId")),
            netId=_text(data.get("netId")),
            requesterMemberProfileId=_text(data.get("requesterMemberProfileId")),
            status=(_text(data.get("status")) or "PENDING").upper(),
            reason=_text(data.get("reason")) or "",
            createdDate=data.get("createdDate"),
        )


@dataclass
class CommsOverlay:
    """The three parallel comms arrays delivered by the caller."""
    callouts: List[CommsCallout] = field(default_factory=list)
    commandBus: List[CommandBusEntry] = field(default_factory=list)
    speakRequests: List[SpeakRequest] = field(default_factory=list)

    @staticmethod
    def fromDict(data: Optional[Dict[str, Any]]) -> 'CommsOverlay':
        """
        Parse each array independently.

        Items may be raw dicts or already-typed records of the matching class;
        anything else is dropped.
        """
        if not isinstance(data, dict):
            return CommsOverlay()

        def records(key, recordClass):
            value = data.get(key)
            if not isinstance(value, (list, tuple)):
                return []
            return [
                item if isinstance(item, recordClass) else recordClass.fromDict(item)
                for item in value if isinstance(item, (dict, recordClass))
            ]

        return CommsOverlay(
            callouts=records("callouts", CommsCallout),
            commandBus=records("commandBus", CommandBusEntry),
            speakRequests=records("speakRequests", SpeakRequest),
        )


def coerceCommsOverlay(overlay: Any) -> CommsOverlay:
    if isinstance(overlay, CommsOverlay):
        return overlay
    return CommsOverlay.fromDict(overlay)

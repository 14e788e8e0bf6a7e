"""
Nexus Map Logistics Overlay Service

Derives logistics lanes between map nodes from operation events and route
hypotheses.

Architecture Invariants:
- Pure projection: same inputs -> same overlay
- Scoping: operation events must carry the scoped opId; hypotheses carrying
  a different opId are excluded, hypotheses without one are shared intel
- Per-record parsing returns ParsedLane or SkippedLane(reason). One bad
  record never fails the build; skips are reported in overlay.skipped
- Node resolution: exact node id, then normalized exact display name.
  No substring or fuzzy matching
- Staleness is advisory: stale = (nowMs - createdAtMs) > ttlSeconds * 1000,
  and stale lanes stay in the result
- Lane order: fresh before stale, then age ascending, then id
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from fieldkit.logging import getLogger

from nexus.core.contract import DEFAULT_LANE_TTL_SECONDS
from nexus.core.events import (
    ArrivalDeclared,
    AvoidMarked,
    ContactReported,
    DepartureDeclared,
    HoldDeclared,
    OperationEventUnion,
    PatrolRequested,
    RoutedOperationEvent,
    UnknownOperationEvent,
    coerceOperationEvent,
    computeEventId,
    parsePositiveNumber,
)
from nexus.core.timeutil import currentMs, parseTimestampMs
from nexus.registries.mapNodeRegistry import MapNode, coerceMapNodes


log = getLogger()

DEFAULT_EVENT_CONFIDENCE = 0.62
EVENT_CONFIDENCE_RANGE = (0.25, 0.95)
HYPOTHESIS_BASE_CONFIDENCE = 0.48
HYPOTHESIS_CONFIDENCE_PER_SOURCE = 0.06
HYPOTHESIS_CONFIDENCE_BONUS_CAP = 0.22
HYPOTHESIS_CONFIDENCE_RANGE = (0.3, 0.9)

_ROUTE_SEPARATORS = (re.compile(r'->'), re.compile(r'=>'), re.compile(r'\bto\b', re.IGNORECASE))


class LaneKind(str, Enum):
    MOVE = "MOVE"
    HOLD = "HOLD"
    PATROL = "PATROL"
    AVOID = "AVOID"
    ROUTE_HYPOTHESIS = "ROUTE_HYPOTHESIS"


class LaneSourceKind(str, Enum):
    OPERATION_EVENT = "operation_event"
    ROUTE_HYPOTHESIS = "route_hypothesis"


class SkipReason(str, Enum):
    NOT_LOGISTICS_KIND = "NOT_LOGISTICS_KIND"
    UNKNOWN_KIND = "UNKNOWN_KIND"
    MISSING_TIMESTAMP = "MISSING_TIMESTAMP"
    MISSING_ROUTE = "MISSING_ROUTE"
    UNPARSABLE_ROUTE = "UNPARSABLE_ROUTE"
    UNRESOLVED_FROM_NODE = "UNRESOLVED_FROM_NODE"
    UNRESOLVED_TO_NODE = "UNRESOLVED_TO_NODE"
    MALFORMED_RECORD = "MALFORMED_RECORD"


# Event class -> lane kind
_LANE_KIND_BY_EVENT = (
    (DepartureDeclared, LaneKind.MOVE),
    (ArrivalDeclared, LaneKind.MOVE),
    (HoldDeclared, LaneKind.HOLD),
    (PatrolRequested, LaneKind.PATROL),
    (AvoidMarked, LaneKind.AVOID),
)


@dataclass
class LogisticsLane:
    id: str
    opId: Optional[str]
    sourceKind: LaneSourceKind
    laneKind: LaneKind
    label: str
    fromNodeId: str
    toNodeId: str
    confidence: float
    createdAtMs: int
    ageSeconds: int
    ttlSeconds: float
    stale: bool

    def toDict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "opId": self.opId,
            "sourceKind": self.sourceKind.value,
            "laneKind": self.laneKind.value,
            "label": self.label,
            "fromNodeId": self.fromNodeId,
            "toNodeId": self.toNodeId,
            "confidence": self.confidence,
            "createdAtMs": self.createdAtMs,
            "ageSeconds": self.ageSeconds,
            "ttlSeconds": self.ttlSeconds,
            "stale": self.stale,
        }


@dataclass
class ParsedLane:
    lane: LogisticsLane


@dataclass
class SkippedLane:
    sourceKind: LaneSourceKind
    sourceId: str
    reason: SkipReason
    detail: str = ""

    def toDict(self) -> Dict[str, Any]:
        return {
            "sourceKind": self.sourceKind.value,
            "sourceId": self.sourceId,
            "reason": self.reason.value,
            "detail": self.detail,
        }


LaneParseResult = Union[ParsedLane, SkippedLane]


@dataclass
class RouteHypothesis:
    """Externally supplied candidate route between two nodes."""
    id: str
    fromNodeId: str
    toNodeId: str
    opId: Optional[str] = None
    notes: str = ""
    derivedFrom: List[str] = field(default_factory=list)
    createdAt: Optional[Any] = None
    ttlSeconds: Optional[float] = None

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'RouteHypothesis':
        derivedFrom = data.get("derivedFrom")
        return RouteHypothesis(
            id=str(data.get("id") or ""),
            fromNodeId=str(data.get("fromNodeId") or "").strip(),
            toNodeId=str(data.get("toNodeId") or "").strip(),
            opId=data.get("opId") or None,
            notes=str(data.get("notes") or "").strip(),
            derivedFrom=list(derivedFrom) if isinstance(derivedFrom, (list, tuple)) else [],
            createdAt=data.get("createdAt"),
            ttlSeconds=parsePositiveNumber(data.get("ttlSeconds", data.get("ttl"))),
        )


@dataclass
class MapLogisticsOverlay:
    scopedOpId: Optional[str] = None
    generatedAtMs: Optional[int] = None
    lanes: List[LogisticsLane] = field(default_factory=list)
    skipped: List[SkippedLane] = field(default_factory=list)

    def toDict(self) -> Dict[str, Any]:
        return {
            "scopedOpId": self.scopedOpId,
            "generatedAtMs": self.generatedAtMs,
            "lanes": [lane.toDict() for lane in self.lanes],
            "skipped": [skip.toDict() for skip in self.skipped],
        }


def createEmptyMapLogisticsOverlay() -> MapLogisticsOverlay:
    """Canonical zero value: no lanes, no scope."""
    return MapLogisticsOverlay()


# ============================================================================
# Resolution helpers
# ============================================================================

def _normalizeToken(value: Any) -> str:
    return re.sub(r'[^a-z0-9]', '', str(value or '').lower())


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def resolveNodeId(raw: Optional[str], mapNodes: Dict[str, MapNode]) -> Optional[str]:
    """Exact id, then normalized exact display name. None when neither matches."""
    text = (raw or '').strip()
    if not text:
        return None
    if text in mapNodes:
        return text
    needle = _normalizeToken(text)
    if not needle:
        return None
    for node in mapNodes.values():
        if _normalizeToken(node.name) == needle or _normalizeToken(node.id) == needle:
            return node.id
    return None


def parseRouteExpression(route: Optional[str]) -> Optional[Tuple[str, str]]:
    """
    Split "A -> B", "A => B" or "A to B" into (fromToken, toToken).

    None when no separator is present or either side is empty.
    """
    text = (route or '').strip()
    if not text:
        return None
    for separator in _ROUTE_SEPARATORS:
        parts = separator.split(text, maxsplit=1)
        if len(parts) == 2:
            fromToken, toToken = parts[0].strip(), parts[1].strip()
            if fromToken and toToken:
                return fromToken, toToken
            return None
    return None


def _nodeTable(mapNodes: Any) -> Dict[str, MapNode]:
    if isinstance(mapNodes, dict) and all(isinstance(node, MapNode) for node in mapNodes.values()):
        return mapNodes
    return coerceMapNodes(mapNodes)


def _staleness(createdAtMs: int, nowMs: int, ttlSeconds: float) -> Tuple[int, bool]:
    elapsedMs = nowMs - createdAtMs
    return max(0, elapsedMs // 1000), elapsedMs > ttlSeconds * 1000


# ============================================================================
# Per-record parsers
# ============================================================================

def parseLaneFromEvent(event: Any, mapNodes: Any, nowMs: int,
                       defaultTtlSeconds: float = DEFAULT_LANE_TTL_SECONDS) -> LaneParseResult:
    """
    Parse one operation event into a lane.

    Explicit fromNodeId/toNodeId win over route text. A hold or patrol with
    only a nodeId/zoneId lane-marks that node in place.
    """
    nodes = _nodeTable(mapNodes)
    envelope: Optional[OperationEventUnion] = coerceOperationEvent(event)

    if envelope is None:
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, "", SkipReason.MALFORMED_RECORD,
                           f"unsupported record type {type(event).__name__}")

    eventId = envelope.eventId or computeEventId(
        envelope.opId, envelope.kind, envelope.createdBy, envelope.createdAt, envelope.payload
    )

    if isinstance(envelope, UnknownOperationEvent):
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.UNKNOWN_KIND, envelope.kind)
    elif isinstance(envelope, ContactReported):
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.NOT_LOGISTICS_KIND, envelope.kind)
    elif not isinstance(envelope, RoutedOperationEvent):
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.NOT_LOGISTICS_KIND, envelope.kind)

    laneKind = next(kind for cls, kind in _LANE_KIND_BY_EVENT if isinstance(envelope, cls))

    createdAtMs = parseTimestampMs(envelope.createdAt)
    if createdAtMs is None:
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.MISSING_TIMESTAMP,
                           repr(envelope.createdAt))

    route = parseRouteExpression(envelope.route)
    fromRaw = envelope.fromNodeId or (route[0] if route else None)
    toRaw = envelope.toNodeId or (route[1] if route else None)

    if fromRaw is None and toRaw is None:
        anchor = getattr(envelope, 'nodeId', None) or getattr(envelope, 'zoneId', None)
        if anchor:
            fromRaw = toRaw = anchor
        elif envelope.route:
            return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.UNPARSABLE_ROUTE, envelope.route)
        else:
            return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.MISSING_ROUTE)

    fromNodeId = resolveNodeId(fromRaw, nodes)
    if fromNodeId is None:
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.UNRESOLVED_FROM_NODE, str(fromRaw))
    toNodeId = resolveNodeId(toRaw, nodes)
    if toNodeId is None:
        return SkippedLane(LaneSourceKind.OPERATION_EVENT, eventId, SkipReason.UNRESOLVED_TO_NODE, str(toRaw))

    ttlSeconds = envelope.ttlSeconds or defaultTtlSeconds
    ageSeconds, stale = _staleness(createdAtMs, nowMs, ttlSeconds)
    confidence = envelope.confidence if envelope.confidence is not None else DEFAULT_EVENT_CONFIDENCE

    return ParsedLane(LogisticsLane(
        id=f"logi:event:{eventId}",
        opId=envelope.opId,
        sourceKind=LaneSourceKind.OPERATION_EVENT,
        laneKind=laneKind,
        label=envelope.label or envelope.kind.replace('_', ' '),
        fromNodeId=fromNodeId,
        toNodeId=toNodeId,
        confidence=_clamp(confidence, *EVENT_CONFIDENCE_RANGE),
        createdAtMs=createdAtMs,
        ageSeconds=ageSeconds,
        ttlSeconds=ttlSeconds,
        stale=stale,
    ))


def parseLaneFromHypothesis(hypothesis: Any, mapNodes: Any, nowMs: int,
                            defaultTtlSeconds: float = DEFAULT_LANE_TTL_SECONDS) -> LaneParseResult:
    """Parse one route hypothesis. Both endpoints must be exact node ids in mapNodes."""
    nodes = _nodeTable(mapNodes)

    if isinstance(hypothesis, dict):
        hypothesis = RouteHypothesis.fromDict(hypothesis)
    if not isinstance(hypothesis, RouteHypothesis):
        return SkippedLane(LaneSourceKind.ROUTE_HYPOTHESIS, "", SkipReason.MALFORMED_RECORD,
                           f"unsupported record type {type(hypothesis).__name__}")

    sourceId = hypothesis.id or f"{hypothesis.fromNodeId}->{hypothesis.toNodeId}"
    fromNodeId = hypothesis.fromNodeId if hypothesis.fromNodeId in nodes else None
    if fromNodeId is None:
        return SkippedLane(LaneSourceKind.ROUTE_HYPOTHESIS, sourceId, SkipReason.UNRESOLVED_FROM_NODE,
                           hypothesis.fromNodeId)
    toNodeId = hypothesis.toNodeId if hypothesis.toNodeId in nodes else None
    if toNodeId is None:
        return SkippedLane(LaneSourceKind.ROUTE_HYPOTHESIS, sourceId, SkipReason.UNRESOLVED_TO_NODE,
                           hypothesis.toNodeId)

    if hypothesis.createdAt is None:
        createdAtMs = nowMs
    else:
        createdAtMs = parseTimestampMs(hypothesis.createdAt)
        if createdAtMs is None:
            return SkippedLane(LaneSourceKind.ROUTE_HYPOTHESIS, sourceId, SkipReason.MISSING_TIMESTAMP,
                               repr(hypothesis.createdAt))

    ttlSeconds = hypothesis.ttlSeconds or defaultTtlSeconds
    ageSeconds, stale = _staleness(createdAtMs, nowMs, ttlSeconds)
    bonus = min(HYPOTHESIS_CONFIDENCE_BONUS_CAP, HYPOTHESIS_CONFIDENCE_PER_SOURCE * len(hypothesis.derivedFrom))

    return ParsedLane(LogisticsLane(
        id=f"logi:route:{fromNodeId}->{toNodeId}",
        opId=hypothesis.opId,
        sourceKind=LaneSourceKind.ROUTE_HYPOTHESIS,
        laneKind=LaneKind.ROUTE_HYPOTHESIS,
        label=hypothesis.notes or "Route hypothesis",
        fromNodeId=fromNodeId,
        toNodeId=toNodeId,
        confidence=_clamp(HYPOTHESIS_BASE_CONFIDENCE + bonus, *HYPOTHESIS_CONFIDENCE_RANGE),
        createdAtMs=createdAtMs,
        ageSeconds=ageSeconds,
        ttlSeconds=ttlSeconds,
        stale=stale,
    ))


# ============================================================================
# Overlay builder
# ============================================================================

def _laneSortKey(lane: LogisticsLane):
    return (lane.stale, lane.ageSeconds, lane.id)


def buildMapLogisticsOverlay(opId: Optional[str], mapNodes: Any = None, nowMs: Optional[int] = None,
                             events: Optional[Iterable[Any]] = None,
                             routeHypotheses: Optional[Iterable[Any]] = None,
                             defaultTtlSeconds: float = DEFAULT_LANE_TTL_SECONDS) -> MapLogisticsOverlay:
    """
    Build the logistics overlay for one operation.

    Args:
        opId: Operation to scope to. None keeps only shared hypotheses
        mapNodes: {nodeId: {name, position}}, a list of nodes, or None for
            the built-in map node registry
        nowMs: Reference time in epoch milliseconds (wall clock when None)
        events: Operation events (envelopes or raw dicts)
        routeHypotheses: RouteHypothesis records or dicts
        defaultTtlSeconds: TTL for lanes whose source declares none

    Returns:
        MapLogisticsOverlay with sorted lanes and the skipped parse results
    """
    nowMs = int(nowMs) if nowMs is not None else currentMs()
    nodes = coerceMapNodes(mapNodes)
    overlay = MapLogisticsOverlay(scopedOpId=opId or None, generatedAtMs=nowMs)
    results: List[LaneParseResult] = []

    for record in events or []:
        envelope = coerceOperationEvent(record)
        if envelope is not None and (not opId or envelope.opId != opId):
            continue
        results.append(parseLaneFromEvent(envelope if envelope is not None else record,
                                          nodes, nowMs, defaultTtlSeconds))

    for record in routeHypotheses or []:
        recordOpId = record.get("opId") if isinstance(record, dict) else getattr(record, "opId", None)
        if recordOpId and recordOpId != opId:
            continue
        results.append(parseLaneFromHypothesis(record, nodes, nowMs, defaultTtlSeconds))

    lanesById: Dict[str, LogisticsLane] = {}
    for result in results:
        if isinstance(result, SkippedLane):
            log.debug("[Logistics] Lane skipped", sourceKind=result.sourceKind.value,
                      sourceId=result.sourceId, reason=result.reason.value)
            overlay.skipped.append(result)
        elif result.lane.id not in lanesById:
            lanesById[result.lane.id] = result.lane

    overlay.lanes = sorted(lanesById.values(), key=_laneSortKey)
    return overlay

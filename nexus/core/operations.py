"""
Operation domain records.

Operation, OperationAuditEvent and OperationTemplate as owned by the
Operation Service. Every record round-trips through plain dicts
(toDict/fromDict) so snapshots and listener payloads stay serializable.

Lineage between operations and templates lives only in the audit log and
in OperationTemplate.sourceOperationId. An Operation never carries a
parent pointer.
"""

import copy
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional


class OperationPosture(str, Enum):
    CASUAL = "CASUAL"
    FOCUSED = "FOCUSED"


class OperationStatus(str, Enum):
    PLANNING = "PLANNING"
    ACTIVE = "ACTIVE"
    WRAPPING = "WRAPPING"
    ARCHIVED = "ARCHIVED"


class DataClassification(str, Enum):
    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"
    ALLIED = "ALLIED"
    RESTRICTED = "RESTRICTED"


class AuditAction(str, Enum):
    OP_CREATED = "OP_CREATED"
    OP_METADATA_UPDATED = "OP_METADATA_UPDATED"
    OP_STATUS_UPDATED = "OP_STATUS_UPDATED"
    OP_POSTURE_UPDATED = "OP_POSTURE_UPDATED"
    OP_COMMS_TEMPLATE_APPLIED = "OP_COMMS_TEMPLATE_APPLIED"
    OP_CLONED_TO = "OP_CLONED_TO"
    OP_CLONED_FROM = "OP_CLONED_FROM"
    OP_TEMPLATE_APPLIED = "OP_TEMPLATE_APPLIED"


DEFAULT_AO_NODE_ID = "system-stanton"
DEFAULT_HOST_ORG_ID = "ORG-LOCAL"
UNTITLED_OPERATION = "Untitled Operation"


def defaultCommsTemplateByPosture(posture: OperationPosture) -> str:
    return "COMMAND_NET" if posture == OperationPosture.FOCUSED else "SQUAD_NETS"


def defaultTtlProfileByPosture(posture: OperationPosture) -> str:
    return "TTL-OP-FOCUSED" if posture == OperationPosture.FOCUSED else "TTL-OP-CASUAL"


def defaultFocusRulesByPosture(posture: OperationPosture) -> 'FocusRules':
    if posture == OperationPosture.FOCUSED:
        return FocusRules(notificationPriority="HIGH", commsForegroundMode="PRIMARY_AND_MONITOR")
    return FocusRules(notificationPriority="MED", commsForegroundMode="PRIMARY_ONLY")


def uniqueOrdered(values: Optional[List[str]]) -> List[str]:
    """De-duplicate while keeping first-seen order."""
    seen = []
    for value in values or []:
        if value not in seen:
            seen.append(value)
    return seen


@dataclass
class AreaOfOperations:
    nodeId: str = DEFAULT_AO_NODE_ID
    note: Optional[str] = None

    def toDict(self) -> Dict[str, Any]:
        result = {"nodeId": self.nodeId}
        if self.note is not None:
            result["note"] = self.note
        return result

    @staticmethod
    def fromValue(value: Any) -> 'AreaOfOperations':
        """Accept an AreaOfOperations, a {nodeId, note} dict, or None."""
        if isinstance(value, AreaOfOperations):
            return AreaOfOperations(value.nodeId, value.note)
        if isinstance(value, dict):
            return AreaOfOperations(
                nodeId=str(value.get("nodeId") or DEFAULT_AO_NODE_ID),
                note=value.get("note"),
            )
        return AreaOfOperations()


@dataclass
class OperationDomains:
    fps: bool = True
    ground: bool = True
    airSpace: bool = False
    logistics: bool = True

    def toDict(self) -> Dict[str, bool]:
        return asdict(self)

    @staticmethod
    def fromValue(value: Any) -> 'OperationDomains':
        if isinstance(value, OperationDomains):
            return OperationDomains(**asdict(value))
        data = value if isinstance(value, dict) else {}
        defaults = OperationDomains()
        return OperationDomains(**{
            key: bool(data.get(key, getattr(defaults, key)))
            for key in ("fps", "ground", "airSpace", "logistics")
        })


@dataclass
class FocusRules:
    notificationPriority: str
    commsForegroundMode: str
    backgroundAggregate: bool = True

    def toDict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Operation:
    """A tracked mission. Mutated only through OperationService setters."""
    id: str
    name: str
    createdBy: str
    createdAt: str
    updatedAt: str
    posture: OperationPosture
    status: OperationStatus
    classification: DataClassification
    ao: AreaOfOperations
    commsTemplateId: str
    ttlProfileId: str
    hostOrgId: str = DEFAULT_HOST_ORG_ID
    invitedOrgIds: List[str] = field(default_factory=list)
    domains: OperationDomains = field(default_factory=OperationDomains)
    linkedIntelIds: List[str] = field(default_factory=list)
    focusRules: Optional[FocusRules] = None

    def copy(self) -> 'Operation':
        return copy.deepcopy(self)

    def toDict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdBy": self.createdBy,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
            "posture": self.posture.value,
            "status": self.status.value,
            "classification": self.classification.value,
            "ao": self.ao.toDict(),
            "commsTemplateId": self.commsTemplateId,
            "ttlProfileId": self.ttlProfileId,
            "hostOrgId": self.hostOrgId,
            "invitedOrgIds": list(self.invitedOrgIds),
            "domains": self.domains.toDict(),
            "linkedIntelIds": list(self.linkedIntelIds),
            "focusRules": self.focusRules.toDict() if self.focusRules else None,
        }

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'Operation':
        posture = OperationPosture(data["posture"])
        focusRules = data.get("focusRules")
        return Operation(
            id=data["id"],
            name=data["name"],
            createdBy=data["createdBy"],
            createdAt=data["createdAt"],
            updatedAt=data.get("updatedAt", data["createdAt"]),
            posture=posture,
            status=OperationStatus(data["status"]),
            classification=DataClassification(data.get("classification", DataClassification.INTERNAL.value)),
            ao=AreaOfOperations.fromValue(data.get("ao")),
            commsTemplateId=data.get("commsTemplateId") or defaultCommsTemplateByPosture(posture),
            ttlProfileId=data.get("ttlProfileId") or defaultTtlProfileByPosture(posture),
            hostOrgId=data.get("hostOrgId", DEFAULT_HOST_ORG_ID),
            invitedOrgIds=list(data.get("invitedOrgIds") or []),
            domains=OperationDomains.fromValue(data.get("domains")),
            linkedIntelIds=list(data.get("linkedIntelIds") or []),
            focusRules=FocusRules(**focusRules) if focusRules else defaultFocusRulesByPosture(posture),
        )


@dataclass
class OperationAuditEvent:
    """Immutable record of one mutation applied to an operation."""
    id: str
    operationId: str
    action: AuditAction
    actor: str
    timestamp: str
    timestampMs: int
    sequence: int
    summary: str
    diff: Optional[Dict[str, Any]] = None
    details: Optional[Dict[str, Any]] = None

    def toDict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "operationId": self.operationId,
            "action": self.action.value,
            "actor": self.actor,
            "timestamp": self.timestamp,
            "timestampMs": self.timestampMs,
            "sequence": self.sequence,
            "summary": self.summary,
        }
        if self.diff is not None:
            result["diff"] = copy.deepcopy(self.diff)
        if self.details is not None:
            result["details"] = copy.deepcopy(self.details)
        return result

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'OperationAuditEvent':
        return OperationAuditEvent(
            id=data["id"],
            operationId=data["operationId"],
            action=AuditAction(data["action"]),
            actor=data["actor"],
            timestamp=data["timestamp"],
            timestampMs=int(data["timestampMs"]),
            sequence=int(data["sequence"]),
            summary=data.get("summary", ""),
            diff=data.get("diff"),
            details=data.get("details"),
        )


@dataclass
class OperationBlueprint:
    """Cloneable fields captured by a template. Independent of later operation edits."""
    name: str
    posture: OperationPosture
    classification: DataClassification
    ao: AreaOfOperations
    commsTemplateId: str
    ttlProfileId: str
    hostOrgId: str = DEFAULT_HOST_ORG_ID
    invitedOrgIds: List[str] = field(default_factory=list)
    domains: OperationDomains = field(default_factory=OperationDomains)
    sourceStatus: Optional[OperationStatus] = None

    def toDict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "posture": self.posture.value,
            "classification": self.classification.value,
            "ao": self.ao.toDict(),
            "commsTemplateId": self.commsTemplateId,
            "ttlProfileId": self.ttlProfileId,
            "hostOrgId": self.hostOrgId,
            "invitedOrgIds": list(self.invitedOrgIds),
            "domains": self.domains.toDict(),
            "sourceStatus": self.sourceStatus.value if self.sourceStatus else None,
        }

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'OperationBlueprint':
        posture = OperationPosture(data.get("posture") or OperationPosture.CASUAL.value)
        sourceStatus = data.get("sourceStatus")
        return OperationBlueprint(
            name=str(data.get("name") or "").strip() or UNTITLED_OPERATION,
            posture=posture,
            classification=DataClassification(data.get("classification") or DataClassification.INTERNAL.value),
            ao=AreaOfOperations.fromValue(data.get("ao")),
            commsTemplateId=data.get("commsTemplateId") or defaultCommsTemplateByPosture(posture),
            ttlProfileId=data.get("ttlProfileId") or defaultTtlProfileByPosture(posture),
            hostOrgId=data.get("hostOrgId") or DEFAULT_HOST_ORG_ID,
            invitedOrgIds=uniqueOrdered(data.get("invitedOrgIds")),
            domains=OperationDomains.fromValue(data.get("domains")),
            sourceStatus=OperationStatus(sourceStatus) if sourceStatus else None,
        )


@dataclass
class OperationTemplate:
    """Reusable snapshot of an operation's cloneable fields."""
    id: str
    name: str
    description: str
    sourceOperationId: Optional[str]
    createdBy: str
    createdAt: str
    updatedAt: str
    blueprint: OperationBlueprint

    def copy(self) -> 'OperationTemplate':
        return copy.deepcopy(self)

    def toDict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "sourceOperationId": self.sourceOperationId,
            "createdBy": self.createdBy,
            "createdAt": self.createdAt,
            "updatedAt": self.updatedAt,
            "blueprint": self.blueprint.toDict(),
        }

    @staticmethod
    def fromDict(data: Dict[str, Any]) -> 'OperationTemplate':
        return OperationTemplate(
            id=data["id"],
            name=data["name"],
            description=data.get("description", ""),
            sourceOperationId=data.get("sourceOperationId"),
            createdBy=data["createdBy"],
            createdAt=data["createdAt"],
            updatedAt=data.get("updatedAt", data["createdAt"]),
            blueprint=OperationBlueprint.fromDict(data["blueprint"]),
        )

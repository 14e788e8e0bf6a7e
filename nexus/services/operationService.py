"""
Nexus Operation Service

Owns Operation records, their append-only audit log, Operation Templates and
the per-operation event log that feeds the timeline and logistics projections.

Architecture Invariants:
- Explicit store object: callers construct an OperationService and pass it
  where it is needed. Independent instances never share state.
- One lock serializes every mutation. A state change and its audit event are
  committed together, so no reader observes one without the other.
- Every effective field mutation appends exactly one audit event. Calls that
  change nothing (same status, same posture, same comms template, empty
  metadata diff) append nothing.
- Audit history is never rewritten or deleted.
- Cloned and template-instantiated operations always start in PLANNING.
- Lineage is recorded in the audit log (OP_CLONED_TO / OP_CLONED_FROM /
  OP_TEMPLATE_APPLIED) and in OperationTemplate.sourceOperationId only.
- Read methods return copies; stored records are never handed out.
- NotFoundError is the only domain error raised here.

Listeners receive a snapshot dict after each committed mutation. They are
called outside the lock; a failing listener is logged and ignored.
"""

import threading
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import orjson

from fieldkit.logging import getLogger

from nexus.core.errors import NotFoundError
from nexus.core.events import OperationEventUnion, computeEventId, operationEventFromDict
from nexus.core.operations import (
    AreaOfOperations,
    AuditAction,
    DataClassification,
    DEFAULT_HOST_ORG_ID,
    Operation,
    OperationAuditEvent,
    OperationBlueprint,
    OperationDomains,
    OperationPosture,
    OperationStatus,
    OperationTemplate,
    UNTITLED_OPERATION,
    defaultCommsTemplateByPosture,
    defaultFocusRulesByPosture,
    defaultTtlProfileByPosture,
    uniqueOrdered,
)
from nexus.core.timeutil import currentMs, msToIso, parseTimestampMs


SNAPSHOT_SCHEMA_VERSION = 1

# Fields accepted by updateOperation
UPDATABLE_FIELDS = ('name', 'classification', 'ao', 'linkedIntelIds', 'invitedOrgIds')

OperationListener = Callable[[Dict[str, Any]], None]


class OperationService:
    """
    In-memory operation store with audit trail.

    Args:
        clock: Returns epoch milliseconds; used when a call passes no nowMs
        snapshotPath: When set, the full state is written here (orjson) after
            every committed mutation
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None,
                 snapshotPath: Optional[Union[str, Path]] = None):
        self.log = getLogger()
        self._clock = clock or currentMs
        self.snapshotPath = Path(snapshotPath) if snapshotPath else None
        self._lock = threading.Lock()
        self._listeners: List[OperationListener] = []
        self._operations: Dict[str, Operation] = {}
        self._templates: Dict[str, OperationTemplate] = {}
        self._auditEvents: List[OperationAuditEvent] = []
        self._events: Dict[str, Dict[str, Any]] = {}
        self._sequence = 0

    # ------------------------------------------------------------------
    # Internal helpers (caller holds the lock)
    # ------------------------------------------------------------------

    def _now(self, nowMs: Optional[int]) -> int:
        return int(nowMs) if nowMs is not None else int(self._clock())

    def _newId(self, prefix: str) -> str:
        return f"{prefix}_{uuid.uuid4().hex[:16]}"

    def _require(self, opId: str) -> Operation:
        operation = self._operations.get(opId)
        if operation is None:
            raise NotFoundError("Operation", opId)
        return operation

    def _appendAudit(self, opId: str, action: AuditAction, actor: str, summary: str,
                     nowMs: int, diff: Optional[Dict[str, Any]] = None,
                     details: Optional[Dict[str, Any]] = None) -> OperationAuditEvent:
        self._sequence += 1
        record = OperationAuditEvent(
            id=self._newId("audit"),
            operationId=opId,
            action=action,
            actor=actor,
            timestamp=msToIso(nowMs),
            timestampMs=nowMs,
            sequence=self._sequence,
            summary=summary,
            diff=diff,
            details=details,
        )
        self._auditEvents.append(record)
        return record

    def _touch(self, operation: Operation, nowMs: int):
        operation.updatedAt = msToIso(nowMs)

    def _buildOperation(self, createdBy: str, nowMs: int, name: Optional[str],
                        posture: Union[OperationPosture, str], status: Union[OperationStatus, str],
                        classification: Union[DataClassification, str], ao: Any,
                        commsTemplateId: Optional[str], ttlProfileId: Optional[str],
                        hostOrgId: Optional[str], invitedOrgIds: Optional[List[str]],
                        domains: Any, linkedIntelIds: Optional[List[str]]) -> Operation:
        posture = OperationPosture(posture)
        createdAt = msToIso(nowMs)
        return Operation(
            id=self._newId("op"),
            name=(name or "").strip() or UNTITLED_OPERATION,
            createdBy=createdBy,
            createdAt=createdAt,
            updatedAt=createdAt,
            posture=posture,
            status=OperationStatus(status),
            classification=DataClassification(classification),
            ao=AreaOfOperations.fromValue(ao),
            commsTemplateId=commsTemplateId or defaultCommsTemplateByPosture(posture),
            ttlProfileId=ttlProfileId or defaultTtlProfileByPosture(posture),
            hostOrgId=hostOrgId or DEFAULT_HOST_ORG_ID,
            invitedOrgIds=uniqueOrdered(invitedOrgIds),
            domains=OperationDomains.fromValue(domains),
            linkedIntelIds=uniqueOrdered(linkedIntelIds),
            focusRules=defaultFocusRulesByPosture(posture),
        )

    def _insertOperation(self, operation: Operation, nowMs: int):
        self._operations[operation.id] = operation
        self._appendAudit(
            operation.id, AuditAction.OP_CREATED, operation.createdBy,
            f"Operation {operation.name} created.", nowMs,
            details={
                "posture": operation.posture.value,
                "status": operation.status.value,
                "classification": operation.classification.value,
                "aoNodeId": operation.ao.nodeId,
            },
        )

    def _commit(self) -> Dict[str, Any]:
        """Persist when configured and return the snapshot for listeners."""
        snapshot = self._snapshotUnlocked()
        if self.snapshotPath:
            self._writeSnapshot(self.snapshotPath, snapshot)
        return snapshot

    def _notify(self, snapshot: Dict[str, Any]):
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                self.log.error("[Operations] Listener failed", error=str(e), exc_info=True)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def createOperation(self, createdBy: str, name: Optional[str] = None,
                        posture: Union[OperationPosture, str] = OperationPosture.CASUAL,
                        status: Union[OperationStatus, str] = OperationStatus.PLANNING,
                        classification: Union[DataClassification, str] = DataClassification.INTERNAL,
                        ao: Any = None, commsTemplateId: Optional[str] = None,
                        ttlProfileId: Optional[str] = None, hostOrgId: Optional[str] = None,
                        invitedOrgIds: Optional[List[str]] = None, domains: Any = None,
                        linkedIntelIds: Optional[List[str]] = None,
                        nowMs: Optional[int] = None) -> Operation:
        """
        Create an operation and append OP_CREATED.

        Posture drives the default comms template, TTL profile and focus rules
        when those are not given explicitly.
        """
        with self._lock:
            now = self._now(nowMs)
            operation = self._buildOperation(
                createdBy, now, name, posture, status, classification, ao,
                commsTemplateId, ttlProfileId, hostOrgId, invitedOrgIds, domains, linkedIntelIds
            )
            self._insertOperation(operation, now)
            result = operation.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Operation created", opId=result.id, actor=createdBy,
                      posture=result.posture.value, status=result.status.value)
        self._notify(snapshot)
        return result

    def getOperation(self, opId: str) -> Operation:
        with self._lock:
            return self._require(opId).copy()

    def findOperation(self, opId: str) -> Optional[Operation]:
        with self._lock:
            operation = self._operations.get(opId)
            return operation.copy() if operation else None

    def listOperations(self, includeArchived: bool = False) -> List[Operation]:
        """Most recently updated first."""
        with self._lock:
            records = [
                op.copy() for op in self._operations.values()
                if includeArchived or op.status != OperationStatus.ARCHIVED
            ]
        records.sort(key=lambda op: (op.updatedAt, op.id), reverse=True)
        return records

    def updateOperation(self, opId: str, fields: Dict[str, Any], actor: str,
                        nowMs: Optional[int] = None) -> Operation:
        """
        Merge the provided metadata fields.

        Only keys in UPDATABLE_FIELDS are considered. The OP_METADATA_UPDATED
        diff maps each changed key to {"from": old, "to": new}; when nothing
        changes no audit event is appended.
        """
        with self._lock:
            now = self._now(nowMs)
            operation = self._require(opId)
            diff = {}

            if fields.get('name') is not None:
                name = str(fields['name']).strip()
                if name and name != operation.name:
                    diff['name'] = {"from": operation.name, "to": name}
                    operation.name = name

            if fields.get('classification') is not None:
                classification = DataClassification(fields['classification'])
                if classification != operation.classification:
                    diff['classification'] = {
                        "from": operation.classification.value, "to": classification.value
                    }
                    operation.classification = classification

            if fields.get('ao') is not None:
                ao = AreaOfOperations.fromValue(fields['ao'])
                if ao != operation.ao:
                    diff['ao'] = {"from": operation.ao.toDict(), "to": ao.toDict()}
                    operation.ao = ao

            for key in ('linkedIntelIds', 'invitedOrgIds'):
                if fields.get(key) is not None:
                    values = uniqueOrdered(fields[key])
                    current = getattr(operation, key)
                    if values != current:
                        diff[key] = {"from": list(current), "to": list(values)}
                        setattr(operation, key, values)

            ignored = sorted(set(fields) - set(UPDATABLE_FIELDS))
            if ignored:
                self.log.debug("[Operations] Ignoring non-updatable fields", opId=opId, fields=ignored)

            if not diff:
                return operation.copy()

            self._touch(operation, now)
            self._appendAudit(opId, AuditAction.OP_METADATA_UPDATED, actor,
                              "Operation metadata updated.", now, diff=diff)
            result = operation.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Metadata updated", opId=opId, actor=actor, changed=sorted(diff))
        self._notify(snapshot)
        return result

    def updateStatus(self, opId: str, status: Union[OperationStatus, str], actor: str,
                     nowMs: Optional[int] = None) -> Operation:
        """Set status. Unchanged status is a no-op for state and audit log."""
        status = OperationStatus(status)
        with self._lock:
            now = self._now(nowMs)
            operation = self._require(opId)
            previous = operation.status
            if previous == status:
                return operation.copy()

            operation.status = status
            self._touch(operation, now)
            self._appendAudit(opId, AuditAction.OP_STATUS_UPDATED, actor,
                              f"Operation status set to {status.value}.", now,
                              diff={"status": {"from": previous.value, "to": status.value}})
            result = operation.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Status updated", opId=opId, actor=actor,
                      fromStatus=previous.value, toStatus=status.value)
        self._notify(snapshot)
        return result

    def setPosture(self, opId: str, posture: Union[OperationPosture, str], actor: str,
                   nowMs: Optional[int] = None) -> Operation:
        """
        Set posture and re-derive focus rules, comms template and TTL profile.

        Unchanged posture is a no-op.
        """
        posture = OperationPosture(posture)
        with self._lock:
            now = self._now(nowMs)
            operation = self._require(opId)
            previous = operation.posture
            if previous == posture:
                return operation.copy()

            operation.posture = posture
            operation.focusRules = defaultFocusRulesByPosture(posture)
            operation.commsTemplateId = defaultCommsTemplateByPosture(posture)
            operation.ttlProfileId = defaultTtlProfileByPosture(posture)
            self._touch(operation, now)
            self._appendAudit(opId, AuditAction.OP_POSTURE_UPDATED, actor,
                              f"Operation posture set to {posture.value}.", now,
                              diff={"posture": {"from": previous.value, "to": posture.value}},
                              details={"commsTemplateId": operation.commsTemplateId,
                                       "ttlProfileId": operation.ttlProfileId})
            result = operation.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Posture updated", opId=opId, actor=actor, posture=posture.value)
        self._notify(snapshot)
        return result

    def applyCommsTemplate(self, opId: str, templateId: str, actor: str,
                           nowMs: Optional[int] = None) -> Operation:
        with self._lock:
            now = self._now(nowMs)
            operation = self._require(opId)
            previous = operation.commsTemplateId
            if previous == templateId:
                return operation.copy()

            operation.commsTemplateId = templateId
            self._touch(operation, now)
            self._appendAudit(opId, AuditAction.OP_COMMS_TEMPLATE_APPLIED, actor,
                              f"Comms template set to {templateId}.", now,
                              diff={"commsTemplateId": {"from": previous, "to": templateId}})
            result = operation.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Comms template applied", opId=opId, actor=actor, templateId=templateId)
        self._notify(snapshot)
        return result

    def cloneOperation(self, sourceId: str, createdBy: str, name: Optional[str] = None,
                       nowMs: Optional[int] = None) -> Operation:
        """
        Copy the cloneable fields of an operation into a new PLANNING operation.

        Appends OP_CLONED_TO on the source and OP_CLONED_FROM on the clone,
        each naming the other.
        """
        with self._lock:
            now = self._now(nowMs)
            source = self._require(sourceId)
            clone = self._buildOperation(
                createdBy, now, (name or "").strip() or f"{source.name} Copy",
                source.posture, OperationStatus.PLANNING, source.classification,
                source.ao, source.commsTemplateId, source.ttlProfileId, source.hostOrgId,
                source.invitedOrgIds, source.domains, None
            )
            self._insertOperation(clone, now)
            self._appendAudit(clone.id, AuditAction.OP_CLONED_FROM, createdBy,
                              f"Operation cloned from {source.id}.", now,
                              details={"sourceOperationId": source.id, "sourceOperationName": source.name})
            self._appendAudit(source.id, AuditAction.OP_CLONED_TO, createdBy,
                              f"Operation cloned into {clone.id}.", now,
                              details={"cloneOperationId": clone.id, "cloneOperationName": clone.name})
            result = clone.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Operation cloned", sourceOpId=sourceId, cloneOpId=result.id, actor=createdBy)
        self._notify(snapshot)
        return result

    def listOperationAuditEvents(self, opId: str) -> List[OperationAuditEvent]:
        """Chronological audit log of one operation."""
        with self._lock:
            self._require(opId)
            records = [event for event in self._auditEvents if event.operationId == opId]
            records.sort(key=lambda event: (event.timestampMs, event.sequence))
            return [OperationAuditEvent.fromDict(event.toDict()) for event in records]

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def createOperationTemplateFromOperation(self, opId: str, actor: str,
                                             name: Optional[str] = None,
                                             description: Optional[str] = None,
                                             nowMs: Optional[int] = None) -> OperationTemplate:
        """
        Snapshot an operation's cloneable fields into a new template.

        The template is a separate resource: no operation audit event is
        appended, and later edits to the operation do not reach the template.
        """
        with self._lock:
            now = self._now(nowMs)
            operation = self._require(opId)
            createdAt = msToIso(now)
            template = OperationTemplate(
                id=self._newId("tpl"),
                name=(name or "").strip() or f"{operation.name} Template",
                description=(description or "").strip(),
                sourceOperationId=operation.id,
                createdBy=actor,
                createdAt=createdAt,
                updatedAt=createdAt,
                blueprint=OperationBlueprint(
                    name=operation.name,
                    posture=operation.posture,
                    classification=operation.classification,
                    ao=AreaOfOperations.fromValue(operation.ao),
                    commsTemplateId=operation.commsTemplateId,
                    ttlProfileId=operation.ttlProfileId,
                    hostOrgId=operation.hostOrgId,
                    invitedOrgIds=list(operation.invitedOrgIds),
                    domains=OperationDomains.fromValue(operation.domains),
                    sourceStatus=operation.status,
                ),
            )
            self._templates[template.id] = template
            result = template.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Template saved from operation", templateId=result.id, opId=opId, actor=actor)
        self._notify(snapshot)
        return result

    def createOperationTemplate(self, createdBy: str, name: str, description: Optional[str] = None,
                                blueprint: Optional[Dict[str, Any]] = None,
                                nowMs: Optional[int] = None) -> OperationTemplate:
        """Create a template from a partial blueprint dict, without a source operation."""
        with self._lock:
            now = self._now(nowMs)
            createdAt = msToIso(now)
            template = OperationTemplate(
                id=self._newId("tpl"),
                name=(name or "").strip() or "Untitled Template",
                description=(description or "").strip(),
                sourceOperationId=None,
                createdBy=createdBy,
                createdAt=createdAt,
                updatedAt=createdAt,
                blueprint=OperationBlueprint.fromDict(blueprint or {}),
            )
            self._templates[template.id] = template
            result = template.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Template created", templateId=result.id, actor=createdBy)
        self._notify(snapshot)
        return result

    def getOperationTemplate(self, templateId: str) -> OperationTemplate:
        with self._lock:
            template = self._templates.get(templateId)
            if template is None:
                raise NotFoundError("OperationTemplate", templateId)
            return template.copy()

    def listOperationTemplates(self, createdBy: Optional[str] = None) -> List[OperationTemplate]:
        """Newest first, optionally filtered by creator."""
        creator = (createdBy or "").strip()
        with self._lock:
            records = [
                template.copy() for template in self._templates.values()
                if not creator or template.createdBy == creator
            ]
        records.sort(key=lambda template: (template.createdAt, template.id), reverse=True)
        return records

    def instantiateOperationFromTemplate(self, templateId: str, createdBy: str,
                                         name: Optional[str] = None,
                                         classification: Optional[Union[DataClassification, str]] = None,
                                         posture: Optional[Union[OperationPosture, str]] = None,
                                         ao: Any = None,
                                         nowMs: Optional[int] = None) -> Operation:
        """
        Create a PLANNING operation from a template blueprint.

        The source status captured in the blueprint is never inherited.
        Appends OP_CREATED then OP_TEMPLATE_APPLIED on the new operation.
        """
        with self._lock:
            now = self._now(nowMs)
            template = self._templates.get(templateId)
            if template is None:
                raise NotFoundError("OperationTemplate", templateId)
            blueprint = template.blueprint
            effectivePosture = OperationPosture(posture) if posture else blueprint.posture
            postureChanged = effectivePosture != blueprint.posture

            operation = self._buildOperation(
                createdBy, now, (name or "").strip() or blueprint.name,
                effectivePosture, OperationStatus.PLANNING,
                classification or blueprint.classification,
                ao if ao is not None else blueprint.ao,
                None if postureChanged else blueprint.commsTemplateId,
                None if postureChanged else blueprint.ttlProfileId,
                blueprint.hostOrgId, blueprint.invitedOrgIds, blueprint.domains, None
            )
            self._insertOperation(operation, now)
            self._appendAudit(operation.id, AuditAction.OP_TEMPLATE_APPLIED, createdBy,
                              f"Operation instantiated from template {template.name}.", now,
                              details={"templateId": template.id, "templateName": template.name,
                                       "sourceOperationId": template.sourceOperationId})
            result = operation.copy()
            snapshot = self._commit()

        self.log.info("[Operations] Operation instantiated from template",
                      opId=result.id, templateId=templateId, actor=createdBy)
        self._notify(snapshot)
        return result

    # ------------------------------------------------------------------
    # Operation event log
    # ------------------------------------------------------------------

    def appendOperationEvent(self, opId: str, kind: str, createdBy: str,
                             payload: Optional[Dict[str, Any]] = None,
                             eventId: Optional[str] = None,
                             createdAt: Optional[str] = None,
                             nowMs: Optional[int] = None) -> OperationEventUnion:
        """
        Append a domain event to an operation's event log.

        Events without an id get a content-derived one, so appending the same
        content twice stores it once.
        """
        with self._lock:
            now = self._now(nowMs)
            self._require(opId)
            record = {
                "opId": opId,
                "kind": kind,
                "createdBy": createdBy,
                "createdAt": createdAt or msToIso(now),
                "payload": dict(payload or {}),
            }
            record["id"] = eventId or computeEventId(
                opId, kind, createdBy, record["createdAt"], record["payload"]
            )
            existing = self._events.get(record["id"])
            if existing is not None:
                self.log.debug("[Operations] Duplicate operation event ignored", eventId=record["id"])
                return operationEventFromDict(existing)

            self._events[record["id"]] = record
            snapshot = self._commit()

        self.log.info("[Operations] Operation event appended", opId=opId, eventId=record["id"], kind=kind)
        self._notify(snapshot)
        return operationEventFromDict(record)

    def listOperationEvents(self, opId: Optional[str] = None) -> List[OperationEventUnion]:
        """Events ascending by createdAt, then id. All operations when opId is None."""
        with self._lock:
            records = [dict(record) for record in self._events.values()
                       if opId is None or record["opId"] == opId]
        records.sort(key=lambda record: (parseTimestampMs(record["createdAt"]) or 0, record["id"]))
        return [operationEventFromDict(record) for record in records]

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: OperationListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def _snapshotUnlocked(self) -> Dict[str, Any]:
        return {
            "schemaVersion": SNAPSHOT_SCHEMA_VERSION,
            "sequence": self._sequence,
            "operations": [op.toDict() for op in self._operations.values()],
            "auditEvents": [event.toDict() for event in self._auditEvents],
            "templates": [template.toDict() for template in self._templates.values()],
            "events": [dict(record) for record in self._events.values()],
        }

    def _writeSnapshot(self, path: Path, snapshot: Dict[str, Any]):
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(orjson.dumps(snapshot, option=orjson.OPT_INDENT_2))
        except OSError as e:
            self.log.error("[Operations] Failed to persist snapshot", path=str(path), error=str(e))

    def toSnapshot(self) -> Dict[str, Any]:
        with self._lock:
            return orjson.loads(orjson.dumps(self._snapshotUnlocked()))

    def _restore(self, snapshot: Dict[str, Any]):
        operations = [Operation.fromDict(item) for item in snapshot.get("operations", [])]
        auditEvents = [OperationAuditEvent.fromDict(item) for item in snapshot.get("auditEvents", [])]
        templates = [OperationTemplate.fromDict(item) for item in snapshot.get("templates", [])]
        events = [dict(item) for item in snapshot.get("events", [])]

        self._operations = {op.id: op for op in operations}
        self._auditEvents = auditEvents
        self._templates = {template.id: template for template in templates}
        self._events = {record["id"]: record for record in events}
        self._sequence = max(
            [int(snapshot.get("sequence", 0))] + [event.sequence for event in auditEvents]
        )

    @classmethod
    def fromSnapshot(cls, snapshot: Dict[str, Any], clock: Optional[Callable[[], int]] = None,
                     snapshotPath: Optional[Union[str, Path]] = None) -> 'OperationService':
        service = cls(clock=clock, snapshotPath=snapshotPath)
        service._restore(snapshot)
        return service

    @classmethod
    def fromConfig(cls, config: Dict[str, Any], clock: Optional[Callable[[], int]] = None) -> 'OperationService':
        """
        Build a service from the 'operations' config section.

        With a snapshotPath set, an existing snapshot there is loaded and every
        later mutation is persisted back to it.
        """
        snapshotPath = (config.get("operations") or {}).get("snapshotPath")
        service = cls(clock=clock, snapshotPath=snapshotPath)
        if service.snapshotPath and service.snapshotPath.exists():
            service.loadSnapshot(service.snapshotPath)
        return service

    def saveSnapshot(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        with self._lock:
            snapshot = self._snapshotUnlocked()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(orjson.dumps(snapshot, option=orjson.OPT_INDENT_2))
        self.log.info("[Operations] Snapshot saved", path=str(path), operations=len(snapshot["operations"]))
        return path

    def loadSnapshot(self, path: Union[str, Path]):
        """Replace the in-memory state with the snapshot stored at path."""
        path = Path(path)
        snapshot = orjson.loads(path.read_bytes())
        with self._lock:
            self._restore(snapshot)
            count = len(self._operations)
        self.log.info("[Operations] Snapshot loaded", path=str(path), operations=count)

    def _resetState(self):
        with self._lock:
            self._operations = {}
            self._templates = {}
            self._auditEvents = []
            self._events = {}
            self._sequence = 0
            self._listeners = []

"""
Test-only helpers.

Nothing under nexus/ imports this module; tests call it to tear down an
OperationService between cases.
"""

from nexus.services.operationService import OperationService


def resetOperationServiceState(service: OperationService):
    """Drop every operation, template, audit event, event and listener."""
    service._resetState()

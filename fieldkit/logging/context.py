"""
Logging service context.

Attaches service identity (serviceType, nodeId, scopeId) to every record
emitted by fieldkit loggers once installServiceContextFilter() has run.
"""

import logging
from typing import Optional
from contextvars import ContextVar

_serviceType: ContextVar[Optional[str]] = ContextVar('serviceType', default=None)
_nodeId: ContextVar[Optional[str]] = ContextVar('nodeId', default=None)
_scopeId: ContextVar[Optional[str]] = ContextVar('scopeId', default=None)


class ServiceContextFilter(logging.Filter):
    """Adds the current service context to log records."""

    def filter(self, record):
        serviceType = _serviceType.get()
        nodeId = _nodeId.get()
        scopeId = _scopeId.get()

        if serviceType:
            record.serviceType = serviceType
        if nodeId:
            record.nodeId = nodeId
        if scopeId:
            record.scopeId = scopeId

        return True


def setServiceContext(serviceType: str, nodeId: str, scopeId: Optional[str] = None):
    """
    Set service-level context for logging.

    Args:
        serviceType: Type of service ('nexusCli', 'nexusEngine')
        nodeId: Host or instance identifier
        scopeId: Operation or scope identifier (optional)
    """
    _serviceType.set(serviceType)
    _nodeId.set(nodeId)
    if scopeId:
        _scopeId.set(scopeId)


def getServiceContext() -> dict:
    return {
        'serviceType': _serviceType.get(),
        'nodeId': _nodeId.get(),
        'scopeId': _scopeId.get()
    }


def clearServiceContext():
    _serviceType.set(None)
    _nodeId.set(None)
    _scopeId.set(None)


def installServiceContextFilter(logger: Optional[logging.Logger] = None):
    """
    Install the context filter on a logger's handlers.

    fieldkit loggers do not propagate, so the filter goes on each handler of
    the given logger (root logger when None). Idempotent.
    """
    target = logger or logging.getLogger()
    handlers = target.handlers or []

    for handler in handlers:
        if any(isinstance(f, ServiceContextFilter) for f in handler.filters):
            continue
        handler.addFilter(ServiceContextFilter())

    if not any(isinstance(f, ServiceContextFilter) for f in target.filters):
        target.addFilter(ServiceContextFilter())

"""
fieldkit logging - hierarchical structured logger with automatic naming.

API:
    from fieldkit.logging import getLogger

    class OperationService:
        def __init__(self):
            self.log = getLogger()

        def updateStatus(self, opId, status, actor):
            self.log.info("Operation status updated", opId=opId, status=status)

    # Global configuration (once at app startup)
    from fieldkit.logging import configureLogging
    configureLogging(logDir='../logs', level='DEBUG')
"""

from .logger import getLogger, configureLogging
from .context import (
    setServiceContext,
    getServiceContext,
    clearServiceContext,
    installServiceContextFilter
)

__all__ = [
    'getLogger',
    'configureLogging',
    'setServiceContext',
    'getServiceContext',
    'clearServiceContext',
    'installServiceContextFilter'
]

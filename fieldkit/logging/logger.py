"""
Hierarchical structured logger for the Nexus engine.

Features:
- Logger name auto-detected from the call stack (module, plus class when
  called from a method), computed once per getLogger() call
- Structured fields passed as keyword arguments, rendered as [key=value, ...]
- Optional rotating file output, one file per top-level package
- Console output for development

Usage:
    from fieldkit.logging import getLogger

    class OperationService:
        def __init__(self):
            self.log = getLogger()  # 'nexus.services.operationService.OperationService'

        def createOperation(self, ...):
            self.log.info("Operation created", opId=op.id, actor=op.createdBy)

    # Module-level
    log = getLogger()  # 'nexus.services.mapTimelineService'

Field names must not collide with LogRecord attributes (name, msg, args,
module, filename, ...); use opId/actor/reason style names instead.
"""

import inspect
import logging
import logging.handlers
import socket
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone as tz


_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # logPath -> handler
_config = {
    'logDir': None,             # None = console only
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
    'utc': False
}

_RECORD_FIELDS = {
    'name', 'msg', 'args', 'created', 'filename', 'funcName',
    'levelname', 'levelno', 'lineno', 'module', 'msecs',
    'message', 'pathname', 'process', 'processName',
    'relativeCreated', 'thread', 'threadName', 'exc_info',
    'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
}


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True,
                     level: str = 'INFO', utc: bool = False):
    """
    Configure global logging settings (call once at app startup).

    Loggers created before this call keep their handlers but adopt the new
    level; configure first to get file output everywhere.

    Args:
        logDir: Directory for rotating log files (None disables file output)
        maxBytes: Maximum size per log file before rotation
        backupCount: Number of rotated files kept per log
        console: Also log to the console
        level: Minimum log level name
        utc: Use UTC timestamps
    """
    global _configured

    levelNo = logging.getLevelName(str(level).upper())
    if not isinstance(levelNo, int):
        raise ValueError(f"Unknown log level '{level}'")

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': levelNo, 'utc': utc})

    if logDir:
        Path(logDir).mkdir(parents=True, exist_ok=True)
    _configured = True

    for existing in list(logging.Logger.manager.loggerDict.values()):
        if getattr(existing, '_configuredByFieldkit', False):
            existing.setLevel(_config['level'])
            for handler in existing.handlers:
                handler.setLevel(_config['level'])


_SKIPPED_MODULE_PREFIXES = ('fieldkit.logging', 'importlib')


def _ownerClassName(frameLocals: dict) -> Optional[str]:
    if 'self' in frameLocals:
        return type(frameLocals['self']).__name__
    owner = frameLocals.get('cls')
    return owner.__name__ if isinstance(owner, type) else None


def _autoDetectName() -> str:
    """Name of the first caller outside this package: 'module' or 'module.Class'."""
    frame = inspect.currentframe()
    try:
        caller = frame.f_back if frame is not None else None
        while caller is not None:
            module = inspect.getmodule(caller)
            moduleName = module.__name__ if module is not None else None
            if moduleName and moduleName != '__main__' and not moduleName.startswith(_SKIPPED_MODULE_PREFIXES):
                className = _ownerClassName(caller.f_locals or {})
                return f"{moduleName}.{className}" if className else moduleName
            caller = caller.f_back
        return 'unknown'
    finally:
        del frame


FILE_FORMAT = '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(name)s - %(levelname)s - %(message)s'


def structuredFields(record: logging.LogRecord) -> str:
    """Render the record's extra fields as 'key=value, ...' (empty when none)."""
    return ', '.join(
        f"{key}={value}" for key, value in record.__dict__.items()
        if key not in _RECORD_FIELDS and not key.startswith('_')
    )


class StructuredFormatter(logging.Formatter):
    """Renders '<fmt> [field1=value1, field2=value2]'; asctime in local time or UTC."""

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.zone = tz.utc if utc else None

    def formatTime(self, record, datefmt=None):
        stamp = datetime.fromtimestamp(record.created, tz=self.zone)
        if datefmt:
            return stamp.strftime(datefmt)
        return stamp.strftime('%Y-%m-%d %H:%M:%S') + f",{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname
        fields = structuredFields(record)
        if not fields:
            return super().format(record)

        # Decorate only while formatting; other handlers see the plain message
        plainMsg = record.msg
        record.msg = f"{plainMsg} [{fields}]"
        try:
            return super().format(record)
        finally:
            record.msg = plainMsg


def _sharedFileHandler(name: str, separateFile: bool) -> logging.Handler:
    """One rotating handler per log file, shared by every logger writing to it."""
    target = name if separateFile else name.split('.')[0]
    logPath = str(Path(_config['logDir']) / f"{target}.log")
    handler = _fileHandlers.get(logPath)
    if handler is None:
        handler = logging.handlers.RotatingFileHandler(
            logPath, maxBytes=_config['maxBytes'], backupCount=_config['backupCount'], encoding='utf-8'
        )
        handler.setLevel(_config['level'])
        handler.setFormatter(StructuredFormatter(FILE_FORMAT, utc=_config['utc']))
        _fileHandlers[logPath] = handler
    return handler


def _consoleHandler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(_config['level'])
    handler.setFormatter(StructuredFormatter(CONSOLE_FORMAT, utc=_config['utc']))
    return handler


def getLogger(name: Optional[str] = None, separateFile: bool = False) -> logging.Logger:
    """
    Return the named logger, creating and wiring its handlers on first use.

    Args:
        name: Logger name; None derives it from the caller's module and class
        separateFile: Write to '<name>.log' instead of the top-level package file

    Returns:
        logging.Logger whose level methods accept structured fields as kwargs
    """
    if not _configured:
        configureLogging()

    logger = logging.getLogger(name or _autoDetectName())
    logger.propagate = False

    if not logger.handlers and not hasattr(logger, '_configuredByFieldkit'):
        logger.setLevel(_config['level'])
        if _config['logDir']:
            logger.addHandler(_sharedFileHandler(logger.name, separateFile))
        if _config['console']:
            logger.addHandler(_consoleHandler())
        logger._configuredByFieldkit = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Replace the level methods so structured fields can be passed as kwargs.

    log.info("Lane skipped", laneId=..., reason=...)
    instead of log.info("Lane skipped", extra={'laneId': ..., 'reason': ...})
    """
    if hasattr(logger, '_isWrapped'):
        return logger

    def _wrap(original):
        def method(msg, *args, **kwargs):
            excInfo = kwargs.pop('exc_info', False)
            if kwargs:
                original(msg, *args, extra=kwargs, exc_info=excInfo)
            else:
                original(msg, *args, exc_info=excInfo)
        method.__doc__ = original.__doc__
        return method

    logger.debug = _wrap(logger.debug)
    logger.info = _wrap(logger.info)
    logger.warning = _wrap(logger.warning)
    logger.error = _wrap(logger.error)
    logger.critical = _wrap(logger.critical)
    logger._isWrapped = True

    return logger

"""
Structured Logging Tests

Validates:
- Keyword fields render as [key=value, ...] after the message
- Logger names are auto-detected from module and class
- configureLogging adjusts levels of loggers created earlier
- Service context fields are attached once the filter is installed
"""

import logging
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from fieldkit.logging import (
    clearServiceContext,
    configureLogging,
    getLogger,
    getServiceContext,
    installServiceContextFilter,
    setServiceContext,
)
from fieldkit.logging.logger import StructuredFormatter


class CaptureHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.lines = []
        self.setFormatter(StructuredFormatter('%(name)s - %(levelname)s - %(message)s'))

    def emit(self, record):
        self.lines.append(self.format(record))


@pytest.fixture(autouse=True)
def debugLogging():
    configureLogging(level='DEBUG', console=False)
    yield
    clearServiceContext()
    configureLogging(level='INFO')


def captured(name):
    log = getLogger(name)
    handler = CaptureHandler()
    log.addHandler(handler)
    return log, handler


class Worker:
    def __init__(self):
        self.log = getLogger()


# ============================================================================
# Formatting and naming
# ============================================================================

class TestStructuredLogger:

    def test_fields_render_after_message(self):
        log, handler = captured('nexus.test.fields')
        log.info("[Operations] Operation created", opId="op_1", actor="member-lead")

        assert handler.lines == [
            "nexus.test.fields - INFO - [Operations] Operation created [opId=op_1, actor=member-lead]"
        ]

    def test_message_without_fields_is_unchanged(self):
        log, handler = captured('nexus.test.plain')
        log.warning("[Main] Using default config")
        assert handler.lines == ["nexus.test.plain - WARNING - [Main] Using default config"]

    def test_formatting_does_not_leak_fields_into_message(self):
        log, handler = captured('nexus.test.leak')
        second = CaptureHandler()
        log.addHandler(second)
        log.info("Lane skipped", reason="MISSING_ROUTE")

        assert handler.lines == second.lines

    def test_name_detected_from_module_and_class(self):
        assert Worker().log.name == f"{__name__}.Worker"
        assert getLogger().name == f"{__name__}.TestStructuredLogger"

    def test_wrapped_logger_is_reused(self):
        assert getLogger('nexus.test.same') is getLogger('nexus.test.same')

    def test_configure_updates_existing_levels(self):
        log, handler = captured('nexus.test.levels')
        configureLogging(level='ERROR', console=False)

        log.warning("dropped")
        log.error("kept", code=7)

        assert handler.lines == ["nexus.test.levels - ERROR - kept [code=7]"]

    def test_unknown_level_is_rejected(self):
        with pytest.raises(ValueError):
            configureLogging(level='LOUD', console=False)


# ============================================================================
# Service context
# ============================================================================

class TestServiceContext:

    def test_context_round_trip(self):
        setServiceContext('nexusCli', 'host-a', 'op_1')
        assert getServiceContext() == {'serviceType': 'nexusCli', 'nodeId': 'host-a', 'scopeId': 'op_1'}

        clearServiceContext()
        assert getServiceContext() == {'serviceType': None, 'nodeId': None, 'scopeId': None}

    def test_filter_attaches_context_fields(self):
        log, handler = captured('nexus.test.context')
        installServiceContextFilter(log)
        installServiceContextFilter(log)
        setServiceContext('nexusCli', 'host-a')

        log.info("[Main] Config ready")

        assert handler.lines == ["nexus.test.context - INFO - [Main] Config ready [serviceType=nexusCli, nodeId=host-a]"]
        assert sum(1 for f in handler.filters if type(f).__name__ == 'ServiceContextFilter') == 1

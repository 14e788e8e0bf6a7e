"""
Config and CLI Tests

Validates:
- loadConfig returns (config, version, usedDefaults) and falls back to
  defaults on missing or invalid files
- Partial config files are deep-merged over defaults
- CLI subcommands: validate, timeline, overlay
"""

import os
import sys
import tempfile

import orjson
import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from nexus.config import DEFAULT_CONFIG, loadConfig, parseConfig
from nexus.core.errors import ConfigError
from nexus.core.timeutil import msToIso
from nexus.main import main


NOW_MS = 1_767_225_600_000  # 2026-01-01T00:00:00Z
MINUTE_MS = 60_000


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def tempDir():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


def writeJson(directory, filename, document):
    path = os.path.join(directory, filename)
    with open(path, 'wb') as f:
        f.write(orjson.dumps(document))
    return path


@pytest.fixture
def configPath(tempDir):
    return writeJson(tempDir, "nexus.config.json", {
        "configVersion": "2.1",
        "logging": {"level": "WARNING"},
        "timeline": {"defaultWindowMinutes": 15},
        "logistics": {"defaultLaneTtlSeconds": 600},
    })


@pytest.fixture
def inputPath(tempDir):
    return writeJson(tempDir, "ops.json", {
        "events": [
            {"id": "evt_dep", "opId": "op_1", "kind": "DECLARE_DEPARTURE", "createdBy": "m",
             "createdAt": msToIso(NOW_MS - 20 * MINUTE_MS), "payload": {"route": "Lorville -> Port Tressler"}},
            {"id": "evt_hold", "opId": "op_1", "kind": "DECLARE_HOLD", "createdBy": "m",
             "createdAt": msToIso(NOW_MS - 5 * MINUTE_MS), "payload": {"nodeId": "city-orison"}},
            {"id": "evt_other", "opId": "op_2", "kind": "DECLARE_HOLD", "createdBy": "m",
             "createdAt": msToIso(NOW_MS - MINUTE_MS), "payload": {"nodeId": "city-area18"}},
        ],
        "commsOverlay": {
            "callouts": [{"id": "co_1", "eventId": "op_1", "message": "Moving",
                          "createdDate": msToIso(NOW_MS - 19 * MINUTE_MS)}],
        },
        "routeHypotheses": [{"id": "hyp-1", "fromNodeId": "city-orison", "toNodeId": "city-area18"}],
    })


# ============================================================================
# Config loading
# ============================================================================

class TestConfig:

    def test_partial_file_merges_over_defaults(self, configPath):
        config, version, usedDefaults = loadConfig(configPath)

        assert version == "2.1"
        assert usedDefaults is False
        assert config["logging"]["level"] == "WARNING"
        assert config["logging"]["console"] is True
        assert config["timeline"]["defaultWindowMinutes"] == 15
        assert config["logistics"]["defaultLaneTtlSeconds"] == 600

    def test_missing_file_falls_back_to_defaults(self, tempDir):
        config, version, usedDefaults = loadConfig(os.path.join(tempDir, "absent.json"))

        assert usedDefaults is True
        assert version == DEFAULT_CONFIG["configVersion"]
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_invalid_file_falls_back_to_defaults(self, tempDir):
        path = os.path.join(tempDir, "broken.json")
        with open(path, 'w') as f:
            f.write("{not json")
        _, _, usedDefaults = loadConfig(path)
        assert usedDefaults is True

    @pytest.mark.parametrize("raw", [
        b"[]",
        b'{"environment": "staging"}',
        b'{"logging": "loud"}',
        b'{"timeline": {"defaultWindowMinutes": -1}}',
        b'{"logistics": {"defaultLaneTtlSeconds": 0}}',
        b'{"logging": {"level": "LOUD"}}',
        b'{"logging": {"level": 20}}',
        b"{oops",
    ])
    def test_strict_parse_rejects_bad_documents(self, raw):
        with pytest.raises(ConfigError):
            parseConfig(raw)

    def test_defaults_are_not_mutated(self, tempDir):
        config, _, _ = loadConfig(os.path.join(tempDir, "absent.json"))
        config["logging"]["level"] = "DEBUG"
        assert DEFAULT_CONFIG["logging"]["level"] == "INFO"


# ============================================================================
# CLI
# ============================================================================

class TestCli:

    def test_validate_exits_zero_for_builtin_registries(self, configPath, capsys):
        assert main(["--config", configPath, "validate"]) == 0
        output = orjson.loads(capsys.readouterr().out)
        assert output == {"warnings": [], "ok": True}

    def test_timeline_command(self, configPath, inputPath, capsys):
        exitCode = main(["--config", configPath, "timeline", "--input", inputPath,
                         "--op-id", "op_1", "--now-ms", str(NOW_MS)])
        output = orjson.loads(capsys.readouterr().out)

        assert exitCode == 0
        assert output["windowMinutes"] == 15
        assert [entry["id"] for entry in output["entries"]] == ["op:evt_dep", "callout:co_1", "op:evt_hold"]
        assert [entry["id"] for entry in output["visibleEntries"]] == ["op:evt_hold"]

    def test_timeline_offset_and_window_flags(self, configPath, inputPath, capsys):
        main(["--config", configPath, "timeline", "--input", inputPath, "--op-id", "op_1",
              "--now-ms", str(NOW_MS), "--window-minutes", "5", "--offset-minutes", "15"])
        output = orjson.loads(capsys.readouterr().out)

        assert output["replayCursorMs"] == NOW_MS - 15 * MINUTE_MS
        assert [entry["id"] for entry in output["visibleEntries"]] == ["op:evt_dep", "callout:co_1"]

    def test_overlay_command(self, configPath, inputPath, capsys):
        exitCode = main(["--config", configPath, "overlay", "--input", inputPath,
                         "--op-id", "op_1", "--now-ms", str(NOW_MS)])
        output = orjson.loads(capsys.readouterr().out)

        assert exitCode == 0
        assert output["scopedOpId"] == "op_1"
        laneIds = [lane["id"] for lane in output["lanes"]]
        assert laneIds == ["logi:route:city-orison->city-area18", "logi:event:evt_hold", "logi:event:evt_dep"]
        assert output["lanes"][-1]["stale"] is True

    def test_missing_input_file_exits_two(self, configPath, tempDir):
        assert main(["--config", configPath, "overlay", "--input", os.path.join(tempDir, "none.json"),
                     "--op-id", "op_1"]) == 2

    def test_timeline_replay_steps_use_configured_step(self, configPath, inputPath, capsys):
        main(["--config", configPath, "timeline", "--input", inputPath, "--op-id", "op_1",
              "--now-ms", str(NOW_MS), "--offset-minutes", "10", "--replay-steps", "5"])
        output = orjson.loads(capsys.readouterr().out)

        assert output["offsetMinutes"] == 15
        assert output["replayCursorMs"] == NOW_MS - 15 * MINUTE_MS

    def test_unknown_log_level_falls_back_to_defaults(self, tempDir, capsys):
        path = writeJson(tempDir, "loud.json", {"logging": {"level": "LOUD"}})
        config, _, usedDefaults = loadConfig(path)

        assert usedDefaults is True
        assert config["logging"]["level"] == "INFO"
        assert main(["--config", path, "validate"]) == 0
        assert orjson.loads(capsys.readouterr().out)["ok"] is True

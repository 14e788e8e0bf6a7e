"""
Nexus command-line entry point.

Commands:
- validate: run the registry validators, exit 1 when warnings exist
- timeline: build a replay timeline snapshot from a JSON input document
- overlay: build a logistics overlay from a JSON input document

Input document (timeline/overlay):
    {"events": [...], "commsOverlay": {...}, "routeHypotheses": [...], "mapNodes": ...}

Usage:
    python -m nexus.main [--config nexus.config.json] validate
    python -m nexus.main timeline --input ops.json --op-id op_123 [--now-ms N]
        [--window-minutes M] [--offset-minutes M] [--replay-steps N]
    python -m nexus.main overlay --input ops.json --op-id op_123 [--now-ms N]
"""

import argparse
import socket
import sys
from pathlib import Path
from typing import List, Optional

import orjson

from fieldkit.logging import configureLogging, getLogger, installServiceContextFilter, setServiceContext
from nexus.config import DEFAULT_CONFIG_PATH, loadConfig
from nexus.registries.validators import runDevRegistryValidation, validateNexusRegistries
from nexus.services.mapLogisticsOverlayService import buildMapLogisticsOverlay
from nexus.services.mapTimelineService import buildMapTimelineSnapshot
from nexus.services.tacticalMapInteractionService import ShortcutActionType, stepReplayOffset


def _readInput(path: str) -> dict:
    document = orjson.loads(Path(path).read_bytes())
    if not isinstance(document, dict):
        raise ValueError("Input document must be a JSON object")
    return document


def _emit(payload: dict):
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode('utf-8'))
    sys.stdout.write("\n")


def buildParser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Nexus - operation command and tactical overlay engine')
    parser.add_argument('--config', default=DEFAULT_CONFIG_PATH, help='Path to config file')
    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('validate', help='Check static registries for dangling references')

    timeline = commands.add_parser('timeline', help='Build a replay timeline snapshot')
    timeline.add_argument('--input', required=True, help='JSON input document')
    timeline.add_argument('--op-id', required=True, dest='opId')
    timeline.add_argument('--now-ms', type=int, dest='nowMs')
    timeline.add_argument('--window-minutes', type=float, dest='windowMinutes')
    timeline.add_argument('--offset-minutes', type=float, default=0, dest='offsetMinutes')
    timeline.add_argument('--replay-steps', type=int, default=0, dest='replaySteps',
                          help='Step the replay cursor back this many times from --offset-minutes')

    overlay = commands.add_parser('overlay', help='Build a logistics lane overlay')
    overlay.add_argument('--input', required=True, help='JSON input document')
    overlay.add_argument('--op-id', required=True, dest='opId')
    overlay.add_argument('--now-ms', type=int, dest='nowMs')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = buildParser().parse_args(argv)

    log = getLogger('nexus.main')
    config, configVersion, usedDefaults = loadConfig(args.config, log)
    loggingConfig = config['logging']
    configureLogging(
        logDir=loggingConfig.get('logDir'),
        level=loggingConfig.get('level', 'INFO'),
        console=loggingConfig.get('console', True),
        utc=loggingConfig.get('utc', False),
    )
    setServiceContext('nexusCli', socket.gethostname(), getattr(args, 'opId', None))
    installServiceContextFilter(log)
    log.debug("[Main] Config ready", configVersion=configVersion, usedDefaults=usedDefaults)

    if args.command != 'validate':
        runDevRegistryValidation(config)
    else:
        warnings = validateNexusRegistries(logWarnings=config['registries'].get('logWarnings', True))
        _emit({"warnings": warnings, "ok": not warnings})
        return 1 if warnings else 0

    try:
        document = _readInput(args.input)
    except (OSError, ValueError) as e:
        log.error("[Main] Failed to read input", inputPath=args.input, error=str(e))
        return 2

    if args.command == 'timeline':
        windowMinutes = args.windowMinutes
        if windowMinutes is None:
            windowMinutes = config['timeline']['defaultWindowMinutes']
        offsetMinutes = args.offsetMinutes
        for _ in range(max(0, args.replaySteps)):
            offsetMinutes = stepReplayOffset(offsetMinutes, ShortcutActionType.REPLAY_BACK,
                                             config['timeline']['replayStepMinutes'])
        snapshot = buildMapTimelineSnapshot(
            opId=args.opId,
            nowMs=args.nowMs,
            windowMinutes=windowMinutes,
            offsetMinutes=offsetMinutes,
            events=document.get('events'),
            commsOverlay=document.get('commsOverlay'),
        )
        _emit(snapshot.toDict())
        return 0

    overlay = buildMapLogisticsOverlay(
        opId=args.opId,
        mapNodes=document.get('mapNodes'),
        nowMs=args.nowMs,
        events=document.get('events'),
        routeHypotheses=document.get('routeHypotheses'),
        defaultTtlSeconds=config['logistics']['defaultLaneTtlSeconds'],
    )
    _emit(overlay.toDict())
    return 0


if __name__ == '__main__':
    sys.exit(main())

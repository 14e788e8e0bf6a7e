"""
Nexus Tactical Map Interaction Service

Stateless lookup tables for progressive disclosure on the tactical map:
- mode -> default layer visibility
- mode -> ordered dock tab ids
- keyboard event -> shortcut action, driven by a declarative binding table

Table Invariants (checked at import):
- Layer sets grow strictly: ESSENTIAL < COMMAND < FULL
- Each mode's dock list extends the previous mode's list in order
- Binding (key, shiftKey) pairs are unique
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union


class TacticalMapMode(str, Enum):
    ESSENTIAL = "ESSENTIAL"
    COMMAND = "COMMAND"
    FULL = "FULL"


class DockId(str, Enum):
    SUMMARY = "SUMMARY"
    COMMS = "COMMS"
    INTEL = "INTEL"
    ACTIONS = "ACTIONS"
    EVIDENCE = "EVIDENCE"
    LOGISTICS = "LOGISTICS"
    TIMELINE = "TIMELINE"


class ShortcutActionType(str, Enum):
    NONE = "NONE"
    SET_MODE = "SET_MODE"
    OPEN_ACTIONS = "OPEN_ACTIONS"
    REPLAY_BACK = "REPLAY_BACK"
    REPLAY_FORWARD = "REPLAY_FORWARD"
    EXECUTE_CRITICAL_CALLOUT = "EXECUTE_CRITICAL_CALLOUT"


@dataclass(frozen=True)
class LayerDefaults:
    presence: bool
    controlZones: bool
    ops: bool
    intel: bool
    comms: bool
    logistics: bool

    def enabledLayers(self) -> FrozenSet[str]:
        return frozenset(name for name, enabled in asdict(self).items() if enabled)

    def toDict(self) -> Dict[str, bool]:
        return asdict(self)


@dataclass(frozen=True)
class ShortcutAction:
    type: ShortcutActionType
    mode: Optional[TacticalMapMode] = None

    def toDict(self) -> Dict[str, Any]:
        result = {"type": self.type.value}
        if self.mode is not None:
            result["mode"] = self.mode.value
        return result


@dataclass(frozen=True)
class ShortcutBinding:
    """
    One keyboard shortcut.

    suppressInForm: resolve to NONE while focus is inside a form control.
    """
    key: str
    action: ShortcutAction
    shiftKey: bool = False
    suppressInForm: bool = False
    description: str = ""


NO_ACTION = ShortcutAction(ShortcutActionType.NONE)


# ============================================================================
# Tables
# ============================================================================

MODE_LAYER_DEFAULTS: Dict[TacticalMapMode, LayerDefaults] = {
    TacticalMapMode.ESSENTIAL: LayerDefaults(
        presence=True, controlZones=True, ops=True, intel=False, comms=False, logistics=False
    ),
    TacticalMapMode.COMMAND: LayerDefaults(
        presence=True, controlZones=True, ops=True, intel=True, comms=True, logistics=False
    ),
    TacticalMapMode.FULL: LayerDefaults(
        presence=True, controlZones=True, ops=True, intel=True, comms=True, logistics=True
    ),
}

MODE_DOCK_IDS: Dict[TacticalMapMode, Tuple[DockId, ...]] = {
    TacticalMapMode.ESSENTIAL: (DockId.SUMMARY, DockId.ACTIONS),
    TacticalMapMode.COMMAND: (DockId.SUMMARY, DockId.COMMS, DockId.INTEL, DockId.ACTIONS, DockId.EVIDENCE),
    TacticalMapMode.FULL: (
        DockId.SUMMARY, DockId.COMMS, DockId.INTEL, DockId.ACTIONS, DockId.EVIDENCE,
        DockId.LOGISTICS, DockId.TIMELINE,
    ),
}

SHORTCUT_BINDINGS: Tuple[ShortcutBinding, ...] = (
    ShortcutBinding("1", ShortcutAction(ShortcutActionType.SET_MODE, TacticalMapMode.ESSENTIAL),
                    description="Switch to essential mode"),
    ShortcutBinding("2", ShortcutAction(ShortcutActionType.SET_MODE, TacticalMapMode.COMMAND),
                    description="Switch to command mode"),
    ShortcutBinding("3", ShortcutAction(ShortcutActionType.SET_MODE, TacticalMapMode.FULL),
                    description="Switch to full mode"),
    ShortcutBinding(".", ShortcutAction(ShortcutActionType.OPEN_ACTIONS), description="Open actions"),
    ShortcutBinding("[", ShortcutAction(ShortcutActionType.REPLAY_BACK), description="Step replay back"),
    ShortcutBinding("]", ShortcutAction(ShortcutActionType.REPLAY_FORWARD), description="Step replay forward"),
    ShortcutBinding("c", ShortcutAction(ShortcutActionType.EXECUTE_CRITICAL_CALLOUT), shiftKey=True,
                    suppressInForm=True, description="Execute critical callout"),
)

MODE_ORDER = (TacticalMapMode.ESSENTIAL, TacticalMapMode.COMMAND, TacticalMapMode.FULL)


def _normalizeKey(key: Any) -> str:
    text = str(key or "")
    return text.lower() if len(text) == 1 else text


_BINDING_INDEX: Dict[Tuple[str, bool], ShortcutBinding] = {
    (_normalizeKey(binding.key), binding.shiftKey): binding for binding in SHORTCUT_BINDINGS
}


def validateInteractionTables():
    """Fail fast when the mode tables or bindings break their invariants."""
    for lower, higher in zip(MODE_ORDER, MODE_ORDER[1:]):
        assert MODE_LAYER_DEFAULTS[lower].enabledLayers() < MODE_LAYER_DEFAULTS[higher].enabledLayers(), \
            f"{higher.value} layers must strictly extend {lower.value} layers"
        lowerDocks = MODE_DOCK_IDS[lower]
        higherDocks = MODE_DOCK_IDS[higher]
        assert [dock for dock in higherDocks if dock in lowerDocks] == list(lowerDocks), \
            f"{higher.value} docks must keep {lower.value} dock order"
        assert set(lowerDocks) < set(higherDocks), \
            f"{higher.value} docks must strictly extend {lower.value} docks"

    assert len(_BINDING_INDEX) == len(SHORTCUT_BINDINGS), "Shortcut bindings must be unique"


validateInteractionTables()


# ============================================================================
# Resolvers
# ============================================================================

def resolveTacticalMapDefaultMode(bridgeDefault: Any) -> TacticalMapMode:
    """COMMAND bridge default opens in COMMAND; anything else opens ESSENTIAL."""
    if str(bridgeDefault or "").strip().upper() == TacticalMapMode.COMMAND.value:
        return TacticalMapMode.COMMAND
    return TacticalMapMode.ESSENTIAL


def mapModeLayerDefaults(mode: Union[TacticalMapMode, str]) -> LayerDefaults:
    return MODE_LAYER_DEFAULTS[TacticalMapMode(mode)]


def tacticalMapDockIdsForMode(mode: Union[TacticalMapMode, str]) -> List[DockId]:
    return list(MODE_DOCK_IDS[TacticalMapMode(mode)])


def isDockAvailable(mode: Union[TacticalMapMode, str], dockId: Union[DockId, str]) -> bool:
    try:
        dock = DockId(dockId)
    except ValueError:
        return False
    return dock in MODE_DOCK_IDS[TacticalMapMode(mode)]


def resolveDockForMode(mode: Union[TacticalMapMode, str], dockId: Optional[Union[DockId, str]]) -> DockId:
    """Keep the requested dock when the mode shows it, else the mode's first dock."""
    docks = MODE_DOCK_IDS[TacticalMapMode(mode)]
    if dockId is not None and isDockAvailable(mode, dockId):
        return DockId(dockId)
    return docks[0]


def resolveTacticalMapShortcut(key: Any, shiftKey: bool = False, mode: Any = None,
                               isFormTarget: bool = False) -> ShortcutAction:
    """
    Resolve a key press to a shortcut action.

    Single-character keys match case-insensitively and shiftKey must match
    the binding. The current mode does not change resolution: 1/2/3 always
    select their mode. Bindings flagged suppressInForm resolve to NONE while
    isFormTarget is true. Unbound keys resolve to NONE.
    """
    binding = _BINDING_INDEX.get((_normalizeKey(key), bool(shiftKey)))
    if binding is None:
        return NO_ACTION
    if binding.suppressInForm and isFormTarget:
        return NO_ACTION
    return binding.action


def stepReplayOffset(offsetMinutes: float, action: Union[ShortcutAction, ShortcutActionType, str],
                     stepMinutes: float = 1) -> float:
    """
    Apply a replay shortcut to the replay offset.

    REPLAY_BACK moves the cursor further into the past (offset grows),
    REPLAY_FORWARD moves it toward now. Never below 0; other actions leave
    the offset unchanged.
    """
    actionType = action.type if isinstance(action, ShortcutAction) else ShortcutActionType(action)
    current = max(0, offsetMinutes or 0)
    if actionType == ShortcutActionType.REPLAY_BACK:
        return current + stepMinutes
    elif actionType == ShortcutActionType.REPLAY_FORWARD:
        return max(0, current - stepMinutes)
    return current

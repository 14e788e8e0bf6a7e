"""
Registry Validator Tests

Validates the dev-time cross-reference checks:
- Built-in registries are consistent (no warnings)
- Every dangling reference kind produces a readable warning
- Validation never raises; the dev wrapper swallows internal failures
- Dev wrapper only runs in development with validateOnStartup enabled
"""

import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from nexus.registries import validators
from nexus.registries.commsTemplateRegistry import COMMS_TEMPLATES, getCommsTemplate
from nexus.registries.cqbVariantRegistry import CQB_VARIANTS, CqbVariant, getCqbVariant
from nexus.registries.gameplayVariantRegistry import GAMEPLAY_VARIANTS, GameplayVariant, getGameplayVariant
from nexus.registries.macroRegistry import MACRO_SETS, CqbMacro, CqbMacroSet, getMacroSet, getMacrosForVariant
from nexus.registries.mapNodeRegistry import TACTICAL_MAP_NODES, MapNode, coerceMapNodes, getMapNode
from nexus.registries.ttlProfileRegistry import (
    OPERATION_TTL_PROFILES,
    getDefaultTtlSeconds,
    getOperationTtlSeconds,
    getTtlProfile,
)
from nexus.registries.validators import RegistryBundle, runDevRegistryValidation, validateNexusRegistries


# ============================================================================
# Built-in registries
# ============================================================================

class TestBuiltinRegistries:

    def test_builtin_registries_are_consistent(self):
        assert validateNexusRegistries() == []

    def test_variant_lookups_chain(self):
        variant = getCqbVariant("CQB-02")
        assert getMacroSet(variant.macroSetId).variantId == "CQB-02"
        assert getTtlProfile(variant.ttlProfileId).variantId == "CQB-02"

    def test_macros_for_variant(self):
        macroIds = [macro.id for macro in getMacrosForVariant("CQB-01")]
        assert "MAC-CQB01-STACK" in macroIds
        assert "MAC-CQB01-ROGER" in macroIds
        assert getMacrosForVariant("CQB-99") == []

    def test_ttl_lookups_with_fallback(self):
        assert getDefaultTtlSeconds("TTL-CQB-03", "HOLD") == 240
        assert getDefaultTtlSeconds("TTL-CQB-03", "ROGER") == 90
        assert getDefaultTtlSeconds("TTL-CQB-03", "UNKNOWN_EVENT") == 60
        assert getDefaultTtlSeconds("TTL-MISSING", "HOLD", fallbackSeconds=5) == 5

        assert getOperationTtlSeconds("TTL-OP-FOCUSED", "ACTIVE") == 900
        assert getOperationTtlSeconds("TTL-OP-CASUAL", "ARCHIVED") == 7200
        assert getOperationTtlSeconds("TTL-OP-MISSING", "ACTIVE") == 2400

    def test_gameplay_variants_resolve(self):
        gameplay = getGameplayVariant("GV-BUNKER-CLEAR")
        assert getCqbVariant(gameplay.cqbVariantId) is not None
        assert getCommsTemplate(gameplay.commsTemplateId) is not None

    def test_map_nodes(self):
        assert getMapNode("city-lorville").parentId == "body-hurston"
        assert getMapNode("nowhere") is None
        assert set(coerceMapNodes(None)) == {node.id for node in TACTICAL_MAP_NODES}

    def test_coerce_map_nodes_from_list_and_mapping(self):
        fromList = coerceMapNodes([{"id": "n1", "name": "One", "position": [1, 2]}, {"name": "no id"}, "junk"])
        fromMapping = coerceMapNodes({"n2": {"label": "Two", "x": 3, "y": 4}})

        assert list(fromList) == ["n1"]
        assert fromList["n1"].position == (1.0, 2.0)
        assert fromMapping["n2"].name == "Two"
        assert fromMapping["n2"].toDict()["position"] == {"x": 3.0, "y": 4.0}


# ============================================================================
# Broken bundles
# ============================================================================

class TestDanglingReferences:

    def test_variant_with_missing_macro_set_and_ttl_profile(self):
        broken = CqbVariant("CQB-09", "Phantom", "MACRO-CQB-09", "TTL-CQB-09")
        warnings = validateNexusRegistries(registries=RegistryBundle(cqbVariants=CQB_VARIANTS + (broken,)))

        assert "CQB variant CQB-09 references missing macro set MACRO-CQB-09" in warnings
        assert "CQB variant CQB-09 references missing TTL profile TTL-CQB-09" in warnings

    def test_macro_set_with_missing_variant(self):
        orphan = CqbMacroSet("MACRO-ORPHAN", "CQB-77")
        warnings = validateNexusRegistries(registries=RegistryBundle(macroSets=MACRO_SETS + (orphan,)))
        assert warnings == ["Macro set MACRO-ORPHAN references missing CQB variant CQB-77"]

    def test_macro_set_claiming_another_variants_slot(self):
        impostor = CqbMacroSet("MACRO-IMPOSTOR", "CQB-01")
        warnings = validateNexusRegistries(registries=RegistryBundle(macroSets=MACRO_SETS + (impostor,)))
        assert len(warnings) == 1
        assert "MACRO-IMPOSTOR claims CQB variant CQB-01" in warnings[0]

    def test_duplicate_ids(self):
        macroSet = CqbMacroSet("MACRO-CQB-01", "CQB-01", (
            CqbMacro("MAC-X", "X", "X"), CqbMacro("MAC-X", "X again", "X"),
        ))
        warnings = validateNexusRegistries(registries=RegistryBundle(
            cqbVariants=CQB_VARIANTS + (CQB_VARIANTS[0],),
            macroSets=(macroSet,) + MACRO_SETS[1:],
        ))

        assert "CQB variant registry has duplicate id CQB-01" in warnings
        assert "Macro set MACRO-CQB-01 has duplicate macro id MAC-X" in warnings

    def test_gameplay_variant_dangling_references(self):
        broken = GameplayVariant("GV-BROKEN", "Broken", "CQB-42", "NO_SUCH_TEMPLATE")
        warnings = validateNexusRegistries(registries=RegistryBundle(
            gameplayVariants=GAMEPLAY_VARIANTS + (broken,)
        ))
        assert warnings == [
            "Gameplay variant GV-BROKEN references missing CQB variant CQB-42",
            "Gameplay variant GV-BROKEN references missing comms template NO_SUCH_TEMPLATE",
        ]

    def test_posture_defaults_must_exist(self):
        warnings = validateNexusRegistries(registries=RegistryBundle(
            commsTemplates=tuple(t for t in COMMS_TEMPLATES if t.id != "COMMAND_NET"),
            operationTtlProfiles=tuple(p for p in OPERATION_TTL_PROFILES if p.id != "TTL-OP-CASUAL"),
        ))
        assert "Posture FOCUSED defaults to missing comms template COMMAND_NET" in warnings
        assert "Posture CASUAL defaults to missing operation TTL profile TTL-OP-CASUAL" in warnings

    def test_ttl_profile_with_missing_variant(self):
        warnings = validateNexusRegistries(registries=RegistryBundle(
            cqbVariants=CQB_VARIANTS[:-1],
            macroSets=MACRO_SETS[:-1],
        ))
        assert "TTL profile TTL-CQB-08 references missing CQB variant CQB-08" in warnings
        assert not any("MACRO-CQB" in warning for warning in warnings)

    def test_map_node_with_missing_parent(self):
        stray = MapNode("outpost-x", "Outpost X", "outpost", "body-pyro")
        warnings = validateNexusRegistries(registries=RegistryBundle(mapNodes=TACTICAL_MAP_NODES + (stray,)))
        assert warnings == ["Map node outpost-x references missing parent body-pyro"]

    def test_log_warnings_does_not_change_result(self):
        bundle = RegistryBundle(mapNodes=(MapNode("a", "A", "node", "missing"),))
        assert validateNexusRegistries(logWarnings=True, registries=bundle) == \
            validateNexusRegistries(logWarnings=False, registries=bundle)


# ============================================================================
# Dev wrapper
# ============================================================================

class TestDevRegistryValidation:

    @pytest.fixture
    def brokenBundle(self):
        return RegistryBundle(mapNodes=(MapNode("a", "A", "node", "missing"),))

    def test_runs_in_development(self, brokenBundle):
        config = {"environment": "development", "registries": {"validateOnStartup": True, "logWarnings": False}}
        assert runDevRegistryValidation(config, registries=brokenBundle) == [
            "Map node a references missing parent missing"
        ]

    def test_skipped_in_production(self, brokenBundle):
        config = {"environment": "production", "registries": {"validateOnStartup": True}}
        assert runDevRegistryValidation(config, registries=brokenBundle) == []

    def test_skipped_when_disabled(self, brokenBundle):
        config = {"environment": "development", "registries": {"validateOnStartup": False}}
        assert runDevRegistryValidation(config, registries=brokenBundle) == []

    def test_internal_failure_is_swallowed(self, monkeypatch):
        def explode(bundle):
            raise RuntimeError("validator bug")

        monkeypatch.setattr(validators, "_collectWarnings", explode)
        assert runDevRegistryValidation({"environment": "development"}) == []

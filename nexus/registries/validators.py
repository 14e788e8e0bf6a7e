"""
Nexus Registry Validators

Dev-time consistency checks across the static registries. Dangling
references are content bugs to fix before release, so they come back as
human-readable warning strings. Nothing here raises for bad registry data.

Checks:
- Duplicate ids within each registry
- CQB variant -> macro set, CQB variant -> TTL profile
- Macro set -> CQB variant, including the variant pointing back at the set
- Duplicate macro ids inside one macro set
- TTL profile -> CQB variant
- Gameplay variant -> CQB variant, gameplay variant -> comms template
- Posture default comms templates and operation TTL profiles exist
- Map nodes whose parent node does not exist
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from fieldkit.logging import getLogger

from nexus.core.operations import (
    OperationPosture,
    defaultCommsTemplateByPosture,
    defaultTtlProfileByPosture,
)
from nexus.registries.commsTemplateRegistry import COMMS_TEMPLATES, CommsTemplate
from nexus.registries.cqbVariantRegistry import CQB_VARIANTS, CqbVariant
from nexus.registries.gameplayVariantRegistry import GAMEPLAY_VARIANTS, GameplayVariant
from nexus.registries.macroRegistry import MACRO_SETS, CqbMacroSet
from nexus.registries.mapNodeRegistry import TACTICAL_MAP_NODES, MapNode
from nexus.registries.ttlProfileRegistry import (
    OPERATION_TTL_PROFILES,
    TTL_PROFILES,
    OperationTtlProfile,
    TtlProfile,
)


log = getLogger()


@dataclass
class RegistryBundle:
    """The registries checked together. Defaults to the built-in tables."""
    cqbVariants: Sequence[CqbVariant] = field(default_factory=lambda: CQB_VARIANTS)
    macroSets: Sequence[CqbMacroSet] = field(default_factory=lambda: MACRO_SETS)
    ttlProfiles: Sequence[TtlProfile] = field(default_factory=lambda: TTL_PROFILES)
    commsTemplates: Sequence[CommsTemplate] = field(default_factory=lambda: COMMS_TEMPLATES)
    gameplayVariants: Sequence[GameplayVariant] = field(default_factory=lambda: GAMEPLAY_VARIANTS)
    operationTtlProfiles: Sequence[OperationTtlProfile] = field(default_factory=lambda: OPERATION_TTL_PROFILES)
    mapNodes: Sequence[MapNode] = field(default_factory=lambda: TACTICAL_MAP_NODES)


def _duplicateIds(registryName: str, records: Iterable[Any]) -> List[str]:
    seen = set()
    warnings = []
    for record in records:
        if record.id in seen:
            warnings.append(f"{registryName} has duplicate id {record.id}")
        seen.add(record.id)
    return warnings


def _collectWarnings(bundle: RegistryBundle) -> List[str]:
    warnings: List[str] = []

    warnings += _duplicateIds("CQB variant registry", bundle.cqbVariants)
    warnings += _duplicateIds("Macro registry", bundle.macroSets)
    warnings += _duplicateIds("TTL profile registry", bundle.ttlProfiles)
    warnings += _duplicateIds("Comms template registry", bundle.commsTemplates)
    warnings += _duplicateIds("Gameplay variant registry", bundle.gameplayVariants)
    warnings += _duplicateIds("Operation TTL profile registry", bundle.operationTtlProfiles)
    warnings += _duplicateIds("Map node registry", bundle.mapNodes)

    variants: Dict[str, CqbVariant] = {variant.id: variant for variant in bundle.cqbVariants}
    macroSetIds = {macroSet.id for macroSet in bundle.macroSets}
    ttlProfileIds = {profile.id for profile in bundle.ttlProfiles}
    commsTemplateIds = {template.id for template in bundle.commsTemplates}
    operationTtlProfileIds = {profile.id for profile in bundle.operationTtlProfiles}
    mapNodeIds = {node.id for node in bundle.mapNodes}

    for variant in bundle.cqbVariants:
        if variant.macroSetId not in macroSetIds:
            warnings.append(f"CQB variant {variant.id} references missing macro set {variant.macroSetId}")
        if variant.ttlProfileId not in ttlProfileIds:
            warnings.append(f"CQB variant {variant.id} references missing TTL profile {variant.ttlProfileId}")

    for macroSet in bundle.macroSets:
        variant = variants.get(macroSet.variantId)
        if variant is None:
            warnings.append(f"Macro set {macroSet.id} references missing CQB variant {macroSet.variantId}")
        elif variant.macroSetId != macroSet.id:
            warnings.append(
                f"Macro set {macroSet.id} claims CQB variant {variant.id}, "
                f"but that variant uses macro set {variant.macroSetId}"
            )
        macroIds = set()
        for macro in macroSet.macros:
            if macro.id in macroIds:
                warnings.append(f"Macro set {macroSet.id} has duplicate macro id {macro.id}")
            macroIds.add(macro.id)

    for profile in bundle.ttlProfiles:
        if profile.variantId not in variants:
            warnings.append(f"TTL profile {profile.id} references missing CQB variant {profile.variantId}")

    for gameplay in bundle.gameplayVariants:
        if gameplay.cqbVariantId not in variants:
            warnings.append(
                f"Gameplay variant {gameplay.id} references missing CQB variant {gameplay.cqbVariantId}"
            )
        if gameplay.commsTemplateId not in commsTemplateIds:
            warnings.append(
                f"Gameplay variant {gameplay.id} references missing comms template {gameplay.commsTemplateId}"
            )

    for posture in OperationPosture:
        commsTemplateId = defaultCommsTemplateByPosture(posture)
        if commsTemplateId not in commsTemplateIds:
            warnings.append(f"Posture {posture.value} defaults to missing comms template {commsTemplateId}")
        ttlProfileId = defaultTtlProfileByPosture(posture)
        if ttlProfileId not in operationTtlProfileIds:
            warnings.append(f"Posture {posture.value} defaults to missing operation TTL profile {ttlProfileId}")

    for node in bundle.mapNodes:
        if node.parentId and node.parentId not in mapNodeIds:
            warnings.append(f"Map node {node.id} references missing parent {node.parentId}")

    return warnings


def validateNexusRegistries(logWarnings: bool = False,
                            registries: Optional[RegistryBundle] = None) -> List[str]:
    """
    Cross-check the registries.

    Args:
        logWarnings: Emit each warning through the logger at WARNING
        registries: Bundle to check; the built-in registries when None

    Returns:
        Warning strings, empty when the registries are consistent
    """
    warnings = _collectWarnings(registries or RegistryBundle())
    if logWarnings:
        for warning in warnings:
            log.warning(f"[Registry] {warning}")
    return warnings


def runDevRegistryValidation(config: Optional[Dict[str, Any]] = None,
                             registries: Optional[RegistryBundle] = None) -> List[str]:
    """
    Development-only startup hook.

    Runs validation when the environment is "development" and registry
    validation is enabled. An unexpected failure inside the validator is
    logged and swallowed so it can never block startup.
    """
    config = config or {}
    registryConfig = config.get('registries', {})
    if config.get('environment', 'development') != 'development':
        return []
    if not registryConfig.get('validateOnStartup', True):
        return []

    try:
        warnings = validateNexusRegistries(
            logWarnings=registryConfig.get('logWarnings', True),
            registries=registries,
        )
    except Exception as e:
        log.error("[Registry] Registry validation failed", error=str(e), exc_info=True)
        return []

    if warnings:
        log.warning("[Registry] Registry validation finished with warnings", warningCount=len(warnings))
    else:
        log.info("[Registry] Registries consistent")
    return warnings

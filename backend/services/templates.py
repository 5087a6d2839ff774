import logging
from typing import Optional, Union

from data.requirement_presets import REQUIREMENT_PRESETS
from schemas.compliance import CoverageRequirement, EntityType, RequirementTemplate

logger = logging.getLogger(__name__)


def resolve_template(
    templates: list[RequirementTemplate],
    organization_id: str,
    property_id: Optional[str],
    entity_type: Union[EntityType, str],
) -> Optional[RequirementTemplate]:
    """Pick the template that applies to an entity on a property.

    Property-specific template first, then the organization default
    (property_id None), then nothing. Inactive templates and templates of other
    organizations or entity types are ignored.
    """
    entity_type = EntityType(entity_type)
    eligible = [
        t for t in templates
        if t.is_active and t.organization_id == organization_id and t.entity_type == entity_type
    ]

    levels = []
    if property_id is not None:
        levels.append(("property", [t for t in eligible if t.property_id == property_id]))
    levels.append(("organization default", [t for t in eligible if t.property_id is None]))

    for level, candidates in levels:
        if not candidates:
            continue
        if len(candidates) > 1:
            logger.warning(
                "%d active %s templates for %s %s; using %s",
                len(candidates), level, entity_type.value, property_id or organization_id, candidates[0].id,
            )
        return candidates[0]

    logger.info("No %s template for organization %s", entity_type.value, organization_id)
    return None


def build_preset_template(
    key: str,
    organization_id: str,
    template_id: Optional[str] = None,
    property_id: Optional[str] = None,
) -> RequirementTemplate:
    """Instantiate a built-in preset as an organization's template"""
    if key not in REQUIREMENT_PRESETS:
        raise KeyError(f"Unknown requirement preset: {key}")
    preset = REQUIREMENT_PRESETS[key]
    return RequirementTemplate(
        id=template_id or f"{organization_id}:{key}",
        organization_id=organization_id,
        property_id=property_id,
        name=preset["name"],
        entity_type=EntityType(preset["entity_type"]),
        coverages=[CoverageRequirement(**c) for c in preset["coverages"]],
        requires_additional_insured=preset.get("requires_additional_insured", False),
        cancellation_notice_days=preset.get("cancellation_notice_days"),
    )

from fastapi import APIRouter, HTTPException
from data.labels import COVERAGE_LABELS, LIMIT_TYPE_LABELS, ENTITY_TYPE_LABELS, ENTITY_ROLE_LABELS, STATUS_LABELS
from data.requirement_presets import REQUIREMENT_PRESETS
from services.formatting import format_currency, limit_type_label

router = APIRouter(prefix="/api", tags=["reference"])


@router.get("/coverage-types")
async def get_coverage_types():
    """Coverage type keys and display labels"""
    return [{"key": key, "label": label} for key, label in COVERAGE_LABELS.items()]


@router.get("/limit-types")
async def get_limit_types():
    """Limit type keys and display labels"""
    return [{"key": key, "label": label} for key, label in LIMIT_TYPE_LABELS.items()]


@router.get("/entity-types")
async def get_entity_types():
    """Entity types templates apply to, and the roles a property entity can hold on a COI"""
    return {
        "entity_types": [{"key": key, "label": label} for key, label in ENTITY_TYPE_LABELS.items()],
        "roles": [{"key": key, "label": label} for key, label in ENTITY_ROLE_LABELS.items()],
    }


@router.get("/statuses")
async def get_statuses():
    return [{"key": key, "label": label} for key, label in STATUS_LABELS.items()]


@router.get("/requirement-presets")
async def get_requirement_presets():
    """Built-in requirement templates with formatted limits"""
    return {
        key: {
            "name": val["name"],
            "entity_type": ENTITY_TYPE_LABELS[val["entity_type"]],
            "description": val.get("description"),
            "coverages": [
                {
                    "coverage_type": COVERAGE_LABELS[c["coverage_type"]],
                    "minimum_limit": format_currency(c["minimum_limit"]) if c.get("minimum_limit") else None,
                    "limit_type": limit_type_label(c["limit_type"]) if c.get("limit_type") else None,
                }
                for c in val["coverages"]
            ],
            "requires_additional_insured": val.get("requires_additional_insured", False),
            "cancellation_notice_days": val.get("cancellation_notice_days"),
        }
        for key, val in REQUIREMENT_PRESETS.items()
    }


@router.get("/requirement-presets/{preset_key}")
async def get_requirement_preset(preset_key: str):
    """Raw preset definition, ready to post back as a template"""
    if preset_key not in REQUIREMENT_PRESETS:
        raise HTTPException(status_code=404, detail=f"Preset {preset_key} not found")
    return {"key": preset_key, **REQUIREMENT_PRESETS[preset_key]}

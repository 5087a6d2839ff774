from datetime import date, datetime
from typing import Optional, Union

from pydantic import BaseModel

from schemas.compliance import (
    ComplianceResult,
    EntityType,
    ExtractedCoverage,
    ExtractedEntity,
    PropertyEntity,
    RequirementTemplate,
    StatusDetermination,
)


class ComplianceCheckInput(BaseModel):
    """Raw extraction rows go through the ingestion boundary before evaluation"""
    certificate_id: Optional[str] = None
    coverages: list[dict] = []
    entities: list[dict] = []
    template: RequirementTemplate
    property_entities: list[PropertyEntity] = []
    entity_type: Optional[EntityType] = None
    expiration_date: Optional[date] = None
    now: Optional[Union[datetime, date]] = None
    warning_threshold_days: Optional[int] = None
    save: bool = False


class ComplianceCheckResponse(BaseModel):
    certificate_id: Optional[str] = None
    result: ComplianceResult
    status: StatusDetermination
    gaps: list[str] = []
    coverages: list[ExtractedCoverage] = []
    entities: list[ExtractedEntity] = []
    saved_check_id: Optional[int] = None


class StatusInput(BaseModel):
    result: ComplianceResult
    expiration_date: Optional[date] = None
    now: Optional[Union[datetime, date]] = None
    warning_threshold_days: Optional[int] = None


class TemplateResolveInput(BaseModel):
    templates: list[RequirementTemplate]
    organization_id: str
    property_id: Optional[str] = None
    entity_type: EntityType


class TemplateResolveResponse(BaseModel):
    template: Optional[RequirementTemplate] = None

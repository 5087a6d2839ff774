from schemas.compliance import (
    CoverageType, LimitType, Confidence, EntityType, EntityRole, Severity, Status, FieldKind,
    CoverageRequirement, RequirementTemplate, PropertyEntity,
    ExtractedCoverage, ExtractedEntity, ExtractionBatch,
    ComplianceField, EntityMatch, ComplianceIssue, ComplianceResult, StatusDetermination,
)
from schemas.api import (
    ComplianceCheckInput, ComplianceCheckResponse, StatusInput,
    TemplateResolveInput, TemplateResolveResponse,
)

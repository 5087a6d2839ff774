from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ============== ENUMS ==============

class CoverageType(str, Enum):
    GENERAL_LIABILITY = "general_liability"
    AUTOMOBILE_LIABILITY = "automobile_liability"
    WORKERS_COMPENSATION = "workers_compensation"
    EMPLOYERS_LIABILITY = "employers_liability"
    UMBRELLA_EXCESS = "umbrella_excess"
    PROFESSIONAL_LIABILITY = "professional_liability"
    PROPERTY_INSURANCE = "property_insurance"
    BUSINESS_INTERRUPTION = "business_interruption"
    LIQUOR_LIABILITY = "liquor_liability"
    POLLUTION_LIABILITY = "pollution_liability"
    CYBER_LIABILITY = "cyber_liability"


class LimitType(str, Enum):
    PER_OCCURRENCE = "per_occurrence"
    AGGREGATE = "aggregate"
    COMBINED_SINGLE_LIMIT = "combined_single_limit"
    STATUTORY = "statutory"
    PER_PERSON = "per_person"
    PER_ACCIDENT = "per_accident"
    OTHER = "other"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"low": 0, "medium": 1, "high": 2}[self.value]


class EntityType(str, Enum):
    VENDOR = "vendor"
    TENANT = "tenant"


class EntityRole(str, Enum):
    CERTIFICATE_HOLDER = "certificate_holder"
    ADDITIONAL_INSURED = "additional_insured"


class Severity(str, Enum):
    """Issue severity. Ordered: warning < error < critical."""

    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"

    @property
    def rank(self) -> int:
        return {"warning": 0, "error": 1, "critical": 2}[self.value]

    def __lt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank >= other.rank


class Status(str, Enum):
    COMPLIANT = "compliant"
    NON_COMPLIANT = "non-compliant"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    NOT_REQUIRED = "not-required"


class FieldKind(str, Enum):
    COVERAGE = "coverage"
    ENDORSEMENT = "endorsement"
    ENTITY = "entity"


# ============== REQUIREMENTS ==============

class CoverageRequirement(BaseModel):
    coverage_type: CoverageType
    is_required: bool = True
    minimum_limit: Optional[float] = None
    limit_type: Optional[LimitType] = None
    # Extracted limit types accepted in place of limit_type
    equivalent_limit_types: list[LimitType] = []
    requires_waiver_of_subrogation: bool = False
    requires_primary_non_contributory: bool = False

    @property
    def is_statutory(self) -> bool:
        return self.limit_type == LimitType.STATUTORY

    @property
    def is_active(self) -> bool:
        if not self.is_required:
            return False
        # A zero or negative floor is no requirement at all
        if not self.is_statutory and self.minimum_limit is not None and self.minimum_limit <= 0:
            return False
        return True


class RequirementTemplate(BaseModel):
    id: str
    organization_id: str
    property_id: Optional[str] = None
    name: str = "Requirements"
    entity_type: EntityType
    coverages: list[CoverageRequirement] = []
    requires_additional_insured: bool = False
    cancellation_notice_days: Optional[int] = None
    is_active: bool = True

    @model_validator(mode="after")
    def _unique_coverage_lines(self):
        seen = set()
        for req in self.coverages:
            key = (req.coverage_type, req.limit_type)
            if key in seen:
                raise ValueError(
                    f"Duplicate requirement for {req.coverage_type.value}"
                    + (f" ({req.limit_type.value})" if req.limit_type else "")
                )
            seen.add(key)
        return self

    @property
    def active_coverages(self) -> list[CoverageRequirement]:
        return [req for req in self.coverages if req.is_active]

    @property
    def requires_cancellation_notice(self) -> bool:
        return self.cancellation_notice_days is not None and self.cancellation_notice_days > 0

    @property
    def active_requirement_count(self) -> int:
        count = 0
        for req in self.active_coverages:
            count += 1
            count += int(req.requires_waiver_of_subrogation)
            count += int(req.requires_primary_non_contributory)
        count += int(self.requires_additional_insured)
        count += int(self.requires_cancellation_notice)
        return count


class PropertyEntity(BaseModel):
    id: str
    property_id: Optional[str] = None
    entity_name: str
    dba_names: list[str] = []
    entity_address: Optional[str] = None
    entity_type: EntityRole = EntityRole.ADDITIONAL_INSURED

    @property
    def names(self) -> list[str]:
        return [n for n in [self.entity_name, *self.dba_names] if n and n.strip()]


# ============== EXTRACTION RECORDS ==============

class ExtractedCoverage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    certificate_id: Optional[str] = None
    coverage_type: CoverageType
    carrier_name: Optional[str] = None
    policy_number: Optional[str] = None
    limit_amount: Optional[float] = None
    limit_type: Optional[LimitType] = None
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    additional_insured_listed: bool = False
    additional_insured_entities: tuple[str, ...] = ()
    waiver_of_subrogation: bool = False
    primary_non_contributory: bool = False
    cancellation_notice_days: Optional[int] = None
    confidence: Confidence = Confidence.MEDIUM
    raw_text: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def has_limit_value(self) -> bool:
        return self.limit_amount is not None or self.limit_type == LimitType.STATUTORY


class ExtractedEntity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    certificate_id: Optional[str] = None
    entity_name: str
    entity_address: Optional[str] = None
    entity_type: EntityRole
    confidence: Confidence = Confidence.MEDIUM

    @field_validator("entity_name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("entity_name must not be blank")
        return v.strip()


# ============== RESULTS ==============

class ComplianceField(BaseModel):
    key: str
    label: str
    kind: FieldKind
    coverage_type: Optional[CoverageType] = None
    required_value: Optional[str] = None
    extracted_value: Optional[str] = None
    compliant: bool
    required: bool = True
    expired: bool = False
    low_confidence: bool = False
    # Confidence of the extracted row the field was judged on
    confidence: Optional[Confidence] = None
    severity: Optional[Severity] = None
    reason: Optional[str] = None
    extracted_coverage_id: Optional[str] = None
    expiration_date: Optional[date] = None


class EntityMatch(BaseModel):
    property_entity_id: str
    property_entity_name: str
    role: EntityRole
    extracted_entity_id: Optional[str] = None
    extracted_entity_name: Optional[str] = None
    found: bool
    exact: bool = False
    match_details: Optional[str] = None


class ComplianceIssue(BaseModel):
    severity: Severity
    message: str
    field_key: Optional[str] = None


class ComplianceResult(BaseModel):
    template_id: Optional[str] = None
    entity_type: EntityType
    fields: list[ComplianceField] = []
    entity_matches: list[EntityMatch] = []
    issues: list[ComplianceIssue] = []
    active_requirement_count: int = 0
    earliest_expiration: Optional[date] = None
    # Earliest expiration among fields whose policy had already expired
    earliest_expired: Optional[date] = None
    days_overdue: int = 0
    days_until_expiration: Optional[int] = None
    status: Status = Status.COMPLIANT

    @property
    def non_compliant_fields(self) -> list[ComplianceField]:
        return [f for f in self.fields if f.required and not f.compliant]


class StatusDetermination(BaseModel):
    status: Status
    days_overdue: int = 0
    days_until_expiration: Optional[int] = None


class ExtractionBatch(BaseModel):
    """Coverage and entity rows parsed from one extraction event."""

    coverages: list[ExtractedCoverage] = Field(default_factory=list)
    entities: list[ExtractedEntity] = Field(default_factory=list)

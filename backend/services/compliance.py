"""
Compliance engine.

Compares the coverage and entity rows extracted from one certificate against a
requirement template and the property's named entities. Pure function: no I/O,
no clock reads (the evaluation time is passed in), so identical inputs always
give an identical result.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

from config import DEFAULT_WARNING_THRESHOLD_DAYS
from data.labels import ENDORSEMENT_LABELS
from schemas.compliance import (
    ComplianceField,
    ComplianceIssue,
    ComplianceResult,
    Confidence,
    CoverageRequirement,
    EntityMatch,
    EntityRole,
    EntityType,
    ExtractedCoverage,
    ExtractedEntity,
    FieldKind,
    LimitType,
    PropertyEntity,
    RequirementTemplate,
    Severity,
)
from services.entity_matching import match_property_entity
from services.errors import TemplateMismatchError
from services.formatting import (
    coverage_label,
    format_coverage,
    format_currency,
    format_date,
    format_limit,
    limit_type_label,
)
from services.status import Moment, days_between, determine_status, evaluation_time, has_passed

NO_DATA_REASON = "No data extracted"


# ============== COVERAGE SELECTION ==============

def limit_types_compatible(
    required: Optional[LimitType],
    extracted: Optional[LimitType],
    equivalents: Union[list, tuple] = (),
) -> bool:
    """Whether an extracted limit denomination can be compared to a requirement.

    Types must match exactly unless listed as equivalent. Unknown ("other")
    limit types never match.
    """
    if extracted == LimitType.OTHER:
        return False
    if required is None:
        return True
    if extracted is None:
        return False
    return extracted == required or extracted in equivalents


def _timestamp(value: Optional[datetime]) -> float:
    if value is None:
        return float("-inf")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def select_coverage(
    coverages: list[ExtractedCoverage], requirement: CoverageRequirement
) -> Optional[ExtractedCoverage]:
    """Pick the authoritative row for a requirement.

    Rows with a compatible limit type are preferred. Among them the highest
    limit amount wins, then the higher confidence flag, then the most recently
    added row (created_at, then position in the input).
    """
    candidates = [
        (index, coverage)
        for index, coverage in enumerate(coverages)
        if coverage.coverage_type == requirement.coverage_type
    ]
    if not candidates:
        return None

    if not requirement.is_statutory:
        compatible = [
            (index, coverage)
            for index, coverage in candidates
            if limit_types_compatible(requirement.limit_type, coverage.limit_type, requirement.equivalent_limit_types)
        ]
        if compatible:
            candidates = compatible

    def rank(item):
        index, coverage = item
        amount = coverage.limit_amount if coverage.limit_amount is not None else float("-inf")
        return amount, coverage.confidence.rank, _timestamp(coverage.created_at), index

    return max(candidates, key=rank)[1]


# ============== FIELD EVALUATION ==============

def _required_display(requirement: CoverageRequirement) -> str:
    if requirement.is_statutory:
        return "Statutory"
    if requirement.minimum_limit is None:
        return "Required"
    return format_currency(requirement.minimum_limit)


def _coverage_key(requirement: CoverageRequirement, shared_types: set) -> str:
    if requirement.coverage_type in shared_types and requirement.limit_type is not None:
        return f"{requirement.coverage_type.value}:{requirement.limit_type.value}"
    return requirement.coverage_type.value


def _check_limit(requirement: CoverageRequirement, row: ExtractedCoverage) -> Optional[str]:
    """Reason the row's limit fails the requirement, or None when it passes"""
    label = coverage_label(requirement.coverage_type)

    if requirement.is_statutory:
        # Any stated value satisfies a statutory requirement
        if row.has_limit_value:
            return None
        return f"{label} limit could not be determined"

    if requirement.minimum_limit is None:
        return None

    if not limit_types_compatible(requirement.limit_type, row.limit_type, requirement.equivalent_limit_types):
        return (
            f"{label} limit type mismatch: {limit_type_label(row.limit_type)} "
            f"(requires {limit_type_label(requirement.limit_type)})"
        )
    if row.limit_amount is None:
        return f"{label} limit could not be determined"
    if row.limit_amount < requirement.minimum_limit:
        return (
            f"{label} below requirement: {format_currency(row.limit_amount)} "
            f"(requires {format_currency(requirement.minimum_limit)})"
        )
    return None


def evaluate_coverage(
    requirement: CoverageRequirement,
    row: Optional[ExtractedCoverage],
    now: Moment,
    key: str,
    no_data: bool = False,
) -> ComplianceField:
    label = coverage_label(requirement.coverage_type)
    base = dict(
        key=key,
        label=format_coverage(requirement.coverage_type, requirement.limit_type),
        kind=FieldKind.COVERAGE,
        coverage_type=requirement.coverage_type,
        required_value=_required_display(requirement),
    )

    if row is None:
        return ComplianceField(
            **base,
            compliant=False,
            severity=Severity.ERROR,
            reason=NO_DATA_REASON if no_data else f"Missing {label}",
        )

    base.update(
        extracted_value=format_limit(row.limit_amount, row.limit_type),
        extracted_coverage_id=row.id,
        confidence=row.confidence,
        expiration_date=row.expiration_date,
    )
    low_confidence = row.confidence == Confidence.LOW

    # Expiration outranks any amount shortfall
    if row.expiration_date is not None and has_passed(row.expiration_date, now):
        return ComplianceField(
            **base,
            compliant=False,
            expired=True,
            severity=Severity.CRITICAL,
            reason=f"Policy expired on {format_date(row.expiration_date)}",
        )

    failure = _check_limit(requirement, row)
    if failure:
        return ComplianceField(**base, compliant=False, severity=Severity.ERROR, reason=failure)
    return ComplianceField(**base, compliant=True, low_confidence=low_confidence)


def evaluate_coverage_endorsement(
    requirement: CoverageRequirement,
    row: Optional[ExtractedCoverage],
    endorsement: str,
    coverage_key: str,
    no_data: bool = False,
) -> ComplianceField:
    """Waiver of subrogation / primary & non-contributory, read off the chosen row"""
    endorsement_label = ENDORSEMENT_LABELS[endorsement]
    label = coverage_label(requirement.coverage_type)
    base = dict(
        key=f"{endorsement}:{coverage_key}",
        label=f"{endorsement_label} ({label})",
        kind=FieldKind.ENDORSEMENT,
        coverage_type=requirement.coverage_type,
        required_value="Required",
    )
    if row is None:
        reason = NO_DATA_REASON if no_data else f"{endorsement_label} cannot be verified: Missing {label}"
        return ComplianceField(**base, compliant=False, severity=Severity.ERROR, reason=reason)

    present = bool(getattr(row, endorsement))
    base.update(
        extracted_value="Included" if present else "Not included",
        extracted_coverage_id=row.id,
        confidence=row.confidence,
    )
    if present:
        return ComplianceField(**base, compliant=True, low_confidence=row.confidence == Confidence.LOW)
    return ComplianceField(
        **base,
        compliant=False,
        severity=Severity.ERROR,
        reason=f"{endorsement_label} not included on {label}",
    )


def evaluate_additional_insured(
    coverages: list[ExtractedCoverage],
    entities: list[ExtractedEntity],
    property_entities: list[PropertyEntity],
) -> tuple[ComplianceField, list[EntityMatch]]:
    """Named-entity check: the checkbox alone is not evidence of additional insured status"""
    targets = [pe for pe in property_entities if pe.entity_type == EntityRole.ADDITIONAL_INSURED]
    matches = [match_property_entity(pe, entities, EntityRole.ADDITIONAL_INSURED) for pe in targets]
    found = [m for m in matches if m.found]
    flag_listed = any(c.additional_insured_listed for c in coverages)

    base = dict(
        key="additional_insured",
        label=ENDORSEMENT_LABELS["additional_insured"],
        kind=FieldKind.ENDORSEMENT,
        required_value=", ".join(pe.entity_name for pe in targets) or "Property entities",
    )

    if found:
        return ComplianceField(
            **base,
            extracted_value=", ".join(m.extracted_entity_name for m in found),
            compliant=True,
        ), matches

    if not coverages and not entities:
        return ComplianceField(**base, compliant=False, severity=Severity.ERROR, reason=NO_DATA_REASON), matches

    if flag_listed:
        return ComplianceField(
            **base,
            extracted_value="Flag only",
            compliant=False,
            severity=Severity.WARNING,
            reason="Additional insured flag present but no matching entity found",
        ), matches

    return ComplianceField(
        **base,
        extracted_value=None,
        compliant=False,
        severity=Severity.ERROR,
        reason="Additional insured not listed",
    ), matches


def evaluate_certificate_holder(
    property_entity: PropertyEntity,
    entities: list[ExtractedEntity],
    no_data: bool = False,
) -> tuple[ComplianceField, EntityMatch]:
    match = match_property_entity(property_entity, entities, EntityRole.CERTIFICATE_HOLDER)
    base = dict(
        key=f"certificate_holder:{property_entity.id}",
        label=ENDORSEMENT_LABELS["certificate_holder"],
        kind=FieldKind.ENTITY,
        required_value=property_entity.entity_name,
    )
    if match.found:
        return ComplianceField(**base, extracted_value=match.extracted_entity_name, compliant=True), match

    holders = [e.entity_name for e in entities if e.entity_type == EntityRole.CERTIFICATE_HOLDER]
    if holders:
        reason = f'Certificate holder "{holders[0]}" does not match "{property_entity.entity_name}"'
    elif no_data:
        reason = NO_DATA_REASON
    else:
        reason = "Certificate holder not found on COI"
    return ComplianceField(
        **base,
        extracted_value=holders[0] if holders else None,
        compliant=False,
        severity=Severity.ERROR,
        reason=reason,
    ), match


def evaluate_cancellation_notice(
    coverages: list[ExtractedCoverage], required_days: int
) -> ComplianceField:
    label = ENDORSEMENT_LABELS["cancellation_notice"]
    base = dict(
        key="cancellation_notice",
        label=label,
        kind=FieldKind.ENDORSEMENT,
        required_value=f"{required_days} days",
    )
    if not coverages:
        return ComplianceField(**base, compliant=False, severity=Severity.ERROR, reason=NO_DATA_REASON)

    stated = [c.cancellation_notice_days for c in coverages if c.cancellation_notice_days is not None]
    if not stated:
        return ComplianceField(
            **base,
            compliant=False,
            severity=Severity.ERROR,
            reason=f"No cancellation notice period stated (requires {required_days} days)",
        )

    notice = max(stated)
    if notice < required_days:
        return ComplianceField(
            **base,
            extracted_value=f"{notice} days",
            compliant=False,
            severity=Severity.ERROR,
            reason=f"{label} below requirement: {notice} days (requires {required_days} days)",
        )
    return ComplianceField(**base, extracted_value=f"{notice} days", compliant=True)


# ============== ISSUES ==============

def build_issues(
    fields: list[ComplianceField],
    entity_matches: list[EntityMatch],
    now: Moment,
    earliest_expiration: Optional[date],
    earliest_expired: Optional[date],
    warning_threshold_days: int,
) -> list[ComplianceIssue]:
    issues = []

    if earliest_expired is not None:
        overdue = days_between(now, earliest_expired)
        issues.append(ComplianceIssue(
            severity=Severity.CRITICAL,
            message=f"All policies expired {format_date(earliest_expired)} ({overdue} days overdue)",
        ))
    elif earliest_expiration is not None:
        days_until = days_between(earliest_expiration, now)
        if 0 <= days_until <= warning_threshold_days:
            issues.append(ComplianceIssue(
                severity=Severity.WARNING,
                message=f"Policies expiring in {days_until} days",
            ))

    low_confidence_labels = []
    for field in fields:
        if field.required and not field.compliant and not field.expired:
            issues.append(ComplianceIssue(severity=field.severity or Severity.ERROR, message=field.reason, field_key=field.key))
        # Flagged for review whatever the verdict
        if field.confidence == Confidence.LOW and field.coverage_type is not None:
            label = coverage_label(field.coverage_type)
            if label not in low_confidence_labels:
                low_confidence_labels.append(label)
                issues.append(ComplianceIssue(
                    severity=Severity.WARNING,
                    message=f"Low-confidence extraction for {label} — please verify",
                    field_key=field.key,
                ))

    additional_insured = next((f for f in fields if f.key == "additional_insured"), None)
    if additional_insured is not None and additional_insured.compliant:
        for match in entity_matches:
            if match.role == EntityRole.ADDITIONAL_INSURED and not match.found:
                issues.append(ComplianceIssue(
                    severity=Severity.WARNING,
                    message=f'"{match.property_entity_name}" not found as Additional Insured',
                    field_key="additional_insured",
                ))

    # Stable: field order is kept within a severity
    return sorted(issues, key=lambda issue: -issue.severity.rank)


# ============== MAIN CALCULATION ==============

def calculate_compliance(
    coverages: list[ExtractedCoverage],
    entities: list[ExtractedEntity],
    requirements: RequirementTemplate,
    property_entities: list[PropertyEntity],
    *,
    now: Moment,
    warning_threshold_days: int = DEFAULT_WARNING_THRESHOLD_DAYS,
    entity_type: Optional[Union[EntityType, str]] = None,
) -> ComplianceResult:
    """Evaluate one certificate's extracted rows against a requirement template.

    Missing or partial evidence never raises: every unresolvable field is
    reported non-compliant with a reason. Raises TemplateMismatchError when
    `entity_type` is given and the template is for a different entity type,
    and InvalidEvaluationTimeError for an evaluation time before the epoch.
    """
    now = evaluation_time(now)
    if entity_type is not None and EntityType(entity_type) != requirements.entity_type:
        raise TemplateMismatchError(requirements.entity_type.value, EntityType(entity_type).value)

    coverages = list(coverages or [])
    entities = list(entities or [])
    property_entities = list(property_entities or [])

    active_count = requirements.active_requirement_count
    if active_count == 0:
        return ComplianceResult(
            template_id=requirements.id,
            entity_type=requirements.entity_type,
            issues=[ComplianceIssue(
                severity=Severity.WARNING,
                message=f"No requirements configured for this {requirements.entity_type.value}.",
            )],
            status=determine_status(0, [], None, None, now, warning_threshold_days).status,
        )

    no_data = not coverages
    fields: list[ComplianceField] = []
    entity_matches: list[EntityMatch] = []
    chosen_rows: list[ExtractedCoverage] = []

    type_counts = {}
    for req in requirements.coverages:
        type_counts[req.coverage_type] = type_counts.get(req.coverage_type, 0) + 1
    shared_types = {t for t, n in type_counts.items() if n > 1}

    for req in requirements.coverages:
        key = _coverage_key(req, shared_types)
        if not req.is_active:
            fields.append(ComplianceField(
                key=key,
                label=format_coverage(req.coverage_type, req.limit_type),
                kind=FieldKind.COVERAGE,
                coverage_type=req.coverage_type,
                compliant=True,
                required=False,
            ))
            continue

        row = select_coverage(coverages, req)
        if row is not None:
            chosen_rows.append(row)
        fields.append(evaluate_coverage(req, row, now, key, no_data))

        if req.requires_waiver_of_subrogation:
            fields.append(evaluate_coverage_endorsement(req, row, "waiver_of_subrogation", key, no_data))
        if req.requires_primary_non_contributory:
            fields.append(evaluate_coverage_endorsement(req, row, "primary_non_contributory", key, no_data))

    if requirements.requires_additional_insured:
        field, matches = evaluate_additional_insured(coverages, entities, property_entities)
        fields.append(field)
        entity_matches.extend(matches)

    for pe in property_entities:
        if pe.entity_type == EntityRole.CERTIFICATE_HOLDER:
            field, match = evaluate_certificate_holder(pe, entities, no_data and not entities)
            fields.append(field)
            entity_matches.append(match)

    if requirements.requires_cancellation_notice:
        fields.append(evaluate_cancellation_notice(coverages, requirements.cancellation_notice_days))

    expirations = [row.expiration_date for row in chosen_rows if row.expiration_date is not None]
    earliest_expiration = min(expirations) if expirations else None
    expired_dates = [f.expiration_date for f in fields if f.expired and f.expiration_date is not None]
    earliest_expired = min(expired_dates) if expired_dates else None

    determination = determine_status(
        active_count, fields, earliest_expiration, earliest_expired, now, warning_threshold_days
    )

    return ComplianceResult(
        template_id=requirements.id,
        entity_type=requirements.entity_type,
        fields=fields,
        entity_matches=entity_matches,
        issues=build_issues(
            fields, entity_matches, now, earliest_expiration, earliest_expired, warning_threshold_days
        ),
        active_requirement_count=active_count,
        earliest_expiration=earliest_expiration,
        earliest_expired=earliest_expired,
        days_overdue=determination.days_overdue,
        days_until_expiration=determination.days_until_expiration,
        status=determination.status,
    )


def get_compliance_gaps(result: ComplianceResult) -> list[str]:
    """Plain-English gap lines for reminder emails and exports"""
    gaps = []
    for field in result.non_compliant_fields:
        if field.reason == NO_DATA_REASON:
            gaps.append(f"{field.label}: Not found on certificate")
        elif field.expired:
            gaps.append(f"{field.label}: Coverage has expired")
        else:
            gaps.append(f"{field.label}: {field.reason}")
    return gaps

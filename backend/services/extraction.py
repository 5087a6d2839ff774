"""
Ingestion boundary for AI extraction output.

The extraction service returns loosely typed rows (camelCase or snake_case
keys, limits as "$1M" strings, dates in several formats). Everything is
coerced here, once, into the strict ExtractedCoverage / ExtractedEntity
records; the compliance engine never sees raw rows.
"""

import logging
import re
from datetime import date, datetime
from typing import Any, Optional

from pydantic import ValidationError

from schemas.compliance import (
    ComplianceIssue,
    Confidence,
    CoverageType,
    EntityRole,
    ExtractedCoverage,
    ExtractedEntity,
    ExtractionBatch,
    LimitType,
    Severity,
)

logger = logging.getLogger(__name__)

COVERAGE_TYPE_ALIASES = {
    "gl": CoverageType.GENERAL_LIABILITY,
    "cgl": CoverageType.GENERAL_LIABILITY,
    "commercial_general_liability": CoverageType.GENERAL_LIABILITY,
    "general_liability": CoverageType.GENERAL_LIABILITY,
    "auto": CoverageType.AUTOMOBILE_LIABILITY,
    "auto_liability": CoverageType.AUTOMOBILE_LIABILITY,
    "automobile_liability": CoverageType.AUTOMOBILE_LIABILITY,
    "workers_comp": CoverageType.WORKERS_COMPENSATION,
    "workers_compensation": CoverageType.WORKERS_COMPENSATION,
    "wc": CoverageType.WORKERS_COMPENSATION,
    "employers_liability": CoverageType.EMPLOYERS_LIABILITY,
    "el": CoverageType.EMPLOYERS_LIABILITY,
    "umbrella": CoverageType.UMBRELLA_EXCESS,
    "excess": CoverageType.UMBRELLA_EXCESS,
    "umbrella_excess": CoverageType.UMBRELLA_EXCESS,
    "umbrella_excess_liability": CoverageType.UMBRELLA_EXCESS,
    "umbrella_liability": CoverageType.UMBRELLA_EXCESS,
    "professional_liability": CoverageType.PROFESSIONAL_LIABILITY,
    "professional_liability_eo": CoverageType.PROFESSIONAL_LIABILITY,
    "errors_and_omissions": CoverageType.PROFESSIONAL_LIABILITY,
    "e&o": CoverageType.PROFESSIONAL_LIABILITY,
    "property": CoverageType.PROPERTY_INSURANCE,
    "property_insurance": CoverageType.PROPERTY_INSURANCE,
    "property_inland_marine": CoverageType.PROPERTY_INSURANCE,
    "business_interruption": CoverageType.BUSINESS_INTERRUPTION,
    "business_income": CoverageType.BUSINESS_INTERRUPTION,
    "liquor_liability": CoverageType.LIQUOR_LIABILITY,
    "pollution_liability": CoverageType.POLLUTION_LIABILITY,
    "cyber_liability": CoverageType.CYBER_LIABILITY,
    "cyber": CoverageType.CYBER_LIABILITY,
}

LIMIT_TYPE_ALIASES = {
    "per_occurrence": LimitType.PER_OCCURRENCE,
    "each_occurrence": LimitType.PER_OCCURRENCE,
    "occurrence": LimitType.PER_OCCURRENCE,
    "aggregate": LimitType.AGGREGATE,
    "general_aggregate": LimitType.AGGREGATE,
    "combined_single_limit": LimitType.COMBINED_SINGLE_LIMIT,
    "csl": LimitType.COMBINED_SINGLE_LIMIT,
    "statutory": LimitType.STATUTORY,
    "per_person": LimitType.PER_PERSON,
    "per_accident": LimitType.PER_ACCIDENT,
    "each_accident": LimitType.PER_ACCIDENT,
    "other": LimitType.OTHER,
}

DATE_FORMATS = ["%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%m-%d-%Y", "%b %d, %Y", "%B %d, %Y"]

TRUE_STRINGS = {"true", "yes", "y", "x", "included", "checked", "waived", "1"}


def _key(value: str) -> str:
    value = re.sub(r"['’]", "", value.strip().lower())
    return re.sub(r"[\s/\-]+", "_", value)


def _get(raw: dict, *names: str) -> Any:
    """First present value among snake_case / camelCase spellings"""
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return None


def coerce_coverage_type(value: Any) -> Optional[CoverageType]:
    if isinstance(value, CoverageType):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    return COVERAGE_TYPE_ALIASES.get(_key(value))


def coerce_limit_type(value: Any) -> Optional[LimitType]:
    """Unknown limit types become OTHER, which never satisfies a specific requirement"""
    if value is None:
        return None
    if isinstance(value, LimitType):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    return LIMIT_TYPE_ALIASES.get(_key(value), LimitType.OTHER)


def coerce_confidence(value: Any) -> Confidence:
    if isinstance(value, Confidence):
        return value
    if isinstance(value, dict):
        value = value.get("level")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value >= 0.8:
            return Confidence.HIGH
        if value >= 0.5:
            return Confidence.MEDIUM
        return Confidence.LOW
    if isinstance(value, str) and value.strip().lower() in ("high", "medium", "low"):
        return Confidence(value.strip().lower())
    return Confidence.MEDIUM


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return False


def parse_limit_to_number(limit: Any) -> Optional[float]:
    """Parse a limit like '$1,000,000', '$1M' or '500k' to a number.

    Returns None when no amount can be read (including 'Statutory').
    """
    if limit is None or isinstance(limit, bool):
        return None
    if isinstance(limit, (int, float)):
        return float(limit)
    if not isinstance(limit, str):
        return None
    cleaned = limit.replace("$", "").replace(",", "").strip().upper()
    if not cleaned:
        return None
    multiplier = 1
    if cleaned.endswith("M"):
        multiplier, cleaned = 1_000_000, cleaned[:-1]
    elif cleaned.endswith("K"):
        multiplier, cleaned = 1_000, cleaned[:-1]
    try:
        return float(cleaned) * multiplier
    except ValueError:
        return None


def parse_date(value: Any) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    # ISO timestamps: keep the calendar date
    if re.match(r"^\d{4}-\d{2}-\d{2}T", text):
        text = text[:10]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def parse_notice_days(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value >= 0 else None
    if isinstance(value, str):
        match = re.search(r"\d+", value)
        if match:
            return int(match.group(0))
    return None


def _parse_name_list(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v).strip() for v in value if v and str(v).strip())


def parse_coverage(raw: dict, certificate_id: Optional[str] = None) -> Optional[ExtractedCoverage]:
    """Coerce one raw coverage row; None if the coverage type is unrecognized"""
    coverage_type = coerce_coverage_type(_get(raw, "coverage_type", "coverageType", "type"))
    if coverage_type is None:
        logger.warning("Dropping coverage row with unrecognized type: %r", _get(raw, "coverage_type", "coverageType", "type"))
        return None

    raw_limit = _get(raw, "limit_amount", "limitAmount", "amount", "limit")
    limit_type = coerce_limit_type(_get(raw, "limit_type", "limitType"))
    if isinstance(raw_limit, str) and raw_limit.strip().lower() == "statutory":
        limit_type = LimitType.STATUTORY
    amount = parse_limit_to_number(raw_limit)

    try:
        return ExtractedCoverage(
            id=_get(raw, "id"),
            certificate_id=_get(raw, "certificate_id", "certificateId") or certificate_id,
            coverage_type=coverage_type,
            carrier_name=_get(raw, "carrier_name", "carrierName", "carrier"),
            policy_number=_get(raw, "policy_number", "policyNumber"),
            limit_amount=amount,
            limit_type=limit_type,
            effective_date=parse_date(_get(raw, "effective_date", "effectiveDate")),
            expiration_date=parse_date(_get(raw, "expiration_date", "expirationDate")),
            additional_insured_listed=coerce_bool(_get(raw, "additional_insured_listed", "additionalInsuredListed")),
            additional_insured_entities=_parse_name_list(_get(raw, "additional_insured_entities", "additionalInsuredEntities")),
            waiver_of_subrogation=coerce_bool(_get(raw, "waiver_of_subrogation", "waiverOfSubrogation")),
            primary_non_contributory=coerce_bool(_get(raw, "primary_non_contributory", "primaryNonContributory")),
            cancellation_notice_days=parse_notice_days(_get(raw, "cancellation_notice_days", "cancellationNoticeDays")),
            confidence=coerce_confidence(_get(raw, "confidence", "confidence_flag", "confidenceFlag")),
            raw_text=_get(raw, "raw_text", "rawText", "source_text"),
            created_at=parse_timestamp(_get(raw, "created_at", "createdAt")),
        )
    except ValidationError as e:
        logger.warning("Dropping malformed %s coverage row: %s", coverage_type.value, e)
        return None


def parse_entity(raw: dict, certificate_id: Optional[str] = None) -> Optional[ExtractedEntity]:
    role = _get(raw, "entity_type", "entityType", "role")
    if isinstance(role, str):
        role = _key(role)
    if role not in ("certificate_holder", "additional_insured"):
        logger.warning("Dropping entity with unrecognized role: %r", role)
        return None
    name = _get(raw, "entity_name", "entityName", "name")
    if not isinstance(name, str) or not name.strip():
        logger.warning("Dropping %s entity without a name", role)
        return None
    return ExtractedEntity(
        id=_get(raw, "id"),
        certificate_id=_get(raw, "certificate_id", "certificateId") or certificate_id,
        entity_name=name,
        entity_address=_get(raw, "entity_address", "entityAddress", "address"),
        entity_type=EntityRole(role),
        confidence=coerce_confidence(_get(raw, "confidence", "confidence_flag", "confidenceFlag")),
    )


def parse_extraction(raw: dict, certificate_id: Optional[str] = None) -> ExtractionBatch:
    """Parse a whole extraction payload: {"coverages": [...], "entities": [...]}"""
    raw = raw or {}
    coverages = []
    for row in raw.get("coverages") or []:
        if not isinstance(row, dict):
            continue
        coverage = parse_coverage(row, certificate_id)
        if coverage is not None:
            coverages.append(coverage)

    entities = []
    for row in raw.get("entities") or []:
        if not isinstance(row, dict):
            continue
        entity = parse_entity(row, certificate_id)
        if entity is not None:
            entities.append(entity)

    # Older extractions only carried names on the coverage rows
    if not any(e.entity_type == EntityRole.ADDITIONAL_INSURED for e in entities):
        seen = set()
        for coverage in coverages:
            for name in coverage.additional_insured_entities:
                if name.lower() in seen:
                    continue
                seen.add(name.lower())
                entities.append(ExtractedEntity(
                    certificate_id=coverage.certificate_id,
                    entity_name=name,
                    entity_type=EntityRole.ADDITIONAL_INSURED,
                    confidence=coverage.confidence,
                ))

    return ExtractionBatch(coverages=coverages, entities=entities)


def normalize_issues(issues: Any) -> list[ComplianceIssue]:
    """Convert legacy issue lists (plain strings or loose dicts) to ComplianceIssue"""
    if not issues or not isinstance(issues, list):
        return []
    normalized = []
    for issue in issues:
        if isinstance(issue, ComplianceIssue):
            normalized.append(issue)
        elif isinstance(issue, str):
            lowered = issue.lower()
            if "expired" in lowered:
                severity = Severity.CRITICAL
            elif any(word in lowered for word in ("missing", "below", "required")):
                severity = Severity.ERROR
            else:
                severity = Severity.WARNING
            normalized.append(ComplianceIssue(severity=severity, message=issue))
        elif isinstance(issue, dict):
            raw_severity = str(issue.get("type") or issue.get("severity") or "warning").lower()
            severity = Severity(raw_severity) if raw_severity in ("critical", "error", "warning") else Severity.WARNING
            message = issue.get("message") or issue.get("description") or str(issue)
            normalized.append(ComplianceIssue(severity=severity, message=message))
    return normalized

"""
Compliance engine tests: coverage matching, gap detection, endorsements,
confidence caveats and the end-to-end certificate scenarios.
"""

from datetime import date, datetime, timezone

import pytest

from conftest import NOW, additional_insured, make_coverage, make_template, property_entity
from schemas.compliance import (
    CoverageRequirement,
    EntityRole,
    ExtractedEntity,
    LimitType,
    Severity,
    Status,
)
from services.compliance import (
    NO_DATA_REASON,
    calculate_compliance,
    get_compliance_gaps,
    limit_types_compatible,
    select_coverage,
)
from services.errors import InvalidEvaluationTimeError, TemplateMismatchError
from services.status import derive_status


def field(result, key):
    return next(f for f in result.fields if f.key == key)


# ==================== SCENARIOS ====================

def test_scenario_a_all_policies_expired(vendor_template):
    coverages = [
        make_coverage("general_liability", 1000000, limit_type="per_occurrence",
                      expiration_date=date(2025, 6, 13), confidence="high"),
        make_coverage("automobile_liability", 1000000),
        make_coverage("workers_compensation", None, limit_type="statutory"),
        make_coverage("employers_liability", 1000000),
    ]
    result = calculate_compliance(coverages, [], vendor_template, [], now=date(2026, 1, 9))

    assert result.status == Status.EXPIRED
    assert result.days_overdue == 210
    assert [i.message for i in result.issues] == ["All policies expired 2025-06-13 (210 days overdue)"]
    assert result.issues[0].severity == Severity.CRITICAL
    assert field(result, "general_liability").reason == "Policy expired on 2025-06-13"


def test_scenario_b_general_liability_below_requirement():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000, "limit_type": "per_occurrence"},
    ])
    coverages = [make_coverage("general_liability", 500000, limit_type="per_occurrence",
                               expiration_date=date(2026, 12, 1))]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    gl = field(result, "general_liability")
    assert not gl.compliant
    assert gl.reason == "General Liability below requirement: $500,000 (requires $1,000,000)"
    assert result.status == Status.NON_COMPLIANT


def test_scenario_c_one_policy_expired():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000},
        {"coverage_type": "automobile_liability", "minimum_limit": 1000000},
    ])
    coverages = [
        make_coverage("general_liability", 1000000),
        make_coverage("automobile_liability", 1000000, expiration_date=date(2025, 9, 25)),
    ]
    result = calculate_compliance(coverages, [], template, [], now=date(2026, 1, 9))

    assert field(result, "general_liability").compliant
    assert result.status == Status.EXPIRED
    assert result.days_overdue == 106
    assert "All policies expired 2025-09-25 (106 days overdue)" in [i.message for i in result.issues]


def test_scenario_d_no_requirements_for_tenant():
    template = make_template([], entity_type="tenant")
    result = calculate_compliance([], [], template, [], now=NOW)

    assert result.status == Status.NOT_REQUIRED
    assert len(result.issues) == 1
    assert result.issues[0].severity == Severity.WARNING
    assert result.issues[0].message == "No requirements configured for this tenant."


def test_scenario_e_expiring_soon(vendor_template):
    expires = date(2026, 1, 19)
    coverages = [
        make_coverage("general_liability", 1000000, limit_type="per_occurrence", expiration_date=expires),
        make_coverage("automobile_liability", 1000000, expiration_date=expires),
        make_coverage("workers_compensation", None, limit_type="statutory", expiration_date=expires),
        make_coverage("employers_liability", 1000000, expiration_date=expires),
    ]
    result = calculate_compliance(coverages, [], vendor_template, [], now=NOW, warning_threshold_days=30)

    assert result.status == Status.EXPIRING
    assert result.days_until_expiration == 10
    assert "Policies expiring in 10 days" in [i.message for i in result.issues]


# ==================== PROPERTIES ====================

def test_deterministic(vendor_template, compliant_coverages):
    entities = [additional_insured("Acme Property Management LLC")]
    targets = [property_entity("Acme Property Management")]
    first = calculate_compliance(compliant_coverages, entities, vendor_template, targets, now=NOW)
    second = calculate_compliance(compliant_coverages, entities, vendor_template, targets, now=NOW)

    assert first == second
    assert first.model_dump_json() == second.model_dump_json()
    assert derive_status(first, date(2026, 12, 31), NOW) == derive_status(second, date(2026, 12, 31), NOW)


@pytest.mark.parametrize("amount,required,expected", [
    (1000000, 1000000, True),
    (1000001, 1000000, True),
    (999999, 1000000, False),
    (0, 500000, False),
    (2000000, 1, True),
])
def test_amount_comparison(amount, required, expected):
    template = make_template([
        {"coverage_type": "umbrella_excess", "minimum_limit": required, "limit_type": "aggregate"},
    ])
    coverages = [make_coverage("umbrella_excess", amount, limit_type="aggregate")]
    result = calculate_compliance(coverages, [], template, [], now=NOW)
    assert field(result, "umbrella_excess").compliant is expected


@pytest.mark.parametrize("amount,limit_type", [
    (None, "statutory"),
    (1, None),
    (0, None),
    (500000, "other"),
])
def test_statutory_never_numeric_fails(amount, limit_type):
    template = make_template([{"coverage_type": "workers_compensation", "limit_type": "statutory"}])
    coverages = [make_coverage("workers_compensation", amount, limit_type=limit_type)]
    result = calculate_compliance(coverages, [], template, [], now=NOW)
    assert field(result, "workers_compensation").compliant


def test_empty_evidence_marks_everything_missing():
    template = make_template(
        [
            {"coverage_type": "general_liability", "minimum_limit": 1000000,
             "requires_waiver_of_subrogation": True},
            {"coverage_type": "workers_compensation", "limit_type": "statutory"},
        ],
        requires_additional_insured=True,
        cancellation_notice_days=30,
    )
    result = calculate_compliance([], [], template, [], now=NOW)

    required = [f for f in result.fields if f.required]
    assert len(required) == 5
    assert all(not f.compliant for f in required)
    assert all(f.reason == NO_DATA_REASON for f in required)
    assert result.status == Status.NON_COMPLIANT


def test_highest_limit_row_is_authoritative():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    coverages = [
        make_coverage("general_liability", 500000, id="low"),
        make_coverage("general_liability", 1000000, id="high"),
    ]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    gl = field(result, "general_liability")
    assert gl.extracted_coverage_id == "high"
    assert gl.compliant


def test_tie_break_prefers_confidence_then_recency():
    req = CoverageRequirement(coverage_type="general_liability", minimum_limit=1000000)
    rows = [
        make_coverage("general_liability", 1000000, id="medium", confidence="medium"),
        make_coverage("general_liability", 1000000, id="high", confidence="high"),
        make_coverage("general_liability", 1000000, id="low", confidence="low"),
    ]
    assert select_coverage(rows, req).id == "high"

    rows = [
        make_coverage("general_liability", 1000000, id="newer", created_at=datetime(2025, 3, 2)),
        make_coverage("general_liability", 1000000, id="older", created_at=datetime(2025, 3, 1)),
    ]
    assert select_coverage(rows, req).id == "newer"

    rows = [
        make_coverage("general_liability", 1000000, id="first"),
        make_coverage("general_liability", 1000000, id="second"),
    ]
    assert select_coverage(rows, req).id == "second"


def test_compatible_limit_type_preferred_over_higher_amount():
    req = CoverageRequirement(coverage_type="general_liability", minimum_limit=1000000, limit_type="per_occurrence")
    rows = [
        make_coverage("general_liability", 2000000, id="agg", limit_type="aggregate"),
        make_coverage("general_liability", 1000000, id="occ", limit_type="per_occurrence"),
    ]
    assert select_coverage(rows, req).id == "occ"


def test_additional_insured_flag_alone_is_insufficient():
    template = make_template(
        [{"coverage_type": "general_liability", "minimum_limit": 1000000}],
        requires_additional_insured=True,
    )
    coverages = [make_coverage("general_liability", 1000000, additional_insured_listed=True)]
    result = calculate_compliance(coverages, [], template, [property_entity("Harbor Point Owner LLC")], now=NOW)

    ai = field(result, "additional_insured")
    assert not ai.compliant
    assert ai.severity == Severity.WARNING
    assert ai.reason == "Additional insured flag present but no matching entity found"
    assert result.status == Status.NON_COMPLIANT


# ==================== LIMIT TYPES ====================

def test_limit_type_mismatch_fails_closed():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000, "limit_type": "per_occurrence"},
    ])
    coverages = [make_coverage("general_liability", 2000000, limit_type="aggregate")]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    gl = field(result, "general_liability")
    assert not gl.compliant
    assert gl.reason == "General Liability limit type mismatch: Aggregate (requires Per Occurrence)"


def test_configured_equivalent_limit_type_accepted():
    template = make_template([
        {"coverage_type": "automobile_liability", "minimum_limit": 1000000,
         "limit_type": "combined_single_limit", "equivalent_limit_types": ["per_accident"]},
    ])
    coverages = [make_coverage("automobile_liability", 1000000, limit_type="per_accident")]
    result = calculate_compliance(coverages, [], template, [], now=NOW)
    assert field(result, "automobile_liability").compliant


def test_unknown_limit_type_never_compatible():
    assert not limit_types_compatible(None, LimitType.OTHER)
    assert not limit_types_compatible(LimitType.AGGREGATE, LimitType.OTHER)
    assert limit_types_compatible(None, None)
    assert not limit_types_compatible(LimitType.AGGREGATE, None)


def test_missing_amount_cannot_be_determined():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    result = calculate_compliance([make_coverage("general_liability", None)], [], template, [], now=NOW)
    assert field(result, "general_liability").reason == "General Liability limit could not be determined"


# ==================== GAPS & EXPIRATION ====================

def test_missing_coverage_reason():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000},
        {"coverage_type": "professional_liability", "minimum_limit": 1000000},
    ])
    result = calculate_compliance([make_coverage("general_liability", 1000000)], [], template, [], now=NOW)

    pl = field(result, "professional_liability")
    assert pl.reason == "Missing Professional Liability (E&O)"
    assert pl.severity == Severity.ERROR


def test_expired_reason_takes_priority_over_shortfall():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000},
        {"coverage_type": "automobile_liability", "minimum_limit": 1000000},
    ])
    coverages = [
        make_coverage("general_liability", 500000, expiration_date=date(2025, 12, 1)),
        make_coverage("automobile_liability", 250000),
    ]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    assert field(result, "general_liability").reason == "Policy expired on 2025-12-01"
    assert result.issues[0].severity == Severity.CRITICAL
    assert result.issues[0].message.startswith("All policies expired 2025-12-01")
    assert result.issues[1].message == "Automobile Liability below requirement: $250,000 (requires $1,000,000)"


def test_policy_expiring_today():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    coverages = [make_coverage("general_liability", 1000000, expiration_date=NOW)]

    result = calculate_compliance(coverages, [], template, [], now=NOW)
    assert field(result, "general_liability").compliant
    assert result.status == Status.EXPIRING

    result = calculate_compliance(coverages, [], template, [], now=datetime(2026, 1, 9, 12, tzinfo=timezone.utc))
    gl = field(result, "general_liability")
    assert gl.expired
    assert gl.reason == "Policy expired on 2026-01-09"
    assert result.status == Status.EXPIRED
    assert result.days_overdue == 0
    assert [i.message for i in result.issues] == ["All policies expired 2026-01-09 (0 days overdue)"]


def test_days_overdue_with_timestamp_now():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    coverages = [make_coverage("general_liability", 1000000, expiration_date=date(2025, 6, 13))]
    result = calculate_compliance(coverages, [], template, [], now=datetime(2026, 1, 9, 12, tzinfo=timezone.utc))
    assert result.days_overdue == 210


def test_non_positive_minimum_is_no_requirement():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000},
        {"coverage_type": "cyber_liability", "minimum_limit": -5},
        {"coverage_type": "pollution_liability", "minimum_limit": 0},
    ])
    result = calculate_compliance([make_coverage("general_liability", 1000000)], [], template, [], now=NOW)

    assert result.active_requirement_count == 1
    assert not field(result, "cyber_liability").required
    assert not field(result, "pollution_liability").required
    assert result.status == Status.COMPLIANT


def test_optional_coverage_not_counted():
    template = make_template([
        {"coverage_type": "liquor_liability", "minimum_limit": 1000000, "is_required": False},
    ])
    result = calculate_compliance([], [], template, [], now=NOW)
    assert result.status == Status.NOT_REQUIRED


# ==================== CONFIDENCE ====================

def test_low_confidence_is_compliant_with_caveat():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    coverages = [make_coverage("general_liability", 2000000, confidence="low")]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    gl = field(result, "general_liability")
    assert gl.compliant
    assert gl.low_confidence
    assert result.status == Status.COMPLIANT
    assert [i.message for i in result.issues] == [
        "Low-confidence extraction for General Liability — please verify"
    ]
    assert result.issues[0].severity == Severity.WARNING


def test_low_confidence_failing_rows_still_flagged():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000},
        {"coverage_type": "automobile_liability", "minimum_limit": 1000000},
    ])
    coverages = [
        make_coverage("general_liability", 500000, confidence="low"),
        make_coverage("automobile_liability", 1000000, confidence="low", expiration_date=date(2025, 12, 1)),
    ]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    gl = field(result, "general_liability")
    assert not gl.compliant
    assert not gl.low_confidence
    assert result.status == Status.EXPIRED
    assert [i.message for i in result.issues] == [
        "All policies expired 2025-12-01 (39 days overdue)",
        "General Liability below requirement: $500,000 (requires $1,000,000)",
        "Low-confidence extraction for General Liability — please verify",
        "Low-confidence extraction for Automobile Liability — please verify",
    ]


# ==================== ENDORSEMENTS ====================

def test_waiver_and_primary_read_from_chosen_row():
    template = make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000,
         "requires_waiver_of_subrogation": True, "requires_primary_non_contributory": True},
    ])
    coverages = [
        make_coverage("general_liability", 500000, waiver_of_subrogation=False, primary_non_contributory=True),
        make_coverage("general_liability", 1000000, waiver_of_subrogation=True, primary_non_contributory=False),
    ]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    assert field(result, "waiver_of_subrogation:general_liability").compliant
    pnc = field(result, "primary_non_contributory:general_liability")
    assert not pnc.compliant
    assert pnc.reason == "Primary & Non-Contributory not included on General Liability"


def test_additional_insured_matched_by_name_variation():
    template = make_template(
        [{"coverage_type": "general_liability", "minimum_limit": 1000000}],
        requires_additional_insured=True,
    )
    entities = [additional_insured("ACME PROPERTY MANAGEMENT, INC., Harbor Point Owner LLC, 12 Main St")]
    targets = [property_entity("Acme Property Management Inc."), property_entity("Harbor Point Owner, L.L.C.", "pe-2")]
    result = calculate_compliance([make_coverage()], entities, template, targets, now=NOW)

    assert field(result, "additional_insured").compliant
    assert all(m.found for m in result.entity_matches)
    assert result.status == Status.COMPLIANT


def test_additional_insured_matched_by_dba():
    template = make_template([], requires_additional_insured=True)
    entities = [additional_insured("Bayview Plaza")]
    targets = [property_entity("BVP Holdings LLC", dba_names=["Bayview Plaza"])]
    result = calculate_compliance([make_coverage()], entities, template, targets, now=NOW)

    assert field(result, "additional_insured").compliant
    assert result.entity_matches[0].match_details == 'Matched DBA "Bayview Plaza" as "Bayview Plaza"'


def test_additional_insured_missing_without_flag():
    template = make_template([], requires_additional_insured=True)
    entities = [ExtractedEntity(entity_name="Acme Property Management", entity_type=EntityRole.CERTIFICATE_HOLDER)]
    result = calculate_compliance([make_coverage()], entities, template, [property_entity("Acme Property Management")], now=NOW)

    ai = field(result, "additional_insured")
    assert ai.reason == "Additional insured not listed"
    assert ai.severity == Severity.ERROR


def test_partial_additional_insured_match_warns():
    template = make_template([], requires_additional_insured=True)
    targets = [property_entity("Acme Property Management"), property_entity("Harbor Point Owner LLC", "pe-2")]
    result = calculate_compliance(
        [make_coverage()], [additional_insured("Acme Property Management")], template, targets, now=NOW
    )

    assert field(result, "additional_insured").compliant
    assert result.status == Status.COMPLIANT
    assert [i.message for i in result.issues] == ['"Harbor Point Owner LLC" not found as Additional Insured']


def test_certificate_holder_mismatch():
    template = make_template([{"coverage_type": "general_liability", "minimum_limit": 1000000}])
    holder = property_entity("Acme Property Management", "pe-ch", entity_type="certificate_holder")
    entities = [ExtractedEntity(entity_name="Someone Else LLC", entity_type=EntityRole.CERTIFICATE_HOLDER)]
    result = calculate_compliance([make_coverage()], entities, template, [holder], now=NOW)

    ch = field(result, "certificate_holder:pe-ch")
    assert not ch.compliant
    assert ch.reason == 'Certificate holder "Someone Else LLC" does not match "Acme Property Management"'


@pytest.mark.parametrize("stated,expected,reason", [
    ([30], True, None),
    ([10, 45], True, None),
    ([10], False, "Notice of Cancellation below requirement: 10 days (requires 30 days)"),
    ([None], False, "No cancellation notice period stated (requires 30 days)"),
])
def test_cancellation_notice(stated, expected, reason):
    template = make_template([], cancellation_notice_days=30)
    coverages = [make_coverage(cancellation_notice_days=days) for days in stated]
    result = calculate_compliance(coverages, [], template, [], now=NOW)

    notice = field(result, "cancellation_notice")
    assert notice.compliant is expected
    assert notice.reason == reason


# ==================== CONTRACT VIOLATIONS ====================

def test_template_for_wrong_entity_type_raises(vendor_template):
    with pytest.raises(TemplateMismatchError):
        calculate_compliance([], [], vendor_template, [], now=NOW, entity_type="tenant")


def test_evaluation_before_epoch_raises(vendor_template):
    with pytest.raises(InvalidEvaluationTimeError):
        calculate_compliance([], [], vendor_template, [], now=date(1969, 12, 31))


def test_compliance_gaps(vendor_template):
    coverages = [
        make_coverage("general_liability", 500000, limit_type="per_occurrence"),
        make_coverage("automobile_liability", 1000000, expiration_date=date(2025, 1, 1)),
    ]
    result = calculate_compliance(coverages, [], vendor_template, [], now=NOW)

    assert get_compliance_gaps(result) == [
        "General Liability (Per Occurrence): General Liability below requirement: $500,000 (requires $1,000,000)",
        "Automobile Liability: Coverage has expired",
        "Workers' Compensation: Missing Workers' Compensation",
        "Employers' Liability: Missing Employers' Liability",
    ]

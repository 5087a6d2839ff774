"""Shared fixtures for the compliance test suites."""

from datetime import date

import pytest
from fastapi.testclient import TestClient

from schemas.compliance import (
    CoverageRequirement,
    EntityRole,
    ExtractedCoverage,
    ExtractedEntity,
    PropertyEntity,
    RequirementTemplate,
)

NOW = date(2026, 1, 9)


def make_template(coverages=None, entity_type="vendor", **kwargs) -> RequirementTemplate:
    return RequirementTemplate(
        id=kwargs.pop("id", "tmpl-1"),
        organization_id=kwargs.pop("organization_id", "org-1"),
        entity_type=entity_type,
        coverages=[CoverageRequirement(**c) for c in (coverages or [])],
        **kwargs,
    )


def make_coverage(coverage_type="general_liability", limit_amount=1000000, **kwargs) -> ExtractedCoverage:
    return ExtractedCoverage(coverage_type=coverage_type, limit_amount=limit_amount, **kwargs)


def additional_insured(name: str, **kwargs) -> ExtractedEntity:
    return ExtractedEntity(entity_name=name, entity_type=EntityRole.ADDITIONAL_INSURED, **kwargs)


def property_entity(name: str, entity_id="pe-1", **kwargs) -> PropertyEntity:
    return PropertyEntity(id=entity_id, entity_name=name, **kwargs)


@pytest.fixture
def now() -> date:
    return NOW


@pytest.fixture
def vendor_template() -> RequirementTemplate:
    """GL $1M per occurrence, Auto $1M, WC statutory, EL $1M"""
    return make_template([
        {"coverage_type": "general_liability", "minimum_limit": 1000000, "limit_type": "per_occurrence"},
        {"coverage_type": "automobile_liability", "minimum_limit": 1000000},
        {"coverage_type": "workers_compensation", "limit_type": "statutory"},
        {"coverage_type": "employers_liability", "minimum_limit": 1000000},
    ])


@pytest.fixture
def compliant_coverages() -> list[ExtractedCoverage]:
    return [
        make_coverage("general_liability", 1000000, limit_type="per_occurrence",
                      expiration_date=date(2026, 12, 31), confidence="high"),
        make_coverage("automobile_liability", 1000000, expiration_date=date(2026, 12, 31)),
        make_coverage("workers_compensation", None, limit_type="statutory", expiration_date=date(2026, 12, 31)),
        make_coverage("employers_liability", 1000000, expiration_date=date(2026, 12, 31)),
    ]


@pytest.fixture
def client() -> TestClient:
    from main import app
    return TestClient(app)

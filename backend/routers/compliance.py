import logging
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException

from config import EXPIRATION_WARNING_DAYS
from schemas.api import (
    ComplianceCheckInput,
    ComplianceCheckResponse,
    StatusInput,
    TemplateResolveInput,
    TemplateResolveResponse,
)
from schemas.compliance import StatusDetermination
from services.compliance import calculate_compliance, get_compliance_gaps
from services.db_ops import hash_inputs, list_compliance_checks, save_compliance_check
from services.errors import ComplianceError
from services.extraction import parse_extraction
from services.status import derive_status, evaluation_date
from services.templates import resolve_template

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/compliance", tags=["compliance"])


def _now(value):
    return value or datetime.now(timezone.utc)


@router.post("/check", response_model=ComplianceCheckResponse)
async def check_compliance(input: ComplianceCheckInput):
    """Evaluate one certificate's extracted coverages against a requirement template"""
    now = _now(input.now)
    threshold = input.warning_threshold_days if input.warning_threshold_days is not None else EXPIRATION_WARNING_DAYS
    batch = parse_extraction(
        {"coverages": input.coverages, "entities": input.entities},
        certificate_id=input.certificate_id,
    )

    try:
        result = calculate_compliance(
            batch.coverages,
            batch.entities,
            input.template,
            input.property_entities,
            now=now,
            warning_threshold_days=threshold,
            entity_type=input.entity_type,
        )
        if input.expiration_date is not None:
            status = derive_status(result, input.expiration_date, now, threshold)
            # The certificate's own expiration date overrides the per-policy verdict
            result = result.model_copy(update=status.model_dump())
        else:
            status = StatusDetermination(
                status=result.status,
                days_overdue=result.days_overdue,
                days_until_expiration=result.days_until_expiration,
            )
    except ComplianceError as e:
        raise HTTPException(status_code=400, detail=str(e))

    saved_id = None
    if input.save and input.certificate_id:
        payload = input.model_dump(mode="json", exclude={"save", "now"})
        payload["evaluation_date"] = evaluation_date(now).isoformat()
        saved_id = save_compliance_check(input.certificate_id, result, input_hash=hash_inputs(payload))

    logger.info(
        "Compliance check %s: %s (%d issues)",
        input.certificate_id or "-", status.status.value, len(result.issues),
    )
    return ComplianceCheckResponse(
        certificate_id=input.certificate_id,
        result=result,
        status=status,
        gaps=get_compliance_gaps(result),
        coverages=batch.coverages,
        entities=batch.entities,
        saved_check_id=saved_id,
    )


@router.post("/status", response_model=StatusDetermination)
async def check_status(input: StatusInput):
    """Derive the lifecycle status for a previously computed result"""
    threshold = input.warning_threshold_days if input.warning_threshold_days is not None else EXPIRATION_WARNING_DAYS
    try:
        return derive_status(input.result, input.expiration_date, _now(input.now), threshold)
    except ComplianceError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/resolve-template", response_model=TemplateResolveResponse)
async def resolve_requirement_template(input: TemplateResolveInput):
    """Property template, else organization default, else none"""
    template = resolve_template(input.templates, input.organization_id, input.property_id, input.entity_type)
    return TemplateResolveResponse(template=template)


@router.get("/history/{certificate_id}")
async def get_history(certificate_id: str, limit: int = 20):
    """Stored compliance checks for a certificate, newest first"""
    return {"certificate_id": certificate_id, "checks": list_compliance_checks(certificate_id, limit)}

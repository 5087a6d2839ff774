import hashlib
import json
import logging
from typing import Optional

from database import get_db
from models import ComplianceCheck
from schemas.compliance import ComplianceResult

logger = logging.getLogger(__name__)


def hash_inputs(payload: dict) -> str:
    """Stable hash of an evaluation's inputs, used to skip duplicate saves"""
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()


def save_compliance_check(certificate_id: str, result: ComplianceResult, input_hash: str = None) -> Optional[int]:
    """Save a compliance result; re-saving identical inputs returns the existing row"""
    db = get_db()
    if db is None:
        return None  # No database configured

    try:
        if input_hash:
            existing = db.query(ComplianceCheck).filter(
                ComplianceCheck.certificate_id == certificate_id,
                ComplianceCheck.input_hash == input_hash,
            ).first()
            if existing:
                return existing.id

        check = ComplianceCheck(
            certificate_id=certificate_id,
            template_id=result.template_id,
            entity_type=result.entity_type.value,
            status=result.status.value,
            days_overdue=result.days_overdue,
            earliest_expiration=result.earliest_expiration,
            issue_count=len(result.issues),
            result=result.model_dump(mode="json"),
            input_hash=input_hash,
        )
        db.add(check)
        db.commit()
        db.refresh(check)
        return check.id
    except Exception as e:
        logger.error("Error saving compliance check for %s: %s", certificate_id, e)
        db.rollback()
        return None
    finally:
        db.close()


def list_compliance_checks(certificate_id: str, limit: int = 20) -> list[dict]:
    """Most recent stored checks for a certificate"""
    db = get_db()
    if db is None:
        return []

    try:
        rows = db.query(ComplianceCheck).filter(
            ComplianceCheck.certificate_id == certificate_id
        ).order_by(ComplianceCheck.created_at.desc(), ComplianceCheck.id.desc()).limit(limit).all()
        return [
            {
                "id": row.id,
                "created_at": row.created_at.isoformat() if row.created_at else None,
                "template_id": row.template_id,
                "status": row.status,
                "days_overdue": row.days_overdue,
                "earliest_expiration": row.earliest_expiration.isoformat() if row.earliest_expiration else None,
                "issue_count": row.issue_count,
            }
            for row in rows
        ]
    except Exception as e:
        logger.error("Error fetching compliance history for %s: %s", certificate_id, e)
        return []
    finally:
        db.close()

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Date, JSON
from database import Base


class ComplianceCheck(Base):
    __tablename__ = "compliance_checks"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    certificate_id = Column(String(64), index=True, nullable=False)
    template_id = Column(String(64), index=True, nullable=True)
    entity_type = Column(String(20), nullable=True)
    status = Column(String(20), index=True)
    days_overdue = Column(Integer, default=0)
    earliest_expiration = Column(Date, nullable=True)
    issue_count = Column(Integer, default=0)
    result = Column(JSON, nullable=True)
    # Hash of the evaluated inputs; identical inputs store one row per certificate
    input_hash = Column(String(64), index=True, nullable=True)

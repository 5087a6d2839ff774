from datetime import date
from typing import Optional, Union

from data.labels import COVERAGE_LABELS, LIMIT_TYPE_LABELS
from schemas.compliance import CoverageType, LimitType


def _value(member) -> str:
    return member.value if hasattr(member, "value") else str(member)


def coverage_label(coverage_type: Union[CoverageType, str]) -> str:
    """'general_liability' -> 'General Liability'"""
    key = _value(coverage_type)
    return COVERAGE_LABELS.get(key, key.replace("_", " ").title())


def limit_type_label(limit_type: Optional[Union[LimitType, str]]) -> str:
    if limit_type is None:
        return "Unspecified"
    key = _value(limit_type)
    return LIMIT_TYPE_LABELS.get(key, key.replace("_", " ").title())


def format_coverage(coverage_type: CoverageType, limit_type: Optional[LimitType]) -> str:
    """Coverage label with its limit denomination, e.g. 'General Liability (Per Occurrence)'"""
    base = coverage_label(coverage_type)
    if limit_type and limit_type != LimitType.STATUTORY:
        return f"{base} ({limit_type_label(limit_type)})"
    return base


def format_currency(amount: Optional[float]) -> str:
    """Format a dollar amount with no cents, e.g. 1000000 -> '$1,000,000'"""
    if amount is None:
        return "N/A"
    return f"${round(amount):,}"


def format_date(value: Optional[date]) -> str:
    if value is None:
        return "N/A"
    return value.isoformat()


def format_limit(amount: Optional[float], limit_type: Optional[LimitType]) -> Optional[str]:
    """Display value of an extracted limit; statutory limits have no amount"""
    if limit_type == LimitType.STATUTORY and amount is None:
        return "Statutory"
    if amount is None:
        return None
    return format_currency(amount)

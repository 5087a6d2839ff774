from datetime import date, datetime, time, timezone
from typing import Optional, Union

from config import DEFAULT_WARNING_THRESHOLD_DAYS
from schemas.compliance import ComplianceField, ComplianceResult, Status, StatusDetermination
from services.errors import InvalidEvaluationTimeError

EPOCH = date(1970, 1, 1)

Moment = Union[date, datetime]

# Worst first, for dashboards and reminder queues
STATUS_SORT_ORDER = {
    Status.EXPIRED: 0,
    Status.NON_COMPLIANT: 1,
    Status.EXPIRING: 2,
    Status.NOT_REQUIRED: 3,
    Status.COMPLIANT: 4,
}


def evaluation_time(now: Moment) -> Moment:
    """Validate an evaluation time. Dates and datetimes are both accepted."""
    if now is None:
        raise InvalidEvaluationTimeError("An evaluation time is required")
    day = now.date() if isinstance(now, datetime) else now
    if day < EPOCH:
        raise InvalidEvaluationTimeError(f"Evaluation time {now.isoformat()} is before the Unix epoch")
    return now


def evaluation_date(now: Moment) -> date:
    """Calendar day an evaluation runs on"""
    now = evaluation_time(now)
    return now.date() if isinstance(now, datetime) else now


def _as_datetime(value: Moment, tzinfo) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None and tzinfo is not None:
            # Naive timestamps are UTC
            return value.replace(tzinfo=timezone.utc)
        return value
    # A bare date is midnight at the start of that day, on the evaluation clock
    return datetime.combine(value, time.min, tzinfo=tzinfo)


def _aligned(a: Moment, b: Moment) -> tuple:
    if not isinstance(a, datetime) and not isinstance(b, datetime):
        return a, b
    tzinfo = next(
        (v.tzinfo for v in (b, a) if isinstance(v, datetime) and v.tzinfo is not None),
        None,
    )
    return _as_datetime(a, tzinfo), _as_datetime(b, tzinfo)


def days_between(later: Moment, earlier: Moment) -> int:
    """Whole days from earlier to later, floored (negative when later is before earlier).

    Two dates count calendar days. Against a datetime, a date is the start of
    that day, so a policy expiring today is 0 days overdue from midnight on.
    """
    later, earlier = _aligned(later, earlier)
    return (later - earlier).days


def has_passed(expiration: Moment, now: Moment) -> bool:
    """Whether an expiration is behind the evaluation time.

    Against a date the policy is good through its expiration day; against a
    datetime it lapses at the start of that day.
    """
    expiration, now = _aligned(expiration, now)
    return expiration < now


def determine_status(
    active_requirement_count: int,
    fields: list[ComplianceField],
    expiration_date: Optional[Moment],
    earliest_expired: Optional[Moment],
    now: Moment,
    warning_threshold_days: int,
) -> StatusDetermination:
    if active_requirement_count == 0:
        return StatusDetermination(status=Status.NOT_REQUIRED)

    days_until = days_between(expiration_date, now) if expiration_date else None

    certificate_expired = expiration_date is not None and has_passed(expiration_date, now)
    field_expired = any(f.expired for f in fields)
    if certificate_expired or field_expired:
        if certificate_expired:
            overdue = days_between(now, expiration_date)
        elif earliest_expired is not None:
            overdue = days_between(now, earliest_expired)
        else:
            overdue = 0
        return StatusDetermination(
            status=Status.EXPIRED,
            days_overdue=max(overdue, 0),
            days_until_expiration=days_until,
        )

    # Low-confidence fields keep their verdict, so caveated passes are not gaps
    if any(f.required and not f.compliant for f in fields):
        return StatusDetermination(status=Status.NON_COMPLIANT, days_until_expiration=days_until)

    if days_until is not None and 0 <= days_until <= warning_threshold_days:
        return StatusDetermination(status=Status.EXPIRING, days_until_expiration=days_until)

    return StatusDetermination(status=Status.COMPLIANT, days_until_expiration=days_until)


def derive_status(
    result: ComplianceResult,
    expiration_date: Optional[Moment],
    now: Moment,
    warning_threshold_days: int = DEFAULT_WARNING_THRESHOLD_DAYS,
) -> StatusDetermination:
    """Map a compliance result and the certificate expiration onto a lifecycle status.

    First match wins: not-required, expired, non-compliant, expiring, compliant.
    An expired certificate never reports compliant, and a compliance gap
    outranks an upcoming expiration. Without a certificate expiration date the
    earliest policy expiration on the result is used.
    """
    now = evaluation_time(now)
    if expiration_date is None:
        expiration_date = result.earliest_expiration
    return determine_status(
        result.active_requirement_count,
        result.fields,
        expiration_date,
        result.earliest_expired,
        now,
        warning_threshold_days,
    )


def status_rank(status) -> int:
    try:
        return STATUS_SORT_ORDER[Status(status)]
    except ValueError:
        # Unknown legacy statuses (e.g. "pending") sort last
        return len(STATUS_SORT_ORDER)


def sort_by_status(items: list, key=lambda item: item.status) -> list:
    """Stable sort, worst status first"""
    return sorted(items, key=lambda item: status_rank(key(item)))

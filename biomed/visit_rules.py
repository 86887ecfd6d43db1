"""
Visit lifecycle rules.

States are Scheduled, Attended and Closed. Required fields depend on the
target state; a Scheduled visit carries only a scheduled date (plus the
equipment status, defaulting to "Working"), while Attended/Closed visits
record what was done, by whom and when.

Past-date rejection applies on create only. Editing an old visit is governed
separately by the lock rule: non-Scheduled visits dated before yesterday
can only be changed by an admin. Deleting a visit is admin-only.
"""

from datetime import date, datetime
from typing import Any, Dict, Iterable, Mapping, Optional

from .calculations import format_display_date, is_before_yesterday, to_datetime
from .drafts import check_schema, is_blank, normalize_dates, require
from .errors import PermissionDenied, ValidationError
from .status import Role, VisitStatus, value_of
from .visit import DEFAULT_EQUIPMENT_STATUS, Visit

NO_UPCOMING_VISITS = "No upcoming visits"

VISIT_FIELDS = (
    "maintenance_record_id",
    "visit_status",
    "scheduled_date",
    "visit_date",
    "work_done",
    "attended_by",
    "equipment_status",
    "comments",
)
SCHEDULED_REQUIRED = ("scheduled_date",)
COMPLETED_REQUIRED = ("visit_date", "work_done", "attended_by", "equipment_status")
SCHEDULED_NULLED = ("visit_date", "work_done", "attended_by", "comments")


def prepare_visit(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep visit fields and null/default what the target status does not use."""
    payload = {field: data.get(field) for field in VISIT_FIELDS}
    for key, value in payload.items():
        if isinstance(value, str):
            payload[key] = value.strip()
    payload["visit_status"] = value_of(payload["visit_status"]) or VisitStatus.SCHEDULED.value

    if payload["visit_status"] == VisitStatus.SCHEDULED:
        for field in SCHEDULED_NULLED:
            payload[field] = None
        if is_blank(payload["equipment_status"]):
            payload["equipment_status"] = DEFAULT_EQUIPMENT_STATUS
    normalize_dates(payload, ("scheduled_date", "visit_date"))
    return payload


def required_visit_fields(visit_status: str):
    if visit_status == VisitStatus.SCHEDULED:
        return SCHEDULED_REQUIRED
    return COMPLETED_REQUIRED


def validate_visit(
    data: Mapping[str, Any], creating: bool, today: Optional[date] = None
) -> Dict[str, Any]:
    """
    Validate a visit for create or edit and return the store payload.

    Raises ValidationError naming the missing fields, or rejecting a past
    date on create.
    """
    payload = prepare_visit(data)
    require(payload, required_visit_fields(payload["visit_status"]))

    if creating:
        if payload["visit_status"] == VisitStatus.SCHEDULED:
            if is_before_yesterday(payload["scheduled_date"], today):
                raise ValidationError("Cannot schedule a visit in the past")
        elif is_before_yesterday(payload["visit_date"], today):
            raise ValidationError("Visit date cannot be in the past")

    check_schema("visit", payload)
    return payload


def is_visit_locked(visit: Visit, today: Optional[date] = None) -> bool:
    return visit.is_locked(today)


def check_can_edit_visit(visit: Visit, role: str, today: Optional[date] = None) -> None:
    if visit.is_locked(today) and role != Role.ADMIN:
        raise PermissionDenied("Past visits can only be edited by an admin")


def check_can_delete_visit(role: str) -> None:
    if role != Role.ADMIN:
        raise PermissionDenied("You do not have permission to delete visits")


def get_next_visit_date(visits: Iterable[Visit], now: Optional[datetime] = None) -> str:
    """Earliest Scheduled visit strictly after now, formatted, or NO_UPCOMING_VISITS."""
    now = now or datetime.now()
    upcoming = []
    for visit in visits:
        if not visit.is_scheduled or not visit.scheduled_date:
            continue
        when = to_datetime(visit.scheduled_date)
        if when.tzinfo is not None:
            when = when.replace(tzinfo=None)
        if when > now:
            upcoming.append(when)
    if not upcoming:
        return NO_UPCOMING_VISITS
    return format_display_date(min(upcoming))

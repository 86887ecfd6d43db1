"""Contract renewal reminders: which records are due and the message text."""

from datetime import date
from typing import Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta

from .calculations import format_display_date, to_date
from .maintenance_record import MaintenanceRecord
from .status import BILLABLE_STATUSES

SUBJECT = "Reminder to renew contracts!"


def due_for_renewal(
    records: Iterable[MaintenanceRecord],
    within_days: int = 30,
    today: Optional[date] = None,
) -> List[MaintenanceRecord]:
    """Active billable contracts ending within the window, soonest first."""
    today = today or date.today()
    horizon = today + relativedelta(days=within_days)
    due = []
    for record in records:
        if record.service_status not in BILLABLE_STATUSES or record.is_expired(today):
            continue
        end = to_date(record.service_end_date)
        if end is not None and end <= horizon:
            due.append((end, record))
    due.sort(key=lambda pair: pair[0])
    return [record for _, record in due]


def render_reminder(record: MaintenanceRecord) -> Tuple[Optional[str], str, str]:
    """Return (to, subject, body) for a renewal reminder."""
    customer = record.customer
    equipment = record.equipment
    to = customer.bio_medical_email if customer else None
    greeting = f"Dear {customer.bio_medical_hod_name}," if customer else "Hello,"
    equipment_name = equipment.display_name if equipment else record.equipment_id
    body = "\n".join(
        [
            greeting,
            "",
            f"The {record.service_status} contract for {equipment_name} "
            f"(serial no. {record.serial_no}) ends on "
            f"{format_display_date(record.service_end_date)}.",
            "Please contact us to renew the contract.",
        ]
    )
    return to, SUBJECT, body

"""Visit class for site visits logged against a maintenance record."""

from datetime import date
from typing import Optional

from .calculations import is_before_yesterday
from .status import VisitStatus

DEFAULT_EQUIPMENT_STATUS = "Working"


class Visit:
    """A scheduled or completed maintenance visit."""

    def __init__(
            self,
            id: str,
            maintenance_record_id: str,
            visit_status: str = VisitStatus.SCHEDULED.value,
            scheduled_date: Optional[str] = None,
            visit_date: Optional[str] = None,
            work_done: Optional[str] = None,
            attended_by: Optional[str] = None,
            equipment_status: Optional[str] = DEFAULT_EQUIPMENT_STATUS,
            comments: Optional[str] = None,
    ):
        self.id = id
        self.maintenance_record_id = maintenance_record_id
        self.visit_status = visit_status
        self.scheduled_date = scheduled_date
        self.visit_date = visit_date
        self.work_done = work_done
        self.attended_by = attended_by
        self.equipment_status = equipment_status
        self.comments = comments

    @property
    def is_scheduled(self) -> bool:
        return self.visit_status == VisitStatus.SCHEDULED

    @property
    def effective_date(self) -> Optional[str]:
        """Scheduled date while Scheduled, otherwise the actual visit date."""
        return self.scheduled_date if self.is_scheduled else self.visit_date

    def is_locked(self, today: Optional[date] = None) -> bool:
        """
        Past, non-Scheduled visits are locked for non-admins.

        Scheduled visits stay editable whatever their date so overdue ones
        can still be converted to Attended/Closed.
        """
        if self.is_scheduled:
            return False
        return is_before_yesterday(self.effective_date, today)

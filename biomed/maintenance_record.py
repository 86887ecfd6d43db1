"""MaintenanceRecord class - the main aggregate of contract, equipment and visits."""

from datetime import date, datetime
from typing import List, Optional

from .calculations import age_in_years, format_age, is_expired
from .customer import Customer
from .equipment import Equipment
from .service_contract import ServiceContract
from .status import RecordStatus
from .visit import Visit
from .visit_rules import get_next_visit_date


class MaintenanceRecord:
    """One installed serial number with its live contract, history and visits."""

    def __init__(
        self,
        id: str,
        customer_id: str,
        equipment_id: str,
        serial_no: str,
        installation_date: Optional[str] = None,
        warranty_end_date: Optional[str] = None,
        service_status: str = "",
        service_start_date: Optional[str] = None,
        service_end_date: Optional[str] = None,
        invoice_number: Optional[str] = None,
        invoice_date: Optional[str] = None,
        amount: float = 0,
        equipment_purchase_value: Optional[float] = None,
        notes: Optional[str] = None,
        service_contracts: Optional[List[ServiceContract]] = None,
        visits: Optional[List[Visit]] = None,
        customer: Optional[Customer] = None,
        equipment: Optional[Equipment] = None,
        created_at: Optional[str] = None,
        updated_at: Optional[str] = None,
    ):
        self.id = id
        self.customer_id = customer_id
        self.equipment_id = equipment_id
        self.serial_no = serial_no
        self.installation_date = installation_date
        self.warranty_end_date = warranty_end_date
        self.service_status = service_status
        self.service_start_date = service_start_date
        self.service_end_date = service_end_date
        self.invoice_number = invoice_number
        self.invoice_date = invoice_date
        self.amount = amount
        self.equipment_purchase_value = equipment_purchase_value
        self.notes = notes
        self.service_contracts = service_contracts or []
        self.visits = visits or []
        self.customer = customer
        self.equipment = equipment
        self.created_at = created_at
        self.updated_at = updated_at

    @property
    def live_contract(self) -> ServiceContract:
        """The current contract terms as a snapshot-shaped object."""
        return ServiceContract(
            service_status=self.service_status,
            service_start_date=self.service_start_date,
            service_end_date=self.service_end_date,
            invoice_number=self.invoice_number,
            invoice_date=self.invoice_date,
            amount=self.amount,
            notes=self.notes,
        )

    @property
    def model_number(self) -> Optional[str]:
        return self.equipment.model_number if self.equipment else None

    def is_expired(self, today: Optional[date] = None) -> bool:
        """Evaluated fresh on each call; never cached."""
        return is_expired(self.service_end_date, today)

    def record_status(self, today: Optional[date] = None) -> RecordStatus:
        return RecordStatus.EXPIRED if self.is_expired(today) else RecordStatus.ACTIVE

    def age(self, today: Optional[date] = None) -> str:
        return format_age(self.installation_date, today)

    def age_in_years(self, today: Optional[date] = None) -> Optional[float]:
        return age_in_years(self.installation_date, today)

    def next_visit_date(self, now: Optional[datetime] = None) -> str:
        return get_next_visit_date(self.visits, now)

    def get_visit(self, visit_id: str) -> Optional[Visit]:
        """Find a visit by id."""
        for visit in self.visits:
            if visit.id == visit_id:
                return visit
        return None

    def add_visit(self, visit: Visit) -> None:
        self.visits.append(visit)

    def replace_visit(self, visit: Visit) -> None:
        """Swap in the edited visit, keeping its position."""
        self.visits = [visit if v.id == visit.id else v for v in self.visits]

    def remove_visit(self, visit_id: str) -> None:
        self.visits = [v for v in self.visits if v.id != visit_id]

    def get_visits_sorted(self, reverse: bool = True) -> List[Visit]:
        """Visits ordered by effective date, newest first by default."""
        return sorted(self.visits, key=lambda v: str(v.effective_date or ""), reverse=reverse)

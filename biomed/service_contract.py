"""ServiceContract dataclass for archived contract terms."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

CONTRACT_FIELDS = (
    "service_status",
    "service_start_date",
    "service_end_date",
    "invoice_number",
    "invoice_date",
    "amount",
    "notes",
)


@dataclass
class ServiceContract:
    """One contract term: either the live slice of a record or a history snapshot."""

    service_status: str = ""
    service_start_date: Optional[str] = None
    service_end_date: Optional[str] = None
    invoice_number: Optional[str] = None
    invoice_date: Optional[str] = None
    amount: float = 0
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServiceContract":
        return cls(**{field: data.get(field) for field in CONTRACT_FIELDS if field in data})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

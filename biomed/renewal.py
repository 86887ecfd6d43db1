"""Service contract renewal."""

from typing import Any, Dict

from .loader import record_to_row
from .maintenance_record import MaintenanceRecord
from .service_contract import CONTRACT_FIELDS

BLANK_CONTRACT: Dict[str, Any] = {
    "service_status": "",
    "service_start_date": "",
    "service_end_date": "",
    "invoice_number": "",
    "invoice_date": "",
    "amount": 0,
    "notes": "",
}


def build_renewal_draft(record: MaintenanceRecord) -> Dict[str, Any]:
    """
    Build the edit draft that starts a new contract term on the same record.

    The current live terms are appended (unchanged) to service_contracts and
    the live fields are blanked for the operator to fill in. The record id is
    kept; nothing is persisted until the draft is saved like a normal edit.
    """
    draft = record_to_row(record)
    snapshot = {field: draft.get(field) for field in CONTRACT_FIELDS}
    draft["service_contracts"] = list(draft.get("service_contracts") or []) + [snapshot]
    draft.update(BLANK_CONTRACT)
    return draft

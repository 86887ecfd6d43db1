"""Conversion between store rows (plain dicts) and model objects."""

from typing import Any, Dict, List, Optional

from .customer import Customer
from .equipment import Equipment
from .maintenance_record import MaintenanceRecord
from .service_contract import ServiceContract
from .store import MAINTENANCE_RELATIONS, RecordStore
from .visit import DEFAULT_EQUIPMENT_STATUS, Visit

RECORD_FIELDS = (
    "id",
    "customer_id",
    "equipment_id",
    "serial_no",
    "installation_date",
    "warranty_end_date",
    "equipment_purchase_value",
    "service_status",
    "service_start_date",
    "service_end_date",
    "invoice_number",
    "invoice_date",
    "amount",
    "notes",
    "created_at",
    "updated_at",
)


def parse_customer(row: Dict[str, Any]) -> Customer:
    return Customer(
        row["id"],
        row["name"],
        row.get("bio_medical_email"),
        row.get("bio_medical_contact"),
        row.get("bio_medical_hod_name"),
        row.get("notes"),
    )


def parse_equipment(row: Dict[str, Any]) -> Equipment:
    return Equipment(row["id"], row["name"], row.get("model_number"), row.get("notes"))


def parse_visit(row: Dict[str, Any]) -> Visit:
    return Visit(
        row["id"],
        row["maintenance_record_id"],
        row.get("visit_status") or "Scheduled",
        row.get("scheduled_date"),
        row.get("visit_date"),
        row.get("work_done"),
        row.get("attended_by"),
        row.get("equipment_status", DEFAULT_EQUIPMENT_STATUS),
        row.get("comments"),
    )


def parse_maintenance_record(row: Dict[str, Any]) -> MaintenanceRecord:
    """Parse a maintenance row, including any joined customer/equipment/visits."""
    customer = row.get("customer")
    equipment = row.get("equipment")
    return MaintenanceRecord(
        **{field: row.get(field) for field in RECORD_FIELDS if field in row},
        service_contracts=[
            ServiceContract.from_dict(c) for c in row.get("service_contracts") or []
        ],
        visits=[parse_visit(v) for v in row.get("visits") or []],
        customer=parse_customer(customer) if customer else None,
        equipment=parse_equipment(equipment) if equipment else None,
    )


def customer_to_row(customer: Customer) -> Dict[str, Any]:
    return {
        "id": customer.id,
        "name": customer.name,
        "bio_medical_email": customer.bio_medical_email,
        "bio_medical_contact": customer.bio_medical_contact,
        "bio_medical_hod_name": customer.bio_medical_hod_name,
        "notes": customer.notes,
    }


def equipment_to_row(equipment: Equipment) -> Dict[str, Any]:
    return {
        "id": equipment.id,
        "name": equipment.name,
        "model_number": equipment.model_number,
        "notes": equipment.notes,
    }


def visit_to_row(visit: Visit) -> Dict[str, Any]:
    return {
        "id": visit.id,
        "maintenance_record_id": visit.maintenance_record_id,
        "visit_status": visit.visit_status,
        "scheduled_date": visit.scheduled_date,
        "visit_date": visit.visit_date,
        "work_done": visit.work_done,
        "attended_by": visit.attended_by,
        "equipment_status": visit.equipment_status,
        "comments": visit.comments,
    }


def record_to_row(record: MaintenanceRecord) -> Dict[str, Any]:
    """Serialize a record to its own row (relations are not included)."""
    row = {field: getattr(record, field) for field in RECORD_FIELDS}
    row["service_contracts"] = [c.to_dict() for c in record.service_contracts]
    return row


def load_maintenance_records(store: RecordStore) -> List[MaintenanceRecord]:
    """Fetch all maintenance records joined with customer, equipment and visits."""
    rows = store.query("maintenance_records", MAINTENANCE_RELATIONS)
    return [parse_maintenance_record(row) for row in rows]


def load_maintenance_record(store: RecordStore, record_id: str) -> Optional[MaintenanceRecord]:
    row = store.get("maintenance_records", record_id, MAINTENANCE_RELATIONS)
    return parse_maintenance_record(row) if row else None

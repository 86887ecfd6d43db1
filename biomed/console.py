"""
Console operations: the add/edit/delete/renew/visit actions an operator runs.

Each operation checks permissions and validates input before touching the
store, then merges the result into an in-memory cache of hydrated
maintenance records so list views stay current without a full refetch.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .auth import AuthService
from .customer import Customer
from .drafts import make_draft
from .equipment import METADATA_FIELDS, Equipment
from .errors import PermissionDenied, RecordNotFound, ReferencedRecordError
from .filters import MaintenanceFilters, filter_maintenance_records
from .loader import (
    customer_to_row,
    equipment_to_row,
    load_maintenance_record,
    load_maintenance_records,
    parse_customer,
    parse_equipment,
    parse_visit,
    record_to_row,
    visit_to_row,
)
from .maintenance_record import MaintenanceRecord
from .pagination import Page, paginate
from .renewal import build_renewal_draft
from .status import Role
from .store import RecordStore
from .visit import Visit
from .visit_rules import check_can_delete_visit, check_can_edit_visit, validate_visit

logger = logging.getLogger(__name__)


def _deny(message: str) -> PermissionDenied:
    logger.warning("Refused: %s", message)
    return PermissionDenied(message)


class Console:
    """Maintenance contract console bound to one store and one operator session."""

    def __init__(self, store: RecordStore, auth: AuthService):
        self.store = store
        self.auth = auth
        self._records: Optional[Dict[str, MaintenanceRecord]] = None

    # =========================================================================
    # Cache
    # =========================================================================

    def refresh(self) -> None:
        """Reload every maintenance record (with relations) from the store."""
        self._records = {r.id: r for r in load_maintenance_records(self.store)}

    @property
    def records(self) -> List[MaintenanceRecord]:
        if self._records is None:
            self.refresh()
        return list(self._records.values())

    def get_record(self, record_id: str) -> MaintenanceRecord:
        if self._records is None:
            self.refresh()
        try:
            return self._records[record_id]
        except KeyError:
            raise RecordNotFound(f"Maintenance record '{record_id}' not found")

    def _reload_record(self, record_id: str) -> MaintenanceRecord:
        record = load_maintenance_record(self.store, record_id)
        if record is None:
            raise RecordNotFound(f"Maintenance record '{record_id}' not found")
        if self._records is not None:
            self._records[record_id] = record
        return record

    def _role(self) -> str:
        return self.auth.current_user_role()

    # =========================================================================
    # Listing
    # =========================================================================

    def list_maintenance(
        self,
        filters: Optional[MaintenanceFilters] = None,
        page: int = 1,
        page_size: int = 10,
        today: Optional[date] = None,
    ) -> Page[MaintenanceRecord]:
        records = self.records
        if filters is not None:
            records = filter_maintenance_records(records, filters, today)
        return paginate(records, page, page_size)

    def customers(self) -> List[Customer]:
        return [parse_customer(row) for row in self.store.query("customers")]

    def equipment(self) -> List[Equipment]:
        return [parse_equipment(row) for row in self.store.query("equipment")]

    def get_customer(self, customer_id: str) -> Customer:
        row = self.store.get("customers", customer_id)
        if row is None:
            raise RecordNotFound(f"Customer '{customer_id}' not found")
        return parse_customer(row)

    def get_equipment(self, equipment_id: str) -> Equipment:
        row = self.store.get("equipment", equipment_id)
        if row is None:
            raise RecordNotFound(f"Equipment '{equipment_id}' not found")
        return parse_equipment(row)

    # =========================================================================
    # Customers and equipment
    # =========================================================================

    def add_customer(self, data: Mapping[str, Any]) -> Customer:
        self._role()
        payload = make_draft("customer", data).clean()
        row = self.store.insert("customers", payload)
        logger.info("Added customer %s (%s)", row["id"], row["name"])
        return parse_customer(row)

    def edit_customer(self, customer_id: str, data: Mapping[str, Any]) -> Customer:
        self._role()
        current = customer_to_row(self.get_customer(customer_id))
        payload = make_draft("customer", {**current, **data}).clean()
        self.store.update("customers", customer_id, payload)
        self._records = None
        logger.info("Updated customer %s", customer_id)
        return self.get_customer(customer_id)

    def delete_customer(self, customer_id: str) -> None:
        if self._role() != Role.ADMIN:
            raise _deny("You do not have permission to delete customers")
        self.get_customer(customer_id)
        if self.store.check_references("maintenance_records", "customer_id", customer_id):
            raise ReferencedRecordError(
                "Cannot delete this customer. It has associated maintenance records."
            )
        self.store.delete("customers", customer_id)
        logger.info("Deleted customer %s", customer_id)

    def add_equipment(self, data: Mapping[str, Any]) -> Equipment:
        self._role()
        payload = make_draft("equipment", data).clean()
        row = self.store.insert("equipment", payload)
        logger.info("Added equipment %s (%s)", row["id"], row["name"])
        return parse_equipment(row)

    def edit_equipment(self, equipment_id: str, data: Mapping[str, Any]) -> Equipment:
        """Referenced equipment only accepts changes to its metadata (notes)."""
        self._role()
        current = equipment_to_row(self.get_equipment(equipment_id))
        payload = make_draft("equipment", {**current, **data}).clean()
        if self.store.check_references("maintenance_records", "equipment_id", equipment_id):
            changed = [
                field
                for field, value in payload.items()
                if field not in METADATA_FIELDS and value != current.get(field)
            ]
            if changed:
                raise ReferencedRecordError(
                    "Equipment is referenced by maintenance records; "
                    f"cannot change {', '.join(changed)}"
                )
        self.store.update("equipment", equipment_id, payload)
        self._records = None
        logger.info("Updated equipment %s", equipment_id)
        return self.get_equipment(equipment_id)

    def delete_equipment(self, equipment_id: str) -> None:
        if self._role() != Role.ADMIN:
            raise _deny("You do not have permission to delete equipment")
        self.get_equipment(equipment_id)
        if self.store.check_references("maintenance_records", "equipment_id", equipment_id):
            raise ReferencedRecordError(
                "Cannot delete this equipment. It has associated maintenance records."
            )
        self.store.delete("equipment", equipment_id)
        logger.info("Deleted equipment %s", equipment_id)

    # =========================================================================
    # Maintenance records
    # =========================================================================

    def _check_links(self, payload: Mapping[str, Any]) -> None:
        self.get_customer(payload["customer_id"])
        self.get_equipment(payload["equipment_id"])

    def add_maintenance(
        self, data: Mapping[str, Any], today: Optional[date] = None
    ) -> MaintenanceRecord:
        self._role()
        fields = {k: v for k, v in data.items() if k != "service_contracts"}
        payload = make_draft("maintenance", fields).clean(today)
        self._check_links(payload)
        payload["service_contracts"] = []
        row = self.store.insert("maintenance_records", payload)
        logger.info("Added maintenance record %s (serial %s)", row["id"], row["serial_no"])
        return self._reload_record(row["id"])

    def edit_maintenance(
        self, record_id: str, data: Mapping[str, Any], today: Optional[date] = None
    ) -> MaintenanceRecord:
        """Full re-validation of the merged record; contract history is kept as stored."""
        self._role()
        record = self.get_record(record_id)
        if record.is_expired(today):
            raise _deny("Expired records cannot be edited; renew the contract instead")
        changes = {k: v for k, v in data.items() if k != "service_contracts"}
        return self._save_maintenance(record, {**record_to_row(record), **changes}, today)

    def _save_maintenance(
        self, record: MaintenanceRecord, draft: Mapping[str, Any], today: Optional[date]
    ) -> MaintenanceRecord:
        payload = make_draft("maintenance", draft).clean(today)
        self._check_links(payload)
        self.store.update("maintenance_records", record.id, payload)
        logger.info("Updated maintenance record %s", record.id)
        return self._reload_record(record.id)

    def delete_maintenance(self, record_id: str, today: Optional[date] = None) -> int:
        """Hard delete (admin only). Visits are deleted with the record; returns their count."""
        if self._role() != Role.ADMIN:
            raise _deny("You do not have permission to delete maintenance records")
        record = self.get_record(record_id)
        if record.is_expired(today):
            raise _deny("Expired records cannot be deleted")
        removed = self.store.delete_where("maintenance_visits", "maintenance_record_id", record_id)
        self.store.delete("maintenance_records", record_id)
        if self._records is not None:
            self._records.pop(record_id, None)
        logger.info("Deleted maintenance record %s and %d visit(s)", record_id, removed)
        return removed

    def renewal_draft(self, record_id: str) -> Dict[str, Any]:
        return build_renewal_draft(self.get_record(record_id))

    def renew_maintenance(
        self, record_id: str, terms: Mapping[str, Any], today: Optional[date] = None
    ) -> MaintenanceRecord:
        """
        Archive the live contract and save the new terms on the same record.

        Allowed on expired records; the new terms go through the normal edit
        validation.
        """
        self._role()
        record = self.get_record(record_id)
        draft = build_renewal_draft(record)
        draft.update({k: v for k, v in terms.items() if k not in ("id", "service_contracts")})
        renewed = self._save_maintenance(record, draft, today)
        logger.info("Renewed maintenance record %s as %s", record_id, renewed.service_status)
        return renewed

    # =========================================================================
    # Visits
    # =========================================================================

    def _find_visit(self, visit_id: str) -> Tuple[MaintenanceRecord, Visit]:
        for record in self.records:
            visit = record.get_visit(visit_id)
            if visit is not None:
                return record, visit
        raise RecordNotFound(f"Visit '{visit_id}' not found")

    def add_visit(
        self, record_id: str, data: Mapping[str, Any], today: Optional[date] = None
    ) -> Visit:
        role = self._role()
        record = self.get_record(record_id)
        if record.is_expired(today) and role != Role.ADMIN:
            raise _deny("Visits cannot be added to an expired record")
        payload = validate_visit({**data, "maintenance_record_id": record_id}, creating=True, today=today)
        visit = parse_visit(self.store.insert("maintenance_visits", payload))
        record.add_visit(visit)
        logger.info("Added %s visit %s to record %s", visit.visit_status, visit.id, record_id)
        return visit

    def edit_visit(
        self, visit_id: str, data: Mapping[str, Any], today: Optional[date] = None
    ) -> Visit:
        role = self._role()
        record, current = self._find_visit(visit_id)
        if record.is_expired(today) and role != Role.ADMIN:
            raise _deny("Visits of an expired record cannot be edited")
        try:
            check_can_edit_visit(current, role, today)
        except PermissionDenied as e:
            raise _deny(str(e))
        merged = {**visit_to_row(current), **data, "maintenance_record_id": record.id}
        payload = validate_visit(merged, creating=False, today=today)
        self.store.update("maintenance_visits", visit_id, payload)
        visit = parse_visit({**payload, "id": visit_id})
        record.replace_visit(visit)
        logger.info("Updated visit %s (%s)", visit_id, visit.visit_status)
        return visit

    def delete_visit(self, visit_id: str) -> None:
        try:
            check_can_delete_visit(self._role())
        except PermissionDenied as e:
            raise _deny(str(e))
        record, _ = self._find_visit(visit_id)
        self.store.delete("maintenance_visits", visit_id)
        record.remove_visit(visit_id)
        logger.info("Deleted visit %s from record %s", visit_id, record.id)

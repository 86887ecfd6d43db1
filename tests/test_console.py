#!/usr/bin/env python3
"""
Tests for console operations.

Integration tests over a temporary YAML store covering:
1. Permission gates - admin-only deletes, locked visits, expired records
2. Referential integrity - referenced customers/equipment
3. Renewal - history append on the same record
4. Cache merging - visit changes visible without refresh
"""

import pytest
from datetime import date

from biomed import AuthService, Console, MaintenanceFilters, RecordStore, create_user
from biomed.errors import (
    PermissionDenied,
    RecordNotFound,
    ReferencedRecordError,
    SessionExpired,
    ValidationError,
)

TODAY = date(2024, 3, 20)


@pytest.fixture
def store(tmp_path):
    store = RecordStore(tmp_path / "amc.yaml")
    create_user(store, "admin@example.com", "pw", "admin")
    create_user(store, "ops@example.com", "pw", "user")
    return store


def console_for(store, email):
    auth = AuthService(store)
    auth.login(email, "pw")
    return Console(store, auth)


@pytest.fixture
def admin(store):
    return console_for(store, "admin@example.com")


@pytest.fixture
def user(store):
    return console_for(store, "ops@example.com")


@pytest.fixture
def catalog(admin):
    customer = admin.add_customer(
        {
            "name": "City Hospital",
            "bio_medical_email": "bme@city.example",
            "bio_medical_contact": "555-0100",
            "bio_medical_hod_name": "Dr. Rao",
        }
    )
    equipment = admin.add_equipment({"name": "Ventilator", "model_number": "V-100"})
    return customer, equipment


def record_data(catalog, **kwargs):
    customer, equipment = catalog
    data = {
        "customer_id": customer.id,
        "equipment_id": equipment.id,
        "serial_no": "SN-1",
        "installation_date": "2020-01-15",
        "warranty_end_date": "2021-01-15",
        "service_status": "AMC",
        "service_start_date": "2024-01-01",
        "service_end_date": "2024-12-31",
        "invoice_number": "INV-1",
        "invoice_date": "2024-01-01",
        "amount": 12000,
    }
    data.update(kwargs)
    return data


@pytest.fixture
def record(admin, catalog):
    return admin.add_maintenance(record_data(catalog), today=TODAY)


@pytest.fixture
def expired_record(admin, record, store):
    """Force the live end date into the past, as time passing would."""
    store.update("maintenance_records", record.id, {"service_end_date": "2024-03-01"})
    admin.refresh()
    return admin.get_record(record.id)


# =============================================================================
# Sessions
# =============================================================================


class TestSessionRequired:
    """Tests for operations without a live session."""

    def test_mutation_without_session(self, store):
        console = Console(store, AuthService(store))
        with pytest.raises(SessionExpired):
            console.add_equipment({"name": "Monitor", "model_number": "M-20"})

    def test_logout_blocks_mutations(self, admin):
        admin.auth.logout()
        with pytest.raises(SessionExpired):
            admin.add_equipment({"name": "Monitor", "model_number": "M-20"})


# =============================================================================
# Customers and equipment
# =============================================================================


class TestCatalog:
    """Tests for customer/equipment add, edit and delete."""

    def test_add_and_list(self, admin, catalog):
        assert [c.name for c in admin.customers()] == ["City Hospital"]
        assert [e.display_name for e in admin.equipment()] == ["Ventilator - V-100"]

    def test_edit_customer_merges_fields(self, user, catalog):
        customer, _ = catalog
        edited = user.edit_customer(customer.id, {"notes": "Main campus"})
        assert edited.notes == "Main campus"
        assert edited.name == "City Hospital"

    def test_add_invalid_customer(self, user):
        with pytest.raises(ValidationError, match="Please fill in all required fields"):
            user.add_customer({"name": "Clinic"})

    def test_user_cannot_delete_customer(self, user, catalog):
        with pytest.raises(PermissionDenied):
            user.delete_customer(catalog[0].id)

    def test_referenced_customer_not_deleted(self, admin, catalog, record):
        with pytest.raises(ReferencedRecordError, match="associated maintenance records"):
            admin.delete_customer(catalog[0].id)
        assert admin.get_customer(catalog[0].id)

    def test_unreferenced_equipment_deleted(self, admin, catalog):
        admin.delete_equipment(catalog[1].id)
        with pytest.raises(RecordNotFound):
            admin.get_equipment(catalog[1].id)

    def test_referenced_equipment_only_notes_editable(self, admin, catalog, record):
        equipment = catalog[1]
        assert admin.edit_equipment(equipment.id, {"notes": "ICU"}).notes == "ICU"
        with pytest.raises(ReferencedRecordError, match="model_number"):
            admin.edit_equipment(equipment.id, {"model_number": "V-200"})

    def test_equipment_edit_refreshes_joined_records(self, admin, catalog, record):
        admin.edit_equipment(catalog[1].id, {"notes": "ICU"})
        assert admin.get_record(record.id).equipment.notes == "ICU"


# =============================================================================
# Maintenance records
# =============================================================================


class TestAddMaintenance:
    """Tests for add_maintenance."""

    def test_add_hydrates_relations(self, record):
        assert record.customer.name == "City Hospital"
        assert record.model_number == "V-100"
        assert record.service_contracts == []

    def test_incoming_history_ignored(self, admin, catalog):
        data = record_data(catalog, service_contracts=[{"service_status": "AMC"}])
        assert admin.add_maintenance(data, today=TODAY).service_contracts == []

    def test_unknown_customer(self, admin, catalog):
        with pytest.raises(RecordNotFound):
            admin.add_maintenance(record_data(catalog, customer_id="missing"), today=TODAY)

    def test_validation_before_write(self, admin, catalog, store):
        with pytest.raises(ValidationError):
            admin.add_maintenance(record_data(catalog, service_end_date="2024-01-01"), today=TODAY)
        assert store.query("maintenance_records") == []


class TestListMaintenance:
    """Tests for list_maintenance."""

    def test_filters_and_pages(self, admin, catalog):
        for n in range(12):
            status = "AMC" if n % 2 else "CAMC"
            admin.add_maintenance(
                record_data(catalog, serial_no=f"SN-{n}", service_status=status), today=TODAY
            )
        page = admin.list_maintenance(MaintenanceFilters(service_statuses=["AMC"]), 1, 10, TODAY)
        assert page.total == 6
        assert all(r.service_status == "AMC" for r in page.items)

        page = admin.list_maintenance(None, 2, 10, TODAY)
        assert page.total == 12
        assert len(page.items) == 2


class TestEditMaintenance:
    """Tests for edit_maintenance and the expiry gate."""

    def test_edit(self, user, record):
        edited = user.edit_maintenance(record.id, {"notes": "Checked"}, today=TODAY)
        assert edited.notes == "Checked"
        assert edited.serial_no == "SN-1"

    def test_switch_to_unbilled_clears_terms(self, user, record):
        edited = user.edit_maintenance(record.id, {"service_status": "END OF LIFE"}, today=TODAY)
        assert edited.service_end_date is None
        assert edited.amount == 0

    def test_history_not_overwritten(self, user, record):
        edited = user.edit_maintenance(
            record.id, {"service_contracts": [{"service_status": "AMC"}]}, today=TODAY
        )
        assert edited.service_contracts == []

    def test_expired_record_cannot_be_edited(self, admin, expired_record):
        with pytest.raises(PermissionDenied, match="Expired"):
            admin.edit_maintenance(expired_record.id, {"notes": "x"}, today=TODAY)


class TestDeleteMaintenance:
    """Tests for delete_maintenance."""

    def test_user_cannot_delete(self, user, record):
        with pytest.raises(PermissionDenied):
            user.delete_maintenance(record.id, today=TODAY)

    def test_cascades_visits(self, admin, record, store):
        admin.add_visit(record.id, {"scheduled_date": "2024-04-01"}, today=TODAY)
        admin.add_visit(record.id, {"scheduled_date": "2024-05-01"}, today=TODAY)
        assert admin.delete_maintenance(record.id, today=TODAY) == 2
        assert store.query("maintenance_visits") == []
        with pytest.raises(RecordNotFound):
            admin.get_record(record.id)

    def test_expired_record_cannot_be_deleted(self, admin, expired_record):
        with pytest.raises(PermissionDenied):
            admin.delete_maintenance(expired_record.id, today=TODAY)


class TestRenewMaintenance:
    """Tests for renewal through the console."""

    def test_renewal_draft(self, user, record):
        draft = user.renewal_draft(record.id)
        assert draft["service_status"] == ""
        assert len(draft["service_contracts"]) == 1

    def test_renew_expired_record(self, user, expired_record):
        renewed = user.renew_maintenance(
            expired_record.id,
            {
                "service_status": "CAMC",
                "service_start_date": "2024-03-20",
                "service_end_date": "2025-03-19",
                "invoice_number": "INV-2",
                "invoice_date": "2024-03-20",
                "amount": 15000,
            },
            today=TODAY,
        )
        assert renewed.id == expired_record.id
        assert renewed.service_status == "CAMC"
        assert not renewed.is_expired(TODAY)
        assert len(renewed.service_contracts) == 1
        archived = renewed.service_contracts[0]
        assert archived.service_status == "AMC"
        assert archived.service_end_date == "2024-03-01"
        assert archived.invoice_number == "INV-1"

    def test_renew_requires_new_terms(self, user, record):
        with pytest.raises(ValidationError, match="service_status"):
            user.renew_maintenance(record.id, {}, today=TODAY)
        assert user.get_record(record.id).service_contracts == []

    def test_history_grows_by_one_per_renewal(self, user, record):
        terms = {
            "service_status": "AMC",
            "service_start_date": "2025-01-01",
            "service_end_date": "2025-12-31",
            "invoice_number": "INV-2",
            "invoice_date": "2025-01-01",
            "amount": 100,
        }
        user.renew_maintenance(record.id, terms, today=TODAY)
        renewed = user.renew_maintenance(record.id, {**terms, "invoice_number": "INV-3"}, today=TODAY)
        assert [c.invoice_number for c in renewed.service_contracts] == ["INV-1", "INV-2"]


# =============================================================================
# Visits
# =============================================================================


class TestVisits:
    """Tests for visit add/edit/delete and cache merging."""

    def test_add_visit_merges_into_cache(self, user, record):
        user.records
        visit = user.add_visit(record.id, {"scheduled_date": "2024-04-01"}, today=TODAY)
        cached = user.get_record(record.id)
        assert cached.get_visit(visit.id) is not None
        assert visit.equipment_status == "Working"

    def test_add_visit_in_past_rejected(self, user, record):
        with pytest.raises(ValidationError, match="past"):
            user.add_visit(record.id, {"scheduled_date": "2024-03-01"}, today=TODAY)

    def test_complete_scheduled_visit(self, user, record):
        visit = user.add_visit(record.id, {"scheduled_date": "2024-03-21"}, today=TODAY)
        edited = user.edit_visit(
            visit.id,
            {
                "visit_status": "Attended",
                "visit_date": "2024-03-21",
                "work_done": "PM",
                "attended_by": "Ravi",
            },
            today=TODAY,
        )
        assert edited.visit_status == "Attended"
        assert user.get_record(record.id).get_visit(visit.id).work_done == "PM"

    def test_completing_requires_fields(self, user, record):
        visit = user.add_visit(record.id, {"scheduled_date": "2024-03-21"}, today=TODAY)
        with pytest.raises(ValidationError, match="work_done"):
            user.edit_visit(visit.id, {"visit_status": "Closed", "visit_date": "2024-03-21"}, today=TODAY)

    def test_locked_visit_admin_only(self, admin, user, record):
        visit = admin.add_visit(
            record.id,
            {
                "visit_status": "Attended",
                "visit_date": "2024-03-19",
                "work_done": "PM",
                "attended_by": "Ravi",
                "equipment_status": "Working",
            },
            today=TODAY,
        )
        later = date(2024, 4, 1)
        with pytest.raises(PermissionDenied, match="admin"):
            user.edit_visit(visit.id, {"comments": "late note"}, today=later)
        assert admin.edit_visit(visit.id, {"comments": "late note"}, today=later).comments == "late note"

    def test_overdue_scheduled_visit_editable(self, user, record):
        visit = user.add_visit(record.id, {"scheduled_date": "2024-03-21"}, today=TODAY)
        edited = user.edit_visit(visit.id, {"comments": "moved"}, today=date(2024, 6, 1))
        assert edited.comments is None
        assert edited.scheduled_date == "2024-03-21"

    def test_delete_visit_admin_only(self, admin, user, record):
        visit = user.add_visit(record.id, {"scheduled_date": "2024-04-01"}, today=TODAY)
        with pytest.raises(PermissionDenied):
            user.delete_visit(visit.id)
        admin.delete_visit(visit.id)
        assert admin.get_record(record.id).visits == []

    def test_expired_record_visits(self, admin, user, expired_record):
        with pytest.raises(PermissionDenied):
            user.add_visit(expired_record.id, {"scheduled_date": "2024-04-01"}, today=TODAY)
        visit = admin.add_visit(expired_record.id, {"scheduled_date": "2024-04-01"}, today=TODAY)
        assert visit.maintenance_record_id == expired_record.id

    def test_missing_visit(self, admin, record):
        with pytest.raises(RecordNotFound):
            admin.edit_visit("missing", {}, today=TODAY)

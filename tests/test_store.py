#!/usr/bin/env python3
"""Tests for the YAML record store and row loading."""

import pytest
import yaml

from biomed import RecordStore
from biomed.errors import RecordNotFound, StoreError
from biomed.loader import load_maintenance_record, load_maintenance_records, record_to_row


@pytest.fixture
def store(tmp_path):
    return RecordStore(tmp_path / "data" / "amc.yaml")


class TestRecordStoreBasics:
    """Tests for insert/get/update/delete."""

    def test_missing_file_is_empty(self, store):
        assert store.query("customers") == []
        assert not store.filename.exists()

    def test_insert_assigns_id_and_timestamps(self, store):
        row = store.insert("equipment", {"name": "Ventilator", "model_number": "V-100"})
        assert row["id"]
        assert row["created_at"] == row["updated_at"]
        assert store.get("equipment", row["id"])["name"] == "Ventilator"

    def test_file_written_as_yaml(self, store):
        store.insert("equipment", {"name": "Ventilator", "model_number": "V-100"})
        data = yaml.safe_load(store.filename.read_text())
        assert data["equipment"][0]["model_number"] == "V-100"
        assert data["maintenance_records"] == []

    def test_dates_stay_strings(self, store):
        row = store.insert("maintenance_visits", {"maintenance_record_id": "r1", "scheduled_date": "2024-04-01"})
        assert store.get("maintenance_visits", row["id"])["scheduled_date"] == "2024-04-01"

    def test_update_overwrites_fields(self, store):
        row = store.insert("equipment", {"name": "Ventilator", "model_number": "V-100"})
        store.update("equipment", row["id"], {"notes": "ICU", "id": "other"})
        updated = store.get("equipment", row["id"])
        assert updated["notes"] == "ICU"
        assert updated["name"] == "Ventilator"
        assert updated["created_at"] == row["created_at"]

    def test_update_missing_raises(self, store):
        with pytest.raises(RecordNotFound):
            store.update("equipment", "nope", {"notes": "x"})

    def test_delete(self, store):
        row = store.insert("equipment", {"name": "Ventilator", "model_number": "V-100"})
        store.delete("equipment", row["id"])
        assert store.get("equipment", row["id"]) is None

    def test_unknown_collection(self, store):
        with pytest.raises(StoreError, match="Unknown collection"):
            store.query("invoices")

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("customers: [unclosed\n")
        with pytest.raises(StoreError, match="Failed to read"):
            RecordStore(path).query("customers")


class TestRecordStoreRelations:
    """Tests for joined queries, reference counts and cascades."""

    @pytest.fixture
    def seeded(self, store):
        customer = store.insert("customers", {"name": "City Hospital"})
        equipment = store.insert("equipment", {"name": "Ventilator", "model_number": "V-100"})
        record = store.insert(
            "maintenance_records",
            {
                "customer_id": customer["id"],
                "equipment_id": equipment["id"],
                "serial_no": "SN-1",
                "service_status": "AMC",
                "service_contracts": [],
            },
        )
        for day in ("2024-04-01", "2024-05-01"):
            store.insert(
                "maintenance_visits",
                {"maintenance_record_id": record["id"], "visit_status": "Scheduled", "scheduled_date": day},
            )
        return store, customer, equipment, record

    def test_query_with_relations(self, seeded):
        store, customer, equipment, record = seeded
        rows = store.query("maintenance_records", ("customer", "equipment", "visits"))
        assert rows[0]["customer"]["name"] == "City Hospital"
        assert rows[0]["equipment"]["model_number"] == "V-100"
        assert len(rows[0]["visits"]) == 2

    def test_unknown_relation(self, seeded):
        store = seeded[0]
        with pytest.raises(StoreError, match="Unknown relation"):
            store.query("customers", ("visits",))

    def test_check_references(self, seeded):
        store, customer, equipment, record = seeded
        assert store.check_references("maintenance_records", "customer_id", customer["id"]) == 1
        assert store.check_references("maintenance_records", "equipment_id", "other") == 0

    def test_delete_where(self, seeded):
        store, _, _, record = seeded
        assert store.delete_where("maintenance_visits", "maintenance_record_id", record["id"]) == 2
        assert store.query("maintenance_visits") == []

    def test_load_maintenance_records(self, seeded):
        store, customer, equipment, record = seeded
        records = load_maintenance_records(store)
        assert len(records) == 1
        loaded = records[0]
        assert loaded.customer.name == "City Hospital"
        assert loaded.model_number == "V-100"
        assert [v.scheduled_date for v in loaded.visits] == ["2024-04-01", "2024-05-01"]

    def test_load_single_record(self, seeded):
        store, _, _, record = seeded
        assert load_maintenance_record(store, record["id"]).serial_no == "SN-1"
        assert load_maintenance_record(store, "missing") is None

    def test_record_to_row_excludes_relations(self, seeded):
        store, _, _, record = seeded
        row = record_to_row(load_maintenance_record(store, record["id"]))
        assert "customer" not in row
        assert "visits" not in row
        assert row["service_contracts"] == []

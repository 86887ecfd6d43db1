#!/usr/bin/env python3
"""Tests for validate_yaml schema validation."""

from biomed import AuthService, Console, RecordStore, create_user
from validate_yaml import check_references, load_schema, main, validate_data_file


class TestLoadSchema:
    """Tests for load_schema function."""

    def test_returns_dict(self):
        schema = load_schema()
        assert isinstance(schema, dict)

    def test_has_expected_structure(self):
        schema = load_schema()
        assert "maintenance_records" in schema["properties"]
        assert "maintenance_visits" in schema["properties"]


class TestValidateDataFile:
    """Tests for validate_data_file function."""

    def test_store_written_file_is_valid(self, tmp_path):
        """A file written through the console validates cleanly."""
        path = tmp_path / "amc.yaml"
        store = RecordStore(path)
        create_user(store, "admin@example.com", "pw", "admin")
        auth = AuthService(store)
        auth.login("admin@example.com", "pw")
        console = Console(store, auth)
        customer = console.add_customer(
            {
                "name": "City Hospital",
                "bio_medical_email": "bme@city.example",
                "bio_medical_contact": "555-0100",
                "bio_medical_hod_name": "Dr. Rao",
            }
        )
        equipment = console.add_equipment({"name": "Ventilator", "model_number": "V-100"})
        record = console.add_maintenance(
            {
                "customer_id": customer.id,
                "equipment_id": equipment.id,
                "serial_no": "SN-1",
                "installation_date": "2020-01-15",
                "warranty_end_date": "2021-01-15",
                "service_status": "END OF LIFE",
            }
        )
        console.add_visit(record.id, {"scheduled_date": "2099-01-01"})

        assert validate_data_file(path, load_schema()) == []

    def test_empty_file_is_valid(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert validate_data_file(path, load_schema()) == []

    def test_unknown_status_returns_errors(self, tmp_path):
        """Bad enum value returns schema validation errors with a path."""
        path = tmp_path / "invalid.yaml"
        path.write_text("""
maintenance_records:
  - id: r1
    customer_id: c1
    equipment_id: e1
    serial_no: SN-1
    service_status: LEASE
""")
        errors = validate_data_file(path, load_schema())
        assert any("Schema validation error" in e for e in errors)
        assert any("maintenance_records.0.service_status" in e for e in errors)

    def test_unquoted_date_rejected(self, tmp_path):
        """Hand-edited dates must stay quoted strings."""
        path = tmp_path / "invalid.yaml"
        path.write_text("""
maintenance_visits:
  - id: v1
    maintenance_record_id: r1
    visit_status: Scheduled
    scheduled_date: 2024-04-01
""")
        errors = validate_data_file(path, load_schema())
        assert errors

    def test_dangling_reference(self, tmp_path):
        path = tmp_path / "dangling.yaml"
        path.write_text("""
customers: []
equipment: []
maintenance_records:
  - id: r1
    customer_id: c1
    equipment_id: e1
    serial_no: SN-1
    service_status: AMC
""")
        errors = validate_data_file(path, load_schema())
        assert "maintenance_records r1: customer_id 'c1' not found in customers" in errors

    def test_yaml_parse_error(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("customers: [unclosed\n")
        errors = validate_data_file(path, load_schema())
        assert errors[0].startswith("YAML parse error")


class TestCheckReferences:
    """Tests for check_references."""

    def test_duplicate_ids(self):
        data = {"equipment": [{"id": "e1"}, {"id": "e1"}]}
        assert check_references(data) == ["Duplicate id in equipment: e1"]


class TestMain:
    """Tests for the validate_yaml entry point."""

    def test_missing_file_fails(self, tmp_path, capsys):
        assert main([str(tmp_path / "none.yaml")]) == 1
        assert "File not found" in capsys.readouterr().out

    def test_ok(self, tmp_path, capsys):
        path = tmp_path / "ok.yaml"
        path.write_text("customers: []\n")
        assert main([str(path)]) == 0
        assert "OK: ok.yaml" in capsys.readouterr().out

#!/usr/bin/env python3
"""Tests for contract renewal drafts."""

from biomed import MaintenanceRecord, ServiceContract, build_renewal_draft


def make_record(**kwargs):
    defaults = dict(
        id="r1",
        customer_id="c1",
        equipment_id="e1",
        serial_no="SN-1",
        installation_date="2020-01-15",
        warranty_end_date="2021-01-15",
        service_status="AMC",
        service_start_date="2023-04-01",
        service_end_date="2024-03-31",
        invoice_number="INV-7",
        invoice_date="2023-04-01",
        amount=12000,
        notes="first term",
    )
    defaults.update(kwargs)
    return MaintenanceRecord(**defaults)


class TestBuildRenewalDraft:
    """Tests for build_renewal_draft."""

    def test_appends_live_slice(self):
        draft = build_renewal_draft(make_record())
        assert draft["service_contracts"] == [
            {
                "service_status": "AMC",
                "service_start_date": "2023-04-01",
                "service_end_date": "2024-03-31",
                "invoice_number": "INV-7",
                "invoice_date": "2023-04-01",
                "amount": 12000,
                "notes": "first term",
            }
        ]

    def test_blanks_live_fields(self):
        draft = build_renewal_draft(make_record())
        assert draft["service_status"] == ""
        assert draft["service_start_date"] == ""
        assert draft["service_end_date"] == ""
        assert draft["invoice_number"] == ""
        assert draft["invoice_date"] == ""
        assert draft["amount"] == 0
        assert draft["notes"] == ""

    def test_keeps_identity_and_equipment_fields(self):
        draft = build_renewal_draft(make_record())
        assert draft["id"] == "r1"
        assert draft["serial_no"] == "SN-1"
        assert draft["installation_date"] == "2020-01-15"

    def test_preserves_prior_history(self):
        older = ServiceContract("WARRANTY", "2020-01-15", "2021-01-15", "INV-1", "2020-01-15", 0)
        draft = build_renewal_draft(make_record(service_contracts=[older]))
        assert len(draft["service_contracts"]) == 2
        assert draft["service_contracts"][0]["service_status"] == "WARRANTY"
        assert draft["service_contracts"][1]["service_status"] == "AMC"

    def test_does_not_mutate_record(self):
        record = make_record()
        build_renewal_draft(record)
        assert record.service_status == "AMC"
        assert record.service_contracts == []

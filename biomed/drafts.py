"""
Add/Edit drafts for customers, equipment and maintenance records.

A draft is one variant of a tagged union keyed by ``kind``. ``clean()`` turns
raw form/API input into a store payload or raises a single ValidationError:

1. keep known fields only (joined relations are dropped)
2. normalize (dates to ISO, numbers, status-driven force-nulling)
3. check required fields for the variant
4. check date rules
5. check shape against the variant's JSON Schema in schemas.yaml
"""

from datetime import date
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Type

import yaml
from jsonschema import Draft7Validator

from .calculations import is_before_yesterday, to_date
from .errors import ValidationError
from .service_contract import CONTRACT_FIELDS
from .status import BILLABLE_STATUSES, UNBILLED_STATUSES, value_of

SCHEMA_PATH = Path(__file__).parent / "schemas.yaml"

ALWAYS_REQUIRED = (
    "customer_id",
    "equipment_id",
    "serial_no",
    "installation_date",
    "warranty_end_date",
    "service_status",
)
CONTRACT_TERM_FIELDS = (
    "service_start_date",
    "service_end_date",
    "invoice_number",
    "invoice_date",
)
BILLABLE_REQUIRED = CONTRACT_TERM_FIELDS + ("amount",)
MAINTENANCE_DATE_FIELDS = (
    "installation_date",
    "warranty_end_date",
    "service_start_date",
    "service_end_date",
    "invoice_date",
)


@lru_cache(maxsize=None)
def _load_schemas() -> Dict[str, Any]:
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def load_schema(kind: str) -> Dict[str, Any]:
    """JSON Schema for a draft kind, with the shared definitions attached."""
    schemas = _load_schemas()
    return {"definitions": schemas["definitions"], **schemas[kind]}


def check_schema(kind: str, payload: Mapping[str, Any]) -> None:
    """Raise ValidationError listing every schema violation in payload."""
    validator = Draft7Validator(load_schema(kind))
    errors = sorted(validator.iter_errors(payload), key=lambda e: [str(p) for p in e.path])
    if errors:
        messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.path)
            messages.append(f"{path}: {error.message}" if path else error.message)
        raise ValidationError("; ".join(messages))


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def missing_fields(data: Mapping[str, Any], fields: Iterable[str]) -> List[str]:
    return [field for field in fields if is_blank(data.get(field))]


def require(data: Mapping[str, Any], fields: Iterable[str]) -> None:
    """Reject with one message naming every missing field."""
    missing = missing_fields(data, fields)
    if missing:
        raise ValidationError(f"Please fill in all required fields: {', '.join(missing)}")


def normalize_dates(data: Dict[str, Any], fields: Iterable[str]) -> None:
    """Rewrite date fields in place as 'YYYY-MM-DD' (blank becomes None)."""
    for field in fields:
        if field not in data:
            continue
        value = data[field]
        if is_blank(value):
            data[field] = None
            continue
        try:
            data[field] = to_date(value).isoformat()
        except (TypeError, ValueError):
            raise ValidationError(f"Invalid date for {field}: {value!r}")


def to_number(field: str, value: Any) -> Optional[float]:
    if is_blank(value):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid number for {field}: {value!r}")
    if isinstance(value, (int, float)):
        return value
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number for {field}: {value!r}")


class Draft:
    """Base draft variant."""

    kind: str = ""
    fields: Tuple[str, ...] = ()
    required: Tuple[str, ...] = ()

    def __init__(self, data: Mapping[str, Any]):
        self.data = {key: value for key, value in data.items() if key in self.fields}

    def clean(self, today: Optional[date] = None) -> Dict[str, Any]:
        payload = dict(self.data)
        self.normalize(payload)
        require(payload, self.required_for(payload))
        self.check_rules(payload, today)
        check_schema(self.kind, payload)
        return payload

    def normalize(self, payload: Dict[str, Any]) -> None:
        for key, value in payload.items():
            if isinstance(value, str):
                payload[key] = value.strip()

    def required_for(self, payload: Mapping[str, Any]) -> Tuple[str, ...]:
        return self.required

    def check_rules(self, payload: Mapping[str, Any], today: Optional[date]) -> None:
        pass


class CustomerDraft(Draft):
    kind = "customer"
    fields = (
        "name",
        "bio_medical_email",
        "bio_medical_contact",
        "bio_medical_hod_name",
        "notes",
    )
    required = ("name", "bio_medical_email", "bio_medical_contact", "bio_medical_hod_name")


class EquipmentDraft(Draft):
    kind = "equipment"
    fields = ("name", "model_number", "notes")
    required = ("name", "model_number")


class MaintenanceDraft(Draft):
    """
    Maintenance record draft.

    Field requirements depend on service_status: WARRANTY/AMC/CAMC need the
    full contract term and an end date no earlier than yesterday;
    CALIBRATION/ONCALL SERVICE/END OF LIFE have no billing period, so their
    term fields are nulled and amount zeroed whatever was submitted.
    """

    kind = "maintenance"
    fields = ALWAYS_REQUIRED + BILLABLE_REQUIRED + (
        "equipment_purchase_value",
        "notes",
        "service_contracts",
    )
    required = ALWAYS_REQUIRED

    def normalize(self, payload: Dict[str, Any]) -> None:
        super().normalize(payload)
        if "service_status" in payload:
            payload["service_status"] = value_of(payload["service_status"])
        if payload.get("service_status") in UNBILLED_STATUSES:
            for field in CONTRACT_TERM_FIELDS:
                payload[field] = None
            payload["amount"] = 0
        normalize_dates(payload, MAINTENANCE_DATE_FIELDS)
        for field in ("amount", "equipment_purchase_value"):
            if field in payload:
                payload[field] = to_number(field, payload[field])
        if payload.get("amount") is None and payload.get("service_status") not in BILLABLE_STATUSES:
            payload["amount"] = 0
        if "service_contracts" in payload:
            payload["service_contracts"] = [
                self._normalize_contract(contract)
                for contract in payload["service_contracts"] or []
            ]

    @staticmethod
    def _normalize_contract(contract: Mapping[str, Any]) -> Dict[str, Any]:
        snapshot = {field: contract.get(field) for field in CONTRACT_FIELDS}
        snapshot["service_status"] = value_of(snapshot["service_status"]) or ""
        normalize_dates(snapshot, ("service_start_date", "service_end_date", "invoice_date"))
        snapshot["amount"] = to_number("amount", snapshot["amount"])
        return snapshot

    def required_for(self, payload: Mapping[str, Any]) -> Tuple[str, ...]:
        if payload.get("service_status") in BILLABLE_STATUSES:
            return ALWAYS_REQUIRED + BILLABLE_REQUIRED
        return ALWAYS_REQUIRED

    def check_rules(self, payload: Mapping[str, Any], today: Optional[date]) -> None:
        if payload.get("service_status") not in BILLABLE_STATUSES:
            return
        if is_before_yesterday(payload["service_end_date"], today):
            raise ValidationError("Service end date cannot be earlier than yesterday")


DRAFT_KINDS: Dict[str, Type[Draft]] = {
    CustomerDraft.kind: CustomerDraft,
    EquipmentDraft.kind: EquipmentDraft,
    MaintenanceDraft.kind: MaintenanceDraft,
}


def make_draft(kind: str, data: Mapping[str, Any]) -> Draft:
    """Build the draft variant for kind ('customer', 'equipment', 'maintenance')."""
    try:
        draft_class = DRAFT_KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown draft kind '{kind}'")
    return draft_class(data)

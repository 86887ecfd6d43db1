"""
Filter engine for maintenance records.

``filter_maintenance_records`` is a pure, stable filter: every active
criterion must hold (logical AND) and surviving records keep their input
order. Absent or empty criteria place no constraint, so applying the same
filters twice gives the same result as applying them once.
"""

from dataclasses import dataclass, fields
from datetime import date
from typing import Any, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from .calculations import DateLike, age_in_years, is_expired, to_date
from .maintenance_record import MaintenanceRecord
from .status import value_of


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-date range; either bound may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    @classmethod
    def of(cls, start: DateLike = None, end: DateLike = None) -> "DateRange":
        return cls(to_date(start), to_date(end))

    @property
    def is_open(self) -> bool:
        return self.start is None and self.end is None

    def contains(self, value: DateLike) -> bool:
        """
        Start compares >= at midnight, end compares <= at end of day, which
        for calendar dates is an inclusive check on both sides. A missing
        value never matches a bounded range.
        """
        day = to_date(value)
        if day is None:
            return False
        if self.start is not None and day < self.start:
            return False
        if self.end is not None and day > self.end:
            return False
        return True

    def describe(self) -> str:
        start = self.start.isoformat() if self.start else "any"
        end = self.end.isoformat() if self.end else "any"
        return f"{start} to {end}"


@dataclass(frozen=True)
class AgeRange:
    """Equipment age bounds in (fractional) years."""

    min: Optional[float] = None
    max: Optional[float] = None

    @property
    def is_open(self) -> bool:
        return self.min is None and self.max is None


def matches_age_range(age_years: Optional[float], age_range: AgeRange) -> bool:
    """
    Check an age against an AgeRange.

    With min == 0 the upper bound is exclusive, so "0 to 1" means "under one
    year"; for any other min the upper bound is inclusive.
    """
    if age_range.is_open:
        return True
    if age_years is None:
        return False
    if age_range.min is not None and age_years < age_range.min:
        return False
    if age_range.max is not None:
        if age_range.min == 0:
            if age_years >= age_range.max:
                return False
        elif age_years > age_range.max:
            return False
    return True


def parse_csv_set(text: Optional[str]) -> FrozenSet[str]:
    """Split 'a, b,c' into {'a', 'b', 'c'}; blanks are dropped."""
    if not text:
        return frozenset()
    return frozenset(part.strip() for part in text.split(",") if part.strip())


@dataclass(frozen=True)
class MaintenanceFilters:
    """Filter criteria. Every field is optional; None or empty means no constraint."""

    customer_ids: Optional[Sequence[str]] = None
    equipment_ids: Optional[Sequence[str]] = None
    serial_no: Optional[str] = None
    model_number: Optional[str] = None
    installation_date_range: Optional[DateRange] = None
    warranty_end_date_range: Optional[DateRange] = None
    service_start_date_range: Optional[DateRange] = None
    service_end_date_range: Optional[DateRange] = None
    service_date_range: Optional[DateRange] = None
    service_statuses: Optional[Sequence[str]] = None
    record_statuses: Optional[Sequence[str]] = None
    age_range: Optional[AgeRange] = None

    @property
    def is_empty(self) -> bool:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, (DateRange, AgeRange)):
                if not value.is_open:
                    return False
            elif value:
                return False
        return True

    @classmethod
    def from_mapping(cls, args: Mapping[str, Any]) -> "MaintenanceFilters":
        """
        Build filters from flat query-string/CLI style values.

        List fields accept a list or a comma-separated string. Date ranges use
        '<name>_from'/'<name>_to' keys; the age range uses 'age_min'/'age_max'.
        """

        def as_list(key: str) -> Optional[List[str]]:
            value = args.get(key)
            if not value:
                return None
            if isinstance(value, str):
                return sorted(parse_csv_set(value))
            return [value_of(v) for v in value]

        def as_range(name: str) -> Optional[DateRange]:
            start, end = args.get(f"{name}_from"), args.get(f"{name}_to")
            if not start and not end:
                return None
            return DateRange.of(start or None, end or None)

        def as_float(key: str) -> Optional[float]:
            value = args.get(key)
            if value is None or value == "":
                return None
            return float(value)

        age_min, age_max = as_float("age_min"), as_float("age_max")
        return cls(
            customer_ids=as_list("customer_ids"),
            equipment_ids=as_list("equipment_ids"),
            serial_no=args.get("serial_no") or None,
            model_number=args.get("model_number") or None,
            installation_date_range=as_range("installation_date"),
            warranty_end_date_range=as_range("warranty_end_date"),
            service_start_date_range=as_range("service_start_date"),
            service_end_date_range=as_range("service_end_date"),
            service_date_range=as_range("service_date"),
            service_statuses=as_list("service_statuses"),
            record_statuses=as_list("record_statuses"),
            age_range=AgeRange(age_min, age_max) if age_min is not None or age_max is not None else None,
        )

    def describe(self) -> List[str]:
        """Human-readable lines for report headers."""
        lines = []
        if self.customer_ids:
            lines.append(f"Customers: {', '.join(self.customer_ids)}")
        if self.equipment_ids:
            lines.append(f"Equipment: {', '.join(self.equipment_ids)}")
        if self.serial_no:
            lines.append(f"Serial numbers: {self.serial_no}")
        if self.model_number:
            lines.append(f"Model numbers: {self.model_number}")
        ranges = (
            ("Installation date", self.installation_date_range),
            ("Warranty end date", self.warranty_end_date_range),
            ("Service start date", self.service_start_date_range),
            ("Service end date", self.service_end_date_range),
            ("Service period", self.service_date_range),
        )
        for label, date_range in ranges:
            if date_range and not date_range.is_open:
                lines.append(f"{label}: {date_range.describe()}")
        if self.service_statuses:
            lines.append(f"Service status: {', '.join(value_of(s) for s in self.service_statuses)}")
        if self.record_statuses:
            lines.append(f"Record status: {', '.join(value_of(s) for s in self.record_statuses)}")
        if self.age_range and not self.age_range.is_open:
            low = "0" if self.age_range.min is None else f"{self.age_range.min:g}"
            high = "any" if self.age_range.max is None else f"{self.age_range.max:g}"
            lines.append(f"Age (years): {low} to {high}")
        return lines


def _as_set(values: Optional[Iterable[Any]]) -> FrozenSet[str]:
    return frozenset(value_of(v) for v in values or ())


def filter_maintenance_records(
    records: Iterable[MaintenanceRecord],
    filters: MaintenanceFilters,
    today: Optional[date] = None,
) -> List[MaintenanceRecord]:
    """Return the records satisfying every active criterion, in input order."""
    today = today or date.today()
    customer_ids = _as_set(filters.customer_ids)
    equipment_ids = _as_set(filters.equipment_ids)
    serial_numbers = parse_csv_set(filters.serial_no)
    model_numbers = parse_csv_set(filters.model_number)
    service_statuses = _as_set(filters.service_statuses)
    record_statuses = _as_set(filters.record_statuses)

    date_checks = [
        (filters.installation_date_range, ("installation_date",)),
        (filters.warranty_end_date_range, ("warranty_end_date",)),
        (filters.service_start_date_range, ("service_start_date",)),
        (filters.service_end_date_range, ("service_end_date",)),
        (filters.service_date_range, ("service_start_date", "service_end_date")),
    ]
    date_checks = [(r, attrs) for r, attrs in date_checks if r is not None and not r.is_open]

    def matches(record: MaintenanceRecord) -> bool:
        if customer_ids and record.customer_id not in customer_ids:
            return False
        if equipment_ids and record.equipment_id not in equipment_ids:
            return False
        if serial_numbers and record.serial_no not in serial_numbers:
            return False
        if model_numbers and record.model_number not in model_numbers:
            return False

        for date_range, attrs in date_checks:
            if not all(date_range.contains(getattr(record, attr)) for attr in attrs):
                return False

        if service_statuses and record.service_status not in service_statuses:
            return False

        if record_statuses:
            status = "expired" if is_expired(record.service_end_date, today) else "active"
            if status not in record_statuses:
                return False

        if filters.age_range is not None:
            if not matches_age_range(age_in_years(record.installation_date, today), filters.age_range):
                return False

        return True

    return [record for record in records if matches(record)]

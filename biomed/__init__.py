"""
Medical-equipment maintenance contract models.

This package provides the data models and rules of the contract console:
- ServiceStatus / RecordStatus / VisitStatus / Role: status vocabularies
- Customer, Equipment: catalog entities
- MaintenanceRecord: live contract, contract history and visits
- Visit: scheduled or completed site visit
- ServiceContract: one contract term (live or archived)
- filter_maintenance_records: the filter engine
- build_renewal_draft: contract renewal
- RecordStore / Console: persistence and operator actions
"""

from .status import ServiceStatus, RecordStatus, VisitStatus, Role
from .customer import Customer
from .equipment import Equipment
from .visit import Visit
from .service_contract import ServiceContract
from .maintenance_record import MaintenanceRecord
from .calculations import months_between, format_age, is_expired, age_in_years
from .filters import (
    AgeRange,
    DateRange,
    MaintenanceFilters,
    filter_maintenance_records,
    matches_age_range,
)
from .visit_rules import (
    NO_UPCOMING_VISITS,
    get_next_visit_date,
    is_visit_locked,
    validate_visit,
)
from .renewal import build_renewal_draft
from .drafts import make_draft
from .store import RecordStore
from .auth import AuthService, Session, create_user
from .console import Console
from .errors import (
    ConsoleError,
    ValidationError,
    PermissionDenied,
    AuthenticationError,
    ReferencedRecordError,
    StoreError,
    RecordNotFound,
    SessionExpired,
)

__all__ = [
    "ServiceStatus",
    "RecordStatus",
    "VisitStatus",
    "Role",
    "Customer",
    "Equipment",
    "Visit",
    "ServiceContract",
    "MaintenanceRecord",
    "months_between",
    "format_age",
    "is_expired",
    "age_in_years",
    "AgeRange",
    "DateRange",
    "MaintenanceFilters",
    "filter_maintenance_records",
    "matches_age_range",
    "NO_UPCOMING_VISITS",
    "get_next_visit_date",
    "is_visit_locked",
    "validate_visit",
    "build_renewal_draft",
    "make_draft",
    "RecordStore",
    "AuthService",
    "Session",
    "create_user",
    "Console",
    "ConsoleError",
    "ValidationError",
    "PermissionDenied",
    "AuthenticationError",
    "ReferencedRecordError",
    "StoreError",
    "RecordNotFound",
    "SessionExpired",
]

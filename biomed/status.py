"""Status vocabularies for maintenance records, visits and users."""

from enum import Enum


class ServiceStatus(str, Enum):
    """Contract type of a maintenance record. Governs which fields are required."""

    WARRANTY = "WARRANTY"
    CAMC = "CAMC"
    AMC = "AMC"
    CALIBRATION = "CALIBRATION"
    ONCALL_SERVICE = "ONCALL SERVICE"
    END_OF_LIFE = "END OF LIFE"


# Plain string values: members of a str Enum hash by name, not by value.
BILLABLE_STATUSES = frozenset(
    s.value for s in (ServiceStatus.WARRANTY, ServiceStatus.AMC, ServiceStatus.CAMC)
)
UNBILLED_STATUSES = frozenset(
    s.value
    for s in (ServiceStatus.CALIBRATION, ServiceStatus.ONCALL_SERVICE, ServiceStatus.END_OF_LIFE)
)


class RecordStatus(str, Enum):
    """Derived active/expired label of a record (distinct from ServiceStatus)."""

    ACTIVE = "active"
    EXPIRED = "expired"


class VisitStatus(str, Enum):
    """Visit lifecycle. Closed is terminal by convention only."""

    SCHEDULED = "Scheduled"
    ATTENDED = "Attended"
    CLOSED = "Closed"


class Role(str, Enum):
    ADMIN = "admin"
    USER = "user"


def value_of(status) -> str:
    """Plain string value of an enum member or a raw status string."""
    return status.value if isinstance(status, Enum) else status

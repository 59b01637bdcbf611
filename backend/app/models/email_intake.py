"""
Pydantic models for the notification intake feature.

Models:
  ParsedLead          — fields pulled from a "New Lead" notification
  ParsedBooking       — fields pulled from a "New Booking" notification
  Customer            — row in the customers table
  Appointment         — row in the appointments table
  AutomationLogEntry  — row in the append-only automation_logs table
"""

from datetime import datetime
from typing import Any, ClassVar, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

# Every record this subsystem creates is tagged with this source
NOTIFICATION_SOURCE = "external-notification"


# ---------------------------------------------------------------------------
# Parsed notification bodies
# ---------------------------------------------------------------------------

class _ParsedFields(BaseModel):
    """Shared config: snake_case in Python, camelCase in API responses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    # Subset of fields echoed back in the webhook response
    RESPONSE_FIELDS: ClassVar[frozenset[str]] = frozenset()

    def response_fields(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, include=set(self.RESPONSE_FIELDS))


class ParsedLead(_ParsedFields):
    """Lead fields. Unmatched fields stay at their empty defaults."""

    RESPONSE_FIELDS = frozenset({
        "first_name", "last_name", "email", "phone", "service", "frequency", "price",
    })

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    zip: str = ""
    service: str = ""
    frequency: str = ""
    price: float = 0.0

    @property
    def has_contact_details(self) -> bool:
        return bool(self.email or self.phone or self.first_name or self.last_name)


class ParsedBooking(_ParsedFields):
    """
    Booking fields.

    scheduled_at is derived by the temporal normalizer; scheduled_at_fallback
    is True when the date could not be parsed and ingestion time was used.
    """

    RESPONSE_FIELDS = frozenset({
        "first_name", "last_name", "email", "phone", "date", "time",
        "address", "service", "total",
    })

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    date: str = ""
    time: str = ""
    address: str = ""
    service: str = ""
    frequency: str = ""
    total: float = 0.0
    scheduled_at: Optional[datetime] = None
    scheduled_at_fallback: bool = False


# ---------------------------------------------------------------------------
# Record store rows
# ---------------------------------------------------------------------------

class Customer(BaseModel):
    """customers row. email is unique per tenant when present."""
    model_config = {"from_attributes": True}

    id: Optional[str] = None
    tenant_id: str
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    source: str = NOTIFICATION_SOURCE
    notes: Optional[str] = None

    def to_row(self) -> dict:
        return self.model_dump(exclude={"id"} if self.id is None else set())


class Appointment(BaseModel):
    """appointments row. The table stores scheduled_at as scheduled_start."""
    model_config = {"from_attributes": True}

    id: Optional[str] = None
    tenant_id: str
    customer_id: Optional[str] = None
    scheduled_at: datetime
    status: str = "confirmed"
    address: Optional[str] = None
    notes: Optional[str] = None
    source: str = NOTIFICATION_SOURCE

    def to_row(self) -> dict:
        row = self.model_dump(mode="json", exclude={"id"} if self.id is None else set())
        row["scheduled_start"] = row.pop("scheduled_at")
        return row

    @classmethod
    def from_row(cls, row: dict) -> "Appointment":
        data = dict(row)
        if "scheduled_start" in data:
            data["scheduled_at"] = data.pop("scheduled_start")
        return cls.model_validate(data)


class AutomationLogEntry(BaseModel):
    """automation_logs row. Append-only; never updated or deleted here."""

    tenant_id: str
    automation_type: str = "email_parse"
    trigger_type: str
    target_id: Optional[str] = None
    target_type: str
    customer_id: Optional[str] = None
    message_content: str = ""
    status: str = "processed"
    metadata: dict[str, Any] = {}

    def to_row(self) -> dict:
        return self.model_dump(mode="json")

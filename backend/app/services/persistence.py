"""
Persistence gateway for notification intake.

PersistenceGateway is the only way the intake pipeline touches the CRM's
record store. The handler receives a gateway instance, so tests can swap in
an in-memory implementation and assert the exact write sequence.

SupabaseGateway talks to the customers / appointments / automation_logs
tables through the Supabase (PostgREST) client. Customer creation is an
atomic insert-or-fetch keyed on (tenant_id, email): it relies on the unique
index from supabase/migrations/*_customers_tenant_email_unique.sql and an
upsert with ignore-duplicates, so two concurrent requests for the same new
address can never both insert.

Every failure, including a breach of the client's per-call timeout, is
raised as PersistenceError.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from app.models.email_intake import Appointment, AutomationLogEntry, Customer

logger = logging.getLogger(__name__)

CUSTOMERS_TABLE = "customers"
APPOINTMENTS_TABLE = "appointments"
AUTOMATION_LOGS_TABLE = "automation_logs"

# Columns of the unique index backing find-or-create
_CUSTOMER_CONFLICT_COLUMNS = "tenant_id,email"


class PersistenceError(Exception):
    """A record store read or write failed (or timed out)."""


class PersistenceGateway(ABC):
    """Tenant-scoped record store operations used by the intake pipeline."""

    @abstractmethod
    def find_customer_by_email(self, tenant_id: str, email: str) -> Optional[Customer]:
        """Return the tenant's customer with this email, or None."""

    @abstractmethod
    def create_customer(self, customer: Customer) -> tuple[Customer, bool]:
        """
        Insert a customer, or fetch the existing one.

        When customer.email is set this is an atomic insert-or-fetch on
        (tenant_id, email); the existing row is returned untouched. Without
        an email it is a plain insert.

        Returns (customer, created).
        """

    @abstractmethod
    def create_appointment(self, appointment: Appointment) -> Appointment:
        """Insert an appointment and return the stored row."""

    @abstractmethod
    def append_automation_log(self, entry: AutomationLogEntry) -> None:
        """Append an audit log entry."""

    @abstractmethod
    def delete_customer(self, tenant_id: str, customer_id: str) -> None:
        """Remove a customer created earlier in the same request."""


class SupabaseGateway(PersistenceGateway):
    """PersistenceGateway backed by the Supabase admin client."""

    def __init__(self, client: Any):
        self._client = client

    def _table(self, name: str) -> Any:
        if self._client is None:
            raise PersistenceError(
                "SUPABASE_SERVICE_KEY is required for notification intake"
            )
        return self._client.table(name)

    def _execute(self, operation: str, query: Any) -> list[dict]:
        """Run a PostgREST query, mapping every failure to PersistenceError."""
        try:
            result = query.execute()
        except httpx.TimeoutException as exc:
            logger.error(f"{operation} timed out: {exc}")
            raise PersistenceError(f"{operation} timed out") from exc
        except Exception as exc:
            logger.error(f"{operation} failed: {exc}")
            raise PersistenceError(f"{operation} failed: {exc}") from exc
        return result.data or []

    def find_customer_by_email(self, tenant_id: str, email: str) -> Optional[Customer]:
        rows = self._execute(
            "customer lookup",
            self._table(CUSTOMERS_TABLE)
            .select("*")
            .eq("tenant_id", tenant_id)
            .eq("email", email)
            .limit(1),
        )
        return Customer(**rows[0]) if rows else None

    def create_customer(self, customer: Customer) -> tuple[Customer, bool]:
        table = self._table(CUSTOMERS_TABLE)

        if not customer.email:
            rows = self._execute("customer insert", table.insert(customer.to_row()))
            if not rows:
                raise PersistenceError("customer insert returned no data")
            return Customer(**rows[0]), True

        # ON CONFLICT DO NOTHING: returns the new row, or nothing if it existed
        rows = self._execute(
            "customer upsert",
            table.upsert(
                customer.to_row(),
                on_conflict=_CUSTOMER_CONFLICT_COLUMNS,
                ignore_duplicates=True,
            ),
        )
        if rows:
            return Customer(**rows[0]), True

        existing = self.find_customer_by_email(customer.tenant_id, customer.email)
        if existing is None:
            raise PersistenceError(
                f"customer {customer.email!r} conflicted on insert but could not be fetched"
            )
        return existing, False

    def create_appointment(self, appointment: Appointment) -> Appointment:
        rows = self._execute(
            "appointment insert",
            self._table(APPOINTMENTS_TABLE).insert(appointment.to_row()),
        )
        if not rows:
            raise PersistenceError("appointment insert returned no data")
        return Appointment.from_row(rows[0])

    def append_automation_log(self, entry: AutomationLogEntry) -> None:
        self._execute(
            "automation log insert",
            self._table(AUTOMATION_LOGS_TABLE).insert(entry.to_row()),
        )

    def delete_customer(self, tenant_id: str, customer_id: str) -> None:
        self._execute(
            "customer delete",
            self._table(CUSTOMERS_TABLE)
            .delete()
            .eq("id", customer_id)
            .eq("tenant_id", tenant_id),
        )

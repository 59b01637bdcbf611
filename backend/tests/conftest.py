"""
Shared fixtures for the intake tests.

InMemoryGateway is a PersistenceGateway that keeps rows in dicts and records
every call, so handler tests can assert the exact write sequence without a
database. Operations listed in ``fail_on`` raise PersistenceError.
"""

import os
import threading
import uuid

import pytest

# Ensure env vars are set before importing anything that triggers app imports
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_KEY", "test.service.key")

from app.models.email_intake import Appointment, AutomationLogEntry, Customer
from app.services.persistence import PersistenceError, PersistenceGateway


class InMemoryGateway(PersistenceGateway):
    def __init__(self, fail_on: set[str] | None = None):
        self.customers: dict[str, Customer] = {}
        self.appointments: dict[str, Appointment] = {}
        self.automation_logs: list[AutomationLogEntry] = []
        self.calls: list[str] = []
        self.fail_on = set(fail_on or ())
        self._lock = threading.Lock()

    def _record(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise PersistenceError(f"{operation} failed: simulated outage")

    def customers_for(self, tenant_id: str) -> list[Customer]:
        return [c for c in list(self.customers.values()) if c.tenant_id == tenant_id]

    def find_customer_by_email(self, tenant_id, email):
        self._record("find_customer_by_email")
        for customer in list(self.customers.values()):
            if customer.tenant_id == tenant_id and customer.email == email:
                return customer
        return None

    def create_customer(self, customer):
        self._record("create_customer")
        with self._lock:
            if customer.email:
                for existing in self.customers.values():
                    if existing.tenant_id == customer.tenant_id and existing.email == customer.email:
                        return existing, False
            stored = customer.model_copy(update={"id": str(uuid.uuid4())})
            self.customers[stored.id] = stored
            return stored, True

    def create_appointment(self, appointment):
        self._record("create_appointment")
        stored = appointment.model_copy(update={"id": str(uuid.uuid4())})
        self.appointments[stored.id] = stored
        return stored

    def append_automation_log(self, entry):
        self._record("append_automation_log")
        self.automation_logs.append(entry)

    def delete_customer(self, tenant_id, customer_id):
        self._record("delete_customer")
        customer = self.customers.get(customer_id)
        if customer is not None and customer.tenant_id == tenant_id:
            del self.customers[customer_id]


@pytest.fixture()
def gateway():
    return InMemoryGateway()


@pytest.fixture()
def make_gateway():
    """Factory for gateways that fail on selected operations."""
    return InMemoryGateway

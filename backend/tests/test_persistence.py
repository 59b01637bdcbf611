"""
SupabaseGateway tests.

Tests mock the Supabase client chain. No real DB calls.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import httpx
import pytest

from app.models.email_intake import Appointment, AutomationLogEntry, Customer
from app.services.persistence import PersistenceError, SupabaseGateway


# ---------------------------------------------------------------------------
# Supabase chain mock helper
# ---------------------------------------------------------------------------

def _make_supabase_chain(*results):
    """
    Build a MagicMock that returns results[i] from the i-th .execute() call,
    regardless of which chaining methods (.eq, .select, .insert, etc.) were called.
    Exceptions in results are raised instead.
    """
    mock = MagicMock()
    mock.select.return_value = mock
    mock.eq.return_value = mock
    mock.insert.return_value = mock
    mock.upsert.return_value = mock
    mock.delete.return_value = mock
    mock.limit.return_value = mock
    mock.execute.side_effect = [
        r if isinstance(r, Exception) else Mock(data=r) for r in results
    ]
    return mock


def _make_client(chain):
    client = MagicMock()
    client.table.return_value = chain
    return client


def _customer_row(customer_id="cust-1", email="jane@example.com"):
    return {
        "id": customer_id,
        "tenant_id": "tenant-1",
        "first_name": "Jane",
        "last_name": "Smith",
        "email": email,
        "phone": "4155550100",
        "address": None,
        "source": "external-notification",
        "notes": None,
        "created_at": "2026-10-19T00:00:00Z",
    }


class TestFindCustomerByEmail:

    def test_returns_customer(self):
        chain = _make_supabase_chain([_customer_row()])
        gateway = SupabaseGateway(_make_client(chain))

        customer = gateway.find_customer_by_email("tenant-1", "jane@example.com")

        assert customer.id == "cust-1"
        chain.eq.assert_any_call("tenant_id", "tenant-1")
        chain.eq.assert_any_call("email", "jane@example.com")

    def test_returns_none_when_missing(self):
        gateway = SupabaseGateway(_make_client(_make_supabase_chain([])))
        assert gateway.find_customer_by_email("tenant-1", "x@example.com") is None


class TestCreateCustomer:

    def test_upsert_inserts_new_customer(self):
        chain = _make_supabase_chain([_customer_row()])
        gateway = SupabaseGateway(_make_client(chain))

        customer, created = gateway.create_customer(
            Customer(tenant_id="tenant-1", email="jane@example.com")
        )

        assert created is True
        assert customer.id == "cust-1"
        args, kwargs = chain.upsert.call_args
        assert kwargs["on_conflict"] == "tenant_id,email"
        assert kwargs["ignore_duplicates"] is True
        assert "id" not in args[0]

    def test_conflict_fetches_existing_customer(self):
        """Upsert returns no row on conflict; the existing row is fetched."""
        chain = _make_supabase_chain([], [_customer_row(customer_id="cust-existing")])
        gateway = SupabaseGateway(_make_client(chain))

        customer, created = gateway.create_customer(
            Customer(tenant_id="tenant-1", email="jane@example.com")
        )

        assert created is False
        assert customer.id == "cust-existing"

    def test_conflict_without_fetchable_row_raises(self):
        chain = _make_supabase_chain([], [])
        gateway = SupabaseGateway(_make_client(chain))

        with pytest.raises(PersistenceError):
            gateway.create_customer(Customer(tenant_id="tenant-1", email="jane@example.com"))

    def test_customer_without_email_is_plain_insert(self):
        chain = _make_supabase_chain([_customer_row(email=None)])
        gateway = SupabaseGateway(_make_client(chain))

        _, created = gateway.create_customer(Customer(tenant_id="tenant-1", first_name="Jane"))

        assert created is True
        chain.insert.assert_called_once()
        chain.upsert.assert_not_called()


class TestCreateAppointment:

    def test_maps_scheduled_start_column(self):
        row = {
            "id": "appt-1",
            "tenant_id": "tenant-1",
            "customer_id": "cust-1",
            "scheduled_start": "2026-01-15T14:30:00+00:00",
            "status": "confirmed",
            "address": "12 Market St",
            "notes": "n",
            "source": "external-notification",
        }
        chain = _make_supabase_chain([row])
        gateway = SupabaseGateway(_make_client(chain))

        appointment = gateway.create_appointment(
            Appointment(
                tenant_id="tenant-1",
                customer_id="cust-1",
                scheduled_at=datetime(2026, 1, 15, 14, 30, tzinfo=timezone.utc),
            )
        )

        inserted = chain.insert.call_args[0][0]
        assert inserted["scheduled_start"] == "2026-01-15T14:30:00Z"
        assert "scheduled_at" not in inserted
        assert appointment.id == "appt-1"
        assert appointment.scheduled_at == datetime(2026, 1, 15, 14, 30, tzinfo=timezone.utc)

    def test_empty_insert_result_raises(self):
        gateway = SupabaseGateway(_make_client(_make_supabase_chain([])))
        with pytest.raises(PersistenceError, match="no data"):
            gateway.create_appointment(
                Appointment(tenant_id="tenant-1", scheduled_at=datetime.now(timezone.utc))
            )


class TestFailureMapping:

    def test_timeout_becomes_persistence_error(self):
        chain = _make_supabase_chain(httpx.ReadTimeout("read timed out"))
        gateway = SupabaseGateway(_make_client(chain))

        with pytest.raises(PersistenceError, match="timed out"):
            gateway.find_customer_by_email("tenant-1", "jane@example.com")

    def test_api_error_becomes_persistence_error(self):
        chain = _make_supabase_chain(RuntimeError("permission denied"))
        gateway = SupabaseGateway(_make_client(chain))

        with pytest.raises(PersistenceError, match="permission denied"):
            gateway.append_automation_log(
                AutomationLogEntry(tenant_id="tenant-1", trigger_type="t", target_type="customer")
            )

    def test_missing_client_raises(self):
        with pytest.raises(PersistenceError, match="SUPABASE_SERVICE_KEY"):
            SupabaseGateway(None).find_customer_by_email("tenant-1", "jane@example.com")


class TestDeleteCustomer:

    def test_scoped_by_tenant(self):
        chain = _make_supabase_chain([])
        gateway = SupabaseGateway(_make_client(chain))

        gateway.delete_customer("tenant-1", "cust-1")

        chain.delete.assert_called_once()
        chain.eq.assert_any_call("id", "cust-1")
        chain.eq.assert_any_call("tenant_id", "tenant-1")

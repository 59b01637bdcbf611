"""
Notification ingestion pipeline.

IngestionHandler turns one inbound vendor notification into CRM records:

  classify -> extract -> normalize (bookings) -> resolve customer
           -> write lead / appointment -> append audit log -> response

The pipeline is strictly sequential and holds no state between requests.
All record store access goes through the injected PersistenceGateway.

Failure handling:
  - Irrelevant mail (wrong sender, unknown subject) is a normal outcome and
    returns {"success": False, "message": ...}.
  - Record store failures raise PersistenceError to the caller.
  - If a booking's appointment write fails after this request created its
    customer, the customer is deleted again before the error propagates.
  - Audit log failures are logged and swallowed; the business record stands.
"""

import logging
from datetime import datetime
from typing import Optional

from app.models.email_intake import (
    NOTIFICATION_SOURCE,
    Appointment,
    AutomationLogEntry,
    Customer,
    ParsedBooking,
    ParsedLead,
)
from app.models.inbound_email import InboundEmail
from app.services.classifier import EmailKind, classify_email, get_trusted_domain
from app.services.customer_resolver import normalize_email, resolve_customer
from app.services.field_extractor import parse_booking, parse_lead
from app.services.persistence import PersistenceGateway
from app.services.temporal_normalizer import get_intake_timezone, normalize_datetime

logger = logging.getLogger(__name__)

LEAD_TRIGGER = "notification_lead"
BOOKING_TRIGGER = "notification_booking"


def _format_amount(amount: float) -> str:
    return f"{amount:.2f}"


def _lead_notes(lead: ParsedLead) -> str:
    return (
        f"Service: {lead.service}, Frequency: {lead.frequency}, "
        f"Quoted: ${_format_amount(lead.price)}"
    )


def _booking_notes(booking: ParsedBooking) -> str:
    return (
        f"Service: {booking.service}\n"
        f"Frequency: {booking.frequency}\n"
        f"Total: ${_format_amount(booking.total)}\n\n"
        "Parsed from vendor notification email"
    )


class IngestionHandler:
    """Runs the intake pipeline for one notification at a time."""

    def __init__(
        self,
        gateway: PersistenceGateway,
        trusted_domain: Optional[str] = None,
        tz=None,
    ):
        self.gateway = gateway
        self.trusted_domain = trusted_domain or get_trusted_domain()
        self.tz = tz or get_intake_timezone()

    def handle(self, email: InboundEmail, now: Optional[datetime] = None) -> dict:
        """
        Process one notification and return the response body.

        Steps:
        1. Classify; short-circuit on NOT_APPLICABLE / UNCLASSIFIED.
        2. Extract the lead or booking field set.
        3. Bookings: normalize date/time into scheduled_at.
        4. Resolve (find-or-create) the customer.
        5. Write the lead customer or the appointment.
        6. Append an audit log entry (best-effort).

        Raises:
            PersistenceError: a record store write failed.
        """
        kind = classify_email(email, self.trusted_domain)

        if kind is EmailKind.NOT_APPLICABLE:
            logger.info(f"Ignoring notification from untrusted sender {email.sender!r}")
            return {
                "success": False,
                "message": f"Not a notification from {self.trusted_domain}; no action taken",
            }

        if kind is EmailKind.UNCLASSIFIED:
            logger.info(f"Subject {email.subject!r} is neither a lead nor a booking")
            return {"success": False, "message": "Not a lead or booking email"}

        if kind is EmailKind.LEAD:
            return self._handle_lead(email)
        return self._handle_booking(email, now=now)

    # ------------------------------------------------------------------
    # Lead path
    # ------------------------------------------------------------------

    def _handle_lead(self, email: InboundEmail) -> dict:
        tenant_id = email.tenant_id
        lead = parse_lead(email.body)

        contact = Customer(
            tenant_id=tenant_id,
            first_name=lead.first_name,
            last_name=lead.last_name,
            email=normalize_email(lead.email) or None,
            phone=lead.phone or None,
            address=f"Zip: {lead.zip}" if lead.zip else None,
            notes=_lead_notes(lead),
        )

        customer_id: Optional[str] = None
        if contact.email:
            resolved = resolve_customer(self.gateway, tenant_id, contact)
            customer_id = resolved.id if resolved else None
        elif lead.has_contact_details:
            # Uniqueness only applies to customers with an email
            customer, _ = self.gateway.create_customer(contact)
            customer_id = customer.id
            logger.info(f"Created customer {customer_id} for lead without email")
        else:
            logger.warning(f"Lead notification for tenant {tenant_id} had no contact details")

        self._append_log(
            AutomationLogEntry(
                tenant_id=tenant_id,
                trigger_type=LEAD_TRIGGER,
                target_id=customer_id,
                target_type="customer",
                customer_id=customer_id,
                message_content=f"New lead: {lead.first_name} {lead.last_name} - {lead.email}",
                metadata={
                    "service": lead.service,
                    "frequency": lead.frequency,
                    "price": lead.price,
                    "zip": lead.zip,
                },
            )
        )

        return {
            "success": True,
            "type": EmailKind.LEAD.value,
            "customer_id": customer_id,
            "parsed": lead.response_fields(),
        }

    # ------------------------------------------------------------------
    # Booking path
    # ------------------------------------------------------------------

    def _handle_booking(self, email: InboundEmail, now: Optional[datetime] = None) -> dict:
        tenant_id = email.tenant_id
        booking = parse_booking(email.body, vendor_domain=self.trusted_domain)

        normalized = normalize_datetime(booking.date, booking.time, tz=self.tz, now=now)
        booking.scheduled_at = normalized.value
        booking.scheduled_at_fallback = normalized.fallback

        resolved = resolve_customer(
            self.gateway,
            tenant_id,
            Customer(
                tenant_id=tenant_id,
                first_name=booking.first_name,
                last_name=booking.last_name,
                email=booking.email or None,
                phone=booking.phone or None,
                address=booking.address or None,
            ),
        )
        customer_id = resolved.id if resolved else None

        try:
            appointment = self.gateway.create_appointment(
                Appointment(
                    tenant_id=tenant_id,
                    customer_id=customer_id,
                    scheduled_at=booking.scheduled_at,
                    address=booking.address or None,
                    notes=_booking_notes(booking),
                    source=NOTIFICATION_SOURCE,
                )
            )
        except Exception:
            if resolved is not None and resolved.created:
                self._compensate_customer(tenant_id, resolved.id)
            raise

        self._append_log(
            AutomationLogEntry(
                tenant_id=tenant_id,
                trigger_type=BOOKING_TRIGGER,
                target_id=appointment.id,
                target_type="appointment",
                customer_id=customer_id,
                message_content=(
                    f"New booking: {booking.first_name} {booking.last_name} - "
                    f"{booking.date} {booking.time}"
                ),
                metadata={
                    "date": booking.date,
                    "time": booking.time,
                    "address": booking.address,
                    "service": booking.service,
                    "frequency": booking.frequency,
                    "total": booking.total,
                    "scheduled_at": booking.scheduled_at.isoformat(),
                    "scheduled_at_fallback": booking.scheduled_at_fallback,
                },
            )
        )

        return {
            "success": True,
            "type": EmailKind.BOOKING.value,
            "appointment_id": appointment.id,
            "customer_id": customer_id,
            "scheduled_at": booking.scheduled_at.isoformat(),
            "scheduled_at_fallback": booking.scheduled_at_fallback,
            "parsed": booking.response_fields(),
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _compensate_customer(self, tenant_id: str, customer_id: str) -> None:
        """Undo a customer insert whose appointment could not be written."""
        try:
            self.gateway.delete_customer(tenant_id, customer_id)
            logger.warning(f"Deleted customer {customer_id} after appointment write failed")
        except Exception as exc:
            logger.error(
                f"Could not delete orphan customer {customer_id} for tenant {tenant_id}: {exc}"
            )

    def _append_log(self, entry: AutomationLogEntry) -> None:
        """Audit logging is fire-and-forget; a failure never fails the request."""
        try:
            self.gateway.append_automation_log(entry)
        except Exception as exc:
            logger.warning(f"Failed to append automation log ({entry.trigger_type}): {exc}")

"""
Notification classifier.

Decides whether an inbound email came from the trusted lead/booking vendor
and, if so, which record type it describes.

The sender check is a hard gate: anything not sent from the vendor domain (or
one of its subdomains) is NOT_APPLICABLE regardless of subject. Subject
matching is a case-insensitive substring test with a fixed precedence —
"new lead" beats "new booking" when both appear.
"""

import logging
import os
import re
from enum import Enum
from typing import Optional

from app.models.inbound_email import InboundEmail

logger = logging.getLogger(__name__)

DEFAULT_TRUSTED_DOMAIN = "convertlabs.io"

_LEAD_MARKER = "new lead"
_BOOKING_MARKER = "new booking"


class EmailKind(str, Enum):
    LEAD = "lead"
    BOOKING = "booking"
    NOT_APPLICABLE = "not_applicable"
    UNCLASSIFIED = "unclassified"


def get_trusted_domain() -> str:
    """Vendor domain from TRUSTED_SENDER_DOMAIN, falling back to the default."""
    domain = os.getenv("TRUSTED_SENDER_DOMAIN", "").strip().lower()
    return domain or DEFAULT_TRUSTED_DOMAIN


def sender_domain(sender: str) -> str:
    """
    Return the lower-cased domain of a sender address.

    Accepts a bare address or the display form "Name <addr@host>".
    Returns "" when no address can be found.
    """
    if not sender:
        return ""
    # Some forwarders wrap the address: "Name <addr@host>"
    match = re.search(r"<([^>]+)>", sender)
    addr = match.group(1) if match else sender.strip()
    _, at, domain = addr.rpartition("@")
    if not at:
        return ""
    return domain.strip().rstrip(".").lower()


def is_trusted_sender(sender: str, trusted_domain: Optional[str] = None) -> bool:
    trusted = (trusted_domain or get_trusted_domain()).lower()
    domain = sender_domain(sender)
    if not domain:
        return False
    return domain == trusted or domain.endswith("." + trusted)


def classify_email(email: InboundEmail, trusted_domain: Optional[str] = None) -> EmailKind:
    """Classify a notification as LEAD, BOOKING, NOT_APPLICABLE or UNCLASSIFIED."""
    if not is_trusted_sender(email.sender, trusted_domain):
        return EmailKind.NOT_APPLICABLE

    subject = email.subject.lower()
    is_lead = _LEAD_MARKER in subject
    is_booking = _BOOKING_MARKER in subject

    if is_lead and is_booking:
        logger.warning(
            f"Subject {email.subject!r} mentions both a lead and a booking; "
            "treating it as a lead"
        )
    if is_lead:
        return EmailKind.LEAD
    if is_booking:
        return EmailKind.BOOKING
    return EmailKind.UNCLASSIFIED

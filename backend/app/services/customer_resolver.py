"""
Tenant-scoped customer resolution (find-or-create by email).

Existing customers are returned unchanged: a notification never edits a
customer the CRM already owns. Duplicate prevention lives in the gateway's
atomic insert-or-fetch, so the lookup here is only a fast path for the
common repeat-customer case.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from app.models.email_intake import NOTIFICATION_SOURCE, Customer
from app.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedCustomer:
    id: str
    created: bool


def normalize_email(email: Optional[str]) -> str:
    """Emails are keyed trimmed and lower-cased."""
    return (email or "").strip().lower()


def resolve_customer(
    gateway: PersistenceGateway,
    tenant_id: str,
    contact: Customer,
) -> Optional[ResolvedCustomer]:
    """
    Find or create the tenant's customer for contact.email.

    Args:
        gateway:   record store
        tenant_id: owning tenant; overrides contact.tenant_id
        contact:   parsed contact details used only when a new row is needed

    Returns:
        ResolvedCustomer, or None when there is no email to resolve against.
    """
    email = normalize_email(contact.email)
    if not email:
        logger.info(f"No email in notification for tenant {tenant_id}; skipping customer resolution")
        return None

    existing = gateway.find_customer_by_email(tenant_id, email)
    if existing is not None:
        logger.info(f"Matched existing customer {existing.id} for {email!r}")
        return ResolvedCustomer(id=existing.id, created=False)

    candidate = contact.model_copy(
        update={"id": None, "tenant_id": tenant_id, "email": email, "source": NOTIFICATION_SOURCE}
    )
    customer, created = gateway.create_customer(candidate)
    if created:
        logger.info(f"Created customer {customer.id} for {email!r}")
    else:
        # Another request inserted the same address between lookup and insert
        logger.info(f"Customer for {email!r} was created concurrently; reusing {customer.id}")
    return ResolvedCustomer(id=customer.id, created=created)

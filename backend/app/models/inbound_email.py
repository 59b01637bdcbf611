"""
Inbound vendor notification model.

The webhook posts a flat JSON body (subject, body, from, tenant_id). ``from``
is a Python keyword, so it is exposed here as ``sender`` with an alias; the
handler and services work exclusively with this model.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator


class InboundEmail(BaseModel):
    """
    A single forwarded notification email, scoped to one tenant.

    Transient: never persisted, lives for a single request.
    """

    model_config = {"populate_by_name": True, "extra": "ignore"}

    subject: str = ""
    body: str = ""
    sender: str = Field("", alias="from")
    tenant_id: str

    @field_validator("subject", "body", "sender", mode="before")
    @classmethod
    def coerce_missing_text(cls, v: Any) -> Any:
        """Forwarders send null for empty headers; treat it as an empty string."""
        if v is None:
            return ""
        return v

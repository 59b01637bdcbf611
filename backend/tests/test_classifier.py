"""
Unit tests for the notification classifier.
"""

import logging

import pytest

from app.models.inbound_email import InboundEmail
from app.services.classifier import (
    EmailKind,
    classify_email,
    get_trusted_domain,
    is_trusted_sender,
    sender_domain,
)


def _email(subject: str = "New Lead Notification", sender: str = "alerts@convertlabs.io") -> InboundEmail:
    return InboundEmail(subject=subject, body="", sender=sender, tenant_id="tenant-1")


# ---------------------------------------------------------------------------
# sender_domain / is_trusted_sender
# ---------------------------------------------------------------------------

class TestSenderDomain:

    def test_bare_address(self):
        assert sender_domain("alerts@ConvertLabs.io") == "convertlabs.io"

    def test_display_name_form(self):
        assert sender_domain("ConvertLabs <noreply@mail.convertlabs.io>") == "mail.convertlabs.io"

    def test_no_address_returns_empty(self):
        assert sender_domain("ConvertLabs") == ""

    def test_empty_returns_empty(self):
        assert sender_domain("") == ""


class TestIsTrustedSender:

    def test_exact_domain(self):
        assert is_trusted_sender("alerts@convertlabs.io", "convertlabs.io") is True

    def test_subdomain(self):
        assert is_trusted_sender("alerts@mail.convertlabs.io", "convertlabs.io") is True

    def test_lookalike_domain_rejected(self):
        """A domain that merely contains the vendor name is not trusted."""
        assert is_trusted_sender("alerts@convertlabs.io.evil.com", "convertlabs.io") is False
        assert is_trusted_sender("alerts@notconvertlabs.io", "convertlabs.io") is False

    def test_trusted_domain_from_env(self, monkeypatch):
        monkeypatch.setenv("TRUSTED_SENDER_DOMAIN", "Leads.Example.com")
        assert get_trusted_domain() == "leads.example.com"
        assert is_trusted_sender("bot@leads.example.com") is True
        assert is_trusted_sender("alerts@convertlabs.io") is False

    def test_default_domain_when_env_unset(self, monkeypatch):
        monkeypatch.delenv("TRUSTED_SENDER_DOMAIN", raising=False)
        assert get_trusted_domain() == "convertlabs.io"


# ---------------------------------------------------------------------------
# classify_email
# ---------------------------------------------------------------------------

class TestClassifyEmail:

    @pytest.mark.parametrize("subject", ["New Lead Notification", "New Booking!", "", "hello"])
    def test_untrusted_sender_is_not_applicable_regardless_of_subject(self, subject):
        email = _email(subject=subject, sender="someone@gmail.com")
        assert classify_email(email, "convertlabs.io") is EmailKind.NOT_APPLICABLE

    def test_new_lead_case_insensitive(self):
        assert classify_email(_email("NEW LEAD: Jane"), "convertlabs.io") is EmailKind.LEAD
        assert classify_email(_email("you have a new lead"), "convertlabs.io") is EmailKind.LEAD

    def test_new_booking(self):
        assert classify_email(_email("New Booking from Jane"), "convertlabs.io") is EmailKind.BOOKING

    def test_unrelated_subject_is_unclassified(self):
        assert classify_email(_email("Your weekly report"), "convertlabs.io") is EmailKind.UNCLASSIFIED

    def test_both_markers_prefers_lead_and_warns(self, caplog):
        """Ambiguous subjects resolve to LEAD by fixed precedence."""
        with caplog.at_level(logging.WARNING, logger="app.services.classifier"):
            kind = classify_email(_email("New booking / new lead"), "convertlabs.io")
        assert kind is EmailKind.LEAD
        assert "both a lead and a booking" in caplog.text

"""
Field extraction for vendor notification bodies.

Notification bodies are loosely formatted "Label: value" text. Each field is
described declaratively in FIELD_GRAMMAR as an ordered tuple of patterns:
the colon forms ("First Name: John") are tried first, then the looser
no-colon forms ("First Name John"). The first pattern that matches wins.

Supporting a new vendor wording means adding a label alias to the grammar,
not a new branch in the parsing code.

Every function here is pure and never raises on missing data: absence is
an empty string (or 0.0 for amounts).
"""

import itertools
import logging
import re
from typing import Optional

from app.models.email_intake import ParsedBooking, ParsedLead
from app.services.classifier import is_trusted_sender

logger = logging.getLogger(__name__)


def _label_patterns(*labels: str) -> tuple[re.Pattern, ...]:
    """
    Build the ordered pattern list for a field and its aliases.

    All colon forms come before all loose forms so that "Email Address: x"
    is never read as "Email" with value "Address: x".
    """
    colon_forms = [
        re.compile(rf"\b{re.escape(label)}[ \t]*:[ \t]*([^\r\n]+)", re.IGNORECASE)
        for label in labels
    ]
    loose_forms = [
        re.compile(rf"\b{re.escape(label)}[ \t]+([^\r\n]+)", re.IGNORECASE)
        for label in labels
    ]
    return tuple(colon_forms + loose_forms)


# label -> ordered patterns
FIELD_GRAMMAR: dict[str, tuple[re.Pattern, ...]] = {
    "First Name": _label_patterns("First Name"),
    "Last Name": _label_patterns("Last Name"),
    "Email": _label_patterns("Email", "Email Address"),
    "Phone": _label_patterns("Phone", "Phone Number"),
    "Zip": _label_patterns("Zip", "Zip Code", "Postal Code"),
    "Service": _label_patterns("Service"),
    "Frequency": _label_patterns("Frequency"),
    "Price": _label_patterns("Price", "Quote"),
    "Date": _label_patterns("Date"),
    "Time": _label_patterns("Time"),
    "Address": _label_patterns("Address", "Service Address"),
    "Total": _label_patterns("Total"),
}

# Optional "$", digits with optional thousands separators, optional decimals
_PRICE_RE = re.compile(r"\$?(\d[\d,]*(?:\.\d+)?)")

# Optional "+", a digit, then 9+ digit/space/hyphen/parenthesis characters.
# Newlines are excluded so numbers on adjacent lines are never joined.
_PHONE_RE = re.compile(r"\+?\d[\d \t\-()]{9,}")
_MIN_PHONE_DIGITS = 10

# M-D-YYYY dates are cut out before scanning so "01-15-2026 10:30" never
# reads as a ten-digit number
_DATE_LIKE_RE = re.compile(r"\b\d{1,2}[-/]\d{1,2}[-/]\d{4}\b")

_EMAIL_RE = re.compile(r"[\w.+-]+@[\w-]+(?:\.[\w-]+)*\.[A-Za-z]{2,}")

# Booking notifications name the customer as "... from Jane Smith"
_FROM_NAME_RE = re.compile(r"\bfrom[ \t]+([^\r\n]+)", re.IGNORECASE)


def extract_field(text: str, field_name: str) -> str:
    """
    Return the value for a labelled field, or "" when nothing matches.

    Labels registered in FIELD_GRAMMAR use their aliases; any other label
    gets the default colon / no-colon pair.
    """
    if not text:
        return ""
    patterns = FIELD_GRAMMAR.get(field_name) or _label_patterns(field_name)
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return ""


def extract_price(text: str) -> float:
    """
    Parse the first monetary amount in text.

    Examples:
        "$1,234.50 quoted" -> 1234.5
        "220"              -> 220.0
        "call us"          -> 0.0
    """
    if not text:
        return 0.0
    match = _PRICE_RE.search(text)
    if not match:
        return 0.0
    try:
        return float(match.group(1).replace(",", ""))
    except ValueError:
        logger.debug(f"extract_price: could not convert {match.group(1)!r}")
        return 0.0


def extract_phone(text: str) -> str:
    """
    Return the first phone-like number in text with formatting stripped.

    "Call +1 (415) 555-0100 now" -> "+14155550100". Candidates with fewer
    than 10 digits are skipped, and dates such as 01-15-2026 are never
    part of a candidate.
    """
    if not text:
        return ""
    for match in _PHONE_RE.finditer(_DATE_LIKE_RE.sub("\n", text)):
        raw = match.group(0)
        digits = re.sub(r"\D", "", raw)
        if len(digits) < _MIN_PHONE_DIGITS:
            continue
        return ("+" if raw.startswith("+") else "") + digits
    return ""


def extract_email(text: str, exclude_domain: Optional[str] = None) -> str:
    """
    Return the first e-mail address in text.

    Addresses at exclude_domain (or its subdomains) are skipped so the
    vendor's own no-reply address is never taken for the customer's.
    """
    if not text:
        return ""
    for match in _EMAIL_RE.finditer(text):
        address = match.group(0)
        if exclude_domain and is_trusted_sender(address, exclude_domain):
            continue
        return address
    return ""


def extract_sender_name(text: str) -> tuple[str, str]:
    """
    Split the name in a "from NAME" phrase into (first_name, last_name).

    Anything after "<", "(" or "," is dropped, as is any token from the first
    one containing "@" onwards and trailing punctuation.
    """
    if not text:
        return "", ""
    match = _FROM_NAME_RE.search(text)
    if not match:
        return "", ""
    full_name = re.split(r"[<(,]", match.group(1), maxsplit=1)[0]
    tokens = full_name.split()
    full_name = " ".join(itertools.takewhile(lambda token: "@" not in token, tokens))
    full_name = full_name.strip().rstrip(".!:;").strip()
    if not full_name:
        return "", ""
    first, _, rest = full_name.partition(" ")
    return first, " ".join(rest.split())


# ---------------------------------------------------------------------------
# Field sets
# ---------------------------------------------------------------------------

def parse_lead(body: str) -> ParsedLead:
    """Extract the lead field set from a "New Lead" notification body."""
    labelled_phone = extract_field(body, "Phone")
    return ParsedLead(
        first_name=extract_field(body, "First Name"),
        last_name=extract_field(body, "Last Name"),
        email=extract_email(extract_field(body, "Email")),
        phone=extract_phone(labelled_phone) or labelled_phone or extract_phone(body),
        zip=extract_field(body, "Zip"),
        service=extract_field(body, "Service"),
        frequency=extract_field(body, "Frequency"),
        price=extract_price(extract_field(body, "Price")),
    )


def parse_booking(body: str, vendor_domain: Optional[str] = None) -> ParsedBooking:
    """
    Extract the booking field set from a "New Booking" notification body.

    Booking notifications name the customer in a "from NAME" phrase and carry
    the e-mail address unlabelled, so both come from free-text scans.
    scheduled_at is left for the temporal normalizer.
    """
    first_name, last_name = extract_sender_name(body)
    labelled_phone = extract_field(body, "Phone")
    return ParsedBooking(
        first_name=first_name,
        last_name=last_name,
        email=extract_email(body, exclude_domain=vendor_domain),
        phone=extract_phone(labelled_phone) or extract_phone(body),
        date=extract_field(body, "Date"),
        time=extract_field(body, "Time"),
        address=extract_field(body, "Address"),
        service=extract_field(body, "Service"),
        frequency=extract_field(body, "Frequency"),
        total=extract_price(extract_field(body, "Total")),
    )

#!/usr/bin/env python3
"""
Dev helper: send a sample vendor notification to the local intake backend.

Builds a "New Lead" or "New Booking" notification in the vendor's format and
POST-s it to the /api/email-intake/notifications endpoint.

Usage
-----
# Basic: lead notification for tenant "demo-tenant", targeting localhost:8000
python scripts/send_test_notification.py

# Booking notification
python scripts/send_test_notification.py --kind booking

# Booking with a specific date/time
python scripts/send_test_notification.py --kind booking --date 03-14-2026 --time "10:30 AM"

# Custom tenant, customer address or sender
python scripts/send_test_notification.py --tenant 6f1c... --email jane@example.com
python scripts/send_test_notification.py --from someone@gmail.com   # rejected sender

# Print the payload without sending it
python scripts/send_test_notification.py --dry-run

Environment / .env
------------------
TRUSTED_SENDER_DOMAIN    Vendor domain used for the default sender address
                         (default: convertlabs.io).
"""

import argparse
import json
import os
import sys
import textwrap
from pathlib import Path

import httpx
from dotenv import load_dotenv


# ---------------------------------------------------------------------------
# Sample notification bodies
# ---------------------------------------------------------------------------

def _lead_body(first: str, last: str, email: str) -> str:
    return textwrap.dedent(f"""\
        You have a new lead!

        First Name: {first}
        Last Name: {last}
        Email: {email}
        Phone: (415) 555-0100
        Zip: 94110
        Service: Deep Clean
        Frequency: Monthly
        Price: $220.00
    """)


def _booking_body(first: str, last: str, email: str, date: str, time: str) -> str:
    return textwrap.dedent(f"""\
        You received a new booking from {first} {last}
        {email}
        +1 (415) 555-0100

        Date: {date}
        Time: {time}
        Address: 12 Market St, San Francisco, CA
        Service: Standard Clean
        Frequency: Weekly
        Total: $1,150.00
    """)


_SUBJECTS = {
    "lead": "New Lead Notification",
    "booking": "New Booking Notification",
}


# ---------------------------------------------------------------------------
# Pretty printer
# ---------------------------------------------------------------------------

def _print_response(response: httpx.Response) -> None:
    status = response.status_code
    symbol = "OK" if status == 200 else "FAIL"
    print(f"\n[{symbol}] HTTP {status}")
    try:
        body = response.json()
        print(json.dumps(body, indent=2))
    except ValueError:
        print(response.text)


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> int:
    # Locate project root (scripts/ lives one level below the root)
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")
    load_dotenv(project_root / "backend" / ".env")

    vendor_domain = os.getenv("TRUSTED_SENDER_DOMAIN", "convertlabs.io")

    parser = argparse.ArgumentParser(
        prog="send_test_notification.py",
        description="Send a sample lead/booking notification to the intake backend.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              python scripts/send_test_notification.py
              python scripts/send_test_notification.py --kind booking
              python scripts/send_test_notification.py --kind booking --date garbage
              python scripts/send_test_notification.py --url http://localhost:8001
        """),
    )
    parser.add_argument("--url", default="http://localhost:8000",
                        help="Backend base URL (default: http://localhost:8000)")
    parser.add_argument("--kind", choices=list(_SUBJECTS), default="lead",
                        help="Notification type to send (default: lead)")
    parser.add_argument("--tenant", default="demo-tenant", help="tenant_id to file records under")
    parser.add_argument("--first", default="Jane", help="Customer first name")
    parser.add_argument("--last", default="Smith", help="Customer last name")
    parser.add_argument("--email", default="jane@example.com", help="Customer email")
    parser.add_argument("--date", default="01-15-2026", help="Booking date, M-D-YYYY")
    parser.add_argument("--time", default="2:30 PM", help="Booking time, H:MM AM/PM")
    parser.add_argument("--from", dest="from_email", default=f"notifications@{vendor_domain}",
                        help="Sender address (default: notifications@<TRUSTED_SENDER_DOMAIN>)")
    parser.add_argument("--subject", default=None, help="Override the subject line")
    parser.add_argument("--dry-run", action="store_true",
                        help="Print the payload JSON without sending it.")

    args = parser.parse_args()

    if args.kind == "lead":
        body = _lead_body(args.first, args.last, args.email)
    else:
        body = _booking_body(args.first, args.last, args.email, args.date, args.time)

    payload = {
        "subject": args.subject or _SUBJECTS[args.kind],
        "body": body,
        "from": args.from_email,
        "tenant_id": args.tenant,
    }

    endpoint = f"{args.url.rstrip('/')}/api/email-intake/notifications"

    print(f"Kind     : {args.kind}")
    print(f"Endpoint : {endpoint}")
    print(f"From     : {args.from_email}")
    print(f"Tenant   : {args.tenant}")
    print(f"Subject  : {payload['subject']}")

    if args.dry_run:
        print("\n[DRY RUN] Payload:")
        print(json.dumps(payload, indent=2))
        return 0

    try:
        response = httpx.post(endpoint, json=payload, timeout=30)
    except httpx.ConnectError:
        print(
            f"\nERROR: Could not connect to {endpoint}\n"
            "Is the backend running? Start it with:\n"
            "  cd backend && uvicorn app.main:app --reload",
            file=sys.stderr,
        )
        return 1
    except httpx.HTTPError as exc:
        print(f"\nERROR: {exc}", file=sys.stderr)
        return 1

    _print_response(response)
    return 0 if response.status_code == 200 else 1


if __name__ == "__main__":
    sys.exit(main())

"""Document Numbering — inquiry, order and receipt numbers.

Invariants:
    - Inquiry numbers are INQ<yy><nnnn>; the sequence restarts each year
    - A malformed or previous-year last number restarts the sequence at 0001
    - Order and receipt numbers embed the date plus a random suffix
"""

import re
import secrets
from datetime import date

_INQUIRY_RE = re.compile(r"^INQ(\d{2})(\d+)$")


def next_inquiry_number(last_number: str | None, today: date) -> str:
    """Next inquiry number after last_number for today's year."""
    year = today.strftime("%y")
    sequence = 1
    if last_number:
        match = _INQUIRY_RE.match(last_number)
        if match and match.group(1) == year:
            sequence = int(match.group(2)) + 1
    return f"INQ{year}{sequence:04d}"


def _stamped(prefix: str, today: date) -> str:
    return f"{prefix}-{today:%Y%m%d}-{secrets.token_hex(3).upper()}"


def new_order_number(today: date, prefix: str = "ORD") -> str:
    return _stamped(prefix, today)


def new_receipt_number(today: date) -> str:
    return _stamped("RCP", today)


def new_backup_filename(school_code: str, today: date) -> str:
    return f"backup-{school_code.lower()}-{today:%Y%m%d}-{secrets.token_hex(2)}.sql.gz"

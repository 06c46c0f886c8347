"""Document Numbering — inquiry sequences and stamped numbers."""

import re
from datetime import date

from app.core.numbering import (
    new_backup_filename, new_order_number, new_receipt_number, next_inquiry_number,
)

TODAY = date(2025, 11, 3)


def test_first_inquiry_of_the_year():
    assert next_inquiry_number(None, TODAY) == "INQ250001"


def test_inquiry_sequence_continues():
    assert next_inquiry_number("INQ250041", TODAY) == "INQ250042"


def test_inquiry_sequence_restarts_each_year():
    assert next_inquiry_number("INQ240913", TODAY) == "INQ250001"


def test_malformed_last_number_restarts():
    assert next_inquiry_number("WALKIN-7", TODAY) == "INQ250001"


def test_sequence_grows_past_four_digits():
    assert next_inquiry_number("INQ259999", TODAY) == "INQ2510000"


def test_stamped_numbers_embed_date():
    assert re.fullmatch(r"ORD-20251103-[0-9A-F]{6}", new_order_number(TODAY))
    assert re.fullmatch(r"CNT-20251103-[0-9A-F]{6}", new_order_number(TODAY, "CNT"))
    assert re.fullmatch(r"RCP-20251103-[0-9A-F]{6}", new_receipt_number(TODAY))


def test_backup_filename():
    name = new_backup_filename("ALPHA", TODAY)
    assert re.fullmatch(r"backup-alpha-20251103-[0-9a-f]{4}\.sql\.gz", name)

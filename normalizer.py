"""Canonical forms for the five inventory fields.

Every extraction engine's output goes through these functions, so a model
that answers ``"10025"`` and a parser that reads ``"código 10025"`` both end
up with ``"000010025"``. All functions are idempotent on canonical input.
"""

from __future__ import annotations

import re
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Optional

from models import InventoryRecord

PRODUCT_CODE_WIDTH = 9
ADDRESS_FIRST_WIDTH = 3
ADDRESS_SECOND_WIDTH = 4

_DIGITS = re.compile(r"\d")
_NUMERIC_GROUP = re.compile(r"\d+")
_ZONE_LETTER = re.compile(r"[A-Za-z]")

RELATIVE_DAYS = {
    "hoje": 0,
    "today": 0,
    "ontem": 1,
    "yesterday": 1,
    "anteontem": 2,
}

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_SLASH_DATE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})(?:[/.-](\d{2}|\d{4}))?$")


def normalize_product_code(token: Any) -> Optional[str]:
    """Keep only the digits of a spoken code and pad them to nine.

    Runs longer than nine digits keep the last nine.
    """
    if token is None:
        return None
    digits = "".join(_DIGITS.findall(str(token)))
    if not digits:
        return None
    if len(digits) > PRODUCT_CODE_WIDTH:
        digits = digits[-PRODUCT_CODE_WIDTH:]
    return digits.zfill(PRODUCT_CODE_WIDTH)


def normalize_count(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"count must be an integer, got {value!r}")
    if isinstance(value, int):
        count = value
    elif isinstance(value, float) and value.is_integer():
        count = int(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if not text.isdigit():
            raise ValueError(f"count must be an integer, got {value!r}")
        count = int(text)
    else:
        raise ValueError(f"count must be an integer, got {value!r}")
    if count < 0:
        raise ValueError(f"count must not be negative, got {count}")
    return count


def normalize_address(value: Any) -> Optional[str]:
    """Format an address as ``L NNN NNNN``.

    The first numeric group is padded to three digits; every following
    group is concatenated and padded to four (``B 15 30 10`` ->
    ``B 015 3010``). Without a zone letter or with fewer than two numeric
    groups there is no address.
    """
    if value is None:
        return None
    text = str(value).strip()
    letter = _ZONE_LETTER.search(text)
    if letter is None:
        return None
    groups = _NUMERIC_GROUP.findall(text[letter.end():])
    if len(groups) < 2:
        return None
    first = groups[0].zfill(ADDRESS_FIRST_WIDTH)
    second = "".join(groups[1:]).zfill(ADDRESS_SECOND_WIDTH)
    return f"{letter.group(0).upper()} {first} {second}"


def normalize_date(value: Any, reference: date) -> Optional[str]:
    """Return ``YYYY-MM-DD`` or raise ``ValueError`` for something unreadable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip().lower()
    if not text:
        return None
    if text in RELATIVE_DAYS:
        return (reference - timedelta(days=RELATIVE_DAYS[text])).isoformat()

    iso = _ISO_DATE.match(text)
    if iso:
        year, month, day = (int(part) for part in iso.groups())
        return _build_date(year, month, day, value)

    slash = _SLASH_DATE.match(text)
    if slash:
        day, month = int(slash.group(1)), int(slash.group(2))
        year_text = slash.group(3)
        if year_text is None:
            return infer_year(day, month, reference)
        year = int(year_text)
        if len(year_text) == 2:
            year += 2000
        return _build_date(year, month, day, value)

    raise ValueError(f"unrecognized date {value!r}")


def infer_year(day: int, month: int, reference: date) -> str:
    """Resolve a day and month spoken without a year.

    Manufacture dates are never in the future, so a day that would land
    after the reference date belongs to the previous year.
    """
    candidate = date.fromisoformat(_build_date(reference.year, month, day, f"{day}/{month}"))
    if candidate > reference:
        candidate = date.fromisoformat(_build_date(reference.year - 1, month, day, f"{day}/{month}"))
    return candidate.isoformat()


def _build_date(year: int, month: int, day: int, spoken: Any) -> str:
    try:
        return date(year, month, day).isoformat()
    except ValueError as exc:
        raise ValueError(f"invalid date {spoken!r}: {exc}") from exc


def canonicalize_record(record: InventoryRecord, reference: date) -> InventoryRecord:
    return replace(
        record,
        product_code=normalize_product_code(record.product_code),
        box_count=normalize_count(record.box_count),
        unit_count=normalize_count(record.unit_count),
        manufacture_date=normalize_date(record.manufacture_date, reference),
        address=normalize_address(record.address),
    )


def normalize_field(name: str, value: Any, reference: date) -> Any:
    """Coerce a single user-edited field; blank input clears it."""
    if isinstance(value, str) and not value.strip():
        return None
    if name == "product_code":
        code = normalize_product_code(value)
        if value is not None and code is None:
            raise ValueError(f"product code must contain digits, got {value!r}")
        return code
    if name in ("box_count", "unit_count"):
        return normalize_count(value)
    if name == "manufacture_date":
        return normalize_date(value, reference)
    if name == "address":
        address = normalize_address(value)
        if value is not None and address is None:
            raise ValueError(f"address must look like 'L NNN NNNN', got {value!r}")
        return address
    raise ValueError(f"unknown field {name!r}")

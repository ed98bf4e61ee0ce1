"""Deterministic extraction for Brazilian Portuguese stock-count phrases.

Works offline and needs no API key. It recognizes the same phrasing the
model prompt is built around::

    "10 caixas e 5 unidades soltas do código 10025.
     Fabricação de 30 de outubro. Endereço A 1 5."
"""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Optional

from errors import ExtractionFailure
from extraction import ExtractionRequest
from models import InventoryRecord
from normalizer import (
    RELATIVE_DAYS,
    canonicalize_record,
    infer_year,
    normalize_address,
    normalize_date,
)

logger = logging.getLogger("voicecount.rules")

MONTHS = {
    "janeiro": 1,
    "fevereiro": 2,
    "março": 3,
    "marco": 3,
    "abril": 4,
    "maio": 5,
    "junho": 6,
    "julho": 7,
    "agosto": 8,
    "setembro": 9,
    "outubro": 10,
    "novembro": 11,
    "dezembro": 12,
}

DEFAULT_ZONE = "A"

_COUNT_NUMBER = r"(\d{1,3}(?:\.\d{3})+|\d+)"  # "1.200" is twelve hundred
_BOX_COUNT = re.compile(_COUNT_NUMBER + r"\s*(?:caixas?|cxs?)\b", re.IGNORECASE)
_UNIT_COUNT = re.compile(_COUNT_NUMBER + r"\s*(?:unidades?|un|pe[çc]as?|soltas?)\b", re.IGNORECASE)

_CODE_TOKEN = r"([A-Za-z0-9][A-Za-z0-9./-]*[A-Za-z0-9]|[A-Za-z0-9])"
_CODE_AFTER_CUE = re.compile(
    r"\b(?:c[óo]digo|produto|item|sku)\s*(?:n[ºo°]\.?\s*|n[úu]mero\s*)?:?\s*" + _CODE_TOKEN,
    re.IGNORECASE,
)
_CODE_AFTER_OF = re.compile(r"\b(?:do|da)\s+" + _CODE_TOKEN, re.IGNORECASE)

_ADDRESS_AFTER_CUE = re.compile(
    r"\bendere[çc]o\s*:?\s*([A-Za-z])(?![A-Za-z])[\s-]*(\d+(?:[ \t-]+\d+)*)",
    re.IGNORECASE,
)
_STREET_POSITION = re.compile(
    r"\brua\s+(\d+)\s*,?\s*(?:posi[çc][ãa]o|pos\.?)\s+(\d+)",
    re.IGNORECASE,
)

_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))
_SPOKEN_DATE = re.compile(
    r"\b(\d{1,2})\s*(?:º|°)?\s+de\s+(" + _MONTH_NAMES + r")(?:\s+de\s+(\d{4}))?\b",
    re.IGNORECASE,
)
_NUMERIC_DATE = re.compile(r"\b(\d{1,2}/\d{1,2}(?:/(?:\d{4}|\d{2}))?)\b")
_RELATIVE_DATE = re.compile(r"\b(" + "|".join(RELATIVE_DAYS) + r")\b", re.IGNORECASE)


class RuleBasedExtractor:
    def __init__(self, default_zone: str = DEFAULT_ZONE) -> None:
        self._default_zone = default_zone

    def extract(self, request: ExtractionRequest) -> InventoryRecord:
        text = request.ensure_text()
        try:
            record = InventoryRecord(
                product_code=self.find_product_code(text),
                box_count=self._first_int(_BOX_COUNT, text),
                unit_count=self._first_int(_UNIT_COUNT, text),
                manufacture_date=self.find_date(text, request.reference_date),
                address=self.find_address(text),
            )
            record = canonicalize_record(record, request.reference_date)
        except ValueError as exc:
            raise ExtractionFailure(f"Could not interpret utterance: {exc}") from exc
        logger.info("rule extraction: %s", record.as_dict())
        return record

    def find_product_code(self, text: str) -> Optional[str]:
        for pattern in (_CODE_AFTER_CUE, _CODE_AFTER_OF):
            for match in pattern.finditer(text):
                token = match.group(1)
                if any(ch.isdigit() for ch in token):
                    return token
        return None

    def find_address(self, text: str) -> Optional[str]:
        match = _ADDRESS_AFTER_CUE.search(text)
        if match:
            return normalize_address(f"{match.group(1)} {match.group(2)}")
        match = _STREET_POSITION.search(text)
        if match:
            return normalize_address(f"{self._default_zone} {match.group(1)} {match.group(2)}")
        return None

    def find_date(self, text: str, reference: date) -> Optional[str]:
        match = _SPOKEN_DATE.search(text)
        if match:
            day = int(match.group(1))
            month = MONTHS[match.group(2).lower()]
            if match.group(3):
                return normalize_date(f"{match.group(3)}-{month:02d}-{day:02d}", reference)
            return infer_year(day, month, reference)
        match = _NUMERIC_DATE.search(text)
        if match:
            return normalize_date(match.group(1), reference)
        match = _RELATIVE_DATE.search(text)
        if match:
            return normalize_date(match.group(1), reference)
        return None

    @staticmethod
    def _first_int(pattern: re.Pattern[str], text: str) -> Optional[int]:
        match = pattern.search(text)
        return int(match.group(1).replace(".", "")) if match else None

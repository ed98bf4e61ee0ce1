from __future__ import annotations

from datetime import date

import pytest

from errors import ExtractionFailure
from extraction import ExtractionRequest
from models import InventoryRecord
from rule_extractor import RuleBasedExtractor

REF = date(2025, 10, 30)


def _extract(text: str, reference: date = REF) -> InventoryRecord:
    return RuleBasedExtractor().extract(ExtractionRequest(text, reference))


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (
            "10 caixas e 5 unidades soltas do código 10025. Fabricação de 30 de outubro. Endereço A 1 5.",
            InventoryRecord("000010025", 10, 5, "2025-10-30", "A 001 0005"),
        ),
        (
            "Ok, 50 caixas do produto 998-B. Fabricado hoje.",
            InventoryRecord("000000998", 50, None, "2025-10-30", None),
        ),
        (
            "Contando... 15 unidades do 77441, na rua 5 posição 20.",
            InventoryRecord("000077441", None, 15, None, "A 005 0020"),
        ),
        (
            "No endereço B 15 30 10, encontrei 50 caixas e 10 soltas do 99401.",
            InventoryRecord("000099401", 50, 10, None, "B 015 3010"),
        ),
        (
            "Produto AF1000, 200 caixas.",
            InventoryRecord("000001000", 200, None, None, None),
        ),
        (
            "Contagem do 610116340. 30 caixas. Endereço C 40 1001.",
            InventoryRecord("610116340", 30, None, None, "C 040 1001"),
        ),
    ],
)
def test_spoken_counts(text: str, expected: InventoryRecord) -> None:
    assert _extract(text) == expected


def test_code_without_digits_is_null() -> None:
    record = _extract("Produto sem número, 3 caixas.")

    assert record.product_code is None
    assert record.box_count == 3


def test_absent_counts_are_null_not_zero() -> None:
    record = _extract("código 123")

    assert record.box_count is None
    assert record.unit_count is None


def test_spoken_date_with_year_and_numeric_date() -> None:
    assert _extract("fabricação 1º de março de 2024").manufacture_date == "2024-03-01"
    assert _extract("fabricado em 05/09/2025").manufacture_date == "2025-09-05"
    assert _extract("fabricado ontem").manufacture_date == "2025-10-29"


def test_future_day_rolls_back_a_year() -> None:
    assert _extract("fabricação de 15 de dezembro").manufacture_date == "2024-12-15"


def test_impossible_date_fails_extraction() -> None:
    with pytest.raises(ExtractionFailure):
        _extract("fabricação de 31 de fevereiro")


def test_blank_text_fails() -> None:
    with pytest.raises(ExtractionFailure):
        _extract("  ")


def test_counts_with_thousands_separator() -> None:
    record = _extract("1.200 caixas e 2.500 unidades do código 10025")

    assert record.box_count == 1200
    assert record.unit_count == 2500
    assert record.product_code == "000010025"


def test_sentence_number_before_count_is_not_a_thousands_group() -> None:
    record = _extract("Contagem do 610116340. 30 caixas.")

    assert record.box_count == 30

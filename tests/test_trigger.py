from __future__ import annotations

from trigger import TriggerDetector


def test_trigger_is_removed_and_text_trimmed() -> None:
    match = TriggerDetector("confirmar contagem").detect("...10 caixas... confirmar contagem ")

    assert match is not None
    assert match.cleaned_text == "...10 caixas..."


def test_match_is_case_insensitive() -> None:
    match = TriggerDetector("confirmar contagem").detect("10 caixas CONFIRMAR CONTAGEM")

    assert match is not None
    assert match.matched_text == "CONFIRMAR CONTAGEM"
    assert match.cleaned_text == "10 caixas"


def test_only_first_occurrence_is_removed() -> None:
    text = "confirmar contagem 10 caixas confirmar contagem"
    match = TriggerDetector("confirmar contagem").detect(text)

    assert match.start == 0
    assert match.cleaned_text == "10 caixas confirmar contagem"


def test_adjacent_content_is_preserved_verbatim() -> None:
    match = TriggerDetector("confirmar contagem").detect("código 10025confirmar contagem  5 unidades")

    assert match.cleaned_text == "código 10025  5 unidades"


def test_words_may_be_separated_by_any_whitespace() -> None:
    assert TriggerDetector("confirmar contagem").detect("confirmar\n  contagem") is not None


def test_no_match_and_disabled_phrase() -> None:
    assert TriggerDetector("confirmar contagem").detect("10 caixas") is None
    assert TriggerDetector("confirmar contagem").detect("") is None
    disabled = TriggerDetector("")
    assert disabled.enabled is False
    assert disabled.detect("confirmar contagem") is None


def test_regex_characters_in_phrase_are_literal() -> None:
    detector = TriggerDetector("ok.")
    assert detector.detect("10 caixas okay") is None
    assert detector.detect("10 caixas ok.").cleaned_text == "10 caixas"

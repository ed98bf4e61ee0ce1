"""Tests for DashscopeExtractor."""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock, patch

import pytest

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR, ExtractionFailure
from extraction import ExtractionRequest
from llm_extractor import DashscopeExtractor
from models import InventoryRecord

REF = date(2025, 10, 30)
UTTERANCE = "10 caixas e 5 unidades soltas do código 10025. Fabricação de 30 de outubro. Endereço A 1 5."


def _response(content, status_code: int = 200) -> dict:  # noqa: ANN001
    return {
        "status_code": status_code,
        "code": "",
        "message": "",
        "output": {"choices": [{"message": {"role": "assistant", "content": content}}]},
    }


@patch("llm_extractor.dashscope")
def test_successful_call_returns_canonical_record(mock_ds: MagicMock) -> None:
    mock_ds.Generation.call.return_value = _response(
        '{"codigo_produto": "10025", "quantidade_caixas": 10, "quantidade_unidades": 5,'
        ' "data_fabricacao": "2025-10-30", "endereco": "A 001 0005"}'
    )

    record = DashscopeExtractor(api_key="test-key").extract(ExtractionRequest(UTTERANCE, REF))

    assert record == InventoryRecord("000010025", 10, 5, "2025-10-30", "A 001 0005")
    kwargs = mock_ds.Generation.call.call_args.kwargs
    assert kwargs["api_key"] == "test-key"
    assert kwargs["response_format"] == {"type": "json_object"}
    assert kwargs["messages"][1] == {"role": "user", "content": UTTERANCE}
    assert "2025-10-30" in kwargs["messages"][0]["content"]


@patch("llm_extractor.dashscope")
def test_empty_content_fails(mock_ds: MagicMock) -> None:
    mock_ds.Generation.call.return_value = _response("")

    with pytest.raises(ExtractionFailure) as info:
        DashscopeExtractor(api_key="k").extract(ExtractionRequest(UTTERANCE, REF))
    assert info.value.code == ASR_PROTOCOL_ERROR
    assert "no content" in info.value.message


@patch("llm_extractor.dashscope")
def test_unparseable_content_fails(mock_ds: MagicMock) -> None:
    mock_ds.Generation.call.return_value = _response("Claro! Aqui está.")

    with pytest.raises(ExtractionFailure) as info:
        DashscopeExtractor(api_key="k").extract(ExtractionRequest(UTTERANCE, REF))
    assert info.value.message.startswith("Extraction failed:")


@patch("llm_extractor.dashscope")
def test_error_status_keeps_service_message(mock_ds: MagicMock) -> None:
    response = _response(None, status_code=401)
    response.update(code="InvalidApiKey", message="Invalid API-key provided.")
    mock_ds.Generation.call.return_value = response

    with pytest.raises(ExtractionFailure) as info:
        DashscopeExtractor(api_key="bad").extract(ExtractionRequest(UTTERANCE, REF))
    assert info.value.code == AUTH_FAILED
    assert "Invalid API-key provided." in info.value.message


@patch("llm_extractor.dashscope")
def test_transport_error_is_mapped(mock_ds: MagicMock) -> None:
    mock_ds.Generation.call.side_effect = ConnectionError("network timeout")

    with pytest.raises(ExtractionFailure) as info:
        DashscopeExtractor(api_key="k").extract(ExtractionRequest(UTTERANCE, REF))
    assert info.value.code == NETWORK_ERROR


@patch("llm_extractor.dashscope", MagicMock())
@patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False)
def test_missing_api_key_fails_without_calling() -> None:
    with pytest.raises(ExtractionFailure) as info:
        DashscopeExtractor(api_key="").extract(ExtractionRequest(UTTERANCE, REF))
    assert info.value.code == AUTH_FAILED


@patch("llm_extractor.dashscope", None)
def test_dashscope_not_installed() -> None:
    with pytest.raises(ExtractionFailure) as info:
        DashscopeExtractor(api_key="k").extract(ExtractionRequest(UTTERANCE, REF))
    assert "not installed" in info.value.message


@patch("llm_extractor.dashscope")
def test_blank_utterance_is_not_sent(mock_ds: MagicMock) -> None:
    with pytest.raises(ExtractionFailure):
        DashscopeExtractor(api_key="k").extract(ExtractionRequest("  ", REF))
    mock_ds.Generation.call.assert_not_called()

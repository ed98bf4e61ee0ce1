"""Extraction engine backed by a DashScope chat model.

The model is asked for a flat JSON object (``response_format=json_object``)
and its answer is validated and canonicalized by
:func:`extraction.parse_extraction_response`, so a model that forgets to
pad a code still yields a nine-digit code.
"""

from __future__ import annotations

import logging
import os
from http import HTTPStatus
from typing import Any

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, ExtractionFailure, classify_service_error
from extraction import ExtractionRequest, build_extraction_prompt, parse_extraction_response
from models import InventoryRecord

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger("voicecount.llm")

ERROR_PREFIX = "Extraction failed"


class DashscopeExtractor:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen-plus",
        temperature: float = 0.1,
        request_timeout_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._temperature = temperature
        self._request_timeout_s = request_timeout_s

    def extract(self, request: ExtractionRequest) -> InventoryRecord:
        text = request.ensure_text()
        if dashscope is None:
            raise ExtractionFailure(f"{ERROR_PREFIX}: dashscope is not installed", code=ASR_PROTOCOL_ERROR)

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise ExtractionFailure(f"{ERROR_PREFIX}: No API key configured", code=AUTH_FAILED)

        logger.info("sending utterance to %s: %s", self._model, text)
        try:
            response = dashscope.Generation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": build_extraction_prompt(request.reference_date_iso)},
                    {"role": "user", "content": text},
                ],
                result_format="message",
                response_format={"type": "json_object"},
                temperature=self._temperature,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            logger.warning("extraction call failed: %s", exc)
            raise ExtractionFailure(f"{ERROR_PREFIX}: {exc}", code=classify_service_error(exc)) from exc

        content = self._extract_content(response)
        logger.debug("raw model response: %r", content)
        try:
            return parse_extraction_response(content, request.reference_date)
        except ExtractionFailure as exc:
            raise ExtractionFailure(f"{ERROR_PREFIX}: {exc}", code=exc.code) from exc

    def _extract_content(self, response: Any) -> str:
        """Pull the message text out of a Generation response, or raise."""
        status = self._get(response, "status_code")
        if status is not None and status != HTTPStatus.OK:
            code = self._get(response, "code") or ""
            message = self._get(response, "message") or ""
            detail = f"{status} {code} {message}".strip()
            raise ExtractionFailure(
                f"{ERROR_PREFIX}: {detail}",
                code=classify_service_error(Exception(detail)),
            )

        output = self._get(response, "output") or {}
        choices = self._get(output, "choices") or []
        if not choices:
            raise ExtractionFailure(f"{ERROR_PREFIX}: The model returned no content.", code=ASR_PROTOCOL_ERROR)
        message = self._get(choices[0], "message") or {}
        content = self._get(message, "content")
        if isinstance(content, list):
            content = "".join(
                str(part.get("text", "")) for part in content if isinstance(part, dict)
            )
        if not content or not str(content).strip():
            raise ExtractionFailure(f"{ERROR_PREFIX}: The model returned no content.", code=ASR_PROTOCOL_ERROR)
        return str(content)

    @staticmethod
    def _get(obj: Any, key: str) -> Any:
        if isinstance(obj, dict):
            return obj.get(key)
        return getattr(obj, key, None)

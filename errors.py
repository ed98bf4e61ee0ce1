"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
ASR_PROTOCOL_ERROR = "ASR_PROTOCOL_ERROR"
EXTRACTION_FAILED = "EXTRACTION_FAILED"
EMPTY_INPUT = "EMPTY_INPUT"

ERROR_MESSAGES = {
    PERMISSION_DENIED: "Microphone unavailable, check the input device and permissions.",
    NETWORK_ERROR: "Network failed, please speak again.",
    AUTH_FAILED: "API key is invalid.",
    ASR_PROTOCOL_ERROR: "Model response format is invalid.",
    EXTRACTION_FAILED: "Could not read the count, please speak again.",
    EMPTY_INPUT: "Nothing was heard.",
}


class VoiceCountError(Exception):
    code = EXTRACTION_FAILED

    def __init__(self, message: str = "", code: str | None = None) -> None:
        super().__init__(message or ERROR_MESSAGES.get(code or self.code, ""))
        if code:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class EmptyInputError(VoiceCountError):
    code = EMPTY_INPUT


class SpeechEngineError(VoiceCountError):
    code = PERMISSION_DENIED


class ExtractionFailure(VoiceCountError):
    code = EXTRACTION_FAILED


def classify_service_error(exc: BaseException) -> str:
    """Map an SDK/network exception message to an error code."""
    low = str(exc).lower()
    if "401" in low or "auth" in low or "api key" in low:
        return AUTH_FAILED
    if "timeout" in low or "network" in low or "connection" in low:
        return NETWORK_ERROR
    return ASR_PROTOCOL_ERROR

"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from queue import Queue
from typing import Callable, Protocol

from extraction import ExtractionRequest
from models import AudioFrame, InventoryRecord, RecognitionEvent


class Recorder(Protocol):
    def start(self, audio_queue: Queue[AudioFrame | None]) -> None: ...

    def stop(self) -> None: ...


class RecognizerAdapter(Protocol):
    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: Callable[[RecognitionEvent], None],
    ) -> None: ...

    def stop(self) -> None: ...


class Extractor(Protocol):
    """Maps cleaned utterance text to a record, or raises ExtractionFailure."""

    def extract(self, request: ExtractionRequest) -> InventoryRecord: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_trigger_phrase(self) -> str: ...

    def set_trigger_phrase(self, phrase: str) -> None: ...

    def get_silence_timeout_ms(self) -> int: ...

    def set_silence_timeout_ms(self, timeout_ms: int) -> None: ...

    def get_extractor(self) -> str: ...

    def set_extractor(self, name: str) -> None: ...

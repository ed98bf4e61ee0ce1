"""Core data models for the app."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from transcript import TranscriptAccumulator
    from silence_watchdog import SilenceWatchdog


class SessionState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    COMPLETING = "COMPLETING"
    AWAITING_EXTRACTION = "AWAITING_EXTRACTION"
    DRAFT_READY = "DRAFT_READY"
    ERROR = "ERROR"


class RecognitionKind(str, Enum):
    INTERIM = "interim"
    FINAL = "final"
    START = "start"
    END = "end"
    ERROR = "error"


class CompletionReason(str, Enum):
    SILENCE = "silence"
    TRIGGER = "trigger"
    MANUAL = "manual"
    ENGINE_END = "engine_end"


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0
    level: float = 0.0


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    retryable: bool = False  # informational only; sessions are never retried automatically

    @property
    def is_fragment(self) -> bool:
        return self.kind in (RecognitionKind.INTERIM.value, RecognitionKind.FINAL.value)


FIELD_NAMES = ("product_code", "box_count", "unit_count", "manufacture_date", "address")


@dataclass(frozen=True)
class InventoryRecord:
    """One counted position: what, how many, when it was made and where it sits."""

    product_code: Optional[str] = None
    box_count: Optional[int] = None
    unit_count: Optional[int] = None
    manufacture_date: Optional[str] = None
    address: Optional[str] = None

    def as_dict(self) -> dict:
        return asdict(self)

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in FIELD_NAMES)


@dataclass
class CaptureSession:
    session_id: int
    reference_date: date
    buffer: "TranscriptAccumulator"
    watchdog: "SilenceWatchdog"
    trigger_found: bool = False
    completion_reason: Optional[CompletionReason] = None
    frozen_text: Optional[str] = None

    @property
    def watchdog_deadline(self) -> Optional[float]:
        return self.watchdog.deadline

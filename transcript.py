"""Running utterance buffer built from recognition fragments."""

from __future__ import annotations

from typing import Iterable

from models import RecognitionEvent, RecognitionKind


class TranscriptAccumulator:
    """Finals are kept in arrival order; only the latest interim is kept.

    A final closes the segment the pending interim belonged to, so it
    clears the interim.
    """

    def __init__(self) -> None:
        self._finals: list[str] = []
        self._interim = ""

    @classmethod
    def from_events(cls, events: Iterable[RecognitionEvent]) -> "TranscriptAccumulator":
        acc = cls()
        for event in events:
            acc.add(event)
        return acc

    @property
    def finals(self) -> tuple[str, ...]:
        return tuple(self._finals)

    @property
    def interim(self) -> str:
        return self._interim

    @property
    def text(self) -> str:
        parts = list(self._finals)
        if self._interim:
            parts.append(self._interim)
        return " ".join(parts)

    def add(self, event: RecognitionEvent) -> str:
        if event.kind == RecognitionKind.FINAL.value:
            return self.add_fragment(event.text, is_final=True)
        if event.kind == RecognitionKind.INTERIM.value:
            return self.add_fragment(event.text, is_final=False)
        return self.text

    def add_fragment(self, text: str, is_final: bool) -> str:
        span = (text or "").strip()
        if is_final:
            if span:
                self._finals.append(span)
            self._interim = ""
        else:
            self._interim = span
        return self.text

    def reset(self) -> None:
        self._finals.clear()
        self._interim = ""

    def __bool__(self) -> bool:
        return bool(self.text.strip())

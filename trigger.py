"""Spoken command that closes the current utterance."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

DEFAULT_TRIGGER_PHRASE = "confirmar contagem"


@dataclass(frozen=True)
class TriggerMatch:
    start: int
    end: int
    matched_text: str
    cleaned_text: str


class TriggerDetector:
    def __init__(self, phrase: str = DEFAULT_TRIGGER_PHRASE) -> None:
        self._phrase = " ".join(phrase.split())
        self._pattern: Optional[re.Pattern[str]] = None
        if self._phrase:
            words = (re.escape(word) for word in self._phrase.split(" "))
            self._pattern = re.compile(r"\s+".join(words), re.IGNORECASE)

    @property
    def phrase(self) -> str:
        return self._phrase

    @property
    def enabled(self) -> bool:
        return self._pattern is not None

    def detect(self, text: str) -> Optional[TriggerMatch]:
        """Return the first occurrence of the phrase, with it cut out of the text."""
        if self._pattern is None or not text:
            return None
        match = self._pattern.search(text)
        if match is None:
            return None
        cleaned = (text[: match.start()] + text[match.end():]).strip()
        return TriggerMatch(
            start=match.start(),
            end=match.end(),
            matched_text=match.group(0),
            cleaned_text=cleaned,
        )

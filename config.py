"""Simple JSON-based config store."""

from __future__ import annotations

import json
import os
from pathlib import Path

from trigger import DEFAULT_TRIGGER_PHRASE

EXTRACTORS = ("llm", "rules")

DEFAULTS = {
    "api_key": "",
    "toggle_hotkey": "Key.f8",
    "confirm_hotkey": "Key.f9",
    "trigger_phrase": DEFAULT_TRIGGER_PHRASE,
    "silence_timeout_ms": 5000,
    "extractor": "llm",
    "extraction_model": "qwen-plus",
    "asr_model": "qwen3-asr-flash",
    "language": "pt",
}


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or Path.home() / ".config" / "voicecount" / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def get_api_key(self) -> str:
        key = str(self._read_all().get("api_key", "")).strip()
        return key or os.getenv("DASHSCOPE_API_KEY", "")

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key.strip())

    def get_toggle_hotkey(self) -> str:
        return self._get_str("toggle_hotkey")

    def set_toggle_hotkey(self, hotkey: str) -> None:
        if hotkey == self.get_confirm_hotkey():
            raise ValueError(f"{hotkey} is already the confirm hotkey")
        self._set("toggle_hotkey", hotkey)

    def get_confirm_hotkey(self) -> str:
        return self._get_str("confirm_hotkey")

    def set_confirm_hotkey(self, hotkey: str) -> None:
        if hotkey == self.get_toggle_hotkey():
            raise ValueError(f"{hotkey} is already the toggle hotkey")
        self._set("confirm_hotkey", hotkey)

    def get_trigger_phrase(self) -> str:
        data = self._read_all()
        value = data.get("trigger_phrase", DEFAULTS["trigger_phrase"])
        # An empty phrase is allowed and turns voice confirmation off.
        return value if isinstance(value, str) else DEFAULTS["trigger_phrase"]

    def set_trigger_phrase(self, phrase: str) -> None:
        self._set("trigger_phrase", " ".join(phrase.split()))

    def get_silence_timeout_ms(self) -> int:
        value = self._read_all().get("silence_timeout_ms")
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return value
        return DEFAULTS["silence_timeout_ms"]

    def set_silence_timeout_ms(self, timeout_ms: int) -> None:
        if timeout_ms <= 0:
            raise ValueError("silence timeout must be positive")
        self._set("silence_timeout_ms", int(timeout_ms))

    def get_extractor(self) -> str:
        value = self._read_all().get("extractor")
        return value if value in EXTRACTORS else DEFAULTS["extractor"]

    def set_extractor(self, name: str) -> None:
        if name not in EXTRACTORS:
            raise ValueError(f"extractor must be one of {', '.join(EXTRACTORS)}")
        self._set("extractor", name)

    def get_extraction_model(self) -> str:
        return self._get_str("extraction_model")

    def get_asr_model(self) -> str:
        return self._get_str("asr_model")

    def get_language(self) -> str:
        return self._get_str("language")

    def _get_str(self, key: str) -> str:
        value = self._read_all().get(key)
        if isinstance(value, str) and value.strip():
            return value
        return str(DEFAULTS[key])

    def _set(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

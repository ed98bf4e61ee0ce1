"""Continuous ASR adapter using DashScope qwen3-asr-flash.

qwen3-asr-flash only accepts complete audio, so the worker cuts the
microphone stream into segments: a segment closes after a pause following
speech, when it reaches ``max_segment_ms``, or when the recorder sends its
end sentinel. Each closed segment is converted to WAV and streamed to the
model; the growing text flows out as ``interim`` events and the last one is
repeated as the segment's ``final``. ``start`` and ``end`` bracket the whole
stream and failures surface as a single ``error`` event.
"""

from __future__ import annotations

import base64
import io
import logging
import os
import threading
import wave
from queue import Empty, Queue
from typing import Callable, Optional

from errors import ASR_PROTOCOL_ERROR, AUTH_FAILED, NETWORK_ERROR, classify_service_error
from models import AudioFrame, RecognitionEvent, RecognitionKind

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

logger = logging.getLogger("voicecount.recognizer")


class RecognitionAborted(Exception):
    """Raised inside the worker once an error event has been emitted."""


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


class _Segment:
    def __init__(self) -> None:
        self.pcm = bytearray()
        self.duration_ms = 0.0
        self.silence_ms = 0.0
        self.has_speech = False
        self.sample_rate = 16000
        self.channels = 1

    def add(self, frame: AudioFrame, speech_level: float) -> None:
        self.pcm.extend(frame.pcm16_bytes)
        self.sample_rate = frame.sample_rate
        self.channels = frame.channels
        samples = len(frame.pcm16_bytes) // (2 * max(frame.channels, 1))
        frame_ms = 1000.0 * samples / max(frame.sample_rate, 1)
        self.duration_ms += frame_ms
        if frame.level >= speech_level:
            self.has_speech = True
            self.silence_ms = 0.0
        else:
            self.silence_ms += frame_ms


class DashscopeRecognizerAdapter:
    def __init__(
        self,
        api_key: str,
        model: str = "qwen3-asr-flash",
        language: str = "pt",
        request_timeout_s: float = 10.0,
        pause_ms: int = 700,
        max_segment_ms: int = 4000,
        speech_level: float = 0.02,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._language = language
        self._request_timeout_s = request_timeout_s
        self._pause_ms = pause_ms
        self._max_segment_ms = max_segment_ms
        self._speech_level = speech_level
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def start(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: Callable[[RecognitionEvent], None],
    ) -> None:
        # An older worker may still be blocked in a request; it exits on its own stop event.
        self._stop_event.set()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._worker,
            args=(audio_queue, on_event, self._stop_event),
            daemon=True,
        )
        self._thread.start()

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(
        self,
        audio_queue: Queue[AudioFrame | None],
        on_event: Callable[[RecognitionEvent], None],
        stop_event: threading.Event,
    ) -> None:
        """Consume audio frames until the sentinel, recognizing each segment."""

        def emit(event: RecognitionEvent) -> None:
            if not stop_event.is_set():
                on_event(event)

        emit(RecognitionEvent(kind=RecognitionKind.START.value))
        segment = _Segment()
        try:
            while not stop_event.is_set():
                try:
                    frame = audio_queue.get(timeout=0.2)
                except Empty:
                    continue
                if frame is None:  # Sentinel
                    self._flush(segment, emit, stop_event)
                    emit(RecognitionEvent(kind=RecognitionKind.END.value))
                    return
                segment.add(frame, self._speech_level)
                if self._segment_closed(segment):
                    self._flush(segment, emit, stop_event)
                    segment = _Segment()
                elif not segment.has_speech and segment.silence_ms >= self._pause_ms:
                    segment = _Segment()
        except RecognitionAborted:
            return

    def _segment_closed(self, segment: _Segment) -> bool:
        if not segment.has_speech:
            return False
        return segment.silence_ms >= self._pause_ms or segment.duration_ms >= self._max_segment_ms

    def _flush(
        self,
        segment: _Segment,
        emit: Callable[[RecognitionEvent], None],
        stop_event: threading.Event,
    ) -> None:
        if not segment.has_speech or not segment.pcm:
            return
        wav_b64 = _pcm_to_wav_base64(bytes(segment.pcm), segment.sample_rate, segment.channels)
        self._recognize_stream(wav_b64, emit, stop_event)

    def _recognize_stream(  # noqa: C901
        self,
        wav_base64: str,
        emit: Callable[[RecognitionEvent], None],
        stop_event: threading.Event,
    ) -> None:
        """Send one segment to dashscope and stream interim/final results."""
        if dashscope is None:
            emit(self._error_event(ASR_PROTOCOL_ERROR, "dashscope is not installed", retryable=False))
            raise RecognitionAborted()

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            emit(self._error_event(AUTH_FAILED, "No API key configured", retryable=False))
            raise RecognitionAborted()

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": f"data:audio/wav;base64,{wav_base64}"}]},
                ],
                result_format="message",
                asr_options={"enable_itn": True, "language": self._language},
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            emit(self._to_error_event(exc))
            raise RecognitionAborted() from exc

        latest_text = ""
        try:
            for chunk in response:
                if stop_event.is_set():
                    return
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
                    emit(RecognitionEvent(kind=RecognitionKind.INTERIM.value, text=text))
        except Exception as exc:
            emit(self._to_error_event(exc))
            raise RecognitionAborted() from exc

        logger.debug("segment recognized: %r", latest_text)
        emit(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text))

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output", {})
            choices = output.get("choices", [])
            if not choices:
                return ""
            message = choices[0].get("message", {})
            content = message.get("content", [])
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""

    def _error_event(self, code: str, message: str, retryable: bool) -> RecognitionEvent:
        logger.warning("recognition error %s: %s", code, message)
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            code=code,
            message=message,
            retryable=retryable,
        )

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        """Map an SDK/network exception to a standard error event."""
        code = classify_service_error(exc)
        return self._error_event(code, str(exc), retryable=code == NETWORK_ERROR or code == ASR_PROTOCOL_ERROR)

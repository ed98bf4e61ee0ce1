"""Microphone recorder adapter."""

from __future__ import annotations

import logging
import threading
import time
from queue import Full, Queue
from typing import Any, Optional, Union

from models import AudioFrame

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger("voicecount.recorder")

INT16_FULL_SCALE = 32768.0


def frame_level(samples: Any) -> float:
    """RMS of int16 samples scaled to [0, 1]."""
    if np is None:
        return 0.0
    data = np.asarray(samples, dtype=np.float32)
    if data.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(data))))
    return min(rms / INT16_FULL_SCALE, 1.0)


class SoundDeviceRecorder:
    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        device: Optional[Union[int, str]] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.device = device
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._audio_queue = audio_queue
            self.dropped_chunks = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                device=self.device,
                callback=self._on_audio,
            )
            self._stream.start()
            self._running = True
            logger.info("microphone open (%d Hz, %d ch, device=%s)", self.sample_rate, self.channels, self.device)

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                self._emit_sentinel_if_needed()
                return
            self._running = False
            if self._stream is not None:
                self._stream.stop()
                self._stream.close()
                self._stream = None
            if self.dropped_chunks:
                logger.warning("dropped %d audio chunks on a full queue", self.dropped_chunks)
            self._emit_sentinel_if_needed()

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None:
            return
        if np is None:
            return
        samples = np.asarray(indata, dtype=np.int16)
        frame = AudioFrame(
            pcm16_bytes=samples.tobytes(),
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp_ms=int(time.time() * 1000),
            level=frame_level(samples),
        )
        try:
            self._audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1

    def _emit_sentinel_if_needed(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass

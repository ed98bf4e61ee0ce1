"""State-machine based capture session orchestration.

One controller owns at most one :class:`models.CaptureSession` at a time.
Recognition callbacks, silence timers and extraction results arrive on
worker threads and are serialized by a single lock; each of them is bound
to the session id it was created for, so anything that outlives its
session is dropped instead of reopening it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import replace
from datetime import date
from functools import partial
from queue import Queue
from typing import Callable, Optional

from errors import (
    EXTRACTION_FAILED,
    PERMISSION_DENIED,
    EmptyInputError,
    ExtractionFailure,
    SpeechEngineError,
)
from extraction import ExtractionRequest
from interfaces import Extractor, Recorder, RecognizerAdapter
from models import (
    FIELD_NAMES,
    AudioFrame,
    CaptureSession,
    CompletionReason,
    InventoryRecord,
    RecognitionEvent,
    RecognitionKind,
    SessionState,
)
from normalizer import normalize_field
from records_log import ConfirmedRecordsLog
from silence_watchdog import DEFAULT_INTERVAL_S, SilenceWatchdog, TimerFactory
from transcript import TranscriptAccumulator
from trigger import DEFAULT_TRIGGER_PHRASE, TriggerDetector

logger = logging.getLogger("voicecount.session")

StateCallback = Callable[[SessionState, SessionState], None]
TranscriptCallback = Callable[[str], None]
RecordCallback = Callable[[InventoryRecord], None]
ErrorCallback = Callable[[str, str], None]
Dispatch = Callable[[Callable[[], None]], None]

# States from which a new capture may begin.
STARTABLE_STATES = (SessionState.IDLE, SessionState.ERROR, SessionState.DRAFT_READY)


def _run_in_thread(job: Callable[[], None]) -> None:
    threading.Thread(target=job, name="extraction", daemon=True).start()


class SessionController:
    def __init__(
        self,
        recorder: Recorder,
        recognizer: RecognizerAdapter,
        extractor: Extractor,
        records_log: Optional[ConfirmedRecordsLog] = None,
        trigger_phrase: str = DEFAULT_TRIGGER_PHRASE,
        silence_timeout_s: float = DEFAULT_INTERVAL_S,
        queue_maxsize: int = 50,
        clock: Callable[[], date] = date.today,
        dispatch: Optional[Dispatch] = None,
        timer_factory: Optional[TimerFactory] = None,
        auto_restart: bool = True,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_draft: Optional[RecordCallback] = None,
        on_confirmed: Optional[RecordCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._recorder = recorder
        self._recognizer = recognizer
        self._extractor = extractor
        self._records = records_log if records_log is not None else ConfirmedRecordsLog()
        self._trigger = TriggerDetector(trigger_phrase)
        self._silence_timeout_s = silence_timeout_s
        self._queue_maxsize = queue_maxsize
        self._clock = clock
        self._dispatch = dispatch or _run_in_thread
        self._timer_factory = timer_factory
        self._auto_restart = auto_restart
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_draft = on_draft
        self._on_confirmed = on_confirmed
        self._on_error = on_error

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._session_id = 0
        self._session: Optional[CaptureSession] = None
        self._draft: Optional[InventoryRecord] = None
        self._last_error: Optional[tuple[str, str]] = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[CaptureSession]:
        return self._session

    @property
    def transcript(self) -> str:
        session = self._session
        if session is None:
            return ""
        if session.frozen_text is not None:
            return session.frozen_text
        return session.buffer.text

    @property
    def draft(self) -> Optional[InventoryRecord]:
        return self._draft

    @property
    def records(self) -> tuple[InventoryRecord, ...]:
        return self._records.snapshot()

    @property
    def records_log(self) -> ConfirmedRecordsLog:
        return self._records

    @property
    def last_error(self) -> Optional[tuple[str, str]]:
        return self._last_error

    @property
    def trigger_phrase(self) -> str:
        return self._trigger.phrase

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_capture(self) -> None:
        with self._lock:
            if self._state not in STARTABLE_STATES:
                logger.debug("start ignored while %s", self._state.value)
                return
            self._session_id += 1
            session_id = self._session_id
            self._draft = None
            self._last_error = None
            watchdog = SilenceWatchdog(
                on_fire=partial(self._on_silence, session_id),
                interval_s=self._silence_timeout_s,
                timer_factory=self._timer_factory,
            )
            self._session = CaptureSession(
                session_id=session_id,
                reference_date=self._clock(),
                buffer=TranscriptAccumulator(),
                watchdog=watchdog,
            )
            audio_queue: Queue[AudioFrame | None] = Queue(maxsize=self._queue_maxsize)
            self._transition(SessionState.LISTENING)
            self._emit_transcript("")
            try:
                self._recognizer.start(audio_queue, partial(self._handle_recognition_event, session_id))
                self._recorder.start(audio_queue)
            except Exception as exc:
                self._speech_failure(SpeechEngineError(f"start failed: {exc}"))
                return
            watchdog.arm()
            logger.info("session %s listening (reference date %s)", session_id, self._session.reference_date)

    def stop_capture(self) -> None:
        with self._lock:
            if self._state != SessionState.LISTENING:
                return
            self._complete(CompletionReason.MANUAL)

    def edit_draft_field(self, field: str, value: object) -> Optional[InventoryRecord]:
        """Apply a user correction to the draft; blank input clears the field."""
        if field not in FIELD_NAMES:
            raise ValueError(f"unknown field {field!r}")
        with self._lock:
            if self._state != SessionState.DRAFT_READY or self._draft is None or self._session is None:
                logger.warning("edit of %s ignored while %s", field, self._state.value)
                return None
            coerced = normalize_field(field, value, self._session.reference_date)
            self._draft = replace(self._draft, **{field: coerced})
            draft = self._draft
            if self._on_draft:
                self._on_draft(draft)
            return draft

    def confirm_draft(self) -> Optional[InventoryRecord]:
        with self._lock:
            if self._state != SessionState.DRAFT_READY or self._draft is None:
                return None
            record = self._draft
            self._records.prepend(record)
            self._draft = None
            logger.info("confirmed record %s (%d in log)", record.as_dict(), len(self._records))
            self._transition(SessionState.IDLE)
            if self._on_confirmed:
                self._on_confirmed(record)
            if self._auto_restart:
                self.start_capture()
            return record

    def shutdown(self, reason: str = "shutdown") -> None:
        with self._lock:
            if self._state == SessionState.IDLE:
                return
            logger.info("session %s closed: %s", self._session_id, reason)
            # Invalidate every callback still bound to the current session.
            self._session_id += 1
            if self._session is not None:
                self._session.watchdog.cancel()
            self._release_engine()
            self._draft = None
            self._transition(SessionState.IDLE)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def _handle_recognition_event(self, session_id: int, event: RecognitionEvent) -> None:
        with self._lock:
            session = self._current(session_id)
            if session is None or self._state != SessionState.LISTENING:
                logger.debug("discarding %s event for closed session %s", event.kind, session_id)
                return
            kind = event.kind
            if event.is_fragment:
                text = session.buffer.add(event)
                self._emit_transcript(text)
                if self._trigger.detect(text) is not None:
                    self._complete(CompletionReason.TRIGGER)
                    return
                session.watchdog.reset()
                return
            if kind == RecognitionKind.END.value:
                self._complete(CompletionReason.ENGINE_END)
                return
            if kind == RecognitionKind.ERROR.value:
                self._speech_failure(SpeechEngineError(event.message, code=event.code or PERMISSION_DENIED))
                return
            if kind == RecognitionKind.START.value:
                logger.debug("speech engine started for session %s", session_id)

    def _on_silence(self, session_id: int) -> None:
        with self._lock:
            if self._current(session_id) is None or self._state != SessionState.LISTENING:
                return
            self._complete(CompletionReason.SILENCE)

    def _complete(self, reason: CompletionReason) -> None:
        session = self._session
        assert session is not None
        self._transition(SessionState.COMPLETING)
        session.watchdog.cancel()
        self._release_engine()
        try:
            request = self._freeze(session, reason)
        except EmptyInputError:
            logger.info("session %s completed by %s with no speech", session.session_id, reason.value)
            self._transition(SessionState.IDLE)
            return
        logger.info(
            "session %s completed by %s: %r",
            session.session_id,
            session.completion_reason.value,
            request.utterance_text,
        )
        self._transition(SessionState.AWAITING_EXTRACTION)
        self._dispatch(partial(self._run_extraction, session.session_id, request))

    def _freeze(self, session: CaptureSession, reason: CompletionReason) -> ExtractionRequest:
        """Fix the utterance text; a trigger phrase still present wins over the reason given."""
        text = session.buffer.text
        match = self._trigger.detect(text)
        if match is not None:
            session.trigger_found = True
            reason = CompletionReason.TRIGGER
            text = match.cleaned_text
        session.completion_reason = reason
        session.frozen_text = text.strip()
        self._emit_transcript(session.frozen_text)
        if not session.frozen_text:
            raise EmptyInputError()
        return ExtractionRequest(session.frozen_text, session.reference_date)

    def _run_extraction(self, session_id: int, request: ExtractionRequest) -> None:
        failure: Optional[ExtractionFailure] = None
        record: Optional[InventoryRecord] = None
        try:
            record = self._extractor.extract(request)
            if not isinstance(record, InventoryRecord):
                raise ExtractionFailure(f"Extraction failed: unexpected result {record!r}")
        except ExtractionFailure as exc:
            failure = exc
        except Exception as exc:
            logger.exception("extractor raised an unexpected error")
            failure = ExtractionFailure(f"Extraction failed: {exc}", code=EXTRACTION_FAILED)

        with self._lock:
            if self._current(session_id) is None or self._state != SessionState.AWAITING_EXTRACTION:
                logger.debug("discarding extraction result for closed session %s", session_id)
                return
            if failure is not None:
                logger.warning("session %s extraction failed: %s %s", session_id, failure.code, failure.message)
                self._last_error = (failure.code, failure.message)
                self._transition(SessionState.ERROR)
                self._emit_error(failure.code, failure.message)
                return
            if record.is_empty():
                logger.info("session %s: no inventory fields recognized", session_id)
            self._draft = record
            self._transition(SessionState.DRAFT_READY)
            if self._on_draft:
                self._on_draft(record)

    def _speech_failure(self, error: SpeechEngineError) -> None:
        logger.warning("speech engine error %s: %s", error.code, error.message)
        if self._session is not None:
            self._session.watchdog.cancel()
        self._release_engine()
        self._last_error = (error.code, error.message)
        self._transition(SessionState.ERROR)
        self._emit_error(error.code, error.message)
        self._transition(SessionState.IDLE)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current(self, session_id: int) -> Optional[CaptureSession]:
        session = self._session
        if session is None or session_id != self._session_id or session.session_id != session_id:
            return None
        return session

    def _release_engine(self) -> None:
        try:
            self._recorder.stop()
        except Exception as exc:
            logger.warning("recorder stop failed: %s", exc)
        try:
            self._recognizer.stop()
        except Exception as exc:
            logger.warning("recognizer stop failed: %s", exc)

    def _emit_transcript(self, text: str) -> None:
        if self._on_transcript:
            self._on_transcript(text)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.info("state %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)

"""State-machine based session orchestration."""

from __future__ import annotations

import threading
from typing import Callable, Optional

import encoder
import playback
from errors import (
    ENCODING_ERROR,
    SERVICE_ERROR,
    DecodeError,
    EncodingError,
    PermissionDenied,
    ServiceError,
    UnsupportedDevice,
)
from history import HistoryStore
from interfaces import AudioOutput, Recorder, TranslationClient
from logging_setup import get_logger
from models import HistoryItem, SessionState, TranslationResult

logger = get_logger("session")

StateCallback = Callable[[SessionState, SessionState], None]
ResultCallback = Callable[[Optional[TranslationResult]], None]
ErrorCallback = Callable[[str, str], None]
FlagCallback = Callable[[bool], None]
TextCallback = Callable[[str], None]
HistoryCallback = Callable[[list[HistoryItem]], None]

_BUSY_STATES = (SessionState.RECORDING, SessionState.PROCESSING)


class SessionController:
    """Drives capture -> translate -> (speak) for a single user session.

    ``stop_capture``, ``submit_text`` and ``request_speak`` block on the
    network and are meant to be called from a worker thread. At most one
    translation is in flight: new requests are rejected while the state is
    RECORDING or PROCESSING.
    """

    def __init__(
        self,
        recorder: Recorder,
        client: TranslationClient,
        history: HistoryStore,
        audio_output: Optional[AudioOutput] = None,
        on_state_change: Optional[StateCallback] = None,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_synthesizing: Optional[FlagCallback] = None,
        on_input_text: Optional[TextCallback] = None,
        on_history_change: Optional[HistoryCallback] = None,
    ) -> None:
        self._recorder = recorder
        self._client = client
        self._history = history
        self._audio_output = audio_output
        self._on_state_change = on_state_change
        self._on_result = on_result
        self._on_error = on_error
        self._on_synthesizing = on_synthesizing
        self._on_input_text = on_input_text
        self._on_history_change = on_history_change

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._synthesizing = False
        self._result: Optional[TranslationResult] = None
        self._input_text = ""
        self._capture_error: Optional[str] = None
        self._starting = False

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def synthesizing(self) -> bool:
        return self._synthesizing

    @property
    def result(self) -> Optional[TranslationResult]:
        return self._result

    @property
    def input_text(self) -> str:
        return self._input_text

    @property
    def capture_error(self) -> Optional[str]:
        return self._capture_error

    @property
    def history(self) -> list[HistoryItem]:
        return self._history.items

    def load_history(self) -> list[HistoryItem]:
        items = self._history.load()
        self._emit_history()
        return items

    def clear_history(self) -> None:
        self._history.clear()
        logger.info("history_cleared")
        self._emit_history()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def start_capture(self) -> bool:
        """Open the input device and enter RECORDING.

        The device is opened outside the controller lock; ``_starting``
        holds off other requests until the open resolves.
        """
        with self._lock:
            if self._starting or self._state == SessionState.RECORDING:
                return False
            if self._state == SessionState.PROCESSING:
                logger.info("start_capture_rejected", extra={"state": self._state.value})
                return False
            self._capture_error = None
            self._starting = True

        try:
            self._recorder.start()
        except (PermissionDenied, UnsupportedDevice) as exc:
            with self._lock:
                self._starting = False
                self._capture_error = exc.message
            logger.warning("capture_failed", extra={"code": exc.code, "detail": exc.message})
            self._emit_error(exc.code, exc.message)
            return False
        except Exception:
            with self._lock:
                self._starting = False
            raise

        with self._lock:
            self._starting = False
            self._set_result(None)
            self._transition(SessionState.RECORDING)
        return True

    def stop_capture(self) -> Optional[TranslationResult]:
        with self._lock:
            if self._state != SessionState.RECORDING:
                return None
            self._transition(SessionState.PROCESSING)
            blob = None
            try:
                blob = self._recorder.stop()
            except Exception:
                logger.exception("capture_stop_failed")
            finally:
                self._safe_close_recorder()

        try:
            if blob is None:
                raise EncodingError("no recording was captured")
            payload, mime_type = encoder.encode(blob)
            result = self._client.translate_audio(payload, mime_type)
        except EncodingError as exc:
            self._fail(ENCODING_ERROR, exc.message)
            return None
        except ServiceError as exc:
            self._fail(exc.code, exc.message)
            return None
        except Exception as exc:
            logger.exception("translate_audio_crashed")
            self._fail(SERVICE_ERROR, str(exc))
            return None

        self._succeed(result)
        self._set_input_text(result.original)
        return result

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def submit_text(self, text: str) -> bool:
        with self._lock:
            if not text.strip():
                return False
            if self._starting or self._state in _BUSY_STATES:
                logger.info("submit_text_rejected", extra={"state": self._state.value})
                return False
            self._input_text = text
            self._set_result(None)
            self._transition(SessionState.PROCESSING)

        try:
            result = self._client.translate_text(text)
        except ServiceError as exc:
            self._fail(exc.code, exc.message)
            return True
        except Exception as exc:
            logger.exception("translate_text_crashed")
            self._fail(SERVICE_ERROR, str(exc))
            return True

        self._succeed(result)
        return True

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def request_speak(self) -> bool:
        """Synthesize and play the current translation.

        Returns True when playback was scheduled. The synthesizing flag is
        cleared by the playback-ended notification, or immediately when
        there is nothing to play.
        """
        with self._lock:
            result = self._result
            if result is None or not result.translated or self._synthesizing:
                return False
            self._set_synthesizing(True)

        try:
            payload = self._client.synthesize_speech(result.translated)
            if not payload:
                logger.info("synthesize_speech_empty")
                self._set_synthesizing(False)
                return False
            buffer = playback.decode(
                encoder.decode_base64(payload),
                playback.TTS_SAMPLE_RATE,
                playback.TTS_CHANNELS,
            )
            output = self._audio_output or playback.get_output_context()
            output.play(buffer, self._on_playback_ended)
        except (ServiceError, DecodeError) as exc:
            logger.warning("synthesize_speech_failed", extra={"code": exc.code, "detail": exc.message})
            self._set_synthesizing(False)
            return False
        except Exception:
            logger.exception("synthesize_speech_crashed")
            self._set_synthesizing(False)
            return False
        return True

    def _on_playback_ended(self) -> None:
        self._set_synthesizing(False)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def shutdown(self) -> None:
        with self._lock:
            self._safe_close_recorder()
            if self._state == SessionState.RECORDING:
                self._transition(SessionState.IDLE)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _succeed(self, result: TranslationResult) -> None:
        with self._lock:
            self._set_result(result)
            try:
                self._history.add(result)
            finally:
                self._transition(SessionState.READY)
        logger.info("translation_ready", extra={"history_size": len(self._history)})
        self._emit_history()

    def _fail(self, code: str, message: str) -> None:
        logger.error("translation_failed", extra={"code": code, "detail": message})
        with self._lock:
            self._set_result(None)
            self._transition(SessionState.IDLE)
        self._emit_error(code, message)

    def _set_result(self, result: Optional[TranslationResult]) -> None:
        if result is None and self._result is None:
            return
        self._result = result
        if self._on_result:
            self._on_result(result)

    def _set_input_text(self, text: str) -> None:
        self._input_text = text
        if self._on_input_text:
            self._on_input_text(text)

    def _set_synthesizing(self, value: bool) -> None:
        with self._lock:
            if self._synthesizing == value:
                return
            self._synthesizing = value
        if self._on_synthesizing:
            self._on_synthesizing(value)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _emit_history(self) -> None:
        if self._on_history_change:
            self._on_history_change(self._history.items)

    def _safe_close_recorder(self) -> None:
        try:
            self._recorder.close()
        except Exception:  # pragma: no cover
            logger.exception("recorder_close_failed")

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.info("state_changed", extra={"from_state": from_state.value, "to_state": to_state.value})
        if self._on_state_change:
            self._on_state_change(from_state, to_state)

"""Microphone recorder adapter."""

from __future__ import annotations

import io
import threading
import wave
from typing import Any, Callable, Optional

import numpy as np

from errors import PermissionDenied, UnsupportedDevice
from logging_setup import get_logger
from models import AudioBlob, CaptureState

try:
    import sounddevice as sd
except (ImportError, OSError):  # pragma: no cover - PortAudio missing
    sd = None  # type: ignore

logger = get_logger("recorder")

WAV_MIME_TYPE = "audio/wav"


def pcm_to_wav(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> bytes:
    """Wrap raw PCM bytes in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


def format_elapsed(seconds: float) -> str:
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


class SoundDeviceRecorder:
    """Records one utterance at a time from the default input device.

    ``stop()`` finalizes the accumulated chunks into a WAV ``AudioBlob``. The
    input stream is closed on every exit path: ``stop()``, a failed
    ``start()`` and ``close()``.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        device: Optional[int | str] = None,
        on_complete: Optional[Callable[[AudioBlob], None]] = None,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.device = device
        self._on_complete = on_complete
        self._stream: Any = None
        self._state = CaptureState.IDLE
        self._lock = threading.Lock()
        self._chunks: list[bytes] = []
        self._frames = 0

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def elapsed_s(self) -> float:
        return self._frames / float(self.sample_rate)

    def format_elapsed(self) -> str:
        return format_elapsed(self.elapsed_s)

    def start(self) -> None:
        with self._lock:
            if self._state == CaptureState.RECORDING:
                return
            if sd is None:
                raise UnsupportedDevice("Audio recording is not supported on this system.")
            try:
                sd.query_devices(self.device, kind="input")
            except (ValueError, sd.PortAudioError) as exc:
                logger.warning("capture_no_input_device", extra={"detail": str(exc)})
                raise UnsupportedDevice() from exc

            self._chunks = []
            self._frames = 0
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            try:
                self._stream = sd.InputStream(
                    samplerate=self.sample_rate,
                    channels=self.channels,
                    dtype="int16",
                    blocksize=blocksize,
                    device=self.device,
                    callback=self._on_audio,
                )
                self._stream.start()
            except sd.PortAudioError as exc:
                logger.warning("capture_open_failed", extra={"detail": str(exc)})
                self._release_stream()
                raise PermissionDenied() from exc
            self._state = CaptureState.RECORDING
            logger.info("capture_started", extra={"sample_rate": self.sample_rate})

    def stop(self) -> Optional[AudioBlob]:
        with self._lock:
            if self._state != CaptureState.RECORDING:
                return None
            self._state = CaptureState.STOPPED
            self._release_stream()
            pcm = b"".join(self._chunks)
            self._chunks = []
            if pcm:
                blob = AudioBlob(pcm_to_wav(pcm, self.sample_rate, self.channels), WAV_MIME_TYPE)
            else:
                blob = AudioBlob(b"", WAV_MIME_TYPE)
            logger.info(
                "capture_stopped",
                extra={"elapsed_s": round(self.elapsed_s, 2), "bytes": blob.size},
            )

        if self._on_complete:
            self._on_complete(blob)
        return blob

    def close(self) -> None:
        with self._lock:
            self._release_stream()
            self._chunks = []
            if self._state == CaptureState.RECORDING:
                self._state = CaptureState.STOPPED

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if self._state != CaptureState.RECORDING:
            return
        self._chunks.append(np.asarray(indata, dtype=np.int16).tobytes())
        self._frames += frames

    def _release_stream(self) -> None:
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()

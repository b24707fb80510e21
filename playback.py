"""PCM decoding and playback for synthesized speech."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import numpy as np

from errors import DecodeError
from logging_setup import get_logger
from models import PlaybackBuffer

try:
    import sounddevice as sd
except (ImportError, OSError):  # pragma: no cover - PortAudio missing
    sd = None  # type: ignore

logger = get_logger("playback")

TTS_SAMPLE_RATE = 24000
TTS_CHANNELS = 1


def decode(raw: bytes, sample_rate: int = TTS_SAMPLE_RATE, channels: int = TTS_CHANNELS) -> PlaybackBuffer:
    """Interpret little-endian 16-bit PCM as float32 samples in [-1, 1]."""
    if channels < 1:
        raise DecodeError(f"invalid channel count: {channels}")
    if len(raw) % (2 * channels):
        raise DecodeError(f"truncated PCM payload: {len(raw)} bytes for {channels} channel(s)")
    ints = np.frombuffer(raw, dtype="<i2")
    samples = (ints.astype(np.float32) / 32768.0).reshape(-1, channels)
    return PlaybackBuffer(samples=samples, sample_rate=sample_rate, channels=channels)


class AudioOutputContext:
    """Shared audio output. Each ``play`` call gets its own output stream."""

    def __init__(self, device: Optional[int | str] = None) -> None:
        self.device = device
        self._lock = threading.Lock()
        self._active: list[Any] = []
        self._finished: list[Any] = []

    def play(self, buffer: PlaybackBuffer, on_ended: Callable[[], None]) -> None:
        """Start playback; ``on_ended`` fires once when it is over."""
        self._close_finished()
        if buffer.frames == 0:
            on_ended()
            return
        if sd is None:
            logger.warning("playback_unavailable", extra={"detail": "sounddevice is not installed"})
            on_ended()
            return

        samples = np.ascontiguousarray(buffer.samples, dtype=np.float32)
        position = 0
        stream: Any = None

        def _callback(outdata: Any, frames: int, time_info: Any, status: Any) -> None:
            nonlocal position
            chunk = samples[position:position + frames]
            outdata[: len(chunk)] = chunk
            position += len(chunk)
            if len(chunk) < frames:
                outdata[len(chunk):] = 0
                raise sd.CallbackStop

        def _finished() -> None:
            with self._lock:
                if stream in self._active:
                    self._active.remove(stream)
                    self._finished.append(stream)
            on_ended()

        try:
            stream = sd.OutputStream(
                samplerate=buffer.sample_rate,
                channels=buffer.channels,
                dtype="float32",
                device=self.device,
                callback=_callback,
                finished_callback=_finished,
            )
            with self._lock:
                self._active.append(stream)
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            logger.warning("playback_failed", extra={"detail": str(exc)})
            with self._lock:
                if stream in self._active:
                    self._active.remove(stream)
            on_ended()
            return
        logger.info("playback_started", extra={"duration_s": round(buffer.duration_s, 2)})

    def _close_finished(self) -> None:
        with self._lock:
            finished, self._finished = self._finished, []
        for stream in finished:
            stream.close()


_context: Optional[AudioOutputContext] = None
_context_lock = threading.Lock()


def get_output_context() -> AudioOutputContext:
    """Return the process-wide output context, creating it on first use."""
    global _context
    with _context_lock:
        if _context is None:
            _context = AudioOutputContext()
        return _context

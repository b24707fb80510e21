"""Tests for SoundDeviceRecorder."""

from __future__ import annotations

import io
import wave
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from errors import PermissionDenied, UnsupportedDevice
from models import AudioBlob, CaptureState
from recorder import SoundDeviceRecorder, format_elapsed, pcm_to_wav


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class FakePortAudioError(Exception):
    pass


def _fake_sd() -> MagicMock:
    sd = MagicMock()
    sd.PortAudioError = FakePortAudioError
    sd.InputStream.return_value = MagicMock()
    return sd


def _chunk(n_samples: int = 1600, value: int = 0) -> np.ndarray:
    return np.full((n_samples, 1), value, dtype=np.int16)


# ---------------------------------------------------------------
# Start / stop
# ---------------------------------------------------------------

def test_start_opens_stream_and_stop_returns_wav_blob() -> None:
    sd = _fake_sd()
    with patch("recorder.sd", sd):
        recorder = SoundDeviceRecorder(sample_rate=16000, channels=1, chunk_ms=100)
        recorder.start()
        assert recorder.state == CaptureState.RECORDING
        sd.InputStream.return_value.start.assert_called_once()

        recorder._on_audio(_chunk(1600, 7), frames=1600, time_info=None, status=None)
        recorder._on_audio(_chunk(800, 7), frames=800, time_info=None, status=None)
        assert recorder.elapsed_s == pytest.approx(0.15)

        blob = recorder.stop()

    stream = sd.InputStream.return_value
    stream.stop.assert_called_once()
    stream.close.assert_called_once()
    assert recorder.state == CaptureState.STOPPED
    assert blob is not None
    assert blob.mime_type == "audio/wav"
    with wave.open(io.BytesIO(blob.data), "rb") as wf:
        assert wf.getframerate() == 16000
        assert wf.getnchannels() == 1
        assert wf.getnframes() == 2400


def test_start_is_idempotent() -> None:
    sd = _fake_sd()
    with patch("recorder.sd", sd):
        recorder = SoundDeviceRecorder()
        recorder.start()
        recorder.start()

        assert sd.InputStream.call_count == 1
        recorder.stop()


def test_stop_when_not_recording_returns_none() -> None:
    recorder = SoundDeviceRecorder()
    assert recorder.stop() is None


def test_stop_without_audio_gives_empty_blob() -> None:
    with patch("recorder.sd", _fake_sd()):
        recorder = SoundDeviceRecorder()
        recorder.start()
        blob = recorder.stop()

    assert blob == AudioBlob(b"", "audio/wav")


def test_stop_notifies_completion_callback() -> None:
    received: list[AudioBlob] = []
    with patch("recorder.sd", _fake_sd()):
        recorder = SoundDeviceRecorder(on_complete=received.append)
        recorder.start()
        recorder._on_audio(_chunk(160), frames=160, time_info=None, status=None)
        blob = recorder.stop()

    assert received == [blob]


def test_callback_after_stop_is_ignored() -> None:
    with patch("recorder.sd", _fake_sd()):
        recorder = SoundDeviceRecorder()
        recorder.start()
        recorder.stop()
        recorder._on_audio(_chunk(), frames=1600, time_info=None, status=None)

    assert recorder.elapsed_s == 0.0


# ---------------------------------------------------------------
# Failure paths
# ---------------------------------------------------------------

def test_start_raises_unsupported_without_sounddevice(monkeypatch) -> None:  # noqa: ANN001
    import recorder as rec_mod
    monkeypatch.setattr(rec_mod, "sd", None)

    with pytest.raises(UnsupportedDevice):
        SoundDeviceRecorder().start()


def test_start_raises_unsupported_without_input_device() -> None:
    sd = _fake_sd()
    sd.query_devices.side_effect = ValueError("No input device matching")
    with patch("recorder.sd", sd):
        recorder = SoundDeviceRecorder()
        with pytest.raises(UnsupportedDevice):
            recorder.start()

    sd.InputStream.assert_not_called()
    assert recorder.state == CaptureState.IDLE


def test_open_failure_raises_permission_denied_and_releases_stream() -> None:
    sd = _fake_sd()
    stream = sd.InputStream.return_value
    stream.start.side_effect = FakePortAudioError("Error opening InputStream")
    with patch("recorder.sd", sd):
        recorder = SoundDeviceRecorder()
        with pytest.raises(PermissionDenied):
            recorder.start()

    stream.close.assert_called_once()
    assert recorder.state == CaptureState.IDLE


def test_close_releases_stream_while_recording() -> None:
    sd = _fake_sd()
    with patch("recorder.sd", sd):
        recorder = SoundDeviceRecorder()
        recorder.start()
        recorder.close()

    sd.InputStream.return_value.close.assert_called_once()
    assert recorder.state == CaptureState.STOPPED


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

def test_pcm_to_wav_has_riff_header() -> None:
    assert pcm_to_wav(b"\x00\x00" * 10)[:4] == b"RIFF"


@pytest.mark.parametrize(("seconds", "expected"), [(0, "0:00"), (9.7, "0:09"), (75, "1:15")])
def test_format_elapsed(seconds: float, expected: str) -> None:
    assert format_elapsed(seconds) == expected

from __future__ import annotations

import base64

import pytest

import encoder
import playback
from errors import DecodeError, EncodingError
from models import AudioBlob
from recorder import pcm_to_wav


def test_encode_returns_base64_and_tagged_mime_type() -> None:
    blob = AudioBlob(b"\x00\x01\x02\x03", "audio/webm;codecs=opus")
    payload, mime_type = encoder.encode(blob)

    assert payload == base64.b64encode(b"\x00\x01\x02\x03").decode("ascii")
    assert mime_type == "audio/webm"


def test_encode_is_deterministic() -> None:
    blob = AudioBlob(pcm_to_wav(b"\x10\x00" * 160), "audio/wav")
    assert encoder.encode(blob) == encoder.encode(blob)


@pytest.mark.parametrize(
    ("data", "expected"),
    [
        (b"RIFF\x24\x00\x00\x00WAVE", "audio/wav"),
        (b"OggS\x00\x02", "audio/ogg"),
        (b"\x1a\x45\xdf\xa3\x01", "audio/webm"),
        (b"\x00\x00\x00\x00", "audio/wav"),
    ],
)
def test_untagged_blob_mime_type_is_sniffed(data: bytes, expected: str) -> None:
    assert encoder.get_mime_type(AudioBlob(data, "")) == expected


def test_encode_empty_blob_fails() -> None:
    with pytest.raises(EncodingError):
        encoder.encode(AudioBlob(b"", "audio/wav"))


def test_decode_base64_rejects_garbage() -> None:
    with pytest.raises(DecodeError):
        encoder.decode_base64("not*base64")


def test_round_trip_preserves_byte_length_through_playback_decode() -> None:
    pcm = b"\x01\x00\xff\x7f\x00\x80" * 50
    payload, _ = encoder.encode(AudioBlob(pcm, "audio/wav"))

    raw = encoder.decode_base64(payload)
    buffer = playback.decode(raw, 24000, 1)

    assert len(raw) == len(pcm)
    assert buffer.frames * 2 == len(pcm)

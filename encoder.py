"""Transport encoding for captured audio."""

from __future__ import annotations

import base64
import binascii

from errors import DecodeError, EncodingError
from models import AudioBlob

DEFAULT_MIME_TYPE = "audio/wav"

_SIGNATURES = (
    (b"RIFF", "audio/wav"),
    (b"OggS", "audio/ogg"),
    (b"\x1a\x45\xdf\xa3", "audio/webm"),
    (b"fLaC", "audio/flac"),
    (b"ID3", "audio/mpeg"),
)


def get_mime_type(blob: AudioBlob) -> str:
    """Return the blob's tagged mime type, sniffing the header if untagged."""
    if blob.mime_type:
        return blob.mime_type.split(";")[0].strip()
    for signature, mime_type in _SIGNATURES:
        if blob.data.startswith(signature):
            return mime_type
    return DEFAULT_MIME_TYPE


def encode(blob: AudioBlob) -> tuple[str, str]:
    if not isinstance(blob.data, (bytes, bytearray)):
        raise EncodingError("audio blob data must be bytes")
    if not blob.data:
        raise EncodingError("audio blob is empty")
    payload = base64.b64encode(bytes(blob.data)).decode("ascii")
    return payload, get_mime_type(blob)


def decode_base64(payload: str) -> bytes:
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"invalid base64 payload: {exc}") from exc

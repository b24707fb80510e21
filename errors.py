"""Shared error codes, user-facing messages and exception types."""

from __future__ import annotations

PERMISSION_DENIED = "PERMISSION_DENIED"
UNSUPPORTED_DEVICE = "UNSUPPORTED_DEVICE"
ENCODING_ERROR = "ENCODING_ERROR"
NETWORK_ERROR = "NETWORK_ERROR"
AUTH_FAILED = "AUTH_FAILED"
SERVICE_ERROR = "SERVICE_ERROR"
PARSE_ERROR = "PARSE_ERROR"
DECODE_ERROR = "DECODE_ERROR"

ERROR_MESSAGES = {
    PERMISSION_DENIED: (
        "Microphone permission denied. Please allow access in your system "
        "settings and try again."
    ),
    UNSUPPORTED_DEVICE: "Could not access microphone.",
    ENCODING_ERROR: "The recording could not be prepared for upload.",
    NETWORK_ERROR: "Network failed, please retry.",
    AUTH_FAILED: "API key is invalid.",
    SERVICE_ERROR: "The translation service failed, please retry.",
    PARSE_ERROR: "The translation service returned an unexpected format.",
    DECODE_ERROR: "The synthesized audio could not be decoded.",
}


class TranslatorError(Exception):
    code = SERVICE_ERROR

    def __init__(self, message: str = "", *, code: str | None = None, retryable: bool = True) -> None:
        if code is not None:
            self.code = code
        self.message = message or ERROR_MESSAGES.get(self.code, self.code)
        self.retryable = retryable
        super().__init__(self.message)


class PermissionDenied(TranslatorError):
    code = PERMISSION_DENIED

    def __init__(self, message: str = "") -> None:
        super().__init__(message, retryable=False)


class UnsupportedDevice(TranslatorError):
    code = UNSUPPORTED_DEVICE

    def __init__(self, message: str = "") -> None:
        super().__init__(message, retryable=False)


class EncodingError(TranslatorError):
    code = ENCODING_ERROR


class ServiceError(TranslatorError):
    code = SERVICE_ERROR


class ParseError(TranslatorError):
    code = PARSE_ERROR


class DecodeError(TranslatorError):
    code = DECODE_ERROR


def user_message(code: str) -> str:
    return ERROR_MESSAGES.get(code, code)

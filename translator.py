"""Translation client using DashScope Qwen models.

Text goes to a chat model in JSON-object mode, recorded speech goes to an
audio-understanding model as an inlined ``data:`` URI, and speech synthesis
streams base64 PCM chunks (16-bit, 24 kHz, mono) from the TTS model. All three
share one translator persona so the tone stays consistent.
"""

from __future__ import annotations

import base64
import json
import os
import time
from http import HTTPStatus
from typing import Any, Callable, Optional

from config import DEFAULT_AUDIO_MODEL, DEFAULT_TEXT_MODEL, DEFAULT_TTS_MODEL, DEFAULT_VOICE
from encoder import decode_base64
from errors import AUTH_FAILED, NETWORK_ERROR, SERVICE_ERROR, DecodeError, ParseError, ServiceError
from logging_setup import get_logger
from models import TranslationResult

try:
    import dashscope
except ImportError:  # pragma: no cover
    dashscope = None  # type: ignore

logger = get_logger("translator")

SYSTEM_INSTRUCTION = """
You are a world-class expert Gujarati-to-English translator with native-level proficiency in both languages.
Your goal is to provide perfectly accurate, context-aware, and natural-sounding translations.

CRITICAL GUIDELINES:
- Capture deep linguistic nuances, cultural idioms, and proverbs correctly.
- If the input is in Gujarati script or transliterated (e.g., "Kem cho"), provide the standard English equivalent.
- Maintain the original tone (formal, casual, poetic, or technical).
- Return a strictly valid JSON object.
- Provide a brief 'context' note if the translation involves specific cultural choices or multiple possible meanings.
- Provide 'pronunciation' as a phonetic guide for the Gujarati input.

Respond with a single JSON object of this shape:
{"original": string, "translated": string, "pronunciation": string (optional), "context": string (optional)}
"original" and "translated" are required.
""".strip()

AUDIO_INSTRUCTION = (
    "Listen carefully to this Gujarati speech. Provide an exact transcription in Gujarati "
    "script as 'original' and an expert English translation as 'translated'. "
    "Analyze the tone and context deeply. Answer in JSON."
)

TEXT_FALLBACK_TRANSLATION = "An error occurred during expert analysis."
AUDIO_FALLBACK_ORIGINAL = "Audio input"
AUDIO_FALLBACK_TRANSLATION = "Error in processing audio"


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def _strip_fences(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_result(raw: str) -> TranslationResult:
    """Validate a model reply against the translation result schema."""
    try:
        data = json.loads(_strip_fences(raw or ""))
    except json.JSONDecodeError as exc:
        raise ParseError(f"reply is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ParseError("reply is not a JSON object")

    required = {}
    for key in ("original", "translated"):
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ParseError(f"missing required field '{key}'")
        required[key] = value

    optional = {}
    for key in ("pronunciation", "context"):
        value = data.get(key)
        optional[key] = value if isinstance(value, str) and value.strip() else None

    return TranslationResult(**required, **optional)


class DashscopeTranslationClient:
    def __init__(
        self,
        api_key: str = "",
        text_model: str = DEFAULT_TEXT_MODEL,
        audio_model: str = DEFAULT_AUDIO_MODEL,
        tts_model: str = DEFAULT_TTS_MODEL,
        voice: str = DEFAULT_VOICE,
        request_timeout_s: float = 30.0,
    ) -> None:
        self._api_key = api_key
        self.text_model = text_model
        self.audio_model = audio_model
        self.tts_model = tts_model
        self.voice = voice
        self._request_timeout_s = request_timeout_s

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key

    def translate_text(self, text: str) -> TranslationResult:
        started = time.monotonic()
        response = self._call(
            self._sdk().Generation.call,
            model=self.text_model,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {
                    "role": "user",
                    "content": f'Carefully analyze and translate this Gujarati text to natural English: "{text}"',
                },
            ],
            result_format="message",
            response_format={"type": "json_object"},
        )
        try:
            result = parse_result(self._extract_text(response))
        except ParseError as exc:
            logger.warning("translate_text_parse_failed", extra={"detail": exc.message})
            return TranslationResult(original=text, translated=TEXT_FALLBACK_TRANSLATION)
        logger.info(
            "translate_text_ok",
            extra={"model": self.text_model, "elapsed_ms": int((time.monotonic() - started) * 1000)},
        )
        return result

    def translate_audio(self, base64_payload: str, mime_type: str) -> TranslationResult:
        started = time.monotonic()
        response = self._call(
            self._sdk().MultiModalConversation.call,
            model=self.audio_model,
            messages=[
                {"role": "system", "content": [{"text": SYSTEM_INSTRUCTION}]},
                {
                    "role": "user",
                    "content": [
                        {"audio": f"data:{mime_type};base64,{base64_payload}"},
                        {"text": AUDIO_INSTRUCTION},
                    ],
                },
            ],
            result_format="message",
        )
        try:
            result = parse_result(self._extract_text(response))
        except ParseError as exc:
            logger.warning("translate_audio_parse_failed", extra={"detail": exc.message})
            return TranslationResult(original=AUDIO_FALLBACK_ORIGINAL, translated=AUDIO_FALLBACK_TRANSLATION)
        logger.info(
            "translate_audio_ok",
            extra={
                "model": self.audio_model,
                "mime_type": mime_type,
                "elapsed_ms": int((time.monotonic() - started) * 1000),
            },
        )
        return result

    def synthesize_speech(self, text: str) -> str:
        """Return base64 PCM16 24 kHz mono audio, or ``""`` if none came back."""
        responses = self._call(
            self._sdk().MultiModalConversation.call,
            model=self.tts_model,
            text=text,
            voice=self.voice,
            stream=True,
            check_status=False,
        )
        pcm = bytearray()
        try:
            for chunk in responses:
                self._check_status(chunk)
                data = self._extract_audio(chunk)
                if data:
                    pcm.extend(decode_base64(data))
        except (ServiceError, DecodeError):
            raise
        except Exception as exc:
            raise self._to_service_error(exc) from exc

        logger.info("synthesize_speech_done", extra={"model": self.tts_model, "bytes": len(pcm)})
        if not pcm:
            return ""
        return base64.b64encode(bytes(pcm)).decode("ascii")

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _sdk(self) -> Any:
        if dashscope is None:
            raise ServiceError("dashscope is not installed", code=SERVICE_ERROR, retryable=False)
        return dashscope

    def _call(self, fn: Callable[..., Any], *, check_status: bool = True, **kwargs: Any) -> Any:
        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            raise ServiceError("No API key configured", code=AUTH_FAILED, retryable=False)
        try:
            response = fn(api_key=api_key, timeout=self._request_timeout_s, **kwargs)
        except Exception as exc:
            raise self._to_service_error(exc) from exc
        if check_status:
            self._check_status(response)
        return response

    def _check_status(self, response: Any) -> None:
        status = _field(response, "status_code")
        if status is None or status == HTTPStatus.OK:
            return
        message = f"{_field(response, 'code') or status}: {_field(response, 'message') or ''}".strip()
        if status in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            raise ServiceError(message, code=AUTH_FAILED, retryable=False)
        raise ServiceError(message, code=SERVICE_ERROR, retryable=status >= 500)

    def _extract_text(self, response: Any) -> str:
        """Pull the reply text from a chat or multimodal response."""
        choices = _field(_field(response, "output"), "choices") or []
        if not choices:
            return ""
        content = _field(_field(choices[0], "message"), "content")
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            return "".join(str(_field(part, "text") or "") for part in content)
        return ""

    def _extract_audio(self, chunk: Any) -> str:
        audio = _field(_field(chunk, "output"), "audio")
        return str(_field(audio, "data") or "")

    def _to_service_error(self, exc: Exception) -> ServiceError:
        """Map an SDK/network exception to a service error."""
        message = str(exc)
        low = message.lower()
        if "401" in low or "auth" in low or "api key" in low or "api-key" in low:
            return ServiceError(message, code=AUTH_FAILED, retryable=False)
        if isinstance(exc, (ConnectionError, TimeoutError)) or any(
            word in low for word in ("timeout", "timed out", "network", "connection")
        ):
            return ServiceError(message, code=NETWORK_ERROR, retryable=True)
        return ServiceError(message, code=SERVICE_ERROR, retryable=True)


def build_client(config_store: Optional[Any] = None) -> DashscopeTranslationClient:
    if config_store is None:
        return DashscopeTranslationClient()
    return DashscopeTranslationClient(
        api_key=config_store.get_api_key(),
        text_model=config_store.get_text_model(),
        audio_model=config_store.get_audio_model(),
        tts_model=config_store.get_tts_model(),
        voice=config_store.get_voice(),
    )

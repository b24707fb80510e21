"""Protocol interfaces used by SessionController."""

from __future__ import annotations

from typing import Callable, Optional, Protocol

from models import AudioBlob, PlaybackBuffer, TranslationResult


class Recorder(Protocol):
    @property
    def elapsed_s(self) -> float: ...

    def start(self) -> None: ...

    def stop(self) -> AudioBlob: ...

    def close(self) -> None: ...


class TranslationClient(Protocol):
    def translate_text(self, text: str) -> TranslationResult: ...

    def translate_audio(self, base64_payload: str, mime_type: str) -> TranslationResult: ...

    def synthesize_speech(self, text: str) -> str: ...


class AudioOutput(Protocol):
    def play(self, buffer: PlaybackBuffer, on_ended: Callable[[], None]) -> None: ...


class KeyValueStore(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class ConfigStore(Protocol):
    def get_api_key(self) -> str: ...

    def set_api_key(self, key: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

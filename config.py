"""Simple JSON-based config and key-value stores."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Optional

APP_DIR = Path.home() / ".config" / "gujlingo"

DEFAULT_HOTKEY = "Key.alt_r"
DEFAULT_TEXT_MODEL = "qwen-plus"
DEFAULT_AUDIO_MODEL = "qwen-audio-turbo-latest"
DEFAULT_TTS_MODEL = "qwen-tts"
DEFAULT_VOICE = "Cherry"


class _JsonFile:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")


class JsonKeyValueStore(_JsonFile):
    """String key-value storage persisted to one JSON object file."""

    def __init__(self, path: Path | None = None) -> None:
        super().__init__(path or APP_DIR / "storage.json")

    def get_item(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is None:
            return None
        return str(value)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key not in data:
            return
        del data[key]
        self._write_all(data)


class JsonConfigStore(_JsonFile):
    def __init__(self, path: Path | None = None) -> None:
        super().__init__(path or APP_DIR / "config.json")

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", "")) or os.getenv("DASHSCOPE_API_KEY", "")

    def set_api_key(self, key: str) -> None:
        self._set("api_key", key)

    def get_hotkey(self) -> str:
        return self._get("hotkey", DEFAULT_HOTKEY)

    def set_hotkey(self, hotkey: str) -> None:
        self._set("hotkey", hotkey)

    def get_text_model(self) -> str:
        return self._get("text_model", DEFAULT_TEXT_MODEL)

    def get_audio_model(self) -> str:
        return self._get("audio_model", DEFAULT_AUDIO_MODEL)

    def get_tts_model(self) -> str:
        return self._get("tts_model", DEFAULT_TTS_MODEL)

    def get_voice(self) -> str:
        return self._get("voice", DEFAULT_VOICE)

    def set_voice(self, voice: str) -> None:
        self._set("voice", voice)

    def _get(self, key: str, default: str) -> str:
        data = self._read_all()
        return str(data.get(key, default)) or default

    def _set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

"""Hold-to-record hotkey for voice translation, based on pynput."""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

from logging_setup import get_logger

try:
    from pynput import keyboard
except ImportError:  # pragma: no cover
    keyboard = None  # type: ignore

logger = get_logger("hotkey")


def parse_key(name: str) -> Any:
    """Resolve a configured key name to a pynput key.

    Accepts pynput's own spelling (``Key.alt_r``), a bare special key name
    (``f8``) or a single character such as ``q``.
    """
    if keyboard is None:
        raise RuntimeError("pynput is not installed")
    name = name.strip()
    if len(name) == 1:
        return keyboard.KeyCode.from_char(name.lower())
    attr = name[len("Key."):] if name.startswith("Key.") else name.lower()
    key = getattr(keyboard.Key, attr, None)
    if key is None:
        raise ValueError(f"unknown push-to-talk key: {name!r}")
    return key


class PushToTalkHotkey:
    """Start a capture while the key is held, stop it on release.

    ``on_press`` reports whether a capture actually started. Releases that
    follow a refused press are swallowed, so a failed device open never
    turns into a stop request.
    """

    def __init__(self, hotkey_name: str = "Key.alt_r") -> None:
        self.hotkey_name = hotkey_name
        self._key: Any = None
        self._listener: Optional[Any] = None
        self._held = False
        self._capturing = False
        self._lock = threading.Lock()
        self._on_press: Optional[Callable[[], bool]] = None
        self._on_release: Optional[Callable[[], None]] = None

    @property
    def capturing(self) -> bool:
        return self._capturing

    def start(self, on_press: Callable[[], bool], on_release: Callable[[], None]) -> None:
        self._key = parse_key(self.hotkey_name)
        self._on_press = on_press
        self._on_release = on_release
        self._listener = keyboard.Listener(on_press=self._key_down, on_release=self._key_up)
        self._listener.start()
        logger.info("hotkey_listening", extra={"hotkey": self.hotkey_name})

    def stop(self) -> None:
        listener, self._listener = self._listener, None
        if listener is not None:
            listener.stop()

    def _matches(self, key: Any) -> bool:
        if key == self._key:
            return True
        # shifted characters arrive upper-cased
        char = getattr(key, "char", None)
        return bool(char) and char.lower() == getattr(self._key, "char", None)

    def _key_down(self, key: Any) -> None:
        if self._on_press is None or not self._matches(key):
            return
        with self._lock:
            if self._held:
                return
            self._held = True
        started = bool(self._on_press())
        with self._lock:
            self._capturing = started
        if not started:
            logger.info("hotkey_press_ignored")

    def _key_up(self, key: Any) -> None:
        if self._on_release is None or not self._matches(key):
            return
        with self._lock:
            was_capturing = self._capturing
            self._held = False
            self._capturing = False
        if was_capturing:
            self._on_release()

"""Copy translations to the system clipboard."""

from __future__ import annotations

from logging_setup import get_logger

try:
    import pyperclip
except ImportError:  # pragma: no cover
    pyperclip = None  # type: ignore

logger = get_logger("clipboard")


class ClipboardService:
    def copy_text(self, text: str) -> bool:
        if not text.strip():
            return False
        if pyperclip is None:
            logger.warning("clipboard_unavailable", extra={"detail": "pyperclip is not installed"})
            return False
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as exc:
            logger.warning("clipboard_copy_failed", extra={"detail": str(exc)})
            return False
        return True

"""Main translator window."""

from __future__ import annotations

from typing import Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QButtonGroup,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from models import HistoryItem, TranslationMode, TranslationResult

RESULT_STYLE = (
    "color: white; font-size: 20px; padding: 16px;"
    "background: rgba(15,23,42,235); border-radius: 12px;"
)
CHIP_STYLE = (
    "color: #CBD5E1; font-family: monospace; font-size: 12px; padding: 4px 12px;"
    "background: rgba(255,255,255,30); border-radius: 10px;"
)
ERROR_STYLE = "color: #EF4444; font-weight: 600;"
HINT_STYLE = "color: #94A3B8;"


def record_status_text(
    recording: bool,
    processing: bool,
    elapsed: str = "0:00",
    error: Optional[str] = None,
) -> str:
    if error:
        return error
    if recording:
        return f"Listening... {elapsed}"
    if processing:
        return "Expert AI is analyzing your speech..."
    return "Tap to speak in Gujarati"


def history_entry_text(item: HistoryItem) -> str:
    lines = [f"Gujarati: {item.original}", f"English: {item.translated}"]
    if item.context:
        lines.append(f"Note: {item.context}")
    return "\n".join(lines)


class TranslatorWindow(QWidget):
    translate_requested = Signal(str)
    record_toggled = Signal()
    speak_requested = Signal()
    copy_requested = Signal()
    clear_history_requested = Signal()

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Gujarati Expert Translator")
        self.setMinimumWidth(560)
        self._processing = False
        self._recording = False
        self._capture_error: Optional[str] = None

        # Mode selector
        self._text_mode_btn = QPushButton("Text Mode")
        self._voice_mode_btn = QPushButton("Voice Expert")
        for btn in (self._text_mode_btn, self._voice_mode_btn):
            btn.setCheckable(True)
        self._text_mode_btn.setChecked(True)
        mode_group = QButtonGroup(self)
        mode_group.setExclusive(True)
        mode_group.addButton(self._text_mode_btn)
        mode_group.addButton(self._voice_mode_btn)
        self._text_mode_btn.clicked.connect(lambda: self.set_mode(TranslationMode.TEXT))
        self._voice_mode_btn.clicked.connect(lambda: self.set_mode(TranslationMode.VOICE))
        mode_row = QHBoxLayout()
        mode_row.addWidget(self._text_mode_btn)
        mode_row.addWidget(self._voice_mode_btn)

        # Text page
        self._input = QPlainTextEdit()
        self._input.setPlaceholderText("Enter Gujarati text or phrase...")
        self._input.textChanged.connect(self._refresh_buttons)
        self._translate_btn = QPushButton("Translate to English")
        self._translate_btn.clicked.connect(self._emit_translate)
        text_page = QWidget()
        text_layout = QVBoxLayout(text_page)
        text_layout.setContentsMargins(0, 0, 0, 0)
        text_layout.addWidget(self._input)
        text_layout.addWidget(self._translate_btn)

        # Voice page
        self._record_btn = QPushButton("Record")
        self._record_btn.setFixedHeight(64)
        self._record_btn.clicked.connect(self.record_toggled)
        self._record_status = QLabel(record_status_text(False, False))
        self._record_status.setAlignment(Qt.AlignCenter)
        self._record_status.setWordWrap(True)
        voice_page = QWidget()
        voice_layout = QVBoxLayout(voice_page)
        voice_layout.setContentsMargins(0, 0, 0, 0)
        voice_layout.addWidget(self._record_btn)
        voice_layout.addWidget(self._record_status)

        self._pages = QStackedWidget()
        self._pages.addWidget(text_page)
        self._pages.addWidget(voice_page)

        # Result panel
        self._result_title = QLabel("Expert Translation")
        self._speak_btn = QPushButton("Listen")
        self._speak_btn.clicked.connect(self.speak_requested)
        self._copy_btn = QPushButton("Copy")
        self._copy_btn.clicked.connect(self.copy_requested)
        header = QHBoxLayout()
        header.addWidget(self._result_title)
        header.addStretch(1)
        header.addWidget(self._copy_btn)
        header.addWidget(self._speak_btn)

        self._translated = QLabel("")
        self._translated.setWordWrap(True)
        self._translated.setStyleSheet(RESULT_STYLE)
        self._translated.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self._pronunciation = QLabel("")
        self._pronunciation.setStyleSheet(CHIP_STYLE)
        self._context = QLabel("")
        self._context.setWordWrap(True)
        self._context.setStyleSheet("color: #64748B; font-style: italic;")

        self._result_panel = QWidget()
        result_layout = QVBoxLayout(self._result_panel)
        result_layout.setContentsMargins(0, 0, 0, 0)
        result_layout.addLayout(header)
        result_layout.addWidget(self._translated)
        result_layout.addWidget(self._pronunciation, alignment=Qt.AlignLeft)
        result_layout.addWidget(self._context)
        self._result_panel.hide()

        # History
        self._history_title = QLabel("Recent History")
        self._clear_btn = QPushButton("Clear History")
        self._clear_btn.clicked.connect(self.clear_history_requested)
        history_header = QHBoxLayout()
        history_header.addWidget(self._history_title)
        history_header.addStretch(1)
        history_header.addWidget(self._clear_btn)
        self._history_list = QListWidget()
        self._history_list.setWordWrap(True)
        self._history_panel = QWidget()
        history_layout = QVBoxLayout(self._history_panel)
        history_layout.setContentsMargins(0, 0, 0, 0)
        history_layout.addLayout(history_header)
        history_layout.addWidget(self._history_list)
        self._history_panel.hide()

        layout = QVBoxLayout(self)
        layout.addLayout(mode_row)
        layout.addWidget(self._pages)
        layout.addWidget(self._result_panel)
        layout.addWidget(self._history_panel)

        self._refresh_buttons()

    @property
    def input_text(self) -> str:
        return self._input.toPlainText()

    def set_mode(self, mode: TranslationMode) -> None:
        self._pages.setCurrentIndex(0 if mode == TranslationMode.TEXT else 1)
        self._text_mode_btn.setChecked(mode == TranslationMode.TEXT)
        self._voice_mode_btn.setChecked(mode == TranslationMode.VOICE)

    def set_input_text(self, text: str) -> None:
        self._input.setPlainText(text)

    def set_processing(self, processing: bool) -> None:
        self._processing = processing
        if processing:
            self._result_panel.show()
            self._translated.setText("Expert Reasoning...")
            self._pronunciation.hide()
            self._context.hide()
            self._speak_btn.setEnabled(False)
            self._copy_btn.setEnabled(False)
        self._refresh_buttons()

    def set_recording(self, recording: bool, elapsed: str = "0:00") -> None:
        self._recording = recording
        if recording:
            self._capture_error = None
        self._record_btn.setText("Stop" if recording else "Record")
        self.set_record_status(
            record_status_text(recording, self._processing, elapsed, self._capture_error),
            error=self._capture_error is not None,
        )
        self._refresh_buttons()

    def set_record_status(self, text: str, error: bool = False) -> None:
        self._record_status.setText(text)
        self._record_status.setStyleSheet(ERROR_STYLE if error else HINT_STYLE)

    def show_capture_error(self, message: str) -> None:
        """Keep the message on screen until the next capture attempt."""
        self._capture_error = message
        self.set_record_status(message, error=True)

    def set_result(self, result: Optional[TranslationResult]) -> None:
        if result is None:
            if not self._processing:
                self._result_panel.hide()
            return
        self._result_panel.show()
        self._translated.setText(result.translated)
        self._pronunciation.setText(result.pronunciation or "")
        self._pronunciation.setVisible(bool(result.pronunciation))
        self._context.setText(f"Expert Nuance: {result.context}" if result.context else "")
        self._context.setVisible(bool(result.context))
        self._speak_btn.setEnabled(True)
        self._copy_btn.setEnabled(True)

    def set_synthesizing(self, synthesizing: bool) -> None:
        self._speak_btn.setEnabled(not synthesizing)
        self._speak_btn.setText("Speaking..." if synthesizing else "Listen")

    def set_history(self, items: list[HistoryItem]) -> None:
        self._history_list.clear()
        for item in items:
            entry = QListWidgetItem(history_entry_text(item))
            entry.setData(Qt.UserRole, item.id)
            self._history_list.addItem(entry)
        self._history_panel.setVisible(bool(items))

    def _emit_translate(self) -> None:
        text = self.input_text
        if text.strip():
            self.translate_requested.emit(text)

    def _refresh_buttons(self) -> None:
        busy = self._processing
        self._translate_btn.setEnabled(not busy and not self._recording and bool(self.input_text.strip()))
        self._translate_btn.setText("Expert Reasoning..." if busy else "Translate to English")
        self._record_btn.setEnabled(not busy)

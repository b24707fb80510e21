"""Application entrypoint."""

from __future__ import annotations

import sys
import threading

from clipboard import ClipboardService
from config import JsonConfigStore, JsonKeyValueStore
from errors import PERMISSION_DENIED, UNSUPPORTED_DEVICE
from history import HistoryStore
from hotkey import PushToTalkHotkey, parse_key
from logging_setup import setup_app_logger
from models import SessionState, TranslationMode
from recorder import SoundDeviceRecorder
from session_controller import SessionController
from translator import build_client

try:
    from PySide6.QtCore import QObject, QSize, QTimer, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QInputDialog, QMenu, QMessageBox, QSystemTrayIcon
except ImportError as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

from window import TranslatorWindow, record_status_text


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#F97316"      # orange
ICON_RECORDING = "#EF4444"  # red
ICON_PROCESSING = "#64748B"  # slate


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    result_signal = Signal(object)
    error_signal = Signal(str, str)  # code, message
    synthesizing_signal = Signal(bool)
    input_signal = Signal(str)
    history_signal = Signal(object)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.logger, self.log_path = setup_app_logger()
        self.config_store = JsonConfigStore()
        self.clipboard = ClipboardService()
        self.window = TranslatorWindow()
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.result_signal.connect(self.window.set_result)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.synthesizing_signal.connect(self.window.set_synthesizing)
        self.ui.input_signal.connect(self.window.set_input_text)
        self.ui.history_signal.connect(self.window.set_history)

        self.recorder = SoundDeviceRecorder()
        self.client = build_client(self.config_store)
        self.controller = SessionController(
            recorder=self.recorder,
            client=self.client,
            history=HistoryStore(JsonKeyValueStore()),
            on_state_change=lambda f, t: self.ui.state_signal.emit(f.value, t.value),
            on_result=self.ui.result_signal.emit,
            on_error=self.ui.error_signal.emit,
            on_synthesizing=self.ui.synthesizing_signal.emit,
            on_input_text=self.ui.input_signal.emit,
            on_history_change=self.ui.history_signal.emit,
        )
        self.hotkey = PushToTalkHotkey(hotkey_name=self.config_store.get_hotkey())

        self.window.translate_requested.connect(self._on_translate)
        self.window.record_toggled.connect(self._on_record_toggled)
        self.window.speak_requested.connect(self._on_speak)
        self.window.copy_requested.connect(self._on_copy)
        self.window.clear_history_requested.connect(self.controller.clear_history)

        self._elapsed_timer = QTimer()
        self._elapsed_timer.setInterval(250)
        self._elapsed_timer.timeout.connect(self._refresh_elapsed)

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Gujarati Translator — Ready")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        show_action = QAction("Show Translator", menu)
        show_action.triggered.connect(self.window.show)
        menu.addAction(show_action)

        api_action = QAction("Set API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        hotkey_action = QAction("Set Push-to-Talk Key", menu)
        hotkey_action.triggered.connect(self._set_hotkey)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "DashScope API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        self.client.set_api_key(value)
        QMessageBox.information(None, "Saved", "API Key saved and applied.")

    def _set_hotkey(self) -> None:
        value, ok = QInputDialog.getText(
            None, "Hotkey", "Key.alt_r, f8 or a single character"
        )
        if not ok or not value:
            return
        try:
            parse_key(value)
        except (RuntimeError, ValueError) as exc:
            QMessageBox.warning(None, "Hotkey", str(exc))
            return
        self.config_store.set_hotkey(value)
        QMessageBox.information(None, "Saved", "Hotkey saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Window actions (Qt thread). Blocking controller calls go to workers.
    # ------------------------------------------------------------------

    def _on_translate(self, text: str) -> None:
        self._run_in_worker(self.controller.submit_text, text)

    def _on_record_toggled(self) -> None:
        self.window.set_mode(TranslationMode.VOICE)
        if self.controller.state == SessionState.RECORDING:
            self._run_in_worker(self.controller.stop_capture)
        else:
            self.controller.start_capture()

    def _on_speak(self) -> None:
        self._run_in_worker(self.controller.request_speak)

    def _on_copy(self) -> None:
        result = self.controller.result
        if result is not None and self.clipboard.copy_text(result.translated):
            self.tray.showMessage("Copied", result.translated, QSystemTrayIcon.Information, 1500)

    def _run_in_worker(self, target, *args) -> None:  # noqa: ANN001
        threading.Thread(target=target, args=args, daemon=True).start()

    # ------------------------------------------------------------------
    # Controller callbacks, delivered on the Qt thread via UIBridge
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("Gujarati Translator — Listening...")
            self.window.set_recording(True)
            self._elapsed_timer.start()
        elif to_state == SessionState.PROCESSING.value:
            self._elapsed_timer.stop()
            self.tray.setIcon(_create_icon(ICON_PROCESSING))
            self.tray.setToolTip("Gujarati Translator — Processing...")
            self.window.set_processing(True)
            self.window.set_recording(False)
        else:
            self._elapsed_timer.stop()
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Gujarati Translator — Ready")
            self.window.set_processing(False)
            self.window.set_recording(False)
            self.window.set_result(self.controller.result)

    def _on_error_ui(self, code: str, message: str) -> None:
        if code in (PERMISSION_DENIED, UNSUPPORTED_DEVICE):
            self.window.show_capture_error(message)
            return
        self.tray.setToolTip(f"Gujarati Translator — {message}")

    def _refresh_elapsed(self) -> None:
        self.window.set_record_status(
            record_status_text(True, False, self.recorder.format_elapsed())
        )

    # ------------------------------------------------------------------
    # Push-to-talk (pynput listener thread)
    # ------------------------------------------------------------------

    def _on_hotkey_press(self) -> bool:
        return self.controller.start_capture()

    def _on_hotkey_release(self) -> None:
        # stop_capture waits on the network, keep it off the listener thread
        self._run_in_worker(self.controller.stop_capture)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.logger.info("app_start", extra={"log_path": str(self.log_path)})
        self.controller.load_history()
        self.window.show()
        try:
            self.hotkey.start(
                on_press=self._on_hotkey_press,
                on_release=self._on_hotkey_release,
            )
        except (RuntimeError, ValueError) as exc:
            self.logger.warning("hotkey_disabled", extra={"detail": str(exc)})
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.shutdown()
        self.logger.info("app_quit")
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())

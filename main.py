"""Application entrypoint."""

from __future__ import annotations

import logging
import sys
import threading

from capture_window import CaptureWindow
from config import JsonConfigStore
from errors import ERROR_MESSAGES
from hotkey import GlobalHotkeyAdapter
from interfaces import Extractor
from llm_extractor import DashscopeExtractor
from logging_utils import setup_logging
from models import InventoryRecord, SessionState
from recognizer import DashscopeRecognizerAdapter
from recorder import SoundDeviceRecorder
from rule_extractor import RuleBasedExtractor
from session_controller import SessionController

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QMenu, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger("voicecount.app")


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


ICON_COLORS = {
    SessionState.IDLE: "#888888",
    SessionState.LISTENING: "#FF4444",
    SessionState.COMPLETING: "#FFCC00",
    SessionState.AWAITING_EXTRACTION: "#FFCC00",
    SessionState.DRAFT_READY: "#44AA44",
    SessionState.ERROR: "#FF8800",
}


def build_extractor(config_store: JsonConfigStore) -> Extractor:
    if config_store.get_extractor() == "rules":
        return RuleBasedExtractor()
    return DashscopeExtractor(
        api_key=config_store.get_api_key(),
        model=config_store.get_extraction_model(),
    )


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    transcript_signal = Signal(str)
    draft_signal = Signal(object)
    confirmed_signal = Signal(object)
    error_signal = Signal(str)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        _, log_path = setup_logging()
        logger.info("logging to %s", log_path)

        self.config_store = JsonConfigStore()
        logger.info("config at %s", self.config_store.path)
        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.transcript_signal.connect(self._on_transcript_ui)
        self.ui.draft_signal.connect(self._on_draft_ui)
        self.ui.confirmed_signal.connect(self._on_confirmed_ui)
        self.ui.error_signal.connect(self._on_error_ui)

        api_key = self.config_store.get_api_key()
        self.controller = SessionController(
            recorder=SoundDeviceRecorder(),
            recognizer=DashscopeRecognizerAdapter(
                api_key=api_key,
                model=self.config_store.get_asr_model(),
                language=self.config_store.get_language(),
            ),
            extractor=build_extractor(self.config_store),
            trigger_phrase=self.config_store.get_trigger_phrase(),
            silence_timeout_s=self.config_store.get_silence_timeout_ms() / 1000.0,
            on_state_change=self._on_state_change,
            on_transcript=self.ui.transcript_signal.emit,
            on_draft=self.ui.draft_signal.emit,
            on_confirmed=self.ui.confirmed_signal.emit,
            on_error=self._on_error,
        )
        self.window = CaptureWindow(
            on_toggle=self.toggle_capture,
            on_confirm=self.controller.confirm_draft,
            on_edit=self._edit_field,
        )
        self.hotkey = GlobalHotkeyAdapter(
            {
                self.config_store.get_toggle_hotkey(): self.toggle_capture,
                self.config_store.get_confirm_hotkey(): self.controller.confirm_draft,
            }
        )
        if len(self.hotkey.keys) < 2:
            logger.warning("toggle and confirm share the hotkey %s; only confirm is bound", self.hotkey.keys[0])
            self.window.show_error(f"Hotkey {self.hotkey.keys[0]} is bound to both toggle and confirm")

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_COLORS[SessionState.IDLE]))
        self.tray.setToolTip("Contagem por voz — Pronto")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        show_action = QAction("Show window", menu)
        show_action.triggered.connect(self.window.show)
        menu.addAction(show_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def toggle_capture(self) -> None:
        if self.controller.state == SessionState.LISTENING:
            # Stopping joins the recognizer thread; keep it off the Qt thread.
            threading.Thread(target=self.controller.stop_capture, daemon=True).start()
        else:
            self.controller.start_capture()

    def _edit_field(self, field: str, value: str) -> str | None:
        try:
            self.controller.edit_draft_field(field, value)
        except ValueError as exc:
            return str(exc)
        return None

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_error(self, code: str, message: str) -> None:
        self.ui.error_signal.emit(message or ERROR_MESSAGES.get(code, code))

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        state = SessionState(to_state)
        self.window.set_state(state)
        self.tray.setIcon(_create_icon(ICON_COLORS[state]))
        self.tray.setToolTip(f"Contagem por voz — {state.value}")

    def _on_transcript_ui(self, text: str) -> None:
        self.window.set_transcript(text)

    def _on_draft_ui(self, record: InventoryRecord) -> None:
        self.window.show_draft(record)

    def _on_confirmed_ui(self, record: InventoryRecord) -> None:
        self.window.show_records(self.controller.records)

    def _on_error_ui(self, msg: str) -> None:
        self.window.show_error(msg)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        self.window.show()
        try:
            self.hotkey.start()
        except Exception as exc:
            logger.warning("hotkeys disabled: %s", exc)
            self.window.show_error(f"Hotkey disabled: {exc}")
        return self.app.exec()

    def quit(self) -> None:
        self.hotkey.stop()
        self.controller.shutdown("app quit")
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())

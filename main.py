"""Application entrypoint and composition root."""

from __future__ import annotations

import logging
import sys
import threading

from auto_paste import ClipboardPasteService
from config import JsonConfigStore
from hotkey import GlobalHotkeyAdapter
from importer import SUPPORTED_EXTENSIONS, AudioFileImporter
from model_manager import ModelManager
from models import SessionState
from recorder import SoundDeviceRecorder
from session_controller import VoiceSessionController, format_duration
from transcription import TranscriptionEngine, WhisperModelHandle

try:
    from PySide6.QtCore import QObject, QSize, Signal
    from PySide6.QtGui import QAction, QBrush, QColor, QIcon, QPainter, QPixmap
    from PySide6.QtWidgets import QApplication, QFileDialog, QMenu, QSystemTrayIcon

    from overlay import DictationPanel, OverlayWindow
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = logging.getLogger(__name__)

ICON_IDLE = "#888888"      # grey
ICON_RECORDING = "#FF4444"  # red
ICON_BUSY = "#FF8800"      # orange


def configure_logging(config_store: JsonConfigStore) -> None:
    log_file = config_store.config_dir / "journal_voice.log"
    logging.basicConfig(
        level=getattr(logging, config_store.get_log_level(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding="utf-8"),
            logging.StreamHandler(sys.stdout),
        ],
    )


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


class UIBridge(QObject):
    state_signal = Signal(str, str)  # from_state, to_state
    tick_signal = Signal(int)
    error_signal = Signal(str)
    transcript_signal = Signal(str)
    progress_signal = Signal(int)
    download_done_signal = Signal(str)  # empty on success


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        configure_logging(self.config_store)

        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.tick_signal.connect(self._on_tick_ui)
        self.ui.error_signal.connect(self._on_error_ui)
        self.ui.transcript_signal.connect(self._on_transcript_ui)
        self.ui.progress_signal.connect(self._on_progress_ui)
        self.ui.download_done_signal.connect(self._on_download_done_ui)

        self.model_manager = ModelManager(
            model_path=self.config_store.get_model_path(),
            url=self.config_store.get_model_url(),
            min_bytes=self.config_store.get_min_model_bytes(),
        )
        self.model_handle = WhisperModelHandle(self.model_manager.model_path)
        self.controller = VoiceSessionController(
            recorder=SoundDeviceRecorder(),
            importer=AudioFileImporter(),
            engine=TranscriptionEngine(self.model_manager, self.model_handle),
            sink=ClipboardPasteService(),
            disconnect_policy=self.config_store.get_disconnect_policy(),
            on_state_change=self._on_state_change,
            on_tick=self.ui.tick_signal.emit,
            on_error=self._on_error,
            on_transcript=self.ui.transcript_signal.emit,
        )
        self.hotkey = GlobalHotkeyAdapter(hotkey=self.config_store.get_hotkey())

        self.overlay = OverlayWindow()
        self.panel = DictationPanel()
        self.panel.hold_pressed.connect(self.controller.press)
        self.panel.hold_released.connect(self.controller.release)
        self.panel.import_requested.connect(self._import_audio)
        self.panel.download_requested.connect(self._download_model)

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Journal Voice — Ready")
        self._setup_menu()
        self.tray.show()

    def _setup_menu(self) -> None:
        menu = QMenu()

        show_action = QAction("Show Panel", menu)
        show_action.triggered.connect(self.panel.show)
        menu.addAction(show_action)

        import_action = QAction("Import Audio…", menu)
        import_action.triggered.connect(self._import_audio)
        menu.addAction(import_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def _import_audio(self) -> None:
        patterns = " ".join(f"*.{ext}" for ext in SUPPORTED_EXTENSIONS)
        path, _ = QFileDialog.getOpenFileName(None, "Import Audio", "", f"Audio Files ({patterns})")
        if not path:
            return
        # Decoding and inference block, keep them off the Qt thread.
        threading.Thread(target=self.controller.import_file, args=(path,), daemon=True).start()

    def _download_model(self) -> None:
        self.panel.set_downloading(True)
        self.model_manager.start_download(
            progress_sink=self.ui.progress_signal.emit,
            on_finished=lambda err: self.ui.download_done_signal.emit(err.message if err else ""),
        )

    def _enable_hotkey(self) -> None:
        try:
            self.controller.attach_trigger(self.hotkey)
        except RuntimeError as exc:
            logger.warning("Global hotkey disabled: %s", exc)
            self.overlay.show_error(f"Hotkey disabled: {exc}")

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(from_state.value, to_state.value)

    def _on_error(self, code: str, message: str) -> None:
        self.ui.error_signal.emit(message or code)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, from_state: str, to_state: str) -> None:
        if to_state == SessionState.RECORDING.value:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("Journal Voice — Recording...")
            self.panel.set_status(f"Recording {format_duration(0)}")
            self.panel.set_busy(True)
            self.overlay.set_text("🎙️ Listening...")
        elif to_state == SessionState.TRANSCRIBING.value:
            self.tray.setIcon(_create_icon(ICON_BUSY))
            self.tray.setToolTip("Journal Voice — Transcribing...")
            self.panel.set_status("Transcribing…")
            self.panel.set_busy(True)
        elif to_state == SessionState.IDLE.value:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Journal Voice — Ready")
            self.panel.set_status("Ready")
            self.panel.set_busy(False)
            self.overlay.hide_with_delay(1500)

    def _on_tick_ui(self, seconds: int) -> None:
        if self.controller.state == SessionState.RECORDING:
            self.panel.set_status(f"Recording {format_duration(seconds)}")

    def _on_error_ui(self, msg: str) -> None:
        self.overlay.show_error(msg)

    def _on_transcript_ui(self, text: str) -> None:
        self.overlay.set_text(text)

    def _on_progress_ui(self, percent: int) -> None:
        self.panel.set_progress(percent)

    def _on_download_done_ui(self, error: str) -> None:
        self.panel.set_downloading(False)
        if error:
            self.panel.set_status("Model download failed")
            self.overlay.show_error(error)
            return
        self.panel.set_model_ready(True)
        self.panel.set_status("Ready")
        self._enable_hotkey()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        ready = self.model_manager.is_ready()
        self.panel.set_model_ready(ready)
        self.panel.set_status("Ready" if ready else "Speech model not downloaded")
        if ready:
            self._enable_hotkey()
        self.panel.show()
        return self.app.exec()

    def quit(self) -> None:
        self.controller.shutdown()
        self.model_handle.unload()
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())

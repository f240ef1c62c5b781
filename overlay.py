"""Qt widgets: the dictation panel and the floating transcript overlay."""

from __future__ import annotations

from PySide6.QtCore import Qt, QTimer, Signal
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QProgressBar,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

_LABEL_STYLE = (
    "color: white; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,190); border-radius: 12px;"
)
_ERROR_STYLE = (
    "color: #FF6B6B; font-size: 18px; padding: 16px;"
    "background: rgba(0,0,0,210); border-radius: 12px;"
)


class OverlayWindow(QWidget):
    def __init__(self) -> None:
        super().__init__()
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setFixedWidth(600)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_LABEL_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

        self._hide_timer: QTimer | None = None

    def _center_top(self) -> None:
        """Position the window at the top center of the primary screen."""
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + (geom.width() - self.width()) // 2
        y = geom.y() + 40  # 40px below menu bar
        self.move(x, y)

    def set_text(self, text: str) -> None:
        """Update overlay text and show at screen top center."""
        self._cancel_hide_timer()
        self._label.setStyleSheet(_LABEL_STYLE)
        self._label.setText(text)
        self._center_top()
        self.show()

    def hide_with_delay(self, delay_ms: int = 400) -> None:
        self._cancel_hide_timer()
        self._hide_timer = QTimer()
        self._hide_timer.setSingleShot(True)
        self._hide_timer.timeout.connect(self.hide)
        self._hide_timer.start(delay_ms)

    def show_error(self, text: str, hide_after_ms: int = 2500) -> None:
        """Show an error message and auto-hide after given ms."""
        self.set_text(f"⚠️ {text}")
        self._label.setStyleSheet(_ERROR_STYLE)
        self.hide_with_delay(hide_after_ms)

    def _cancel_hide_timer(self) -> None:
        if self._hide_timer is not None:
            self._hide_timer.stop()
            self._hide_timer = None


class DictationPanel(QWidget):
    """Hold-to-talk button, audio import and model download controls."""

    hold_pressed = Signal()
    hold_released = Signal()
    import_requested = Signal()
    download_requested = Signal()

    def __init__(self) -> None:
        super().__init__()
        self.setWindowTitle("Journal Voice")
        self.setMinimumWidth(360)

        self._talk_button = QPushButton("Hold to talk")
        self._talk_button.setMinimumHeight(48)
        self._talk_button.pressed.connect(self.hold_pressed.emit)
        self._talk_button.released.connect(self.hold_released.emit)

        self._import_button = QPushButton("Import audio…")
        self._import_button.clicked.connect(self.import_requested.emit)

        self._download_button = QPushButton("Download speech model")
        self._download_button.clicked.connect(self.download_requested.emit)

        self._progress = QProgressBar()
        self._progress.setRange(0, 100)
        self._progress.hide()

        self._status = QLabel("Idle")
        self._status.setAlignment(Qt.AlignCenter)

        buttons = QHBoxLayout()
        buttons.addWidget(self._import_button)
        buttons.addWidget(self._download_button)

        layout = QVBoxLayout()
        layout.addWidget(self._talk_button)
        layout.addLayout(buttons)
        layout.addWidget(self._progress)
        layout.addWidget(self._status)
        self.setLayout(layout)

    def set_model_ready(self, ready: bool) -> None:
        self._talk_button.setEnabled(ready)
        self._import_button.setEnabled(ready)
        self._download_button.setVisible(not ready)

    def set_downloading(self, downloading: bool) -> None:
        self._download_button.setEnabled(not downloading)
        self._progress.setVisible(downloading)
        if downloading:
            self._progress.setValue(0)

    def set_progress(self, percent: int) -> None:
        self._progress.setValue(percent)
        self._status.setText(f"Downloading model… {percent}%")

    def set_status(self, text: str) -> None:
        self._status.setText(text)

    def set_busy(self, busy: bool) -> None:
        self._import_button.setEnabled(not busy)

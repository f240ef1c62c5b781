"""Clipboard paste sink: drops transcribed text into the focused document."""

from __future__ import annotations

import logging
import sys
import time

from errors import NO_ACTIVE_TARGET
from models import DeliveryResult

try:
    import pyperclip
except Exception:  # pragma: no cover
    pyperclip = None  # type: ignore

try:
    from pynput.keyboard import Controller, Key
except Exception:  # pragma: no cover
    Controller = None  # type: ignore
    Key = None  # type: ignore

logger = logging.getLogger(__name__)


class ClipboardPasteService:
    def __init__(self, restore_delay_s: float = 0.1, platform: str = sys.platform) -> None:
        self._restore_delay_s = restore_delay_s
        self._platform = platform

    def append_text(self, text: str) -> DeliveryResult:
        if not text.strip():
            return DeliveryResult(success=False, reason="empty text", clipboard_restored=True)
        if pyperclip is None or Controller is None or Key is None:
            return DeliveryResult(
                success=False,
                reason="clipboard/keyboard dependency missing",
                clipboard_restored=False,
            )

        old_clip: str | None = None
        try:
            old_clip = pyperclip.paste()
            pyperclip.copy(text)
            self._send_paste_chord()
            time.sleep(self._restore_delay_s)
            pyperclip.copy(old_clip)
            return DeliveryResult(success=True, reason="ok", clipboard_restored=True)
        except Exception as exc:
            logger.warning("Paste failed: %s", exc)
            restored = False
            if old_clip is not None:
                try:
                    pyperclip.copy(old_clip)
                    restored = True
                except pyperclip.PyperclipException as restore_exc:
                    logger.warning("Could not restore clipboard: %s", restore_exc)
            return DeliveryResult(
                success=False,
                reason=f"{NO_ACTIVE_TARGET}: {exc}",
                clipboard_restored=restored,
            )

    def _send_paste_chord(self) -> None:
        modifier = Key.cmd if self._platform == "darwin" else Key.ctrl
        keyboard = Controller()
        keyboard.press(modifier)
        keyboard.press("v")
        keyboard.release("v")
        keyboard.release(modifier)

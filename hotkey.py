"""Global push-to-talk hotkey based on pynput.

Fires ``on_press`` once when every key of the combination is held, and
``on_release`` once when any of them is let go. Key auto-repeat never refires.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from config import DEFAULT_HOTKEY

try:
    from pynput import keyboard
except Exception:  # pragma: no cover
    keyboard = None  # type: ignore

logger = logging.getLogger(__name__)


class GlobalHotkeyAdapter:
    def __init__(self, hotkey: str = DEFAULT_HOTKEY) -> None:
        self._hotkey = hotkey
        self._listener: Optional[Any] = None
        self._combo: frozenset = frozenset()
        self._held: set = set()
        self._pressed = False
        self._lock = threading.Lock()
        self._on_press: Optional[Callable[[], None]] = None
        self._on_release: Optional[Callable[[], None]] = None

    @property
    def hotkey(self) -> str:
        return self._hotkey

    @property
    def is_running(self) -> bool:
        return self._listener is not None

    def start(self, on_press: Callable[[], None], on_release: Callable[[], None]) -> None:
        if keyboard is None:
            raise RuntimeError("pynput is not installed")
        if self._listener is not None:
            return
        self._combo = frozenset(keyboard.HotKey.parse(self._hotkey))
        self._on_press = on_press
        self._on_release = on_release
        self._held.clear()
        self._pressed = False
        self._listener = keyboard.Listener(on_press=self._handle_press, on_release=self._handle_release)
        self._listener.start()
        logger.info("Global hotkey %s registered", self._hotkey)

    def stop(self) -> None:
        listener = self._listener
        if listener is not None:
            listener.stop()
            self._listener = None
            logger.info("Global hotkey %s unregistered", self._hotkey)

    def _canonical(self, key: Any) -> Any:
        listener = self._listener
        if listener is None:
            return key
        return listener.canonical(key)

    def _handle_press(self, key: Any) -> None:
        key = self._canonical(key)
        if key not in self._combo:
            return
        with self._lock:
            self._held.add(key)
            if self._pressed or self._held != self._combo:
                return
            self._pressed = True
        if self._on_press:
            self._on_press()

    def _handle_release(self, key: Any) -> None:
        key = self._canonical(key)
        if key not in self._combo:
            return
        with self._lock:
            self._held.discard(key)
            if not self._pressed:
                return
            self._pressed = False
        if self._on_release:
            self._on_release()

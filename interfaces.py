"""Protocol interfaces used by VoiceSessionController."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Protocol

from models import CanonicalAudioBuffer, DeliveryResult, DisconnectPolicy


class Recorder(Protocol):
    def start(self) -> None: ...

    def stop(self) -> CanonicalAudioBuffer: ...


class AudioImporter(Protocol):
    def decode(self, path: Path | str) -> CanonicalAudioBuffer: ...


class Transcriber(Protocol):
    def is_ready(self) -> bool: ...

    def transcribe(self, buffer: CanonicalAudioBuffer) -> str: ...


class TextSink(Protocol):
    def append_text(self, text: str) -> DeliveryResult: ...


class TriggerSource(Protocol):
    def start(self, on_press: Callable[[], None], on_release: Callable[[], None]) -> None: ...

    def stop(self) -> None: ...


class ConfigStore(Protocol):
    def get_model_path(self) -> Path: ...

    def get_model_url(self) -> str: ...

    def get_min_model_bytes(self) -> int: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...

    def get_disconnect_policy(self) -> DisconnectPolicy: ...

    def set_disconnect_policy(self, policy: DisconnectPolicy) -> None: ...

    def get_log_level(self) -> str: ...

"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from models import DisconnectPolicy

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "journal_voice"
MODEL_FILENAME = "ggml-base.en.bin"
DEFAULT_MODEL_URL = (
    "https://huggingface.co/ggerganov/whisper.cpp/resolve/main/ggml-base.en.bin"
)
# base.en is ~142MB; anything under 100MB is a truncated download.
DEFAULT_MIN_MODEL_BYTES = 100_000_000
DEFAULT_HOTKEY = "<ctrl>+<shift>+r"
DEFAULT_LOG_LEVEL = "INFO"


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or CONFIG_DIR / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def config_dir(self) -> Path:
        return self._path.parent

    def get_model_dir(self) -> Path:
        data = self._read_all()
        value = data.get("model_dir")
        if not value:
            return self.config_dir / "models"
        return Path(str(value)).expanduser()

    def get_model_path(self) -> Path:
        return self.get_model_dir() / MODEL_FILENAME

    def get_model_url(self) -> str:
        data = self._read_all()
        return str(data.get("model_url") or DEFAULT_MODEL_URL)

    def get_min_model_bytes(self) -> int:
        data = self._read_all()
        try:
            return int(data.get("min_model_bytes", DEFAULT_MIN_MODEL_BYTES))
        except (TypeError, ValueError):
            return DEFAULT_MIN_MODEL_BYTES

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        data = self._read_all()
        data["hotkey"] = hotkey
        self._write_all(data)

    def get_disconnect_policy(self) -> DisconnectPolicy:
        data = self._read_all()
        try:
            return DisconnectPolicy(data.get("disconnect_policy", DisconnectPolicy.TRANSCRIBE.value))
        except ValueError:
            logger.warning("Unknown disconnect_policy %r, using default", data.get("disconnect_policy"))
            return DisconnectPolicy.TRANSCRIBE

    def set_disconnect_policy(self, policy: DisconnectPolicy) -> None:
        data = self._read_all()
        data["disconnect_policy"] = DisconnectPolicy(policy).value
        self._write_all(data)

    def get_log_level(self) -> str:
        data = self._read_all()
        return str(data.get("log_level", DEFAULT_LOG_LEVEL)).upper()

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

from __future__ import annotations

import json
from pathlib import Path

from config import DEFAULT_HOTKEY, DEFAULT_MIN_MODEL_BYTES, DEFAULT_MODEL_URL, MODEL_FILENAME, JsonConfigStore
from models import DisconnectPolicy


def test_config_defaults(tmp_path: Path) -> None:
    store = JsonConfigStore(path=tmp_path / "config.json")

    assert store.get_model_path() == tmp_path / "models" / MODEL_FILENAME
    assert store.get_model_url() == DEFAULT_MODEL_URL
    assert store.get_min_model_bytes() == DEFAULT_MIN_MODEL_BYTES
    assert store.get_hotkey() == DEFAULT_HOTKEY
    assert store.get_disconnect_policy() == DisconnectPolicy.TRANSCRIBE
    assert store.get_log_level() == "INFO"


def test_config_read_write(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    store = JsonConfigStore(path=path)

    store.set_hotkey("<alt>+d")
    store.set_disconnect_policy(DisconnectPolicy.DISCARD)

    reloaded = JsonConfigStore(path=path)
    assert reloaded.get_hotkey() == "<alt>+d"
    assert reloaded.get_disconnect_policy() == DisconnectPolicy.DISCARD


def test_config_overrides_from_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "model_dir": str(tmp_path / "elsewhere"),
                "model_url": "https://mirror.example/ggml-base.en.bin",
                "min_model_bytes": 1234,
                "log_level": "debug",
            }
        ),
        encoding="utf-8",
    )

    store = JsonConfigStore(path=path)

    assert store.get_model_path() == tmp_path / "elsewhere" / MODEL_FILENAME
    assert store.get_model_url() == "https://mirror.example/ggml-base.en.bin"
    assert store.get_min_model_bytes() == 1234
    assert store.get_log_level() == "DEBUG"


def test_config_invalid_values_fall_back(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps({"min_model_bytes": "lots", "disconnect_policy": "explode"}),
        encoding="utf-8",
    )

    store = JsonConfigStore(path=path)

    assert store.get_min_model_bytes() == DEFAULT_MIN_MODEL_BYTES
    assert store.get_disconnect_policy() == DisconnectPolicy.TRANSCRIBE


def test_config_invalid_json_fallback(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{invalid", encoding="utf-8")

    store = JsonConfigStore(path=path)
    assert store.get_hotkey() == DEFAULT_HOTKEY
    assert store.get_model_url() == DEFAULT_MODEL_URL

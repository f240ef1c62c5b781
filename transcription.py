"""Local speech recognition on top of whisper.cpp.

The composition root owns one :class:`WhisperModelHandle` and injects it into
:class:`TranscriptionEngine`. The handle loads the model the first time it is
needed and keeps it resident; its lock also serializes inference, so an
import and a dictation that finish together queue instead of racing.
"""

from __future__ import annotations

import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional

import numpy as np

from errors import ModelCorrupt, ModelNotReady, NoAudioCaptured, TranscriptionFailed
from model_manager import ModelManager
from models import TARGET_SAMPLE_RATE, CanonicalAudioBuffer

try:
    from pywhispercpp.model import Model as WhisperCppModel
except Exception:  # pragma: no cover
    WhisperCppModel = None  # type: ignore

logger = logging.getLogger(__name__)

ModelLoader = Callable[[Path], Any]

GREEDY = 0


def _segment_text(segment: Any) -> str:
    return str(getattr(segment, "text", segment))


def join_segments(segments: list[str]) -> str:
    """Concatenate segment texts in emission order and trim the result."""
    transcript = ""
    for text in segments:
        if not text.strip():
            continue
        if transcript and not text.startswith(" "):
            transcript += " "
        transcript += text
    return transcript.strip()


class WhisperModelHandle:
    def __init__(
        self,
        model_path: Path,
        loader: Optional[ModelLoader] = None,
        n_threads: int = 4,
        language: str = "en",
    ) -> None:
        self._model_path = Path(model_path)
        self._loader = loader or self._load_whispercpp
        self._n_threads = n_threads
        self._language = language
        self._lock = threading.Lock()
        self._model: Any = None
        self.load_count = 0

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def run(self, samples: np.ndarray) -> list[str]:
        with self._lock:
            model = self._ensure_loaded()
            segments = model.transcribe(samples)
        return [_segment_text(seg) for seg in segments]

    def unload(self) -> None:
        with self._lock:
            self._model = None

    def _ensure_loaded(self) -> Any:
        if self._model is None:
            started = time.monotonic()
            try:
                self._model = self._loader(self._model_path)
            except ModelCorrupt:
                raise
            except Exception as exc:
                raise ModelCorrupt(f"Failed to load speech model: {exc}") from exc
            self.load_count += 1
            logger.info(
                "Loaded speech model %s in %.1fs", self._model_path.name, time.monotonic() - started
            )
        return self._model

    def _load_whispercpp(self, model_path: Path) -> Any:
        if WhisperCppModel is None:
            raise ModelCorrupt("pywhispercpp is not installed")
        return WhisperCppModel(
            str(model_path),
            params_sampling_strategy=GREEDY,
            n_threads=self._n_threads,
            language=self._language,
            translate=False,
            no_context=True,
            single_segment=False,
            print_special=False,
            print_progress=False,
            print_realtime=False,
            print_timestamps=False,
        )


class TranscriptionEngine:
    def __init__(self, model_manager: ModelManager, handle: WhisperModelHandle) -> None:
        self._model_manager = model_manager
        self._handle = handle

    def is_ready(self) -> bool:
        return self._handle.is_loaded or self._model_manager.is_ready()

    def transcribe(self, buffer: CanonicalAudioBuffer) -> str:
        if len(buffer) == 0:
            raise NoAudioCaptured("No audio samples to transcribe.")
        if buffer.sample_rate != TARGET_SAMPLE_RATE or buffer.channels != 1:
            raise TranscriptionFailed(
                f"Expected {TARGET_SAMPLE_RATE} Hz mono audio, got {buffer.sample_rate} Hz x{buffer.channels}"
            )
        if not self._handle.is_loaded:
            status = self._model_manager.check_status()
            if not status.is_ready:
                raise ModelNotReady(f"Speech model is not ready ({status.state.value.lower()}).")

        samples = np.ascontiguousarray(buffer.samples, dtype=np.float32)
        started = time.monotonic()
        try:
            segments = self._handle.run(samples)
        except (ModelCorrupt, ModelNotReady):
            raise
        except Exception as exc:
            logger.exception("Inference failed")
            raise TranscriptionFailed(f"Transcription failed: {exc}") from exc

        text = join_segments(segments)
        logger.info(
            "Transcribed %.2fs of audio in %.2fs (%d segment(s), %d chars)",
            buffer.duration_s,
            time.monotonic() - started,
            len(segments),
            len(text),
        )
        return text

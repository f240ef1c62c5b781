"""On-disk whisper model: status checks and serialized, atomic downloads."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Optional

import requests

from config import DEFAULT_MIN_MODEL_BYTES, DEFAULT_MODEL_URL
from errors import DownloadError, ModelCorrupt, VoiceError
from models import ModelState, ModelStatus

logger = logging.getLogger(__name__)

ProgressSink = Callable[[int], None]
FinishedCallback = Callable[[Optional[VoiceError]], None]

# Used for progress when the server omits Content-Length.
EXPECTED_MODEL_BYTES = 142_000_000


class ModelManager:
    def __init__(
        self,
        model_path: Path,
        url: str = DEFAULT_MODEL_URL,
        min_bytes: int = DEFAULT_MIN_MODEL_BYTES,
        expected_bytes: int = EXPECTED_MODEL_BYTES,
        chunk_size: int = 1 << 20,
        timeout_s: float = 30.0,
    ) -> None:
        self._model_path = Path(model_path)
        self._url = url
        self._min_bytes = min_bytes
        self._expected_bytes = expected_bytes
        self._chunk_size = chunk_size
        self._timeout_s = timeout_s
        self._lock = threading.Lock()
        self._downloading = False
        self._percent = 0
        self._emitted = -1

    @property
    def model_path(self) -> Path:
        return self._model_path

    @property
    def temp_path(self) -> Path:
        return self._model_path.with_name(self._model_path.name + ".part")

    def check_status(self) -> ModelStatus:
        with self._lock:
            if self._downloading:
                return ModelStatus(ModelState.DOWNLOADING, self._percent)
        return self._status_on_disk()

    def is_ready(self) -> bool:
        return self.check_status().is_ready

    def download(self, progress_sink: Optional[ProgressSink] = None) -> None:
        """Fetch the model, emitting 0..100 to ``progress_sink``.

        Only one download may run at a time; a second caller gets
        :class:`DownloadError` straight away. The model file is installed with
        an atomic rename, so an existing valid model survives any failure.
        """
        with self._lock:
            if self._downloading:
                raise DownloadError("A model download is already in progress.")
            self._downloading = True
            self._percent = 0
            self._emitted = -1

        try:
            if self._status_on_disk().is_ready:
                self._emit(progress_sink, 100)
                return
            self._fetch(progress_sink)
        finally:
            with self._lock:
                self._downloading = False
                self._percent = 0

    def start_download(
        self,
        progress_sink: Optional[ProgressSink] = None,
        on_finished: Optional[FinishedCallback] = None,
    ) -> threading.Thread:
        """Run :meth:`download` on a background thread."""

        def _worker() -> None:
            error: Optional[VoiceError] = None
            try:
                self.download(progress_sink)
            except VoiceError as exc:
                error = exc
            except Exception as exc:
                logger.exception("Model download crashed")
                error = DownloadError(f"Model download failed: {exc}")
            if on_finished is not None:
                on_finished(error)

        thread = threading.Thread(target=_worker, name="model-download", daemon=True)
        thread.start()
        return thread

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _status_on_disk(self) -> ModelStatus:
        try:
            size = self._model_path.stat().st_size
        except FileNotFoundError:
            return ModelStatus(ModelState.ABSENT)
        except OSError as exc:
            logger.warning("Cannot stat model file %s: %s", self._model_path, exc)
            return ModelStatus(ModelState.INVALID)
        if size < self._min_bytes:
            return ModelStatus(ModelState.INVALID)
        return ModelStatus(ModelState.READY)

    def _fetch(self, progress_sink: Optional[ProgressSink]) -> None:
        temp_path = self.temp_path
        logger.info("Downloading model from %s", self._url)
        try:
            self._model_path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.unlink(missing_ok=True)
            self._emit(progress_sink, 0)
            with requests.get(self._url, stream=True, timeout=self._timeout_s) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length") or 0) or self._expected_bytes
                downloaded = 0
                with open(temp_path, "wb") as fh:
                    for chunk in response.iter_content(chunk_size=self._chunk_size):
                        if not chunk:
                            continue
                        fh.write(chunk)
                        downloaded += len(chunk)
                        # 100 is reserved for the installed file.
                        self._emit(progress_sink, min(99, downloaded * 100 // total))
        except (requests.RequestException, OSError, ValueError) as exc:
            self._discard(temp_path)
            logger.warning("Model download failed: %s", exc)
            raise DownloadError(f"Model download failed: {exc}") from exc

        size = temp_path.stat().st_size
        if size < self._min_bytes:
            self._discard(temp_path)
            logger.warning("Downloaded model is only %d bytes, discarding", size)
            raise ModelCorrupt(
                f"Downloaded model is {size} bytes, expected at least {self._min_bytes}."
            )

        try:
            os.replace(temp_path, self._model_path)
        except OSError as exc:
            self._discard(temp_path)
            raise DownloadError(f"Could not install model: {exc}") from exc
        logger.info("Model installed at %s (%d bytes)", self._model_path, size)
        self._emit(progress_sink, 100)

    def _emit(self, progress_sink: Optional[ProgressSink], percent: int) -> None:
        with self._lock:
            if percent <= self._emitted:
                return
            self._emitted = percent
            self._percent = percent
        if progress_sink is not None:
            progress_sink(percent)

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove partial download %s: %s", path, exc)

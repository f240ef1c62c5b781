"""Microphone recorder adapter.

A dedicated capture thread reads blocks from the default input device,
downmixes them and streams mono chunks over a queue. ``stop()`` signals the
thread, joins it and only then drains the queue, so the caller never shares
the sample data with a running writer.
"""

from __future__ import annotations

import logging
import threading
from queue import Empty, Queue
from typing import Any, Optional

import numpy as np

from audio import downmix, to_canonical
from errors import AlreadyRecording, DeviceError, NoAudioCaptured
from models import TARGET_SAMPLE_RATE, CanonicalAudioBuffer

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

logger = logging.getLogger(__name__)


class SoundDeviceRecorder:
    def __init__(self, chunk_ms: int = 100, max_channels: int = 2) -> None:
        self.chunk_ms = chunk_ms
        self.max_channels = max_channels
        self.overflow_count = 0
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._chunks: Queue[np.ndarray | None] = Queue()
        self._sample_rate = TARGET_SAMPLE_RATE
        self._disconnected = False
        self._stream: Optional[Any] = None
        self._stream_lock = threading.Lock()

    @property
    def is_recording(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                raise AlreadyRecording()
            stream, sample_rate = self._open_stream()
            self._stream = stream
            self._sample_rate = sample_rate
            self._disconnected = False
            self.overflow_count = 0
            self._stop_event = threading.Event()
            self._chunks = Queue()
            blocksize = max(1, int(sample_rate * self.chunk_ms / 1000))
            self._thread = threading.Thread(
                target=self._capture,
                args=(stream, blocksize, self._stop_event, self._chunks),
                name="audio-capture",
                daemon=True,
            )
            self._thread.start()

    def stop(self) -> CanonicalAudioBuffer:
        with self._lock:
            thread = self._thread
            if thread is None:
                raise NoAudioCaptured("No recording is in progress.")
            self._stop_event.set()
            # Closing unblocks a read stuck on a vanished device.
            self._release_stream(self._stream)
            thread.join()
            self._thread = None
            chunks = self._drain(self._chunks)

        if not chunks:
            raise NoAudioCaptured()
        samples = np.concatenate(chunks)
        if samples.size == 0:
            raise NoAudioCaptured()
        buffer = to_canonical(samples, self._sample_rate, truncated=self._disconnected)
        logger.info(
            "Captured %.2fs of audio at %d Hz%s",
            samples.size / self._sample_rate,
            self._sample_rate,
            " (device lost)" if self._disconnected else "",
        )
        return buffer

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _open_stream(self) -> tuple[Any, int]:
        if sd is None:
            raise DeviceError("sounddevice is not installed")
        try:
            device = sd.query_devices(kind="input")
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"No input device available: {exc}") from exc

        available = int(device["max_input_channels"])
        if available < 1:
            raise DeviceError(f"Device {device['name']!r} has no input channels.")
        channels = min(available, self.max_channels)
        sample_rate = self._pick_sample_rate(channels, device)

        try:
            stream = sd.InputStream(
                samplerate=sample_rate,
                channels=channels,
                dtype="float32",
            )
            stream.start()
        except (sd.PortAudioError, ValueError) as exc:
            raise DeviceError(f"Failed to open input stream: {exc}") from exc
        logger.info("Recording from %r: %d Hz, %d channel(s)", device["name"], sample_rate, channels)
        return stream, sample_rate

    def _pick_sample_rate(self, channels: int, device: Any) -> int:
        try:
            sd.check_input_settings(samplerate=TARGET_SAMPLE_RATE, channels=channels, dtype="float32")
            return TARGET_SAMPLE_RATE
        except (sd.PortAudioError, ValueError):
            return int(device["default_samplerate"])

    def _capture(
        self,
        stream: Any,
        blocksize: int,
        stop_event: threading.Event,
        chunks: Queue[np.ndarray | None],
    ) -> None:
        try:
            while not stop_event.is_set():
                data, overflowed = stream.read(blocksize)
                if overflowed:
                    self.overflow_count += 1
                mono = downmix(data)
                if mono.size:
                    chunks.put(mono)
        except sd.PortAudioError as exc:
            if not stop_event.is_set():
                self._disconnected = True
                logger.warning("Input device lost during capture: %s", exc)
        finally:
            self._release_stream(stream)
            chunks.put(None)

    def _release_stream(self, stream: Any) -> None:
        with self._stream_lock:
            if stream is None or self._stream is not stream:
                return
            self._stream = None
        try:
            stream.abort()
            stream.close()
        except sd.PortAudioError as exc:
            logger.debug("Ignoring error while closing input stream: %s", exc)

    @staticmethod
    def _drain(chunks: Queue[np.ndarray | None]) -> list[np.ndarray]:
        collected: list[np.ndarray] = []
        while True:
            try:
                chunk = chunks.get_nowait()
            except Empty:
                break
            if chunk is None:
                break
            collected.append(chunk)
        return collected

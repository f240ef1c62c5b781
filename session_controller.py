"""State-machine based dictation session orchestration."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Callable, Optional

from errors import (
    BUSY,
    DEVICE_DISCONNECTED,
    ERROR_MESSAGES,
    NO_ACTIVE_TARGET,
    UNEXPECTED_ERROR,
    DeviceError,
    ModelNotReady,
    VoiceError,
)
from interfaces import AudioImporter, Recorder, TextSink, Transcriber, TriggerSource
from models import CanonicalAudioBuffer, DeliveryResult, DisconnectPolicy, SessionState

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TickCallback = Callable[[int], None]
ErrorCallback = Callable[[str, str], None]
TranscriptCallback = Callable[[str], None]


class VoiceSessionController:
    def __init__(
        self,
        recorder: Recorder,
        importer: AudioImporter,
        engine: Transcriber,
        sink: TextSink,
        disconnect_policy: DisconnectPolicy = DisconnectPolicy.TRANSCRIBE,
        tick_interval_s: float = 1.0,
        on_state_change: Optional[StateCallback] = None,
        on_tick: Optional[TickCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
    ) -> None:
        self._recorder = recorder
        self._importer = importer
        self._engine = engine
        self._sink = sink
        self._disconnect_policy = disconnect_policy
        self._tick_interval_s = tick_interval_s
        self._on_state_change = on_state_change
        self._on_tick = on_tick
        self._on_error = on_error
        self._on_transcript = on_transcript

        self._lock = threading.RLock()
        self._state = SessionState.IDLE
        self._elapsed_s = 0
        self._ticker_stop: Optional[threading.Event] = None
        self._triggers: list[TriggerSource] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed_s

    def set_disconnect_policy(self, policy: DisconnectPolicy) -> None:
        self._disconnect_policy = DisconnectPolicy(policy)

    # ------------------------------------------------------------------
    # Trigger entry points
    # ------------------------------------------------------------------

    def start_recording(self) -> None:
        """Button-down / hotkey-down. Ignored unless idle."""
        with self._lock:
            if self._state != SessionState.IDLE:
                return
            try:
                if not self._engine.is_ready():
                    raise ModelNotReady()
                self._recorder.start()
            except VoiceError as exc:
                self._emit_error(exc.code, exc.message)
                return
            except Exception as exc:
                logger.exception("Recorder failed to start")
                self._emit_error(UNEXPECTED_ERROR, str(exc))
                return
            self._transition(SessionState.RECORDING)
            self._start_ticker()

    def stop_recording(self) -> None:
        """Button-up / hotkey-up. Ignored unless recording."""
        with self._lock:
            if self._state != SessionState.RECORDING:
                return
            self._stop_ticker()
            self._transition(SessionState.TRANSCRIBING)

        self._run_pipeline(self._capture_buffer)

    def import_file(self, path: Path | str) -> None:
        with self._lock:
            if self._state != SessionState.IDLE:
                self._emit_error(BUSY, ERROR_MESSAGES[BUSY])
                return
            self._transition(SessionState.TRANSCRIBING)

        self._run_pipeline(lambda: self._importer.decode(path))

    def press(self) -> None:
        self.start_recording()

    def release(self) -> threading.Thread:
        """Stop on a worker so the trigger's own thread never waits on inference."""
        worker = threading.Thread(target=self.stop_recording, name="voice-stop", daemon=True)
        worker.start()
        return worker

    def attach_trigger(self, source: TriggerSource) -> None:
        with self._lock:
            if source in self._triggers:
                return
            source.start(on_press=self.press, on_release=self.release)
            self._triggers.append(source)

    def detach_trigger(self, source: TriggerSource) -> None:
        with self._lock:
            if source not in self._triggers:
                return
            self._triggers.remove(source)
        source.stop()

    def shutdown(self) -> None:
        with self._lock:
            triggers, self._triggers = self._triggers, []
            if self._state == SessionState.RECORDING:
                self._stop_ticker()
                try:
                    self._recorder.stop()
                except VoiceError as exc:
                    logger.debug("Dropped recording at shutdown: %s", exc)
                self._transition(SessionState.IDLE)
        for source in triggers:
            source.stop()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _capture_buffer(self) -> CanonicalAudioBuffer:
        buffer = self._recorder.stop()
        if buffer.truncated:
            policy = self._disconnect_policy
            logger.warning("Recording cut short by device loss, policy=%s", policy.value)
            if policy == DisconnectPolicy.DISCARD:
                raise DeviceError("Microphone disconnected, partial recording discarded.")
            if policy == DisconnectPolicy.FLAG:
                self._emit_error(DEVICE_DISCONNECTED, ERROR_MESSAGES[DEVICE_DISCONNECTED])
        return buffer

    def _run_pipeline(self, produce: Callable[[], CanonicalAudioBuffer]) -> None:
        try:
            buffer = produce()
            text = self._engine.transcribe(buffer)
            if text:
                self._deliver(text)
            else:
                logger.info("Transcription was empty, nothing delivered")
        except VoiceError as exc:
            self._emit_error(exc.code, exc.message)
        except Exception as exc:
            logger.exception("Voice pipeline failed")
            self._emit_error(UNEXPECTED_ERROR, str(exc))
        finally:
            with self._lock:
                self._transition(SessionState.IDLE)

    def _deliver(self, text: str) -> None:
        if self._on_transcript:
            self._on_transcript(text)
        try:
            result = self._sink.append_text(text)
        except Exception as exc:
            logger.exception("Text sink failed")
            result = DeliveryResult(success=False, reason=str(exc), clipboard_restored=False)
        if not result.success:
            self._emit_error(NO_ACTIVE_TARGET, result.reason)

    def _start_ticker(self) -> None:
        stop = threading.Event()
        self._ticker_stop = stop
        self._elapsed_s = 0
        threading.Thread(target=self._tick_loop, args=(stop,), name="voice-ticker", daemon=True).start()

    def _tick_loop(self, stop: threading.Event) -> None:
        while not stop.wait(self._tick_interval_s):
            with self._lock:
                if stop.is_set():
                    return
                self._elapsed_s += 1
                if self._on_tick:
                    self._on_tick(self._elapsed_s)

    def _stop_ticker(self) -> None:
        if self._ticker_stop is not None:
            self._ticker_stop.set()
            self._ticker_stop = None
        if self._elapsed_s:
            self._elapsed_s = 0
            if self._on_tick:
                self._on_tick(0)

    def _emit_error(self, code: str, message: str) -> None:
        logger.warning("%s: %s", code, message)
        if self._on_error:
            self._on_error(code, message)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug("Session %s -> %s", from_state.value, to_state.value)
        if self._on_state_change:
            self._on_state_change(from_state, to_state)


def format_duration(seconds: int) -> str:
    minutes, secs = divmod(max(0, int(seconds)), 60)
    return f"{minutes}:{secs:02d}"

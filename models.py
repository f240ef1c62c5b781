"""Core data models for the voice pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

TARGET_SAMPLE_RATE = 16000


class SessionState(str, Enum):
    IDLE = "IDLE"
    RECORDING = "RECORDING"
    TRANSCRIBING = "TRANSCRIBING"


class ModelState(str, Enum):
    ABSENT = "ABSENT"
    DOWNLOADING = "DOWNLOADING"
    READY = "READY"
    INVALID = "INVALID"


class DisconnectPolicy(str, Enum):
    """What to do with a recording cut short by a lost input device."""

    TRANSCRIBE = "transcribe"
    FLAG = "flag"
    DISCARD = "discard"


@dataclass(frozen=True)
class ModelStatus:
    state: ModelState
    percent: int = 0

    @property
    def is_ready(self) -> bool:
        return self.state == ModelState.READY


@dataclass
class CanonicalAudioBuffer:
    """16 kHz mono float32 samples, consumed once by the transcription engine."""

    samples: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    sample_rate: int = TARGET_SAMPLE_RATE
    channels: int = 1
    truncated: bool = False

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration_s(self) -> float:
        return len(self) / float(self.sample_rate)


@dataclass
class DeliveryResult:
    success: bool
    reason: str
    clipboard_restored: bool = True

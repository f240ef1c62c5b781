"""Shared error codes, user-facing messages and the pipeline exceptions."""

from __future__ import annotations

DEVICE_ERROR = "DEVICE_ERROR"
ALREADY_RECORDING = "ALREADY_RECORDING"
NO_AUDIO_CAPTURED = "NO_AUDIO_CAPTURED"
UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
DECODE_ERROR = "DECODE_ERROR"
MODEL_NOT_READY = "MODEL_NOT_READY"
DOWNLOAD_ERROR = "DOWNLOAD_ERROR"
MODEL_CORRUPT = "MODEL_CORRUPT"
TRANSCRIPTION_FAILED = "TRANSCRIPTION_FAILED"
BUSY = "BUSY"
NO_ACTIVE_TARGET = "NO_ACTIVE_TARGET"
DEVICE_DISCONNECTED = "DEVICE_DISCONNECTED"
UNEXPECTED_ERROR = "UNEXPECTED_ERROR"

ERROR_MESSAGES = {
    DEVICE_ERROR: "No usable microphone was found.",
    ALREADY_RECORDING: "A recording is already in progress.",
    NO_AUDIO_CAPTURED: "No audio was captured.",
    UNSUPPORTED_FORMAT: "This audio format is not supported.",
    DECODE_ERROR: "The audio file could not be decoded.",
    MODEL_NOT_READY: "Speech model is not downloaded yet.",
    DOWNLOAD_ERROR: "Model download failed, please retry.",
    MODEL_CORRUPT: "Speech model file is incomplete or damaged.",
    TRANSCRIPTION_FAILED: "Transcription failed.",
    BUSY: "Still busy with the previous recording.",
    NO_ACTIVE_TARGET: "No active input target for the transcribed text.",
    DEVICE_DISCONNECTED: "Microphone disconnected, recording was cut short.",
    UNEXPECTED_ERROR: "Something went wrong.",
}


class VoiceError(Exception):
    """Base for every failure the voice pipeline reports to the user."""

    code = UNEXPECTED_ERROR

    def __init__(self, message: str = "") -> None:
        super().__init__(message or ERROR_MESSAGES[self.code])
        self.message = message or ERROR_MESSAGES[self.code]


class DeviceError(VoiceError):
    code = DEVICE_ERROR


class AlreadyRecording(VoiceError):
    code = ALREADY_RECORDING


class NoAudioCaptured(VoiceError):
    code = NO_AUDIO_CAPTURED


class UnsupportedFormat(VoiceError):
    code = UNSUPPORTED_FORMAT


class DecodeError(VoiceError):
    code = DECODE_ERROR


class ModelNotReady(VoiceError):
    code = MODEL_NOT_READY


class DownloadError(VoiceError):
    code = DOWNLOAD_ERROR


class ModelCorrupt(VoiceError):
    code = MODEL_CORRUPT


class TranscriptionFailed(VoiceError):
    code = TRANSCRIPTION_FAILED

"""Audio file importer: decode a file into the canonical 16 kHz mono format."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import numpy as np
import soundfile as sf
from pydub import AudioSegment
from pydub.exceptions import CouldntDecodeError

from audio import to_canonical
from errors import DecodeError, UnsupportedFormat
from models import CanonicalAudioBuffer

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("mp3", "m4a", "aac", "wav", "ogg", "flac")

_EXTENSION_FORMATS = {
    ".mp3": "mp3",
    ".m4a": "m4a",
    ".mp4": "m4a",
    ".aac": "aac",
    ".wav": "wav",
    ".wave": "wav",
    ".ogg": "ogg",
    ".oga": "ogg",
    ".flac": "flac",
}

# libsndfile major formats accepted for each detected container.
_SOUNDFILE_FORMATS = {
    "wav": {"WAV", "WAVEX"},
    "ogg": {"OGG"},
    "flac": {"FLAC"},
    "mp3": {"MP3", "MPEG"},
}


def sniff_format(header: bytes) -> Optional[str]:
    """Identify the container from the first bytes of a file."""
    if len(header) >= 12 and header[:4] == b"RIFF" and header[8:12] == b"WAVE":
        return "wav"
    if header[:4] == b"OggS":
        return "ogg"
    if header[:4] == b"fLaC":
        return "flac"
    if len(header) >= 8 and header[4:8] == b"ftyp":
        return "m4a"
    if header[:3] == b"ID3":
        return "mp3"
    if len(header) >= 2 and header[0] == 0xFF:
        # ADTS has layer bits 00; MPEG audio frames use 01..11.
        if header[1] & 0xF6 == 0xF0:
            return "aac"
        if header[1] & 0xE0 == 0xE0 and header[1] & 0x06:
            return "mp3"
    return None


def detect_format(path: Path) -> str:
    try:
        with open(path, "rb") as fh:
            header = fh.read(16)
    except OSError as exc:
        raise DecodeError(f"Failed to open {path.name}: {exc}") from exc

    fmt = sniff_format(header) or _EXTENSION_FORMATS.get(path.suffix.lower())
    if fmt is None:
        raise UnsupportedFormat(
            f"{path.name}: unsupported audio format (expected one of {', '.join(SUPPORTED_EXTENSIONS)})."
        )
    return fmt


class AudioFileImporter:
    def decode(self, path: Path | str) -> CanonicalAudioBuffer:
        path = Path(path)
        fmt = detect_format(path)
        if fmt in _SOUNDFILE_FORMATS:
            frames, sample_rate = self._decode_soundfile(path, fmt)
        else:
            frames, sample_rate = self._decode_ffmpeg(path)

        if frames.size == 0:
            raise DecodeError(f"{path.name}: no audio data found.")
        buffer = to_canonical(frames, sample_rate)
        logger.info(
            "Imported %s (%s, %d Hz, %d ch) -> %.2fs",
            path.name,
            fmt,
            sample_rate,
            frames.shape[1],
            buffer.duration_s,
        )
        return buffer

    def _decode_soundfile(self, path: Path, fmt: str) -> tuple[np.ndarray, int]:
        try:
            with sf.SoundFile(str(path)) as snd:
                if snd.format not in _SOUNDFILE_FORMATS[fmt]:
                    raise UnsupportedFormat(
                        f"{path.name}: {snd.format_info or snd.format} audio is not supported."
                    )
                data = snd.read(dtype="float32", always_2d=True)
                sample_rate = snd.samplerate
        except (RuntimeError, OSError) as exc:
            # Older libsndfile builds cannot read MP3.
            if fmt == "mp3":
                logger.debug("soundfile could not read %s (%s), trying ffmpeg", path.name, exc)
                return self._decode_ffmpeg(path)
            raise DecodeError(f"{path.name}: {exc}") from exc
        return data, int(sample_rate)

    def _decode_ffmpeg(self, path: Path) -> tuple[np.ndarray, int]:
        try:
            segment = AudioSegment.from_file(str(path))
        except (CouldntDecodeError, OSError, IndexError) as exc:
            raise DecodeError(f"{path.name}: {exc}") from exc

        channels = int(segment.channels)
        full_scale = float(1 << (8 * int(segment.sample_width) - 1))
        raw = np.asarray(segment.get_array_of_samples(), dtype=np.float64)
        if channels < 1 or raw.size % channels:
            raise DecodeError(f"{path.name}: truncated audio stream")
        frames = (raw / full_scale).astype(np.float32).reshape(-1, channels)
        return frames, int(segment.frame_rate)

"""Tests for AudioFileImporter."""

from __future__ import annotations

from array import array
from pathlib import Path
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import soundfile as sf
from pydub.exceptions import CouldntDecodeError

from errors import DecodeError, UnsupportedFormat
from importer import AudioFileImporter, sniff_format


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

def _tone(sample_rate: int, seconds: float, channels: int, freq: float = 440.0) -> np.ndarray:
    t = np.arange(int(sample_rate * seconds)) / sample_rate
    mono = (0.5 * np.sin(2 * np.pi * freq * t)).astype(np.float32)
    return np.stack([mono] * channels, axis=1)


def _write(path: Path, data: np.ndarray, sample_rate: int, **kwargs) -> Path:
    sf.write(str(path), data, sample_rate, **kwargs)
    return path


# ---------------------------------------------------------------
# Canonical output
# ---------------------------------------------------------------

@pytest.mark.parametrize(
    "name, sample_rate, channels, kwargs",
    [
        ("clip.wav", 44100, 2, {}),
        ("clip.wav", 8000, 1, {}),
        ("clip.flac", 48000, 2, {}),
        ("clip.ogg", 22050, 1, {"format": "OGG", "subtype": "VORBIS"}),
    ],
)
def test_decode_yields_16k_mono(tmp_path: Path, name, sample_rate, channels, kwargs) -> None:  # noqa: ANN001
    path = _write(tmp_path / name, _tone(sample_rate, 0.5, channels), sample_rate, **kwargs)

    buffer = AudioFileImporter().decode(path)

    assert buffer.sample_rate == 16000
    assert buffer.channels == 1
    assert buffer.samples.ndim == 1
    assert buffer.samples.dtype == np.float32
    assert abs(len(buffer) - 8000) <= 1


def test_decode_is_deterministic(tmp_path: Path) -> None:
    path = _write(tmp_path / "clip.wav", _tone(44100, 0.3, 2), 44100)
    importer = AudioFileImporter()

    first = importer.decode(path)
    second = importer.decode(path)

    assert first.samples.tobytes() == second.samples.tobytes()


def test_stereo_file_is_downmixed_by_averaging(tmp_path: Path) -> None:
    frames = np.zeros((1600, 2), dtype=np.float32)
    frames[:, 0] = 0.5
    frames[:, 1] = 0.25
    path = _write(tmp_path / "stereo.wav", frames, 16000, subtype="FLOAT")

    buffer = AudioFileImporter().decode(path)

    assert len(buffer) == 1600
    assert np.allclose(buffer.samples, 0.375)


def test_container_is_identified_by_content_not_extension(tmp_path: Path) -> None:
    path = _write(tmp_path / "recording.bin", _tone(16000, 0.1, 1), 16000, format="WAV")

    buffer = AudioFileImporter().decode(path)

    assert len(buffer) == 1600


# ---------------------------------------------------------------
# Failures
# ---------------------------------------------------------------

def test_unknown_container_raises_unsupported_format(tmp_path: Path) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("not audio at all", encoding="utf-8")

    with pytest.raises(UnsupportedFormat):
        AudioFileImporter().decode(path)


def test_corrupt_wav_raises_decode_error(tmp_path: Path) -> None:
    path = tmp_path / "broken.wav"
    path.write_bytes(b"RIFF\x24\x00\x00\x00WAVEjunkjunkjunk")

    with pytest.raises(DecodeError):
        AudioFileImporter().decode(path)


def test_empty_file_with_audio_extension_raises_decode_error(tmp_path: Path) -> None:
    path = tmp_path / "empty.flac"
    path.write_bytes(b"")

    with pytest.raises(DecodeError):
        AudioFileImporter().decode(path)


def test_missing_file_raises_decode_error(tmp_path: Path) -> None:
    with pytest.raises(DecodeError):
        AudioFileImporter().decode(tmp_path / "nope.wav")


def test_other_container_behind_supported_extension_is_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "clip.wav", _tone(16000, 0.1, 1), 16000, format="AIFF")

    with pytest.raises(UnsupportedFormat, match="clip.wav"):
        AudioFileImporter().decode(path)


# ---------------------------------------------------------------
# AAC through pydub
# ---------------------------------------------------------------

def _fake_segment(samples, channels: int, frame_rate: int) -> MagicMock:
    segment = MagicMock()
    segment.channels = channels
    segment.sample_width = 2
    segment.frame_rate = frame_rate
    segment.get_array_of_samples.return_value = array("h", samples)
    return segment


@patch("importer.AudioSegment")
def test_m4a_decodes_through_pydub(mock_segment: MagicMock, tmp_path: Path) -> None:
    path = tmp_path / "memo.m4a"
    path.write_bytes(b"\x00\x00\x00\x20ftypM4A \x00\x00\x00\x00")
    # 48 stereo frames at 48 kHz: left 16384, right 0 -> 0.25 after downmix.
    mock_segment.from_file.return_value = _fake_segment([16384, 0] * 48, channels=2, frame_rate=48000)

    buffer = AudioFileImporter().decode(path)

    mock_segment.from_file.assert_called_once_with(str(path))
    assert len(buffer) == 16
    assert np.allclose(buffer.samples, 0.25)


@patch("importer.AudioSegment")
def test_undecodable_m4a_raises_decode_error(mock_segment: MagicMock, tmp_path: Path) -> None:
    path = tmp_path / "memo.m4a"
    path.write_bytes(b"\x00\x00\x00\x20ftypM4A \x00\x00")
    mock_segment.from_file.side_effect = CouldntDecodeError("moov atom not found")

    with pytest.raises(DecodeError, match="moov atom"):
        AudioFileImporter().decode(path)


@patch("importer.AudioSegment")
def test_m4a_with_no_samples_raises_decode_error(mock_segment: MagicMock, tmp_path: Path) -> None:
    path = tmp_path / "silence.m4a"
    path.write_bytes(b"\x00\x00\x00\x20ftypM4A \x00\x00")
    mock_segment.from_file.return_value = _fake_segment([], channels=1, frame_rate=44100)

    with pytest.raises(DecodeError, match="no audio data"):
        AudioFileImporter().decode(path)


# ---------------------------------------------------------------
# MP3 falls back to pydub when libsndfile cannot read it
# ---------------------------------------------------------------

def _id3_file(tmp_path: Path) -> Path:
    path = tmp_path / "voice-memo.mp3"
    path.write_bytes(b"ID3\x04\x00\x00\x00\x00\x00\x00" + b"\xff\xfb\x90\x64" * 8)
    return path


@patch("importer.AudioSegment")
@patch("importer.sf.SoundFile", side_effect=RuntimeError("Format not recognised"))
def test_mp3_decodes_through_pydub_when_soundfile_fails(
    mock_soundfile: MagicMock, mock_segment: MagicMock, tmp_path: Path
) -> None:
    path = _id3_file(tmp_path)
    # 480 mono frames at 48 kHz: 10 ms of a constant 0.5.
    mock_segment.from_file.return_value = _fake_segment([16384] * 480, channels=1, frame_rate=48000)

    buffer = AudioFileImporter().decode(path)

    mock_soundfile.assert_called_once_with(str(path))
    mock_segment.from_file.assert_called_once_with(str(path))
    assert buffer.sample_rate == 16000
    assert buffer.channels == 1
    assert len(buffer) == 160
    assert np.allclose(buffer.samples, 0.5)


@patch("importer.AudioSegment")
@patch("importer.sf.SoundFile", side_effect=RuntimeError("Format not recognised"))
def test_mp3_raises_decode_error_when_both_decoders_fail(
    mock_soundfile: MagicMock, mock_segment: MagicMock, tmp_path: Path
) -> None:
    path = _id3_file(tmp_path)
    mock_segment.from_file.side_effect = CouldntDecodeError("Decoding failed. ffmpeg returned error code: 1")

    with pytest.raises(DecodeError, match="ffmpeg"):
        AudioFileImporter().decode(path)


# ---------------------------------------------------------------
# sniff_format
# ---------------------------------------------------------------

@pytest.mark.parametrize(
    "header, expected",
    [
        (b"RIFF\x00\x00\x00\x00WAVEfmt ", "wav"),
        (b"OggS\x00\x02", "ogg"),
        (b"fLaC\x00\x00\x00\x22", "flac"),
        (b"\x00\x00\x00\x20ftypM4A ", "m4a"),
        (b"ID3\x04\x00\x00", "mp3"),
        (b"\xff\xfb\x90\x64", "mp3"),
        (b"\xff\xf1\x50\x80", "aac"),
        (b"hello world", None),
        (b"", None),
    ],
)
def test_sniff_format(header: bytes, expected) -> None:  # noqa: ANN001
    assert sniff_format(header) == expected

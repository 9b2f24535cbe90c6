"""Audio decoding — bytes or files into an :class:`AudioSignal`.

This is the blocking, codec-bound stage that runs before beat extraction.
It keeps the file's native sample rate and the first channel only.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Union

import librosa
import numpy as np

from backend.services.audio.types import AudioSignal

logger = logging.getLogger("beatcut.audio.decoding")

ALLOWED_SUFFIXES = {".mp3", ".wav", ".flac", ".m4a", ".ogg", ".aac"}


class AudioDecodeError(Exception):
    """Raised when audio bytes cannot be decoded into samples."""


def _load(source) -> AudioSignal:
    y, sr = librosa.load(source, sr=None, mono=False)
    y = np.asarray(y)
    if y.ndim > 1:
        y = y[0]
    return AudioSignal(samples=y, sample_rate=int(sr))


def decode_audio_file(path: Union[str, Path]) -> AudioSignal:
    """Decode an audio file on disk.

    Raises:
        FileNotFoundError: If ``path`` does not exist.
        AudioDecodeError: If the codec fails.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Audio file not found: {path}")
    try:
        signal = _load(str(path))
    except Exception as exc:
        raise AudioDecodeError(f"Could not decode {path.name}: {exc}") from exc
    logger.info("Decoded %s: %.1fs at %d Hz", path.name, signal.duration_sec, signal.sample_rate)
    return signal


def decode_audio_bytes(data: bytes, filename: str = "upload") -> AudioSignal:
    """Decode an in-memory upload.

    Raises:
        AudioDecodeError: If ``data`` is empty or the codec fails.
    """
    if not data:
        raise AudioDecodeError(f"Empty audio payload for {filename!r}")
    try:
        signal = _load(io.BytesIO(data))
    except Exception as exc:
        raise AudioDecodeError(f"Could not decode {filename!r}: {exc}") from exc
    logger.info("Decoded %r: %.1fs at %d Hz", filename, signal.duration_sec, signal.sample_rate)
    return signal

"""Shared test fixtures for BeatCut."""
import io
import shutil
import struct
import tempfile
from pathlib import Path
from typing import Generator

import numpy as np
import pytest
import yaml


def wav_bytes(samples: np.ndarray, sample_rate: int = 44100) -> bytes:
    """Encode float samples in [-1, 1] as a 16-bit mono PCM WAV.

    Written by hand so the fixtures need no codec library.
    """
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2").tobytes()
    num_channels = 1
    bits_per_sample = 16
    byte_rate = sample_rate * num_channels * bits_per_sample // 8
    block_align = num_channels * bits_per_sample // 8

    buf = io.BytesIO()
    # RIFF header
    buf.write(b"RIFF")
    buf.write(struct.pack("<I", 36 + len(pcm)))
    buf.write(b"WAVE")
    # fmt chunk
    buf.write(b"fmt ")
    buf.write(struct.pack("<I", 16))           # subchunk1 size
    buf.write(struct.pack("<H", 1))            # PCM format
    buf.write(struct.pack("<H", num_channels))
    buf.write(struct.pack("<I", sample_rate))
    buf.write(struct.pack("<I", byte_rate))
    buf.write(struct.pack("<H", block_align))
    buf.write(struct.pack("<H", bits_per_sample))
    # data chunk
    buf.write(b"data")
    buf.write(struct.pack("<I", len(pcm)))
    buf.write(pcm)
    return buf.getvalue()


def click_track(bpm: float, seconds: float, sample_rate: int = 44100) -> np.ndarray:
    """Silence with a short decaying burst on every beat after the first.

    Each burst starts 100 samples past the beat so exactly one energy window
    holds all of it and reads as a strict peak.
    """
    samples = np.zeros(int(seconds * sample_rate))
    interval = int(round(60.0 / bpm * sample_rate))
    burst = np.exp(-np.arange(441) / 100.0)
    for beat in range(interval, len(samples) - interval, interval):
        start = beat + 100
        samples[start:start + burst.size] = burst
    return samples


@pytest.fixture(scope="session")
def project_root() -> Path:
    return Path(__file__).parent.parent.parent


@pytest.fixture
def tmp_dir() -> Generator[Path, None, None]:
    d = Path(tempfile.mkdtemp())
    yield d
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def sample_settings(tmp_dir: Path) -> Path:
    """Write a minimal settings.yaml to a temp dir and return its path."""
    settings = {
        "paths": {
            "uploads": str(tmp_dir / "uploads"),
        },
        "render": {"fps": 30},
        "beat_detection": {
            "min_bpm": 80,
            "max_bpm": 180,
            "threshold": 0.3,
            "window_sec": 0.02,
            "drop_lookback": 10,
            "drop_ratio": 2.0,
        },
        "timeline": {
            "cta_duration_sec": 3.0,
            "screenshot_duration_sec": 2.5,
            "max_scene_sec": 10.0,
            "min_target_sec": 10,
            "max_target_sec": 120,
            "enforce_ratio": 0.8,
        },
        "zoom": {
            "min_samples": 5,
            "dwell_velocity": 0.15,
            "cluster_gap_sec": 0.4,
            "cluster_radius": 0.08,
            "min_cluster_samples": 4,
            "min_duration_sec": 1.2,
            "max_duration_sec": 6.0,
            "base_scale": 1.25,
            "max_scale": 2.5,
            "min_gap_sec": 0.5,
        },
        "logging": {"level": "DEBUG", "file": str(tmp_dir / "test.log")},
    }
    cfg_path = tmp_dir / "settings.yaml"
    cfg_path.write_text(yaml.dump(settings))
    return cfg_path


# ─────────────────────────────────────────────────────────────────────────────
# Audio fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def make_wav():
    return wav_bytes


@pytest.fixture
def make_click_track():
    return click_track


@pytest.fixture
def silent_wav() -> bytes:
    """Two seconds of silence at 44100 Hz, 16-bit mono."""
    return wav_bytes(np.zeros(2 * 44100))


@pytest.fixture
def sample_audio_file(tmp_dir: Path, silent_wav: bytes) -> Path:
    """The silent WAV written to disk, for tests that need a real path."""
    path = tmp_dir / "test_audio.wav"
    path.write_bytes(silent_wav)
    return path


# ─────────────────────────────────────────────────────────────────────────────
# FastAPI TestClient
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture
def api_client(sample_settings: Path):
    """TestClient around an app built from the temp settings file.

    Each test gets a fresh app, so the beat map cache starts empty.
    """
    from fastapi.testclient import TestClient
    from backend.main import create_app
    from backend.services.shared.config import Config

    app = create_app(Config(str(sample_settings)))
    with TestClient(app) as c:
        yield c

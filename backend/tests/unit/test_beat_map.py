"""Tests for beat map extraction, synthesis and lookups."""
from __future__ import annotations

import numpy as np
import pytest

from backend.services.audio.beat_map import (
    BPM_PRESETS,
    BeatMapError,
    BeatMapExtractor,
    beat_map_from_bpm,
    beat_progress,
    beats_between,
    bpm_from_mood,
    extract_beat_map,
    is_on_beat,
    is_on_drop,
    nearest_beat,
    next_beat,
    previous_beat,
    signal_fingerprint,
    snap_to_beat,
)
from backend.services.audio.types import AudioSignal, BeatDetectorOptions, BeatMap
from backend.services.shared.config import Config


# ═══════════════════════════════════════════════════════════════════════════════
# Types
# ═══════════════════════════════════════════════════════════════════════════════


class TestAudioSignal:
    def test_duration(self):
        signal = AudioSignal(samples=np.zeros(22050), sample_rate=44100)
        assert signal.duration_sec == pytest.approx(0.5)

    def test_multichannel_keeps_first_channel(self):
        stereo = np.vstack([np.ones(100), np.zeros(100)])
        signal = AudioSignal(samples=stereo, sample_rate=100)
        assert signal.samples.shape == (100,)
        assert signal.samples[0] == 1.0

    def test_samples_are_read_only_copy(self):
        source = np.zeros(10)
        signal = AudioSignal(samples=source, sample_rate=10)
        with pytest.raises(ValueError):
            signal.samples[0] = 1.0
        source[0] = 5.0
        assert signal.samples[0] == 0.0


class TestBeatMapSerialization:
    def test_to_dict(self):
        bm = BeatMap(bpm=128.0, beats=[0, 14], drops=[0])
        assert bm.to_dict() == {"bpm": 128.0, "beats": [0, 14], "drops": [0]}

    def test_from_dict_coerces_types(self):
        bm = BeatMap.from_dict({"bpm": "90", "beats": [0.0, 20.0]})
        assert bm.bpm == 90.0
        assert bm.beats == [0, 20]
        assert bm.drops == []


class TestBeatDetectorOptions:
    def test_defaults_without_config(self):
        opts = BeatDetectorOptions.from_config(None)
        assert opts.min_bpm == 80.0
        assert opts.max_bpm == 180.0
        assert opts.fps == 30

    def test_from_config(self):
        cfg = Config.from_dict({"render": {"fps": 24}, "beat_detection": {"threshold": 0.5}})
        opts = BeatDetectorOptions.from_config(cfg)
        assert opts.fps == 24
        assert opts.threshold == 0.5
        assert opts.drop_ratio == 2.0


# ═══════════════════════════════════════════════════════════════════════════════
# Extraction
# ═══════════════════════════════════════════════════════════════════════════════


class TestExtractBeatMap:
    def test_silence_defaults_to_120(self):
        signal = AudioSignal(samples=np.zeros(2 * 44100), sample_rate=44100)
        bm = extract_beat_map(signal)
        assert bm.bpm == 120
        assert bm.beats == []
        assert bm.drops == []

    def test_empty_signal_defaults_to_120(self):
        bm = extract_beat_map(AudioSignal(samples=np.zeros(0), sample_rate=44100))
        assert bm.bpm == 120
        assert bm.beats == []

    def test_zero_sample_rate_raises(self):
        with pytest.raises(BeatMapError):
            extract_beat_map(AudioSignal(samples=np.zeros(100), sample_rate=0))

    def test_click_track_tempo_and_beats(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(120, 4.0), sample_rate=44100)
        bm = extract_beat_map(signal)
        assert bm.bpm == 120
        assert bm.beats == [15, 30, 45, 60, 75, 90]

    def test_click_track_100_bpm(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(100, 5.0), sample_rate=44100)
        bm = extract_beat_map(signal)
        assert bm.bpm == 100
        assert bm.beats[:3] == [18, 36, 54]

    def test_bpm_clamped_into_range(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(120, 4.0), sample_rate=44100)
        bm = extract_beat_map(signal, BeatDetectorOptions(min_bpm=130, max_bpm=180))
        # No interval fits the range: default tempo, then clamped
        assert bm.bpm == 130

    def test_beats_and_drops_strictly_increasing(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(120, 4.0), sample_rate=44100)
        bm = extract_beat_map(signal)
        assert all(b > a for a, b in zip(bm.beats, bm.beats[1:]))
        assert all(b > a for a, b in zip(bm.drops, bm.drops[1:]))

    def test_drops_detected_after_silence(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(120, 4.0), sample_rate=44100)
        bm = extract_beat_map(signal)
        assert bm.drops
        assert bm.drops[0] <= bm.beats[0]
        assert all(0 <= d <= 120 for d in bm.drops)

    def test_fps_changes_frame_units(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(120, 4.0), sample_rate=44100)
        bm = extract_beat_map(signal, BeatDetectorOptions(fps=60))
        assert bm.beats[0] == 30

    def test_all_beats_inside_signal(self, make_click_track):
        signal = AudioSignal(samples=make_click_track(120, 4.0), sample_rate=44100)
        bm = extract_beat_map(signal)
        assert max(bm.beats) <= signal.duration_sec * 30

    @pytest.mark.parametrize("opts", [
        BeatDetectorOptions(min_bpm=0),
        BeatDetectorOptions(min_bpm=150, max_bpm=100),
        BeatDetectorOptions(fps=0),
        BeatDetectorOptions(window_sec=0),
        BeatDetectorOptions(drop_lookback=0),
    ])
    def test_invalid_options_raise(self, opts):
        with pytest.raises(BeatMapError):
            BeatMapExtractor(opts)


class TestFingerprint:
    def test_same_samples_same_hash(self):
        a = AudioSignal(samples=np.arange(10.0), sample_rate=100)
        b = AudioSignal(samples=np.arange(10.0), sample_rate=100)
        assert signal_fingerprint(a) == signal_fingerprint(b)

    def test_sample_rate_changes_hash(self):
        a = AudioSignal(samples=np.arange(10.0), sample_rate=100)
        b = AudioSignal(samples=np.arange(10.0), sample_rate=200)
        assert signal_fingerprint(a) != signal_fingerprint(b)


# ═══════════════════════════════════════════════════════════════════════════════
# Synthesized grid
# ═══════════════════════════════════════════════════════════════════════════════


class TestBeatMapFromBpm:
    def test_120_bpm_at_30_fps(self):
        bm = beat_map_from_bpm(120, 1800, 30)
        assert bm.beats[:4] == [0, 15, 30, 45]
        assert len(bm.beats) == 120
        assert bm.drops[:3] == [0, 240, 480]
        assert bm.bpm == 120

    def test_declared_bpm_kept(self):
        bm = beat_map_from_bpm(97, 300, 30)
        assert bm.bpm == 97
        # 60/97*30 = 18.56 -> 19 frames
        assert bm.beats[:3] == [0, 19, 38]

    def test_beats_stay_inside_duration(self):
        bm = beat_map_from_bpm(128, 100, 30)
        assert all(0 <= b < 100 for b in bm.beats)

    def test_zero_duration_is_empty(self):
        bm = beat_map_from_bpm(120, 0, 30)
        assert bm.beats == []
        assert bm.drops == []

    @pytest.mark.parametrize("bpm,fps", [(0, 30), (-10, 30), (120, 0)])
    def test_invalid_input_raises(self, bpm, fps):
        with pytest.raises(BeatMapError):
            beat_map_from_bpm(bpm, 300, fps)


class TestMoodPresets:
    def test_presets_present(self):
        assert BPM_PRESETS["moderate"] == 120
        assert BPM_PRESETS["energetic"] == 140

    @pytest.mark.parametrize("mood,expected", [
        ("energetic", 140), ("calm", 90), ("dramatic", 110), ("playful", 125), ("unknown", 120),
    ])
    def test_bpm_from_mood(self, mood, expected):
        assert bpm_from_mood(mood) == expected


# ═══════════════════════════════════════════════════════════════════════════════
# Lookups
# ═══════════════════════════════════════════════════════════════════════════════


@pytest.fixture
def grid() -> BeatMap:
    return BeatMap(bpm=120.0, beats=[0, 15, 30, 45, 60], drops=[0, 60])


class TestNearestBeat:
    def test_exact_hit(self, grid):
        assert nearest_beat(grid, 30) == 30

    def test_rounds_to_closest(self, grid):
        assert nearest_beat(grid, 19) == 15
        assert nearest_beat(grid, 26) == 30

    def test_tie_goes_to_earlier_beat(self):
        bm = BeatMap(bpm=120.0, beats=[0, 10])
        assert nearest_beat(bm, 5) == 0

    def test_outside_range_clamps(self, grid):
        assert nearest_beat(grid, -5) == 0
        assert nearest_beat(grid, 500) == 60

    def test_empty_returns_none(self):
        assert nearest_beat(BeatMap(bpm=120.0), 10) is None


class TestBeatPredicates:
    def test_is_on_beat_within_tolerance(self, grid):
        assert is_on_beat(grid, 17)
        assert not is_on_beat(grid, 18)
        assert is_on_beat(grid, 18, tolerance=3)

    def test_is_on_beat_empty(self):
        assert not is_on_beat(BeatMap(bpm=120.0), 0)

    def test_is_on_drop(self, grid):
        assert is_on_drop(grid, 61)
        assert not is_on_drop(grid, 30)


class TestSnapToBeat:
    def test_snaps_when_close(self, grid):
        assert snap_to_beat(grid, 33) == 30

    def test_leaves_far_frames(self, grid):
        # 22 is 7 from 15 and 8 from 30
        assert snap_to_beat(grid, 22) == 22

    def test_custom_distance(self, grid):
        assert snap_to_beat(grid, 22, max_distance=7) == 15

    def test_empty_map(self):
        assert snap_to_beat(BeatMap(bpm=120.0), 12) == 12


class TestNeighbours:
    def test_next_beat_is_strictly_after(self, grid):
        assert next_beat(grid, 15) == 30
        assert next_beat(grid, 16) == 30
        assert next_beat(grid, 60) is None

    def test_previous_beat_is_strictly_before(self, grid):
        assert previous_beat(grid, 15) == 0
        assert previous_beat(grid, 14) == 0
        assert previous_beat(grid, 0) is None

    def test_beats_between_inclusive(self, grid):
        assert beats_between(grid, 15, 45) == [15, 30, 45]

    def test_beats_between_every_nth(self, grid):
        assert beats_between(grid, 0, 60, every_nth=2) == [0, 30, 60]

    def test_beat_progress(self, grid):
        assert beat_progress(grid, 15) == 0.0
        assert beat_progress(grid, 22) == pytest.approx(7 / 15)

    def test_beat_progress_without_beats(self):
        bm = BeatMap(bpm=120.0)
        assert beat_progress(bm, 20) == pytest.approx(5 / 15)

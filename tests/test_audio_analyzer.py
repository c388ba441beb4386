import asyncio

import pytest

from conftest import feed
from mockly_capture.analyzers import AudioLevelAnalyzer, VolumeHistory, estimate_volume
from mockly_capture.configs import AudioSettings
from mockly_capture.models import AudioFrame

CFG = AudioSettings()
SILENT = bytes([128] * 128)
QUIET = bytes([129] + [128] * 127)  # reads 40 at default amplification


def audio(samples: bytes, t: float = 0.0) -> AudioFrame:
    return AudioFrame(timestamp=t, samples=samples)


def run_audio(analyzer: AudioLevelAnalyzer, buffers) -> list:
    async def scenario():
        snapshots = await feed(analyzer, [audio(b, i / 60) for i, b in enumerate(buffers)])
        await analyzer.stop()
        return snapshots

    return asyncio.run(scenario())


class TestEstimateVolume:
    def test_silence(self) -> None:
        assert estimate_volume(SILENT, CFG) == 0.0

    def test_empty_buffer(self) -> None:
        assert estimate_volume(b"", CFG) == 0.0

    def test_single_deviation_is_amplified(self) -> None:
        # deviation estimator wins: 1 * 2 = 2, times 20
        assert estimate_volume(QUIET, CFG) == pytest.approx(40.0)

    def test_quiet_reading_is_boosted(self) -> None:
        cfg = AudioSettings(amplification=1.0)
        assert estimate_volume(QUIET, cfg) == pytest.approx(10.0)

    def test_capped_at_100(self) -> None:
        assert estimate_volume(bytes([0, 255] * 64), CFG) == 100.0

    def test_dc_offset(self) -> None:
        cfg = AudioSettings(amplification=1.0)
        # every sample 10 above silence: deviation 20, offset 40
        assert estimate_volume(bytes([138] * 128), cfg) == pytest.approx(40.0)


class TestVolumeHistory:
    def test_flat_history_has_no_variation(self) -> None:
        history = VolumeHistory()
        for v in (10, 10, 10):
            history.push(v)
        assert history.variation() == 0.0
        assert history.average() == pytest.approx(10.0)

    def test_alternating_history(self) -> None:
        history = VolumeHistory()
        for v in (0, 20, 0, 20):
            history.push(v)
        assert history.variation() == pytest.approx(20.0)
        assert history.average() == pytest.approx(10.0)

    def test_bounded(self) -> None:
        history = VolumeHistory(capacity=3)
        for v in range(5):
            history.push(v)
        assert len(history) == 3
        assert history.average() == pytest.approx(3.0)

    def test_empty(self) -> None:
        history = VolumeHistory()
        assert history.average() == 0.0
        assert history.variation() == 0.0


class TestAudioLevelAnalyzer:
    def test_emits_every_nth_buffer(self) -> None:
        analyzer = AudioLevelAnalyzer(CFG)
        snapshots = run_audio(analyzer, [QUIET] * 25)
        assert [s.total_samples for s in snapshots] == [1, 11, 21]
        assert analyzer.ticks == 25

    def test_loud_speech_proxies(self) -> None:
        analyzer = AudioLevelAnalyzer(AudioSettings(emit_every=1))
        last = run_audio(analyzer, [QUIET] * 5)[-1]
        assert last.volume == 40
        assert last.average_volume == 40
        assert last.volume_variation == 0
        assert last.pitch_variation == 60
        assert last.speech_rate == 75
        assert last.clarity == 85

    def test_silence_proxies(self) -> None:
        analyzer = AudioLevelAnalyzer(AudioSettings(emit_every=1))
        last = run_audio(analyzer, [SILENT] * 5)[-1]
        assert last.volume == 0
        assert last.speech_rate == 45
        assert last.clarity == 60

    def test_variation_drives_pitch_proxy(self) -> None:
        analyzer = AudioLevelAnalyzer(AudioSettings(emit_every=1))
        last = run_audio(analyzer, [QUIET, SILENT, QUIET, SILENT])[-1]
        assert last.average_volume == 20
        assert last.volume_variation == 80
        assert last.pitch_variation == 80

    def test_missing_stream_is_tolerated(self) -> None:
        analyzer = AudioLevelAnalyzer(CFG)

        async def scenario():
            await analyzer.start(None, lambda s: None)
            running = analyzer.is_running
            await analyzer.stop()
            return running

        assert asyncio.run(scenario()) is False
        assert analyzer.last_snapshot is None

    def test_stop_clears_history(self) -> None:
        analyzer = AudioLevelAnalyzer(AudioSettings(emit_every=1))
        run_audio(analyzer, [QUIET] * 3)
        assert len(analyzer.history) == 0
        assert analyzer.ticks == 3
        analyzer.reset()
        assert analyzer.ticks == 0

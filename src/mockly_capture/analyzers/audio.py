import logging
from collections import deque
from typing import Optional

import numpy as np

from ..configs import AudioSettings
from ..models import AudioFrame, SnapshotKind, VolumeSnapshot
from ..utils import round_half_up
from .base import Analyzer

logger = logging.getLogger(__name__)

SILENCE = 128  # unsigned 8-bit center


def estimate_volume(samples: bytes, cfg: AudioSettings) -> float:
    """
    Sensitivity-boosted loudness of one time-domain buffer, in [0, 100].

    Three estimators are taken and the largest wins:
        - peak-to-trough range, as a percentage of the full byte range;
        - mean absolute deviation from silence over non-silent samples, doubled;
        - offset of the buffer mean from silence, times four.
    The result is amplified, readings that are quiet but not silent get an
    extra boost, and the total is capped at 100.
    """
    data = np.frombuffer(samples, dtype=np.uint8).astype(np.float64)
    if data.size == 0:
        return 0.0

    range_volume = (data.max() - data.min()) / 255 * 100
    deviation = np.abs(data - SILENCE)
    active = deviation[deviation > 0]
    deviation_volume = active.mean() * 2 if active.size else 0.0
    offset_volume = abs(data.mean() - SILENCE) * 4

    volume = max(range_volume, deviation_volume, offset_volume) * cfg.amplification
    if 0 < volume < cfg.quiet_ceiling:
        volume *= cfg.quiet_boost
    return float(min(100.0, volume))


class VolumeHistory:
    """Bounded window of recent volume readings."""

    def __init__(self, capacity: int = 100):
        self._values: deque[float] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._values)

    def push(self, volume: float) -> None:
        self._values.append(volume)

    def average(self) -> float:
        return float(np.mean(self._values)) if self._values else 0.0

    def variation(self) -> float:
        """Mean absolute difference between successive readings."""
        if len(self._values) < 2:
            return 0.0
        return float(np.mean(np.abs(np.diff(np.fromiter(self._values, dtype=np.float64)))))

    def clear(self) -> None:
        self._values.clear()


class AudioLevelAnalyzer(Analyzer[AudioFrame, VolumeSnapshot]):
    """
    Loudness and loudness dynamics of the participant's voice.

    Tone variation, speech rate and clarity are coarse proxies derived from
    the volume statistics; no spectral analysis is involved.
    """

    kind = SnapshotKind.VOLUME

    def __init__(self, settings: AudioSettings):
        super().__init__()
        self._cfg = settings
        self.history = VolumeHistory(settings.history_size)
        self._ticks = 0

    @property
    def ticks(self) -> int:
        return self._ticks

    def reset(self) -> None:
        self.history.clear()
        self._ticks = 0

    def _on_stopped(self) -> None:
        self.history.clear()

    async def _process(self, frame: AudioFrame) -> Optional[VolumeSnapshot]:
        volume = estimate_volume(frame.samples, self._cfg)
        self.history.push(volume)
        self._ticks += 1

        if (self._ticks - 1) % self._cfg.emit_every:
            return None

        avg = self.history.average()
        variation = self.history.variation()
        return VolumeSnapshot(
            volume=round_half_up(volume),
            average_volume=round_half_up(avg),
            volume_variation=round_half_up(min(100.0, variation * 2)),
            pitch_variation=60 + round_half_up(variation * 0.5),
            speech_rate=75 if avg > 3 else 45,
            clarity=85 if avg > 5 else 60,
            total_samples=self._ticks,
        )

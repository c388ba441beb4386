"""
Turns a frozen metrics bundle into sub-scores and an overall score.

Everything here is pure. Scores are clamped to [0, 100] and rounded half-up;
a score whose inputs were never observed is ``None`` rather than a guess.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from .configs import IdealRange, ScoringSettings
from .models import (
    STAR_COMPONENTS,
    FinalizedMetrics,
    GestureSnapshot,
    GazeSnapshot,
    NarrativeAnalysis,
    SnapshotKind,
    VolumeSnapshot,
)
from .utils import parse_mmss, round_half_up

logger = logging.getLogger(__name__)


def clamp_percent(value: float) -> float:
    return max(0.0, min(100.0, value))


def to_percent(value: float) -> int:
    return round_half_up(clamp_percent(value))


def ideal_range_score(value: float, r: IdealRange, edge_score: float) -> float:
    """
    Piecewise-linear closeness of ``value`` to the ideal window.

    100 at the ideal center, falling to ``edge_score`` at the ideal edges, then ramping
    down to 0 at ``min``/``max``. Anything at or beyond ``min``/``max`` is 0.
    """
    if value <= r.min or value >= r.max:
        return 0.0

    if r.ideal_min <= value <= r.ideal_max:
        half_span = (r.ideal_center - r.ideal_min) if value <= r.ideal_center else (r.ideal_max - r.ideal_center)
        if half_span == 0:
            return 100.0
        return 100.0 - (100.0 - edge_score) * abs(value - r.ideal_center) / half_span

    if value < r.ideal_min:
        return edge_score * (value - r.min) / (r.ideal_min - r.min)
    return edge_score * (r.max - value) / (r.max - r.ideal_max)


def content_score(narrative: NarrativeAnalysis, bonus: float = 25.0) -> int:
    present = narrative.components_present
    return to_percent(narrative.structure_score + bonus * present / len(STAR_COMPONENTS))


def pitch_score(volume: VolumeSnapshot) -> int:
    return to_percent((volume.pitch_variation + volume.clarity) / 2)


def visible_percentage(visible_s: float, duration_label: str) -> float:
    """Share of the session the dominant hand was on camera. A 00:00 session counts as 0."""
    duration_s = parse_mmss(duration_label)
    if duration_s <= 0:
        return 0.0
    return clamp_percent(visible_s / duration_s * 100)


def nonverbal_score(gaze: GazeSnapshot, gesture: GestureSnapshot, duration_label: str, cfg: ScoringSettings) -> int:
    hand = gesture.dominant
    components = (
        visible_percentage(hand.visible_time_s, duration_label),
        ideal_range_score(hand.speed, cfg.hand_speed, cfg.ideal_edge_score),
        ideal_range_score(hand.erraticness, cfg.erraticness, cfg.ideal_edge_score),
        float(gaze.eye_contact_percentage),
        ideal_range_score(gaze.smile_percentage, cfg.smile, cfg.ideal_edge_score),
    )
    return to_percent(sum(components) / len(components))


@dataclass(slots=True, frozen=True)
class ScoreCard:
    content: Optional[int]
    pitch: Optional[int]
    nonverbal: Optional[int]
    overall: Optional[int]

    @property
    def missing(self) -> tuple[str, ...]:
        return tuple(name for name in ("content", "pitch", "nonverbal", "overall") if getattr(self, name) is None)


def score_session(
    metrics: FinalizedMetrics,
    narrative: Optional[NarrativeAnalysis],
    cfg: ScoringSettings,
) -> ScoreCard:
    """
    Scores one answer.

    Content needs a narrative analysis, pitch needs the audio analyzer to
    have reported, nonverbal needs at least one of the visual analyzers.
    The overall score averages whichever sub-scores exist.
    """
    content = content_score(narrative, cfg.narrative_bonus) if narrative is not None else None
    pitch = pitch_score(metrics.volume) if metrics.has(SnapshotKind.VOLUME) else None

    nonverbal = None
    if metrics.has(SnapshotKind.GAZE) or metrics.has(SnapshotKind.GESTURE):
        nonverbal = nonverbal_score(metrics.gaze, metrics.gesture, metrics.duration_label, cfg)

    available = [s for s in (content, pitch, nonverbal) if s is not None]
    overall = to_percent(sum(available) / len(available)) if available else None

    card = ScoreCard(content=content, pitch=pitch, nonverbal=nonverbal, overall=overall)
    if card.missing:
        logger.warning("Insufficient data for: %s", ", ".join(card.missing))
    return card

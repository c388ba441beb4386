import pytest
from pydantic import ValidationError

from mockly_capture.configs import IdealRange, ScoringSettings
from mockly_capture.models import (
    FinalizedMetrics,
    FinalizeReason,
    GazeSnapshot,
    GazeStatus,
    GestureFeedback,
    GestureSnapshot,
    HandMetrics,
    NarrativeAnalysis,
    SnapshotKind,
    VolumeSnapshot,
)
from mockly_capture.scoring import (
    content_score,
    ideal_range_score,
    nonverbal_score,
    pitch_score,
    score_session,
    visible_percentage,
)

SCORING = ScoringSettings()
EDGE = SCORING.ideal_edge_score


def _gaze(eye: int = 80, smile: int = 40, session_time: str = "00:10") -> GazeSnapshot:
    return GazeSnapshot(
        eye_contact=True,
        smiling=False,
        status=GazeStatus.CAMERA,
        eye_contact_frames=eye,
        smile_frames=smile,
        face_frames=100,
        total_frames=100,
        eye_contact_percentage=eye,
        smile_percentage=smile,
        session_time=session_time,
    )


def _gesture(speed: float = 160.0, erraticness: float = 3.0, visible_ms: float = 10_000.0) -> GestureSnapshot:
    return GestureSnapshot(
        hands=(
            HandMetrics("Right Hand", speed=speed, erraticness=erraticness, visible_time_ms=visible_ms),
            HandMetrics("Left Hand"),
        ),
        feedback=GestureFeedback.TOO_MUCH,
        calibrated=True,
        face_good=True,
    )


def _volume(pitch_variation: int = 60, clarity: int = 85) -> VolumeSnapshot:
    return VolumeSnapshot(
        volume=30,
        average_volume=20,
        volume_variation=10,
        pitch_variation=pitch_variation,
        speech_rate=75,
        clarity=clarity,
        total_samples=11,
    )


def _metrics(reported=(SnapshotKind.GAZE, SnapshotKind.GESTURE, SnapshotKind.VOLUME), **kwargs) -> FinalizedMetrics:
    return FinalizedMetrics(
        gaze=kwargs.get("gaze", _gaze()),
        gesture=kwargs.get("gesture", _gesture()),
        volume=kwargs.get("volume", _volume()),
        reported=frozenset(reported),
        transcript="",
        reason=FinalizeReason.TIMEOUT,
        elapsed_s=10.0,
        duration_label=kwargs.get("duration_label", "00:10"),
    )


# ---------------------------------------------------------------------------
# Ideal-range score
# ---------------------------------------------------------------------------


class TestIdealRangeScore:
    @pytest.mark.parametrize("r", [SCORING.hand_speed, SCORING.erraticness, SCORING.smile])
    def test_boundaries_of_every_default_range(self, r: IdealRange) -> None:
        assert ideal_range_score(r.min, r, EDGE) == 0.0
        assert ideal_range_score(r.ideal_center, r, EDGE) == 100.0
        assert ideal_range_score(r.max, r, EDGE) == 0.0

    def test_hand_speed_scenario(self) -> None:
        r = IdealRange(min=0, max=300, ideal_min=120, ideal_max=200, ideal_center=160)
        assert ideal_range_score(160, r, EDGE) == 100.0
        assert ideal_range_score(0, r, EDGE) == 0.0
        assert ideal_range_score(300, r, EDGE) == 0.0
        assert ideal_range_score(450, r, EDGE) == 0.0
        assert ideal_range_score(-5, r, EDGE) == 0.0

    def test_ideal_edges_score_edge_value(self) -> None:
        r = SCORING.hand_speed
        assert ideal_range_score(120, r, EDGE) == pytest.approx(EDGE)
        assert ideal_range_score(200, r, EDGE) == pytest.approx(EDGE)

    def test_linear_inside_ideal_window(self) -> None:
        r = SCORING.hand_speed
        assert ideal_range_score(140, r, EDGE) == pytest.approx(87.5)
        assert ideal_range_score(180, r, EDGE) == pytest.approx(87.5)

    def test_linear_ramp_outside_ideal_window(self) -> None:
        r = SCORING.hand_speed
        assert ideal_range_score(60, r, EDGE) == pytest.approx(37.5)
        assert ideal_range_score(250, r, EDGE) == pytest.approx(37.5)

    def test_window_starting_at_min(self) -> None:
        r = SCORING.erraticness
        assert ideal_range_score(1.5, r, EDGE) == pytest.approx(87.5)
        assert ideal_range_score(6, r, EDGE) == pytest.approx(75.0)
        assert ideal_range_score(8, r, EDGE) == pytest.approx(37.5)

    def test_score_is_monotonic_towards_center(self) -> None:
        r = SCORING.smile
        values = [ideal_range_score(v, r, EDGE) for v in range(0, 41, 5)]
        assert values == sorted(values)

    def test_configured_edge_score(self) -> None:
        settings = ScoringSettings(ideal_edge_score=50)
        r = settings.hand_speed
        assert ideal_range_score(120, r, settings.ideal_edge_score) == pytest.approx(50.0)
        assert ideal_range_score(140, r, settings.ideal_edge_score) == pytest.approx(75.0)
        assert ideal_range_score(60, r, settings.ideal_edge_score) == pytest.approx(25.0)

    def test_edge_score_is_bounded(self) -> None:
        with pytest.raises(ValidationError):
            ScoringSettings(ideal_edge_score=120)

    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(min=10, max=10, ideal_min=10, ideal_max=10, ideal_center=10),
            dict(min=0, max=100, ideal_min=50, ideal_max=40, ideal_center=45),
            dict(min=0, max=100, ideal_min=0, ideal_max=0, ideal_center=0),
            dict(min=0, max=100, ideal_min=20, ideal_max=120, ideal_center=60),
        ],
    )
    def test_invalid_ranges_rejected(self, kwargs) -> None:
        with pytest.raises(ValidationError):
            IdealRange(**kwargs)


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------


class TestSubScores:
    def test_content_bonus_per_component(self) -> None:
        assert content_score(NarrativeAnalysis(structure_score=50)) == 50
        assert content_score(NarrativeAnalysis(structure_score=50, situation=True)) == 56  # 56.25
        assert content_score(NarrativeAnalysis(structure_score=60, task=True, result=True)) == 73  # 72.5 half-up
        assert content_score(
            NarrativeAnalysis(structure_score=50, situation=True, task=True, action=True, result=True)
        ) == 75

    def test_content_clamped(self) -> None:
        full = NarrativeAnalysis(structure_score=90, situation=True, task=True, action=True, result=True)
        assert content_score(full) == 100
        assert content_score(NarrativeAnalysis(structure_score=-20)) == 0

    def test_pitch_is_mean_of_proxies(self) -> None:
        assert pitch_score(_volume(pitch_variation=60, clarity=85)) == 73  # 72.5
        assert pitch_score(_volume(pitch_variation=60, clarity=60)) == 60

    def test_visible_percentage_zero_duration(self) -> None:
        assert visible_percentage(12.0, "00:00") == 0.0

    def test_visible_percentage(self) -> None:
        assert visible_percentage(5.0, "00:10") == pytest.approx(50.0)
        assert visible_percentage(90.0, "01:00") == 100.0

    def test_visible_percentage_bad_label(self) -> None:
        with pytest.raises(ValueError):
            visible_percentage(1.0, "ten seconds")

    def test_nonverbal_average_of_five(self) -> None:
        # visible 100, speed 100, erraticness 100, eye contact 80, smile 100
        assert nonverbal_score(_gaze(), _gesture(), "00:10", SCORING) == 96

    def test_nonverbal_uses_dominant_hand(self) -> None:
        gesture = GestureSnapshot(
            hands=(
                HandMetrics("Right Hand", speed=10.0, visible_time_ms=1_000.0),
                HandMetrics("Left Hand", speed=160.0, erraticness=3.0, visible_time_ms=10_000.0),
            ),
            feedback=GestureFeedback.JUST_RIGHT,
            calibrated=True,
            face_good=False,
        )
        assert nonverbal_score(_gaze(), gesture, "00:10", SCORING) == 96


# ---------------------------------------------------------------------------
# Session scoring
# ---------------------------------------------------------------------------


class TestScoreSession:
    def test_all_inputs(self) -> None:
        narrative = NarrativeAnalysis(structure_score=60, task=True, result=True)
        card = score_session(_metrics(), narrative, SCORING)
        assert (card.content, card.pitch, card.nonverbal) == (73, 73, 96)
        assert card.overall == 81  # 80.67
        assert card.missing == ()

    def test_missing_narrative_is_insufficient(self) -> None:
        card = score_session(_metrics(), None, SCORING)
        assert card.content is None
        assert card.overall == 85  # mean(73, 96) = 84.5
        assert card.missing == ("content",)

    def test_missing_audio_is_insufficient(self) -> None:
        card = score_session(_metrics(reported=(SnapshotKind.GAZE,)), None, SCORING)
        assert card.pitch is None
        assert card.nonverbal == 96
        assert card.overall == 96

    def test_nothing_reported(self) -> None:
        card = score_session(_metrics(reported=()), None, SCORING)
        assert card == type(card)(content=None, pitch=None, nonverbal=None, overall=None)
        assert card.missing == ("content", "pitch", "nonverbal", "overall")

    def test_scores_stay_in_range(self) -> None:
        gaze = _gaze(eye=100, smile=100, session_time="00:01")
        gesture = _gesture(speed=1e9, erraticness=1e9, visible_ms=1e9)
        narrative = NarrativeAnalysis(structure_score=500, situation=True)
        card = score_session(_metrics(gaze=gaze, gesture=gesture, duration_label="00:01"), narrative, SCORING)
        for score in (card.content, card.pitch, card.nonverbal, card.overall):
            assert 0 <= score <= 100

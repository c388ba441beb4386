from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

from .snapshots import GazeSnapshot, GestureSnapshot, HandMetrics, SnapshotKind, VolumeSnapshot

STAR_COMPONENTS = ("situation", "task", "action", "result")


class FinalizeReason(str, Enum):
    TIMEOUT = "timeout"
    FINISHED = "finished"
    ENDED = "ended"


class NoteKind(str, Enum):
    """Data-quality issues that degrade a report without failing the session."""
    ANALYZER_STALLED = "analyzer_stalled"
    CALIBRATION_INCOMPLETE = "calibration_incomplete"
    NO_FACE_DETECTED = "no_face_detected"
    AUDIO_UNAVAILABLE = "audio_unavailable"
    NO_SPEECH_DETECTED = "no_speech_detected"


@dataclass(slots=True, frozen=True)
class DataNote:
    kind: NoteKind
    message: str
    source: Optional[SnapshotKind] = None


@dataclass(slots=True, frozen=True)
class NarrativeAnalysis:
    """
    Content analysis of the answer supplied by an external reviewer.

    ``structure_score`` is on a 0-100 scale; the flags mark which STAR
    components the answer covered.
    """
    structure_score: float
    situation: bool = False
    task: bool = False
    action: bool = False
    result: bool = False

    @property
    def components_present(self) -> int:
        return sum(1 for name in STAR_COMPONENTS if getattr(self, name))


@dataclass(slots=True, frozen=True)
class FinalizedMetrics:
    """
    The bundle frozen when a session leaves capture. Snapshots that arrive
    afterwards never make it in here.
    """
    gaze: GazeSnapshot
    gesture: GestureSnapshot
    volume: VolumeSnapshot
    reported: frozenset[SnapshotKind]
    transcript: str
    reason: FinalizeReason
    elapsed_s: float
    duration_label: str
    notes: tuple[DataNote, ...] = ()

    def has(self, kind: SnapshotKind) -> bool:
        return kind in self.reported


@dataclass(slots=True, frozen=True)
class SessionReport:
    question_id: str
    content_score: Optional[int]
    pitch_score: Optional[int]
    nonverbal_score: Optional[int]
    overall_score: Optional[int]
    eye_contact_percentage: int
    smile_percentage: int
    session_duration_label: str
    per_hand_metrics: tuple[HandMetrics, ...]
    volume_metrics: VolumeSnapshot
    final_transcript: str
    gesture_feedback: str
    finalize_reason: FinalizeReason
    insufficient_data: tuple[str, ...] = ()
    notes: tuple[DataNote, ...] = field(default=())

    def to_dict(self) -> dict:
        data = asdict(self)
        data["per_hand_metrics"] = [
            {**asdict(h), "visible_time_s": round(h.visible_time_s, 2)} for h in self.per_hand_metrics
        ]
        return data

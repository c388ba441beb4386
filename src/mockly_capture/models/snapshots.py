from dataclasses import asdict, dataclass, field
from enum import Enum


class SnapshotKind(str, Enum):
    GAZE = "gaze"
    GESTURE = "gesture"
    VOLUME = "volume"


class GazeStatus(str, Enum):
    CAMERA = "Camera"
    AWAY = "Away"
    NO_EYES = "Eyes not detected"
    NO_FACE = "No face detected"
    ERROR = "Detection error"


class GestureFeedback(str, Enum):
    TOO_LITTLE = "Too little - gesture more"
    TOO_MUCH = "Too much - slow down"
    JUST_RIGHT = "Just right"
    NO_HANDS = "No hands detected"


HAND_LABELS = ("Right Hand", "Left Hand")  # slot order; the preview is mirrored


@dataclass(slots=True, frozen=True)
class GazeSnapshot:
    eye_contact: bool
    smiling: bool
    status: GazeStatus
    eye_contact_frames: int
    smile_frames: int
    face_frames: int
    total_frames: int
    eye_contact_percentage: int
    smile_percentage: int
    session_time: str
    kind: SnapshotKind = field(default=SnapshotKind.GAZE, init=False)

    @classmethod
    def zero(cls) -> "GazeSnapshot":
        return cls(False, False, GazeStatus.NO_FACE, 0, 0, 0, 0, 0, 0, "00:00")

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class HandMetrics:
    """Cumulative metrics of one hand slot since the analyzer started."""
    hand: str
    speed: float = 0.0
    erraticness: float = 0.0
    total_distance: float = 0.0
    erratic_events: int = 0
    visible_time_ms: float = 0.0

    @property
    def visible_time_s(self) -> float:
        return self.visible_time_ms / 1000


@dataclass(slots=True, frozen=True)
class GestureSnapshot:
    hands: tuple[HandMetrics, ...]
    feedback: GestureFeedback
    calibrated: bool
    face_good: bool
    kind: SnapshotKind = field(default=SnapshotKind.GESTURE, init=False)

    @classmethod
    def zero(cls) -> "GestureSnapshot":
        return cls(
            hands=tuple(HandMetrics(label) for label in HAND_LABELS),
            feedback=GestureFeedback.NO_HANDS,
            calibrated=False,
            face_good=False,
        )

    @property
    def dominant(self) -> HandMetrics:
        """The hand with the most visible time; ties go to the first slot."""
        return max(self.hands, key=lambda h: h.visible_time_ms)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(slots=True, frozen=True)
class VolumeSnapshot:
    volume: int
    average_volume: int
    volume_variation: int
    pitch_variation: int
    speech_rate: int
    clarity: int
    total_samples: int
    kind: SnapshotKind = field(default=SnapshotKind.VOLUME, init=False)

    @classmethod
    def zero(cls) -> "VolumeSnapshot":
        return cls(0, 0, 0, 0, 0, 0, 0)

    def to_dict(self) -> dict:
        return asdict(self)


MetricSnapshot = GazeSnapshot | GestureSnapshot | VolumeSnapshot

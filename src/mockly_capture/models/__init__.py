from .frames import STREAM_END, AudioFrame, FrameSample, LandmarkSet, Point, StreamEnd, distance, midpoint
from .report import (
    STAR_COMPONENTS,
    DataNote,
    FinalizedMetrics,
    FinalizeReason,
    NarrativeAnalysis,
    NoteKind,
    SessionReport,
)
from .snapshots import (
    HAND_LABELS,
    GazeSnapshot,
    GazeStatus,
    GestureFeedback,
    GestureSnapshot,
    HandMetrics,
    MetricSnapshot,
    SnapshotKind,
    VolumeSnapshot,
)

__all__ = [
    "AudioFrame",
    "DataNote",
    "FinalizedMetrics",
    "FinalizeReason",
    "FrameSample",
    "GazeSnapshot",
    "GazeStatus",
    "GestureFeedback",
    "GestureSnapshot",
    "HAND_LABELS",
    "HandMetrics",
    "LandmarkSet",
    "MetricSnapshot",
    "NarrativeAnalysis",
    "NoteKind",
    "Point",
    "STAR_COMPONENTS",
    "STREAM_END",
    "SessionReport",
    "SnapshotKind",
    "StreamEnd",
    "VolumeSnapshot",
    "distance",
    "midpoint",
]

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from ..configs import GazeSettings
from ..core.protocols import FaceLandmarkProvider
from ..models import (
    FrameSample,
    GazeSnapshot,
    GazeStatus,
    LandmarkSet,
    SnapshotKind,
    distance,
    midpoint,
)
from ..utils import format_mmss, round_half_up
from .base import Analyzer

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GazeState:
    """Frame counters of one session. Only ever incremented between resets."""
    eye_contact_frames: int = 0
    smile_frames: int = 0
    face_frames: int = 0
    total_frames: int = 0
    start_time: Optional[float] = None

    def percentage(self, frames: int) -> int:
        if self.total_frames == 0:
            return 0
        return round_half_up(frames / self.total_frames * 100)


def detect_eye_contact(face: LandmarkSet, frame: FrameSample, cfg: GazeSettings) -> tuple[bool, GazeStatus]:
    left = face.point(cfg.left_eye_index)
    right = face.point(cfg.right_eye_index)
    if left is None or right is None:
        return False, GazeStatus.NO_EYES

    looking = distance(midpoint(left, right), frame.center) < cfg.eye_contact_threshold_px
    return looking, GazeStatus.CAMERA if looking else GazeStatus.AWAY


def detect_smile(face: LandmarkSet, cfg: GazeSettings) -> bool:
    """
    A smile needs a wide, flat mouth whose corners are pulled up above the
    lip center (image y grows downwards).
    """
    left = face.point(cfg.mouth_left_index)
    right = face.point(cfg.mouth_right_index)
    upper = face.point(cfg.upper_lip_index)
    lower = face.point(cfg.lower_lip_index)
    if left is None or right is None or upper is None or lower is None:
        return False

    height = distance(upper, lower)
    if height == 0:
        return False

    ratio = distance(left, right) / height
    elevation = (upper[1] + lower[1]) / 2 - (left[1] + right[1]) / 2
    return ratio > cfg.smile_ratio_threshold and elevation > cfg.smile_elevation_px


class GazeAnalyzer(Analyzer[FrameSample, GazeSnapshot]):
    """
    Eye-contact and smile rates over the whole answer.

    Every processed frame counts towards ``total_frames``, including frames
    without a face or with a failed detection, so the percentages are
    relative to the time the participant was on camera.
    """

    kind = SnapshotKind.GAZE

    def __init__(
        self,
        face_provider: FaceLandmarkProvider,
        settings: GazeSettings,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__()
        self._provider = face_provider
        self._cfg = settings
        self._clock = clock
        self._state = GazeState()

    @property
    def state(self) -> GazeState:
        return self._state

    def reset(self) -> None:
        self._state = GazeState()

    def _on_started(self) -> None:
        # A restart after a cancelled finalize keeps the original start time.
        if self._state.start_time is None:
            self._state.start_time = self._clock()

    async def _process(self, frame: FrameSample) -> GazeSnapshot:
        try:
            face = await self._provider.detect_face(frame)
        except Exception as e:
            self._tick_logger.warning("Face detection failed: %s", e)
            return self._record(False, False, GazeStatus.ERROR)

        if face.is_empty:
            return self._record(False, False, GazeStatus.NO_FACE)

        looking, status = detect_eye_contact(face, frame, self._cfg)
        smiling = detect_smile(face, self._cfg)
        self._state.face_frames += 1
        return self._record(looking, smiling, status)

    def _record(self, looking: bool, smiling: bool, status: GazeStatus) -> GazeSnapshot:
        s = self._state
        if looking:
            s.eye_contact_frames += 1
        if smiling:
            s.smile_frames += 1
        s.total_frames += 1

        elapsed = self._clock() - s.start_time if s.start_time is not None else 0.0
        return GazeSnapshot(
            eye_contact=looking,
            smiling=smiling,
            status=status,
            eye_contact_frames=s.eye_contact_frames,
            smile_frames=s.smile_frames,
            face_frames=s.face_frames,
            total_frames=s.total_frames,
            eye_contact_percentage=s.percentage(s.eye_contact_frames),
            smile_percentage=s.percentage(s.smile_frames),
            session_time=format_mmss(elapsed),
        )

import asyncio
import logging
import math
from collections import deque
from typing import Optional, Sequence

from ..configs import GestureSettings
from ..core.protocols import FaceLandmarkProvider, HandLandmarkProvider
from ..models import (
    HAND_LABELS,
    FrameSample,
    GestureFeedback,
    GestureSnapshot,
    HandMetrics,
    LandmarkSet,
    Point,
    SnapshotKind,
    distance,
    midpoint,
)
from .base import Analyzer

logger = logging.getLogger(__name__)


def turn_angle(previous: Point, current: Point) -> float:
    """Absolute angle between two movement vectors, wrapped to [0, pi]."""
    angle = abs(math.atan2(current[1], current[0]) - math.atan2(previous[1], previous[0]))
    return 2 * math.pi - angle if angle > math.pi else angle


class CalibrationBaseline:
    """
    Inter-ocular distance captured once per session and used to normalize
    hand movement for the participant's distance to the camera.
    """
    __slots__ = ("_value",)

    def __init__(self) -> None:
        self._value: Optional[float] = None

    @property
    def value(self) -> Optional[float]:
        return self._value

    @property
    def is_set(self) -> bool:
        return self._value is not None

    def capture(self, iod: float) -> bool:
        """Stores ``iod`` unless a baseline already exists. Returns True if stored."""
        if self._value is not None:
            return False
        if iod <= 0:
            raise ValueError(f"Baseline must be positive, got {iod}")
        self._value = iod
        return True

    def scale(self, current_iod: Optional[float]) -> float:
        """
        ``current / baseline``; 1.0 until calibrated. Distances accumulated
        at 1.0 before calibration are kept as they are.
        """
        if self._value is None or not current_iod or current_iod <= 0:
            return 1.0
        return current_iod / self._value

    def clear(self) -> None:
        self._value = None


class HandTrail:
    """Movement history and cumulative metrics of one hand slot."""

    def __init__(self, capacity: int):
        self.positions: deque[Point] = deque(maxlen=capacity)
        self.total_distance = 0.0
        self.erratic_events = 0
        self.visible_time_ms = 0.0
        self.last_position: Optional[Point] = None
        self.last_vector: Optional[Point] = None

    @property
    def visible_time_s(self) -> float:
        return self.visible_time_ms / 1000

    @property
    def speed(self) -> float:
        return self.total_distance / self.visible_time_s if self.visible_time_ms > 0 else 0.0

    @property
    def erraticness(self) -> float:
        return self.erratic_events / self.visible_time_s if self.visible_time_ms > 0 else 0.0

    def observe(self, point: Point, delta_ms: float, scale: float, min_move: float, angle_threshold: float) -> None:
        self.positions.append(point)
        self.visible_time_ms += delta_ms

        if self.last_position is not None:
            step = (point[0] - self.last_position[0], point[1] - self.last_position[1])
            dist = math.hypot(*step)
            # Only real moves count; jitter neither adds distance nor turns the vector.
            if dist >= min_move:
                self.total_distance += dist / scale
                if self.last_vector is not None and turn_angle(self.last_vector, step) > angle_threshold:
                    self.erratic_events += 1
                self.last_vector = step

        self.last_position = point

    def break_continuity(self) -> None:
        """Forgets the last position and vector; cumulative metrics stay."""
        self.last_position = None
        self.last_vector = None

    def metrics(self, label: str) -> HandMetrics:
        return HandMetrics(
            hand=label,
            speed=self.speed,
            erraticness=self.erraticness,
            total_distance=self.total_distance,
            erratic_events=self.erratic_events,
            visible_time_ms=self.visible_time_ms,
        )


class GestureAnalyzer(Analyzer[FrameSample, GestureSnapshot]):
    """
    Hand movement quality, normalized by face scale.

    Each frame runs a face step (inter-ocular distance, face placement,
    calibration) followed by a hand step (trails, distance, direction
    changes). A snapshot is published only once the feedback label has
    repeated, so the label shown to the participant does not flicker.

    Until the calibration delay has elapsed and a face was seen, distances
    accumulate unnormalized (ratio 1.0). That window is not corrected
    afterwards; snapshots carry ``calibrated=False`` while it lasts.
    """

    kind = SnapshotKind.GESTURE

    def __init__(
        self,
        face_provider: FaceLandmarkProvider,
        hand_provider: HandLandmarkProvider,
        settings: GestureSettings,
    ):
        super().__init__()
        self._face_provider = face_provider
        self._hand_provider = hand_provider
        self._cfg = settings
        self.baseline = CalibrationBaseline()
        self._timer: Optional[asyncio.TimerHandle] = None
        self.reset()

    @property
    def trails(self) -> tuple[HandTrail, HandTrail]:
        return self._trails

    @property
    def calibrated(self) -> bool:
        return self.baseline.is_set

    @property
    def current_iod(self) -> Optional[float]:
        return self._current_iod

    def reset(self) -> None:
        self._trails = (HandTrail(self._cfg.trail_capacity), HandTrail(self._cfg.trail_capacity))
        self.baseline.clear()
        self._current_iod = None
        self._face_good = False
        self._calibration_deadline = None
        self._calibration_due = False
        self._last_frame_ts: Optional[float] = None
        self._last_label = None
        self._stable_count = 0

    def _on_started(self) -> None:
        if self.baseline.is_set or self._calibration_due:
            return
        loop = asyncio.get_running_loop()
        if self._calibration_deadline is None:
            self._calibration_deadline = loop.time() + self._cfg.calibration_delay_s
        delay = max(0.0, self._calibration_deadline - loop.time())
        self._timer = loop.call_later(delay, self._on_calibration_elapsed)
        logger.info("Face-scale calibration in %.1fs.", delay)

    def _on_stopped(self) -> None:
        # A resumed pass starts a new movement segment with no frame gap.
        self._last_frame_ts = None
        for trail in self._trails:
            trail.break_continuity()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            if not self.baseline.is_set:
                logger.info("Stopped before calibration completed.")

    def _on_calibration_elapsed(self) -> None:
        self._timer = None
        self._calibration_due = True
        if self._current_iod is not None:
            self._calibrate(self._current_iod)
        else:
            logger.info("Calibration delay elapsed without a face; waiting for the next one.")

    def _calibrate(self, iod: float) -> None:
        if self.baseline.capture(iod):
            logger.info("Calibrated face-scale baseline at %.1f px.", iod)

    async def _process(self, frame: FrameSample) -> Optional[GestureSnapshot]:
        await self._face_step(frame)
        return await self._hand_step(frame)

    async def _face_step(self, frame: FrameSample) -> None:
        try:
            face = await self._face_provider.detect_face(frame)
        except Exception as e:
            self._tick_logger.warning("Face detection failed: %s", e)
            return

        left = face.point(self._cfg.iod_left_index)
        right = face.point(self._cfg.iod_right_index)
        if left is None or right is None:
            return

        iod = distance(left, right)
        if iod <= 0:
            return
        self._current_iod = iod

        # Head guide circle sits at the horizontal center, upper third.
        radius = self._cfg.head_radius_px
        guide = (frame.width / 2, frame.height / 3)
        self._face_good = (
            iod < 2 * radius * self._cfg.face_good_iod_factor
            and distance(midpoint(left, right), guide) < radius * self._cfg.face_good_center_factor
        )

        if self._calibration_due and not self.baseline.is_set:
            self._calibrate(iod)

    async def _hand_step(self, frame: FrameSample) -> Optional[GestureSnapshot]:
        try:
            hands = await self._hand_provider.detect_hands(frame)
        except Exception as e:
            self._tick_logger.warning("Hand detection failed: %s", e)
            hands = ()

        delta_ms = 0.0
        if self._last_frame_ts is not None:
            delta_ms = max(0.0, (frame.timestamp - self._last_frame_ts) * 1000)
        self._last_frame_ts = frame.timestamp

        scale = self.baseline.scale(self._current_iod)
        seen = [False, False]
        for hand in hands:
            point = self._representative_point(hand)
            if point is None:
                continue
            slot = 0 if point[0] < frame.width / 2 else 1
            if seen[slot]:
                # Two detections on one side in the same frame: keep the first.
                continue
            seen[slot] = True
            self._trails[slot].observe(
                point, delta_ms, scale, self._cfg.min_move_px, self._cfg.angle_threshold_rad
            )

        label = self._feedback(seen)
        if label == self._last_label:
            self._stable_count += 1
        else:
            self._stable_count = 0
            self._last_label = label

        if self._stable_count < self._cfg.feedback_debounce:
            return None

        return GestureSnapshot(
            hands=tuple(trail.metrics(HAND_LABELS[i]) for i, trail in enumerate(self._trails)),
            feedback=label,
            calibrated=self.baseline.is_set,
            face_good=self._face_good,
        )

    def _representative_point(self, hand: LandmarkSet) -> Optional[Point]:
        points = [hand.point(i) for i in self._cfg.hand_keypoints]
        if any(p is None for p in points):
            return None
        return (
            sum(p[0] for p in points) / len(points),
            sum(p[1] for p in points) / len(points),
        )

    def _feedback(self, seen: Sequence[bool]) -> GestureFeedback:
        visible = [i for i, s in enumerate(seen) if s]
        if not visible:
            return GestureFeedback.NO_HANDS

        dominant = max(visible, key=lambda i: self._trails[i].visible_time_ms)
        speed = self._trails[dominant].speed
        if speed < self._cfg.slow_speed:
            return GestureFeedback.TOO_LITTLE
        if speed > self._cfg.fast_speed:
            return GestureFeedback.TOO_MUCH
        return GestureFeedback.JUST_RIGHT

"""Shared fakes for the capture pipeline tests.

Never mock. Providers, sources and controllers below are small real
implementations of the same interfaces the production code uses.
"""

import asyncio
from typing import Callable, Iterable, Optional, Sequence

import pytest

from mockly_capture.acquisition import CaptureSource
from mockly_capture.configs import (
    AppSettings,
    AudioSettings,
    GestureSettings,
    SessionSettings,
    VideoSettings,
)
from mockly_capture.controllers import CaptureController
from mockly_capture.errors import CaptureUnavailable
from mockly_capture.models import FrameSample, LandmarkSet, SnapshotKind
from mockly_capture.sinks import SnapshotSink
from mockly_capture.speech import TranscriptSegment

WIDTH, HEIGHT = 640, 480
CENTER = (WIDTH / 2, HEIGHT / 2)


# ---------------------------------------------------------------------------
# Landmark builders
# ---------------------------------------------------------------------------


def make_face(
    eye_mid=CENTER,
    iod: float = 50.0,
    smiling: bool = False,
    n_points: int = 468,
) -> LandmarkSet:
    """A face mesh with the eye, iris-line and mouth indices placed explicitly."""
    cx, cy = eye_mid
    points = [(cx, cy)] * n_points
    half = iod / 2

    def put(i, p):
        if i < n_points:
            points[i] = p

    # 33/362 midpoint is eye_mid and 33/263 spans the IOD
    put(33, (cx - half, cy))
    put(362, (cx + half, cy))
    put(263, (cx + half, cy))

    mouth_y = cy + 60
    if smiling:
        put(61, (cx - 25, mouth_y - 4))
        put(291, (cx + 25, mouth_y - 4))
        put(13, (cx, mouth_y - 3))
        put(14, (cx, mouth_y + 3))
    else:
        put(61, (cx - 18, mouth_y))
        put(291, (cx + 18, mouth_y))
        put(13, (cx, mouth_y - 8))
        put(14, (cx, mouth_y + 8))
    return LandmarkSet(tuple(points))


def make_face_with_iod(iod: float, left=(100.0, 100.0)) -> LandmarkSet:
    """Face whose 33/263 inter-ocular distance is exactly ``iod``."""
    points = [left] * 468
    points[33] = left
    points[263] = (left[0] + iod, left[1])
    points[362] = (left[0] + iod, left[1])
    return LandmarkSet(tuple(points))


def make_hand(point) -> LandmarkSet:
    """A 21-keypoint hand whose representative point (8, 9, 12 mean) is ``point``."""
    return LandmarkSet(tuple([point] * 21))


def frame(index: int, timestamp: Optional[float] = None) -> FrameSample:
    return FrameSample(index=index, timestamp=index * 0.1 if timestamp is None else timestamp, width=WIDTH, height=HEIGHT)


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class ScriptedFaceProvider:
    """Returns ``script(frame)``; raises it if it is an exception."""

    def __init__(self, script: Callable[[FrameSample], object] = lambda f: LandmarkSet()):
        self.script = script
        self.calls = 0

    async def detect_face(self, frame: FrameSample) -> LandmarkSet:
        self.calls += 1
        result = self.script(frame)
        if isinstance(result, Exception):
            raise result
        return result


class ScriptedHandProvider:
    def __init__(self, script: Callable[[FrameSample], object] = lambda f: ()):
        self.script = script

    async def detect_hands(self, frame: FrameSample) -> Sequence[LandmarkSet]:
        result = self.script(frame)
        if isinstance(result, Exception):
            raise result
        return result


class GatedFaceProvider:
    """
    Blocks every frame from ``gate_from`` on until ``release`` is set, to
    keep a detection call in flight.
    """

    def __init__(self, gate_from: int, face: LandmarkSet):
        self.gate_from = gate_from
        self.face = face
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def detect_face(self, frame: FrameSample) -> LandmarkSet:
        if frame.index >= self.gate_from:
            self.entered.set()
            await self.release.wait()
        return self.face


# ---------------------------------------------------------------------------
# Sources, controller, sinks
# ---------------------------------------------------------------------------


class ManualSource(CaptureSource):
    """A source the test pushes into by hand."""

    async def run(self) -> None:
        try:
            await self._stop_event.wait()
        finally:
            self._finish()

    def push(self, item) -> None:
        self._publish(item)


class ScriptedTranscript:
    """
    Yields ``segments`` in order and sets ``done`` after the last one. With
    ``hold_at``, waits for ``release`` before yielding that segment.
    """

    def __init__(self, segments: Iterable[TranscriptSegment], hold_at: Optional[int] = None):
        self.segments = list(segments)
        self.hold_at = hold_at
        self.release = asyncio.Event()
        self.done = asyncio.Event()

    async def stream(self):
        for i, segment in enumerate(self.segments):
            if i == self.hold_at:
                await self.release.wait()
            yield segment
            await asyncio.sleep(0)
        self.done.set()


class FakeController(CaptureController):
    def __init__(
        self,
        face=None,
        hands=None,
        available: bool = True,
        with_audio: bool = True,
        transcript: Optional[ScriptedTranscript] = None,
    ):
        self._face = face or ScriptedFaceProvider()
        self._hands = hands or ScriptedHandProvider()
        self._available = available
        self._with_audio = with_audio
        self._transcript = transcript
        self._connected = False
        self.frame_source: Optional[ManualSource] = None
        self.audio_source: Optional[ManualSource] = None
        self.shut_down = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def device_name(self) -> str:
        return "FAKE"

    async def connect(self) -> None:
        if not self._available:
            raise CaptureUnavailable()
        self._connected = True

    def create_frame_source(self, output_queue, stop_event):
        self.frame_source = ManualSource(output_queue, stop_event)
        return self.frame_source

    def create_audio_source(self, output_queue, stop_event):
        if not self._with_audio:
            return None
        self.audio_source = ManualSource(output_queue, stop_event)
        return self.audio_source

    @property
    def face_provider(self):
        return self._face

    @property
    def hand_provider(self):
        return self._hands

    @property
    def transcript_source(self):
        return self._transcript

    def shutdown(self) -> None:
        self.shut_down = True
        self._connected = False


class RecordingSink(SnapshotSink):
    def __init__(self):
        self.received = []
        self.started = False
        self.closed = False

    async def start(self) -> None:
        self.started = True

    async def send(self, snapshot) -> None:
        self.received.append(snapshot)

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def feed(analyzer, items, on_update=None) -> list:
    """Starts ``analyzer`` on a fresh queue, feeds ``items`` and waits until all are processed."""
    snapshots = []
    queue = asyncio.Queue()
    await analyzer.start(queue, on_update or snapshots.append)
    for item in items:
        queue.put_nowait(item)
    await queue.join()
    return snapshots


async def settle(aggregator) -> None:
    """Waits until every pushed frame and audio buffer went through the analyzers."""
    runner = aggregator.runner
    if runner.frame_source is not None:
        await runner.frame_source.output_queue.join()
    for kind in SnapshotKind:
        queue = runner.queue_for(kind)
        if queue is not None:
            await queue.join()


def make_settings(
    duration_s: float = 30.0,
    stall_timeout_s: float = 30.0,
    calibration_delay_s: float = 5.0,
    emit_every: int = 1,
) -> AppSettings:
    return AppSettings(
        session=SessionSettings(duration_s=duration_s, stall_timeout_s=stall_timeout_s),
        video=VideoSettings(queue_size=64),
        gesture=GestureSettings(calibration_delay_s=calibration_delay_s),
        audio=AudioSettings(emit_every=emit_every, queue_size=64),
    )


@pytest.fixture
def settings() -> AppSettings:
    return make_settings()

import asyncio
import logging
import math
from asyncio import Event, Queue
from typing import AsyncIterator, Optional, Sequence

from .base import CaptureController, require_connection
from ..acquisition import DummyAudioSource, DummyFrameSource
from ..configs import AppSettings
from ..errors import CaptureUnavailable
from ..models import AudioFrame, FrameSample, LandmarkSet, Point
from ..speech import TranscriptSegment

logger = logging.getLogger(__name__)

FACE_MESH_POINTS = 468
HAND_POINTS = 21

DEFAULT_SCRIPT = (
    "In my last role our release pipeline kept failing before demos.",
    "I was asked to make deployments reliable within one sprint.",
    "I added staged rollouts and automated smoke tests to every build.",
    "Failed releases dropped to zero for the next quarter.",
)


class DummyFaceProvider:
    """
    Simulated face mesh. The face sways around the frame center, glances
    away for one second out of every four and smiles in alternate
    five-second blocks. Every 60th frame has no face.
    """

    def __init__(self, iod_px: float = 48.0):
        self._iod = iod_px

    async def detect_face(self, frame: FrameSample) -> LandmarkSet:
        if frame.index % 60 == 59:
            return LandmarkSet()

        t = frame.timestamp
        cx, cy = frame.center
        cx += 12 * math.sin(2 * math.pi * 0.2 * t)
        if t % 4.0 >= 3.0:
            cx += 180  # glancing away

        half = self._iod * (1 + 0.03 * math.sin(2 * math.pi * 0.1 * t)) / 2
        smiling = int(t // 5) % 2 == 0

        points: list[Point] = [(cx, cy)] * FACE_MESH_POINTS
        points[33] = (cx - half, cy)
        points[263] = (cx + half, cy)
        points[362] = (cx + half * 0.6, cy)

        mouth_y = cy + self._iod
        mouth_half = self._iod * (0.5 if smiling else 0.35)
        lift = 4.0 if smiling else 0.0
        points[61] = (cx - mouth_half, mouth_y - lift)
        points[291] = (cx + mouth_half, mouth_y - lift)
        points[13] = (cx, mouth_y - 3)
        points[14] = (cx, mouth_y + 3 + (0 if smiling else 12))

        return LandmarkSet(tuple(points))


class DummyHandProvider:
    """
    Simulated hand pose. One hand circles on the left half of the image;
    the other shows up only during the middle of every six seconds.
    """

    def __init__(self, radius_px: float = 45.0, revolutions_per_s: float = 0.5):
        self._radius = radius_px
        self._rate = revolutions_per_s

    def _hand(self, center: Point) -> LandmarkSet:
        x, y = center
        points = [(x, y + 20)] * HAND_POINTS
        points[8] = (x - 4, y - 30)
        points[9] = (x, y - 5)
        points[12] = (x + 4, y - 32)
        return LandmarkSet(tuple(points))

    async def detect_hands(self, frame: FrameSample) -> Sequence[LandmarkSet]:
        t = frame.timestamp
        angle = 2 * math.pi * self._rate * t
        hands = [
            self._hand((
                frame.width * 0.25 + self._radius * math.cos(angle),
                frame.height * 0.65 + self._radius * math.sin(angle),
            ))
        ]
        if 2.0 <= t % 6.0 < 4.0:
            hands.append(self._hand((frame.width * 0.75, frame.height * 0.7 + 8 * math.sin(3 * angle))))
        return hands


class DummyTranscriptSource:
    """Streams a fixed answer word by word as interim results, one final segment per sentence."""

    def __init__(self, script: Sequence[str] = DEFAULT_SCRIPT, words_per_s: float = 6.0):
        self._script = script
        self._interval = 1.0 / words_per_s

    async def stream(self) -> AsyncIterator[TranscriptSegment]:
        for sentence in self._script:
            words = sentence.split()
            for i in range(1, len(words)):
                yield TranscriptSegment(" ".join(words[:i]), is_final=False)
                await asyncio.sleep(self._interval)
            yield TranscriptSegment(sentence, is_final=True)
            await asyncio.sleep(self._interval)


class DummyController(CaptureController):
    """
    Simulation-mode device. ``available=False`` behaves like a denied
    camera permission; ``with_audio=False`` like a missing microphone.
    """

    def __init__(self, settings: AppSettings, available: bool = True, with_audio: bool = True):
        self._settings = settings
        self._available = available
        self._with_audio = with_audio
        self._connected = False
        self._face = DummyFaceProvider()
        self._hands = DummyHandProvider()
        self._transcript = DummyTranscriptSource()

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def device_name(self) -> str:
        return "DUMMY-CAM"

    async def connect(self) -> None:
        await asyncio.sleep(0.05)  # Simulate discovery
        if not self._available:
            raise CaptureUnavailable()
        self._connected = True
        logger.info("Connected to %s.", self.device_name)

    @require_connection
    def create_frame_source(self, output_queue: Queue[FrameSample], stop_event: Event) -> DummyFrameSource:
        video = self._settings.video
        return DummyFrameSource(output_queue, stop_event, fps=video.fps, width=video.width, height=video.height)

    @require_connection
    def create_audio_source(self, output_queue: Queue[AudioFrame], stop_event: Event) -> Optional[DummyAudioSource]:
        if not self._with_audio:
            return None
        audio = self._settings.audio
        return DummyAudioSource(output_queue, stop_event, tick_hz=audio.tick_hz, buffer_size=audio.buffer_size)

    @property
    def face_provider(self) -> DummyFaceProvider:
        return self._face

    @property
    def hand_provider(self) -> DummyHandProvider:
        return self._hands

    @property
    def transcript_source(self) -> DummyTranscriptSource:
        return self._transcript

    def shutdown(self) -> None:
        self._connected = False

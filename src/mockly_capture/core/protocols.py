from typing import AsyncIterator, Protocol, Sequence, runtime_checkable

from ..models import FrameSample, LandmarkSet
from ..speech import TranscriptSegment


@runtime_checkable
class FaceLandmarkProvider(Protocol):
    """
    Any face-mesh backend. Returns the landmarks of the first face, or an
    empty set. May raise; callers treat a failure as a frame without a face.
    """
    async def detect_face(self, frame: FrameSample) -> LandmarkSet: ...


@runtime_checkable
class HandLandmarkProvider(Protocol):
    """Any hand-pose backend. Returns one LandmarkSet per detected hand."""
    async def detect_hands(self, frame: FrameSample) -> Sequence[LandmarkSet]: ...


@runtime_checkable
class TranscriptSource(Protocol):
    """A live speech-to-text stream of interim and final segments."""
    def stream(self) -> AsyncIterator[TranscriptSegment]: ...

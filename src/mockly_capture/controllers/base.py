import logging
from abc import ABC, abstractmethod
from asyncio import Event, Queue
from functools import wraps
from typing import Optional

from ..acquisition import CaptureSource
from ..core.protocols import FaceLandmarkProvider, HandLandmarkProvider, TranscriptSource
from ..errors import CaptureUnavailable
from ..models import AudioFrame, FrameSample

logger = logging.getLogger(__name__)


def require_connection(func):
    """
    Guards source factories: creating a stream from a device that was never
    obtained is the same failure as not obtaining it.
    """
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        if not self.is_connected:
            logger.warning(f"Capture action '{func.__name__}' aborted: device not connected.")
            raise CaptureUnavailable()
        return func(self, *args, **kwargs)
    return wrapper


class CaptureController(ABC):
    """
    Abstract capture device manager.
    AUTHORITY on: device access, stream creation and the external
    landmark/speech capabilities bound to that device.
    """

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Returns True once camera and microphone were obtained."""
        ...

    @property
    @abstractmethod
    def device_name(self) -> str:
        """Returns a human-readable name of the capture device."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """
        Obtains the capture devices.

        Raises:
            CaptureUnavailable: when the device is missing or access was denied.
        """
        ...

    @abstractmethod
    def create_frame_source(
        self, output_queue: Queue[FrameSample], stop_event: Event
    ) -> Optional[CaptureSource[FrameSample]]:
        """Factory: Returns a fresh video source for a session, or None without a camera."""
        ...

    @abstractmethod
    def create_audio_source(
        self, output_queue: Queue[AudioFrame], stop_event: Event
    ) -> Optional[CaptureSource[AudioFrame]]:
        """Factory: Returns a fresh audio source for a session, or None without a microphone."""
        ...

    @property
    @abstractmethod
    def face_provider(self) -> FaceLandmarkProvider:
        ...

    @property
    @abstractmethod
    def hand_provider(self) -> HandLandmarkProvider:
        ...

    @property
    def transcript_source(self) -> Optional[TranscriptSource]:
        """The live speech-to-text stream, if this device offers one."""
        return None

    @abstractmethod
    def shutdown(self) -> None:
        """Release device resources."""
        ...

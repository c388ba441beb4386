from abc import ABC, abstractmethod
from asyncio import Queue, Event
from typing import Generic, TypeVar, final

from ..pipeline import offer_latest
from ..models import STREAM_END

OutputType = TypeVar("OutputType")


class CaptureSource(ABC, Generic[OutputType]):
    """
    Abstract Base Class for all capture streams (video frames, audio buffers).

    A CaptureSource is a runnable component that acquires samples from a
    device and puts them into an output queue for further processing. The
    queue is bounded and the newest sample always wins, so a slow consumer
    never stalls acquisition.
    """

    def __init__(self, output_queue: Queue[OutputType], stop_event: Event):
        self._output_queue = output_queue
        self._stop_event = stop_event
        self.dropped = 0

    @property
    def output_queue(self) -> Queue[OutputType]:
        return self._output_queue

    @abstractmethod
    async def run(self) -> None:
        """
        Starts the acquisition process.

        This method should run continuously, publishing samples until the
        `stop_event` is set, and must call `_finish()` on the way out.
        """
        raise NotImplementedError

    @final
    async def stop(self) -> None:
        """
        Signals the source to stop acquiring data.

        This is a final method and should not be overridden. Subclasses can
        perform cleanup in their 'run' method's finally block.
        """
        self._stop_event.set()

    def _publish(self, item: OutputType) -> None:
        if not offer_latest(self._output_queue, item):
            self.dropped += 1

    def _finish(self) -> None:
        offer_latest(self._output_queue, STREAM_END)

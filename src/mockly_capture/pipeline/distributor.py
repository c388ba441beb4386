import asyncio
import logging
from asyncio import Queue
from typing import TypeVar, List

from ..models import STREAM_END
from ..utils import ThrottledLogger

T = TypeVar("T")  # Generic type for the data being distributed
logger = logging.getLogger(__name__)


def offer_latest(queue: Queue[T], item: T) -> bool:
    """
    Puts ``item`` without waiting. When the queue is full the oldest entry is
    evicted so the newest one always gets in.

    Returns:
        False if something had to be evicted.
    """
    evicted = False
    while True:
        try:
            queue.put_nowait(item)
            return not evicted
        except asyncio.QueueFull:
            try:
                queue.get_nowait()
                queue.task_done()
                evicted = True
            except asyncio.QueueEmpty:
                pass


class FrameDistributor:
    """
    A pipeline component that fans-out frames from a single input queue
    to one bounded queue per analyzer.

    A slow analyzer never holds back the others: its queue simply loses the
    oldest frames.
    """

    def __init__(self, input_queue: Queue[T], output_queues: List[Queue[T]]):
        self._input_queue = input_queue
        self._output_queues = output_queues
        self._dropped = 0
        self._drop_logger = ThrottledLogger(logger, interval_sec=5)
        logger.info(f"FrameDistributor initialized to fan-out to {len(self._output_queues)} queues.")

    @property
    def dropped(self) -> int:
        return self._dropped

    async def run(self) -> None:
        """
        Continuously reads from the input queue and offers a reference to
        the item to each output queue. The end token is forwarded to all.
        """
        if not self._output_queues:
            logger.warning("FrameDistributor has no output queues; it will run idly.")
            return

        while True:
            try:
                item = await self._input_queue.get()
                for q in self._output_queues:
                    if not offer_latest(q, item):
                        self._dropped += 1
                        self._drop_logger.warning("Analyzer queue full, dropped oldest frame.")
                self._input_queue.task_done()

                if item is STREAM_END:
                    logger.info("FrameDistributor reached end of stream.")
                    break

            except asyncio.CancelledError:
                logger.info("FrameDistributor process cancelled.")
                break

            except Exception:
                logger.exception("An unexpected error occurred in the FrameDistributor.")

import asyncio
import logging
from abc import ABC, abstractmethod
from asyncio import Queue
from typing import Callable, Generic, Optional, TypeVar

from ..models import SnapshotKind
from ..models import STREAM_END
from ..utils import ThrottledLogger

logger = logging.getLogger(__name__)

InputType = TypeVar("InputType")
SnapshotType = TypeVar("SnapshotType")

SnapshotCallback = Callable[[SnapshotType], None]


class Analyzer(ABC, Generic[InputType, SnapshotType]):
    """
    Abstract Base Class for the per-stream signal analyzers.

    An analyzer consumes one input queue in its own task, owns its rolling
    state exclusively and publishes immutable snapshots through the
    ``on_update`` callback given to `start`.

    Delivery guarantees:
        - snapshots are delivered in queue order;
        - after `stop` returns, ``on_update`` is never called again, even for
          a detection call that was already in flight;
        - a failing tick is logged and counted, never raised.
    """

    kind: SnapshotKind

    def __init__(self) -> None:
        self._task: Optional[asyncio.Task] = None
        self._queue: Optional[Queue] = None
        self._on_update: Optional[SnapshotCallback] = None
        self._generation = 0
        self._failures = 0
        self._last_snapshot: Optional[SnapshotType] = None
        self._tick_logger = ThrottledLogger(logger, interval_sec=5.0)

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def failures(self) -> int:
        return self._failures

    @property
    def last_snapshot(self) -> Optional[SnapshotType]:
        return self._last_snapshot

    async def start(
        self,
        input_queue: Optional[Queue],
        on_update: SnapshotCallback,
    ) -> None:
        if self.is_running:
            logger.warning("%s already running; start ignored.", self.name)
            return

        self._generation += 1
        self._on_update = on_update

        if input_queue is None:
            logger.warning("%s has no input stream; it will not report.", self.name)
            return

        self._queue = input_queue
        self._on_started()
        self._task = asyncio.create_task(self._run(self._generation), name=f"{self.name}-loop")
        logger.info("%s started.", self.name)

    async def stop(self) -> None:
        """Idempotent. Returns once the loop has fully unwound."""
        self._generation += 1
        self._on_update = None

        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            logger.info("%s stopped.", self.name)

        self._on_stopped()

    @abstractmethod
    def reset(self) -> None:
        """Re-zeroes all session state. Only called while stopped."""
        ...

    @abstractmethod
    async def _process(self, item: InputType) -> Optional[SnapshotType]:
        """Handles one input item; returns the snapshot to publish, if any."""
        ...

    def _on_started(self) -> None:
        pass

    def _on_stopped(self) -> None:
        pass

    async def _run(self, generation: int) -> None:
        queue = self._queue
        try:
            while True:
                item = await queue.get()
                try:
                    if item is STREAM_END:
                        logger.info("%s reached end of stream.", self.name)
                        break

                    snapshot = await self._process(item)
                    if snapshot is not None:
                        self._emit(generation, snapshot)

                except Exception:
                    self._failures += 1
                    self._tick_logger.error("%s tick failed", self.name, exc_info=True)

                finally:
                    queue.task_done()

        except asyncio.CancelledError:
            logger.info("%s loop cancelled.", self.name)

    def _emit(self, generation: int, snapshot: SnapshotType) -> None:
        if generation != self._generation or self._on_update is None:
            logger.debug("%s discarded a snapshot produced after stop.", self.name)
            return

        self._last_snapshot = snapshot
        try:
            self._on_update(snapshot)
        except Exception:
            self._failures += 1
            logger.exception("Snapshot callback of %s failed.", self.name)

import asyncio
import logging
from asyncio import Event, Queue
from typing import Optional, Sequence

from ..acquisition import CaptureSource
from ..configs import AppSettings
from ..controllers import CaptureController
from ..models import STREAM_END, AudioFrame, FrameSample, MetricSnapshot, SnapshotKind, StreamEnd
from ..pipeline import FrameDistributor, offer_latest
from ..sinks import SnapshotSink
from ..utils import ThrottledLogger

logger = logging.getLogger(__name__)


class CaptureRunner:
    """
    Orchestrates the data flow of one capture session:

        frame source -> distributor -> one queue per visual analyzer
        audio source -> audio analyzer queue
        accepted snapshots -> sinks

    Created fresh for every session. Analyzers are not owned here; they
    only read from the queues this runner exposes.
    """
    def __init__(
        self,
        frame_source: Optional[CaptureSource[FrameSample]],
        audio_source: Optional[CaptureSource[AudioFrame]],
        stop_event: Event,
        analyzer_queues: dict[SnapshotKind, Queue],
        sinks: Sequence[SnapshotSink] = (),
        snapshot_queue_size: int = 256,
    ):
        self.frame_source = frame_source
        self.audio_source = audio_source
        self.sinks = sinks
        self._stop_event = stop_event
        self._analyzer_queues = analyzer_queues
        self._snapshots: Queue[MetricSnapshot | StreamEnd] = Queue(maxsize=snapshot_queue_size)
        self._drop_logger = ThrottledLogger(logger, interval_sec=5)
        self._running = False
        self._tasks: list[asyncio.Task] = []
        self._loop_task: asyncio.Task | None = None

        self._distributor: Optional[FrameDistributor] = None
        if frame_source is not None:
            visual = [q for kind, q in analyzer_queues.items() if kind is not SnapshotKind.VOLUME]
            self._distributor = FrameDistributor(frame_source.output_queue, visual)

    @classmethod
    def for_session(
        cls,
        controller: CaptureController,
        settings: AppSettings,
        sinks: Sequence[SnapshotSink] = (),
    ) -> "CaptureRunner":
        """Builds the queues and asks the controller for fresh sources."""
        stop_event = Event()

        frame_source = controller.create_frame_source(Queue(maxsize=settings.video.queue_size), stop_event)
        audio_queue = Queue(maxsize=settings.audio.queue_size)
        audio_source = controller.create_audio_source(audio_queue, stop_event)

        queues: dict[SnapshotKind, Queue] = {}
        if frame_source is not None:
            queues[SnapshotKind.GAZE] = Queue(maxsize=settings.video.queue_size)
            queues[SnapshotKind.GESTURE] = Queue(maxsize=settings.video.queue_size)
        else:
            logger.warning("No video source available; visual analyzers will not report.")
        if audio_source is not None:
            queues[SnapshotKind.VOLUME] = audio_queue
        else:
            logger.warning("No audio source available; the audio analyzer will not report.")

        return cls(
            frame_source,
            audio_source,
            stop_event,
            queues,
            sinks=sinks,
            snapshot_queue_size=settings.session.snapshot_queue_size,
        )

    @property
    def is_running(self) -> bool:
        return self._running

    def queue_for(self, kind: SnapshotKind) -> Optional[Queue]:
        return self._analyzer_queues.get(kind)

    async def start(self) -> None:
        if self._running:
            return

        logger.info("Starting CaptureRunner...")
        self._running = True

        # Start sinks
        await asyncio.gather(*(s.start() for s in self.sinks))

        # Start sources
        for source in (self.frame_source, self.audio_source):
            if source is not None:
                self._tasks.append(asyncio.create_task(source.run()))
        if self._distributor is not None:
            self._tasks.append(asyncio.create_task(self._distributor.run()))

        # Start snapshot loop
        self._loop_task = asyncio.create_task(self._process_loop())
        logger.info("CaptureRunner active.")

    def publish(self, snapshot: MetricSnapshot) -> None:
        """Hands a snapshot to the sinks without ever blocking the caller."""
        if not self._running or not self.sinks:
            return
        try:
            self._snapshots.put_nowait(snapshot)
        except asyncio.QueueFull:
            self._drop_logger.warning("Snapshot queue is full, dropping %s snapshot.", snapshot.kind.value)

    async def stop(self) -> None:
        if not self._running:
            return

        logger.info("Stopping CaptureRunner...")
        self._running = False

        # Stop sources; they push the end token on the way out
        self._stop_event.set()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
            self._tasks.clear()

        # Drain and stop snapshot loop
        offer_latest(self._snapshots, STREAM_END)
        if self._loop_task:
            await self._loop_task
            self._loop_task = None

        # Close sinks
        await asyncio.gather(*(s.close() for s in self.sinks), return_exceptions=True)

        logger.info("CaptureRunner stopped.")

    async def _process_loop(self) -> None:
        queue = self._snapshots

        try:
            while True:
                item = await queue.get()

                if item is STREAM_END:
                    break

                try:
                    await asyncio.gather(*(s.send(item) for s in self.sinks))
                except Exception:
                    logger.exception("A sink failed to handle a %s snapshot.", item.kind.value)

        except asyncio.CancelledError:
            logger.info("Runner loop cancelled unexpectedly.")

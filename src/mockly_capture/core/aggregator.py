import asyncio
import logging
from typing import Callable, Optional, Sequence

from .runner import CaptureRunner
from .state import SessionState
from .protocols import TranscriptSource
from ..analyzers import Analyzer, AudioLevelAnalyzer, GazeAnalyzer, GestureAnalyzer
from ..configs import AppSettings
from ..controllers import CaptureController
from ..errors import CaptureUnavailable, SessionStateError
from ..factories import create_session_sinks
from ..models import (
    DataNote,
    FinalizedMetrics,
    FinalizeReason,
    GazeSnapshot,
    GestureSnapshot,
    MetricSnapshot,
    NarrativeAnalysis,
    NoteKind,
    SessionReport,
    SnapshotKind,
    VolumeSnapshot,
)
from ..scoring import ScoreCard, score_session
from ..sinks import SnapshotSink
from ..speech import NO_SPEECH, TranscriptBuffer, resolve_transcript
from ..utils import format_mmss

logger = logging.getLogger(__name__)

ReportCallback = Callable[[SessionReport], None]


def build_report(
    question_id: str,
    metrics: FinalizedMetrics,
    card: ScoreCard,
    transcript: str,
    notes: Sequence[DataNote],
) -> SessionReport:
    return SessionReport(
        question_id=question_id,
        content_score=card.content,
        pitch_score=card.pitch,
        nonverbal_score=card.nonverbal,
        overall_score=card.overall,
        eye_contact_percentage=metrics.gaze.eye_contact_percentage,
        smile_percentage=metrics.gaze.smile_percentage,
        session_duration_label=metrics.duration_label,
        per_hand_metrics=metrics.gesture.hands,
        volume_metrics=metrics.volume,
        final_transcript=transcript,
        gesture_feedback=metrics.gesture.feedback.value,
        finalize_reason=metrics.reason,
        insufficient_data=card.missing,
        notes=tuple(notes),
    )


class SessionAggregator:
    """
    The headless core of one recorded answer.

    Owns the three analyzers, keeps the latest snapshot of each kind and
    drives the session state machine::

        IDLE -> CAPTURING -> FINALIZING -> DONE
                    ^             |
                    +-- cancel ---+   (only before the session timer fired)

    The metrics bundle is frozen at the moment FINALIZING is entered;
    snapshots arriving later update the live view only.
    """
    def __init__(
        self,
        controller: CaptureController,
        settings: AppSettings,
        question_id: str = "",
        on_complete: Optional[ReportCallback] = None,
        sinks: Optional[Sequence[SnapshotSink]] = None,
    ):
        self.controller = controller
        self.settings = settings
        self.question_id = question_id
        self._on_complete = on_complete
        self._sinks = sinks

        self.gaze = GazeAnalyzer(controller.face_provider, settings.gaze)
        self.gesture = GestureAnalyzer(controller.face_provider, controller.hand_provider, settings.gesture)
        self.audio = AudioLevelAnalyzer(settings.audio)
        self._analyzers: dict[SnapshotKind, Analyzer] = {
            SnapshotKind.GAZE: self.gaze,
            SnapshotKind.GESTURE: self.gesture,
            SnapshotKind.VOLUME: self.audio,
        }

        self.state = SessionState.IDLE
        self.transcript = TranscriptBuffer()
        self.runner: Optional[CaptureRunner] = None

        self._latest: dict[SnapshotKind, MetricSnapshot] = {}
        self._last_seen: dict[SnapshotKind, float] = {}
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._started_at = 0.0
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timeout_task: Optional[asyncio.Task] = None
        self._transcript_task: Optional[asyncio.Task] = None
        self._timed_out = False
        self._pending: Optional[FinalizedMetrics] = None
        self._report: Optional[SessionReport] = None
        self._finalizing = asyncio.Event()
        self._lock = asyncio.Lock()

    # --- Views ---

    @property
    def pending(self) -> Optional[FinalizedMetrics]:
        """The frozen bundle awaiting confirmation, while FINALIZING."""
        return self._pending

    @property
    def report(self) -> Optional[SessionReport]:
        return self._report

    @property
    def timed_out(self) -> bool:
        return self._timed_out

    def latest(self, kind: SnapshotKind) -> Optional[MetricSnapshot]:
        """Live view: the last snapshot of ``kind``, including late arrivals."""
        return self._latest.get(kind)

    # --- Actions ---

    async def start(self) -> None:
        """
        Obtains the devices and starts capturing.

        Raises:
            CaptureUnavailable: the devices could not be obtained. The
                session stays IDLE and no analyzer was started.
            SessionStateError: the session was already started.
        """
        if self.state is not SessionState.IDLE:
            raise SessionStateError(f"Cannot start a session that is {self.state.name}.")

        try:
            await self.controller.connect()
            runner = CaptureRunner.for_session(
                self.controller,
                self.settings,
                self._sinks if self._sinks is not None else create_session_sinks(self.settings),
            )
        except CaptureUnavailable as e:
            logger.error("Capture unavailable: %s", e)
            raise

        for analyzer in self._analyzers.values():
            analyzer.reset()
        self.transcript.reset()
        self._latest.clear()
        self._last_seen.clear()

        try:
            await runner.start()
        except Exception:
            logger.exception("Failed to initialize capture session")
            await runner.stop()
            raise
        self.runner = runner

        self._loop = asyncio.get_running_loop()
        self._started_at = self._loop.time()
        self.state = SessionState.CAPTURING
        await self._start_analyzers()

        self._timer = self._loop.call_later(self.settings.session.duration_s, self._on_timeout)
        source = self.controller.transcript_source
        if source is not None:
            self._transcript_task = asyncio.create_task(self._consume_transcript(source))

        logger.info(
            "Capturing answer to '%s' for %.0fs on %s.",
            self.question_id, self.settings.session.duration_s, self.controller.device_name,
        )

    async def finish(self) -> bool:
        """Participant is done answering. Returns False if capture had already stopped."""
        return await self._enter_finalizing(FinalizeReason.FINISHED)

    async def end(self) -> bool:
        """Operator ends the recording early. Returns False if capture had already stopped."""
        return await self._enter_finalizing(FinalizeReason.ENDED)

    async def wait_finalizing(self) -> FinalizedMetrics:
        await self._finalizing.wait()
        return self._pending

    async def cancel(self) -> bool:
        """
        Discards the frozen bundle and resumes capturing. Refused once the
        session timer has fired; the session then stays FINALIZING.
        """
        async with self._lock:
            if self.state is not SessionState.FINALIZING:
                logger.warning("Cancel ignored; session is %s.", self.state.name)
                return False
            if self._timed_out:
                logger.info("Session time is up; cannot resume capturing.")
                return False

            self._pending = None
            self._finalizing.clear()
            self.state = SessionState.CAPTURING
            await self._start_analyzers()

        logger.info("Finalize cancelled; capturing resumed.")
        return True

    async def confirm(
        self,
        transcript: Optional[str] = None,
        narrative: Optional[NarrativeAnalysis] = None,
    ) -> SessionReport:
        """
        Commits the frozen bundle: scores it, produces the report, delivers
        it to ``on_complete`` and shuts capture down.

        Args:
            transcript: operator-edited transcript replacing the recognized one.
            narrative: external content analysis; without it the content
                score is reported as insufficient data.
        """
        async with self._lock:
            if self.state is not SessionState.FINALIZING:
                raise SessionStateError(f"Cannot confirm a session that is {self.state.name}.")

            metrics = self._pending
            # Segments committed while the operator reviewed still count.
            final_transcript = resolve_transcript(self.transcript.committed, transcript)
            notes = list(metrics.notes)
            if final_transcript == NO_SPEECH:
                notes.append(DataNote(NoteKind.NO_SPEECH_DETECTED, "No speech was recognized."))

            card = score_session(metrics, narrative, self.settings.scoring)
            report = build_report(self.question_id, metrics, card, final_transcript, notes)
            self._report = report
            self.state = SessionState.DONE

        await self._teardown()
        logger.info("Session report ready: overall score %s.", report.overall_score)
        self._deliver(report)
        return report

    async def shutdown(self) -> None:
        """
        Tears everything down from any state. A session shut down before
        confirmation ends DONE without a report.
        """
        if self.state is not SessionState.DONE:
            self.state = SessionState.DONE
            await self._stop_analyzers()
        await self._teardown()
        self.controller.shutdown()

    # --- Internals ---

    async def _start_analyzers(self) -> None:
        for kind, analyzer in self._analyzers.items():
            await analyzer.start(self.runner.queue_for(kind), self._on_snapshot)

    async def _stop_analyzers(self) -> None:
        await asyncio.gather(*(a.stop() for a in self._analyzers.values()))

    def _on_snapshot(self, snapshot: MetricSnapshot) -> None:
        if self.state is SessionState.DONE:
            logger.debug("Dropping %s snapshot; session is done.", snapshot.kind.value)
            return

        self._latest[snapshot.kind] = snapshot
        self._last_seen[snapshot.kind] = self._loop.time()
        if self.state is SessionState.CAPTURING:
            self.runner.publish(snapshot)

    def _on_timeout(self) -> None:
        self._timer = None
        self._timed_out = True
        if self.state is SessionState.CAPTURING:
            logger.info("Session time is up.")
            self._timeout_task = asyncio.create_task(self._enter_finalizing(FinalizeReason.TIMEOUT))
        else:
            logger.info("Session timer fired while %s.", self.state.name)

    async def _enter_finalizing(self, reason: FinalizeReason) -> bool:
        if self.state is not SessionState.CAPTURING:
            logger.info("'%s' ignored; session is %s.", reason.value, self.state.name)
            return False

        # Freeze synchronously so nothing delivered from here on can enter the bundle.
        self.state = SessionState.FINALIZING
        self._pending = self._freeze(reason)
        self._finalizing.set()
        logger.info("Session finalizing (%s).", reason.value)

        async with self._lock:
            await self._stop_analyzers()
        return True

    def _freeze(self, reason: FinalizeReason) -> FinalizedMetrics:
        now = self._loop.time()
        elapsed = now - self._started_at
        reported = frozenset(self._latest)

        gaze = self._latest.get(SnapshotKind.GAZE) or GazeSnapshot.zero()
        gesture = self._latest.get(SnapshotKind.GESTURE) or GestureSnapshot.zero()
        volume = self._latest.get(SnapshotKind.VOLUME) or VolumeSnapshot.zero()
        duration_label = gaze.session_time if SnapshotKind.GAZE in reported else format_mmss(elapsed)

        return FinalizedMetrics(
            gaze=gaze,
            gesture=gesture,
            volume=volume,
            reported=reported,
            transcript=self.transcript.committed,
            reason=reason,
            elapsed_s=elapsed,
            duration_label=duration_label,
            notes=tuple(self._collect_notes(now, gaze, reported)),
        )

    def _collect_notes(self, now: float, gaze: GazeSnapshot, reported: frozenset) -> list[DataNote]:
        notes = []
        stall_timeout = self.settings.session.stall_timeout_s

        for kind in self._analyzers:
            if self.runner.queue_for(kind) is None:
                continue
            last = self._last_seen.get(kind)
            if last is None:
                notes.append(DataNote(NoteKind.ANALYZER_STALLED, f"No {kind.value} data was produced.", kind))
            elif now - last > stall_timeout:
                notes.append(
                    DataNote(NoteKind.ANALYZER_STALLED, f"No {kind.value} data for the last {now - last:.1f}s.", kind)
                )

        if self.runner.queue_for(SnapshotKind.VOLUME) is None:
            notes.append(DataNote(NoteKind.AUDIO_UNAVAILABLE, "No microphone stream was available.", SnapshotKind.VOLUME))

        if self.runner.queue_for(SnapshotKind.GESTURE) is not None and not self.gesture.calibrated:
            notes.append(
                DataNote(
                    NoteKind.CALIBRATION_INCOMPLETE,
                    "Ended before face-scale calibration; hand distances are uncalibrated.",
                    SnapshotKind.GESTURE,
                )
            )

        if SnapshotKind.GAZE in reported and gaze.face_frames == 0:
            notes.append(DataNote(NoteKind.NO_FACE_DETECTED, "Camera worked but no face was ever detected.", SnapshotKind.GAZE))

        for note in notes:
            logger.warning("Data quality: %s", note.message)
        return notes

    async def _consume_transcript(self, source: TranscriptSource) -> None:
        try:
            async for segment in source.stream():
                self.transcript.feed(segment)
        except asyncio.CancelledError:
            logger.info("Transcript stream cancelled.")
        except Exception:
            logger.exception("Transcript stream failed; keeping what was committed.")

    async def _teardown(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        if self._transcript_task is not None:
            self._transcript_task.cancel()
            await asyncio.gather(self._transcript_task, return_exceptions=True)
            self._transcript_task = None

        if self._timeout_task is not None:
            if not self._timeout_task.done():
                self._timeout_task.cancel()
            (result,) = await asyncio.gather(self._timeout_task, return_exceptions=True)
            if isinstance(result, Exception):
                logger.error("Timed finalize failed: %s", result)
            self._timeout_task = None

        if self.runner is not None:
            await self.runner.stop()

    def _deliver(self, report: SessionReport) -> None:
        if self._on_complete is None:
            return
        try:
            self._on_complete(report)
        except Exception:
            logger.exception("Report completion callback failed.")

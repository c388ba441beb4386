import asyncio
import logging
import math
import time

import numpy as np

from ..models import AudioFrame, FrameSample
from .base import CaptureSource

logger = logging.getLogger(__name__)


class DummyFrameSource(CaptureSource[FrameSample]):
    """
    A frame source that simulates a webcam for development and testing.

    Frames carry no pixels; the dummy landmark providers derive the scene
    from the frame timestamp instead.
    """

    def __init__(
        self,
        *args,
        fps: int = 30,
        width: int = 640,
        height: int = 480,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        if fps <= 0:
            raise ValueError("Frame rate must be positive.")

        self._interval_s = 1.0 / fps
        self._width = width
        self._height = height

        logger.info(f"DummyFrameSource initialized to run at {fps} fps ({width}x{height}).")

    async def run(self) -> None:
        start_time = time.monotonic()
        frame_counter = 0

        logger.info("Starting dummy video stream...")
        try:
            while not self._stop_event.is_set():
                target_time = start_time + (frame_counter * self._interval_s)

                self._publish(
                    FrameSample(
                        index=frame_counter,
                        timestamp=time.monotonic(),
                        width=self._width,
                        height=self._height,
                    )
                )

                # Sleep until the next frame's target time
                sleep_duration = target_time + self._interval_s - time.monotonic()
                await asyncio.sleep(max(0.0, sleep_duration))

                frame_counter += 1

        except asyncio.CancelledError:
            logger.info("Dummy video source run task was cancelled.")
        finally:
            self._finish()
            logger.info("DummyFrameSource has stopped after %d frames (%d dropped).", frame_counter, self.dropped)


class DummyAudioSource(CaptureSource[AudioFrame]):
    """
    An audio source that emits unsigned 8-bit waveforms shaped like speech:
    a carrier tone whose loudness swells and fades every couple of seconds.
    """

    def __init__(
        self,
        *args,
        tick_hz: float = 60.0,
        buffer_size: int = 128,
        tone_hz: float = 220.0,
        sample_rate: int = 44_100,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        if tick_hz <= 0:
            raise ValueError("Tick rate must be positive.")

        self._interval_s = 1.0 / tick_hz
        self._buffer_size = buffer_size
        self._tone_hz = tone_hz
        self._sample_rate = sample_rate

    def _waveform(self, t: float) -> bytes:
        envelope = 0.5 * (1 + math.sin(2 * math.pi * 0.4 * t))
        amplitude = 4 + 40 * envelope
        n = np.arange(self._buffer_size) / self._sample_rate + t
        wave = 128 + amplitude * np.sin(2 * np.pi * self._tone_hz * n)
        return np.clip(np.rint(wave), 0, 255).astype(np.uint8).tobytes()

    async def run(self) -> None:
        start_time = time.monotonic()
        ticks = 0

        logger.info("Starting dummy audio stream...")
        try:
            while not self._stop_event.is_set():
                now = time.monotonic()
                self._publish(AudioFrame(timestamp=now, samples=self._waveform(now - start_time)))
                ticks += 1
                await asyncio.sleep(max(0.0, start_time + ticks * self._interval_s - time.monotonic()))

        except asyncio.CancelledError:
            logger.info("Dummy audio source run task was cancelled.")
        finally:
            self._finish()
            logger.info("DummyAudioSource has stopped after %d buffers.", ticks)

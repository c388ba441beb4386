from .base import CaptureSource
from .dummy import DummyAudioSource, DummyFrameSource

__all__ = ["CaptureSource", "DummyAudioSource", "DummyFrameSource"]

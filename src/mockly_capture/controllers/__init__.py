from .base import CaptureController, require_connection
from .dummy import DummyController, DummyFaceProvider, DummyHandProvider, DummyTranscriptSource

__all__ = [
    "CaptureController",
    "DummyController",
    "DummyFaceProvider",
    "DummyHandProvider",
    "DummyTranscriptSource",
    "require_connection",
]

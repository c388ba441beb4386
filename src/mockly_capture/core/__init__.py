from .protocols import FaceLandmarkProvider, HandLandmarkProvider, TranscriptSource
from .state import SessionState

__all__ = ["FaceLandmarkProvider", "HandLandmarkProvider", "SessionState", "TranscriptSource"]

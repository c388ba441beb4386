from .core.aggregator import SessionAggregator
from .core.state import SessionState
from .errors import CaptureError, CaptureUnavailable, SessionStateError
from .models import NarrativeAnalysis, SessionReport

__all__ = [
    "CaptureError",
    "CaptureUnavailable",
    "NarrativeAnalysis",
    "SessionAggregator",
    "SessionReport",
    "SessionState",
    "SessionStateError",
]

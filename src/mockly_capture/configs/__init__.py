from .app import (
    AppSettings,
    AudioSettings,
    GazeSettings,
    GestureSettings,
    ScoringSettings,
    SessionSettings,
    VideoSettings,
    ZmqSinkConfig,
)
from .utils import IdealRange, LoggingConfig

__all__ = [
    "AppSettings",
    "AudioSettings",
    "GazeSettings",
    "GestureSettings",
    "IdealRange",
    "LoggingConfig",
    "ScoringSettings",
    "SessionSettings",
    "VideoSettings",
    "ZmqSinkConfig",
]

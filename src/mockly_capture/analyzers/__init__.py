from .audio import AudioLevelAnalyzer, VolumeHistory, estimate_volume
from .base import Analyzer
from .gaze import GazeAnalyzer, GazeState, detect_eye_contact, detect_smile
from .gesture import CalibrationBaseline, GestureAnalyzer, HandTrail, turn_angle

__all__ = [
    "Analyzer",
    "AudioLevelAnalyzer",
    "CalibrationBaseline",
    "GazeAnalyzer",
    "GazeState",
    "GestureAnalyzer",
    "HandTrail",
    "VolumeHistory",
    "detect_eye_contact",
    "detect_smile",
    "estimate_volume",
    "turn_angle",
]

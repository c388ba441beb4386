import logging
from importlib.metadata import PackageNotFoundError, version

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, NonNegativeFloat, PositiveFloat, PositiveInt, model_validator

from .utils import IdealRange, LoggingConfig

logger = logging.getLogger(__name__)

try:
    _VERSION = version("mockly-capture")
except PackageNotFoundError:
    _VERSION = "0.0.0+local"


class SessionSettings(BaseModel):
    duration_s: PositiveFloat = Field(10.0, description="Hard deadline of one answer recording.")
    stall_timeout_s: PositiveFloat = Field(
        3.0, description="An analyzer silent for longer than this at finalize is reported as stalled."
    )
    snapshot_queue_size: PositiveInt = Field(256, description="Buffered snapshots awaiting the sinks.")


class VideoSettings(BaseModel):
    fps: PositiveInt = 30
    width: PositiveInt = 640
    height: PositiveInt = 480
    queue_size: PositiveInt = Field(2, description="Per-analyzer frame backlog. Oldest frames are dropped.")


class GazeSettings(BaseModel):
    """Face-mesh indices and thresholds for eye contact and smile detection."""
    left_eye_index: int = 33
    right_eye_index: int = 362
    eye_contact_threshold_px: PositiveFloat = Field(
        100.0, description="Max distance between eye midpoint and frame center counted as looking at the camera."
    )
    mouth_left_index: int = 61
    mouth_right_index: int = 291
    upper_lip_index: int = 13
    lower_lip_index: int = 14
    smile_ratio_threshold: PositiveFloat = Field(3.2, description="Mouth width/height ratio above which a smile is possible.")
    smile_elevation_px: float = Field(2.0, description="Corners must sit this far above the lip center.")


class GestureSettings(BaseModel):
    """Hand trail, calibration and feedback parameters."""
    trail_capacity: PositiveInt = 45
    min_move_px: NonNegativeFloat = Field(2.0, description="Displacements below this are treated as jitter.")
    angle_threshold_rad: PositiveFloat = Field(1.0, description="Direction change counted as an erratic event.")
    calibration_delay_s: NonNegativeFloat = Field(5.0, description="Warm-up before the face-scale baseline is taken.")
    iod_left_index: int = 33
    iod_right_index: int = 263
    hand_keypoints: tuple[int, ...] = (8, 9, 12)
    head_radius_px: PositiveFloat = 30.0
    face_good_iod_factor: PositiveFloat = 0.6
    face_good_center_factor: PositiveFloat = 0.8
    slow_speed: NonNegativeFloat = Field(130.0, description="Below this the participant should gesture more.")
    fast_speed: NonNegativeFloat = Field(150.0, description="Above this the participant should slow down.")
    feedback_debounce: PositiveInt = Field(1, description="Consecutive repeats required before a label is emitted.")

    @model_validator(mode='after')
    def validate_speed_band(self) -> "GestureSettings":
        if self.slow_speed > self.fast_speed:
            raise ValueError('slow_speed must not exceed fast_speed.')
        if not self.hand_keypoints:
            raise ValueError('hand_keypoints must name at least one landmark.')
        return self


class AudioSettings(BaseModel):
    """
    Volume estimator tuning. The amplification and quiet-boost values are
    empirically tuned and define how loud a given waveform reads.
    """
    tick_hz: PositiveFloat = 60.0
    buffer_size: PositiveInt = Field(128, description="Time-domain samples per tick.")
    history_size: PositiveInt = 100
    emit_every: PositiveInt = 10
    amplification: PositiveFloat = 20.0
    quiet_boost: PositiveFloat = 5.0
    quiet_ceiling: PositiveFloat = Field(5.0, description="Readings in (0, quiet_ceiling) get the quiet boost.")
    queue_size: PositiveInt = 8


class ScoringSettings(BaseModel):
    hand_speed: IdealRange = Field(
        default_factory=lambda: IdealRange(min=0, max=300, ideal_min=120, ideal_max=200, ideal_center=160)
    )
    erraticness: IdealRange = Field(
        default_factory=lambda: IdealRange(min=0, max=10, ideal_min=0, ideal_max=6, ideal_center=3)
    )
    smile: IdealRange = Field(
        default_factory=lambda: IdealRange(min=0, max=100, ideal_min=20, ideal_max=60, ideal_center=40)
    )
    ideal_edge_score: float = Field(75.0, ge=0, le=100, description="Score at the edges of an ideal window.")
    narrative_bonus: NonNegativeFloat = Field(25.0, description="Points added when every STAR component is present.")


class ZmqSinkConfig(BaseModel):
    enabled: bool = False
    host: str = "tcp://*:5556"


class AppSettings(BaseSettings):
    """
    Main application settings, loaded from environment variables and defaults.
    """
    session: SessionSettings = Field(default_factory=SessionSettings)
    video: VideoSettings = Field(default_factory=VideoSettings)
    gaze: GazeSettings = Field(default_factory=GazeSettings)
    gesture: GestureSettings = Field(default_factory=GestureSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    # Sinks
    zmq: ZmqSinkConfig = Field(default_factory=ZmqSinkConfig)

    # Logging
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    __version__: str = _VERSION

    model_config = SettingsConfigDict(
        env_prefix="MOCKLY__",
        env_file=".env",
        env_nested_delimiter='__',
        case_sensitive=False
    )

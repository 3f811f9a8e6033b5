"""
Proctor Engine Configuration Settings

Thresholds and confidences used when turning raw signal transitions
into violation events. Values can be overridden through environment
variables prefixed with PROCTOR_ (e.g. PROCTOR_NO_FACE_THRESHOLD_MS).
"""
from pydantic_settings import BaseSettings


class ProctorSettings(BaseSettings):
    """Configuration for the proctoring integrity engine."""

    # Duration gates (milliseconds)
    FOCUS_LOSS_THRESHOLD_MS: int = 5000
    NO_FACE_THRESHOLD_MS: int = 10000

    # Dedup bucket width in seconds (1 = calendar second)
    DEDUP_BUCKET_SECONDS: int = 1

    # Confidence attached to immediately-emitted violations
    MULTIPLE_FACES_CONFIDENCE: float = 0.9
    OBJECT_CONFIDENCE: float = 0.8
    DROWSINESS_CONFIDENCE: float = 0.9
    BACKGROUND_NOISE_CONFIDENCE: float = 0.7
    VOICE_CONFIDENCE: float = 0.8

    # Signal pump
    SIGNAL_QUEUE_SIZE: int = 256

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = "PROCTOR_"
        case_sensitive = True
        extra = "ignore"


settings = ProctorSettings()

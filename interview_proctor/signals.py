"""
Signal Types - Typed payloads pushed by perception collaborators

Every field is optional: a field left as None means "no update" for the
matching detection-state field. Producers that only know part of the
picture (e.g. a face tracker that cannot judge focus) simply omit it.
"""

from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, Field


class FaceSignal(BaseModel):
    """Face presence and orientation from the face-landmark producer"""
    face_detected: Optional[bool] = Field(None, description="At least one face is visible")
    face_count: Optional[int] = Field(None, ge=0, description="Number of faces in frame")
    is_focused: Optional[bool] = Field(None, description="Candidate is looking at the screen")
    landmarks: Optional[List[Any]] = Field(None, description="Raw landmarks, not interpreted by the engine")

    def to_partial(self) -> Dict[str, Any]:
        return _drop_missing({
            "face_detected": self.face_detected,
            "face_count": self.face_count,
            "is_focused": self.is_focused,
        })


class EyeSignal(BaseModel):
    """Eye closure and drowsiness derived upstream from landmark geometry"""
    eyes_closed: Optional[bool] = None
    drowsy: Optional[bool] = None

    def to_partial(self) -> Dict[str, Any]:
        return _drop_missing({
            "eyes_closed": self.eyes_closed,
            "drowsy": self.drowsy,
        })


class AudioSignal(BaseModel):
    """Ambient audio analysis"""
    volume: Optional[int] = Field(None, ge=0, le=100, description="RMS level scaled to 0-100")
    background_noise: Optional[bool] = None
    speech_detected: Optional[bool] = None

    def to_partial(self) -> Dict[str, Any]:
        return _drop_missing({
            "audio_level": self.volume,
            "background_noise": self.background_noise,
            "speech_detected": self.speech_detected,
        })


class ObjectSignal(BaseModel):
    """Labels currently visible according to the object classifier"""
    labels: Optional[Set[str]] = None

    def to_partial(self) -> Dict[str, Any]:
        if self.labels is None:
            return {}
        return {"objects_present": frozenset(self.labels)}


SIGNAL_TYPES = (FaceSignal, EyeSignal, AudioSignal, ObjectSignal)


def _drop_missing(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if v is not None}

"""
Pydantic models for API request/response schemas

Field names are snake_case in Python and camelCase on the wire.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, Optional, List
from datetime import datetime


class CamelModel(BaseModel):
    """Base schema serializing field names as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Faces
# ============================================================================
class Location(CamelModel):
    """Geolocation reported by the capturing device"""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class RegisterFaceRequest(CamelModel):
    """Schema for enrolling a new identity"""
    name: str = Field(..., min_length=1, description="Unique identity name (case-sensitive)")
    descriptor: List[float] = Field(..., min_length=1, description="128-d face descriptor")
    gender: Optional[str] = Field(default=None, description="Gender estimated by the client")
    gender_probability: Optional[float] = Field(default=None, ge=0, le=1, description="Gender estimate confidence")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Alice",
                "descriptor": [0.0] * 128,
                "gender": "female",
                "genderProbability": 0.97
            }
        }
    )


class RegisterFaceResponse(CamelModel):
    """Schema for registration response"""
    success: bool = Field(..., description="Whether the identity was enrolled")
    message: str = Field(..., description="Status message")
    count: int = Field(..., description="Total number of enrolled identities")


class IdentityList(CamelModel):
    """Schema for listing enrolled identities"""
    total_count: int = Field(..., description="Number of enrolled identities")
    names: List[str] = Field(..., description="Identity names in enrollment order")


class RecognizeFaceRequest(CamelModel):
    """Schema for a recognition event bundled with capture metadata"""
    descriptor: List[float] = Field(..., min_length=1, description="128-d probe descriptor")
    gender: Optional[str] = Field(default=None)
    gender_probability: Optional[float] = Field(default=None, ge=0, le=1)
    emotion: Optional[str] = Field(default=None, description="Dominant emotion at capture time")
    timestamp: Optional[str] = Field(default=None, description="Client event time (ISO 8601)")
    location: Optional[Location] = Field(default=None)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "descriptor": [0.01] + [0.0] * 127,
                "gender": "female",
                "genderProbability": 0.97,
                "emotion": "happy",
                "timestamp": "2024-01-15T10:30:00Z",
                "location": {"latitude": 48.8566, "longitude": 2.3522}
            }
        }
    )


class MatchCandidate(CamelModel):
    """A nearby identity, whether or not it was accepted"""
    name: str
    distance: float = Field(..., description="Euclidean distance (lower is closer)")


class RecognizeFaceResponse(CamelModel):
    """Schema for recognition response"""
    recognized: bool = Field(..., description="Whether an identity was within the threshold")
    name: Optional[str] = Field(default=None, description="Recognized identity")
    confidence: Optional[float] = Field(default=None, gt=0, le=1, description="1 - distance / threshold")
    distance: Optional[float] = Field(default=None, description="Distance to the nearest identity")
    top_matches: List[MatchCandidate] = Field(default_factory=list, description="Nearest identities")
    message: Optional[str] = Field(default=None)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "recognized": True,
                "name": "Alice",
                "confidence": 0.9833,
                "distance": 0.01,
                "topMatches": [{"name": "Alice", "distance": 0.01}]
            }
        }
    )


# ============================================================================
# Attendance
# ============================================================================
class AnalysisRecord(CamelModel):
    """Schema for one attendance/audit log entry"""
    id: int = Field(..., description="Append sequence number")
    name: Optional[str] = None
    gender: Optional[str] = None
    gender_probability: Optional[float] = None
    emotion: Optional[str] = None
    timestamp: Optional[str] = None
    location: Optional[Location] = None
    confidence: Optional[float] = None
    created_at: datetime


class AttendanceList(CamelModel):
    """Schema for listing attendance records"""
    success: bool = True
    total_count: int = Field(..., description="Total number of records")
    records: List[AnalysisRecord]


class AttendanceEntry(CamelModel):
    timestamp: Optional[str] = None
    emotion: Optional[str] = None
    location: Optional[Location] = None


class StatsResponse(CamelModel):
    """Schema for store and attendance statistics"""
    face_count: int
    analysis_count: int
    last_analysis: Optional[AnalysisRecord] = None
    attendance_stats: Dict[str, List[AttendanceEntry]] = Field(
        ..., description="Attendance entries grouped by identity name"
    )


# ============================================================================
# Emotion sessions
# ============================================================================
class EmotionSampleIn(CamelModel):
    """Schema for one frame's emotion probabilities"""
    timestamp: float = Field(..., ge=0, description="Seconds since session start")
    expressions: Dict[str, float] = Field(..., description="Label to probability in [0, 1]")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "timestamp": 12.5,
                "expressions": {
                    "happy": 0.82, "sad": 0.01, "angry": 0.02, "fearful": 0.01,
                    "disgusted": 0.01, "surprised": 0.08, "neutral": 0.05
                }
            }
        }
    )


class SampleAck(CamelModel):
    success: bool = True
    session_id: str
    count: int = Field(..., description="Samples in the session")
    dominant_emotion: str


class CreateSessionRequest(CamelModel):
    """Schema for starting a session, optionally with a full video's samples"""
    session_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    title: Optional[str] = Field(default=None, max_length=255)
    duration: Optional[float] = Field(default=None, gt=0, description="Total duration in seconds")
    samples: List[EmotionSampleIn] = Field(default_factory=list)
    closed: bool = Field(default=False, description="Freeze the session after loading samples")


class SessionInfo(CamelModel):
    session_id: str
    title: Optional[str] = None
    created_at: datetime
    duration: float
    closed: bool
    sample_count: int


class SessionResponse(CamelModel):
    success: bool
    message: str
    session: SessionInfo


class SummarySchema(CamelModel):
    """Schema for session-level statistics"""
    dominant_emotion: str
    dominant_emotion_percentage: int
    engagement_score: int = Field(..., ge=0, le=100)
    emotion_distribution: Dict[str, float]
    number_of_transitions: int
    key_moments_count: int
    total_duration: float
    average_emotion_intensity: int

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "dominantEmotion": "happy",
                "dominantEmotionPercentage": 54,
                "engagementScore": 71,
                "emotionDistribution": {"happy": 54.2, "neutral": 30.1},
                "numberOfTransitions": 4,
                "keyMomentsCount": 12,
                "totalDuration": 95.0,
                "averageEmotionIntensity": 83
            }
        }
    )


class SessionSummaryResponse(CamelModel):
    session_id: str
    summary: SummarySchema


class SessionOverview(CamelModel):
    session: SessionInfo
    summary: SummarySchema


class SessionList(CamelModel):
    total_count: int
    sessions: List[SessionOverview]


class KeyMomentSchema(CamelModel):
    timestamp: float
    dominant_emotion: str
    intensity: int


class KeyMomentsResponse(CamelModel):
    session_id: str
    threshold: float
    key_moments: List[KeyMomentSchema]


class TransitionSchema(CamelModel):
    from_emotion: str = Field(..., alias="from")
    to_emotion: str = Field(..., alias="to")
    timestamp: float
    intensity: int


class TransitionsResponse(CamelModel):
    session_id: str
    number_of_transitions: int
    transitions: List[TransitionSchema]


class TimelineSegmentSchema(CamelModel):
    start_time: float
    end_time: float
    sample_count: int
    percentages: Dict[str, float] = Field(..., description="Share of samples dominated by each label")


class TimelineResponse(CamelModel):
    session_id: str
    duration: float
    segments: List[TimelineSegmentSchema]


class TrendBucketSchema(CamelModel):
    time_start: float
    time_end: float
    emotions: Dict[str, float]
    dominant_emotion: str


class TrendsResponse(CamelModel):
    session_id: str
    interval_seconds: float
    trends: List[TrendBucketSchema]


class ReportResponse(CamelModel):
    """Schema for the data behind a session report"""
    session_id: str
    title: str
    generated_at: datetime
    duration: str = Field(..., description="Session length as mm:ss")
    dominant_emotion_counts: Dict[str, int]
    summary: SummarySchema
    timeline: List[TimelineSegmentSchema]
    insights: List[str]


class DeleteResponse(CamelModel):
    """Schema for session deletion response"""
    success: bool = Field(..., description="Whether the operation succeeded")
    message: str = Field(..., description="Status message")
    deleted_id: Optional[str] = Field(default=None, description="Id of the discarded session")


# ============================================================================
# Errors
# ============================================================================
class ErrorResponse(CamelModel):
    """Schema for error responses"""
    error: str = Field(..., description="Error type")
    detail: str = Field(..., description="Detailed error message")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "DimensionMismatchError",
                "detail": "Descriptor has 64 dimensions, expected 128"
            }
        }
    )

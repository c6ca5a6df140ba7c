"""
Emotion Sample Log

Ordered, timestamped emotion samples collected during a live capture or a
video playback session, plus the registry that owns the sessions.
"""
import math
import uuid
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from app.emotions import dominant_label, normalize_expressions, smooth_expressions
from app.errors import ExpressionValidationError, SessionClosedError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmotionSample:
    """One frame's emotion probabilities."""
    timestamp: float
    expressions: Mapping[str, float]
    dominant_emotion: str


def make_sample(
    timestamp: float,
    expressions: Mapping[str, float],
    smooth: bool = False
) -> EmotionSample:
    """
    Validate raw input and build a sample.

    The dominant emotion is fixed here, after optional smoothing, and never
    recomputed.
    """
    try:
        timestamp = float(timestamp)
    except (TypeError, ValueError):
        raise ExpressionValidationError(f"Timestamp must be a number, got {timestamp!r}")
    if not math.isfinite(timestamp) or timestamp < 0:
        raise ExpressionValidationError(f"Timestamp must be a non-negative number, got {timestamp}")

    values = normalize_expressions(expressions)
    if smooth:
        values = smooth_expressions(values)

    return EmotionSample(
        timestamp=timestamp,
        expressions=values,
        dominant_emotion=dominant_label(values)
    )


class EmotionSampleLog:
    """
    Append-only sample log for a single session.

    Frozen once a summary is requested or the session is closed; after that
    it is read-only.
    """

    def __init__(
        self,
        session_id: str,
        title: Optional[str] = None,
        duration: Optional[float] = None
    ):
        self.session_id = session_id
        self.title = title
        self.created_at = datetime.utcnow()
        self._duration = duration
        self._lock = threading.RLock()
        self._samples: List[EmotionSample] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def duration(self) -> float:
        """
        Declared duration, or whole seconds covering every sample.

        Without a declared duration the log spans up to the first whole
        second after the latest timestamp, so half-open timeline segments over
        [0, duration) still hold the last sample. An empty log has duration 0.
        """
        with self._lock:
            if self._duration is not None:
                return self._duration
            if not self._samples:
                return 0.0
            latest = max(sample.timestamp for sample in self._samples)
            return float(math.floor(latest) + 1)

    def __len__(self) -> int:
        with self._lock:
            return len(self._samples)

    def append(self, sample: EmotionSample) -> int:
        """
        Add a sample to the end of the log.

        Timestamps going backwards are logged and accepted, since producers
        may jitter.

        Returns:
            Number of samples in the log

        Raises:
            SessionClosedError: The log is frozen
        """
        with self._lock:
            if self._closed:
                raise SessionClosedError(self.session_id)

            if self._samples and sample.timestamp < self._samples[-1].timestamp:
                logger.warning(
                    f"Session {self.session_id}: timestamp {sample.timestamp} is earlier "
                    f"than previous sample at {self._samples[-1].timestamp}"
                )

            self._samples.append(sample)
            return len(self._samples)

    def extend(self, samples: Iterable[EmotionSample]) -> int:
        """Append several samples under one lock acquisition."""
        with self._lock:
            count = len(self._samples)
            for sample in samples:
                count = self.append(sample)
            return count

    def snapshot(self) -> Tuple[EmotionSample, ...]:
        """Read-only copy of the samples in append order."""
        with self._lock:
            return tuple(self._samples)

    def freeze(self) -> None:
        """Make the log read-only. Freezing twice is harmless."""
        with self._lock:
            if not self._closed:
                self._closed = True
                logger.info(f"Session {self.session_id} frozen with {len(self._samples)} samples")


@dataclass
class SessionCreation:
    """Outcome of creating a session; created is False for a taken id."""
    created: bool
    session: Optional[EmotionSampleLog] = None


@dataclass
class SessionRegistry:
    """Owns every active session by id."""
    _sessions: Dict[str, EmotionSampleLog] = field(default_factory=dict)
    _lock: threading.RLock = field(default_factory=threading.RLock)

    def create(
        self,
        session_id: Optional[str] = None,
        title: Optional[str] = None,
        duration: Optional[float] = None,
        samples: Iterable[EmotionSample] = (),
        closed: bool = False
    ) -> SessionCreation:
        """
        Start a new session, optionally pre-filled with samples.

        A session created with closed=True is frozen straight away, which is
        how a finished video analysis is stored in one call.
        """
        if duration is not None and (not math.isfinite(duration) or duration <= 0):
            raise ValidationError(f"Duration must be positive, got {duration}")

        session_id = session_id or uuid.uuid4().hex
        log = EmotionSampleLog(session_id, title=title, duration=duration)
        log.extend(samples)
        if closed:
            log.freeze()

        with self._lock:
            if session_id in self._sessions:
                return SessionCreation(created=False)
            self._sessions[session_id] = log

        logger.info(f"Created session {session_id} with {len(log)} samples")
        return SessionCreation(created=True, session=log)

    def get(self, session_id: str) -> Optional[EmotionSampleLog]:
        with self._lock:
            return self._sessions.get(session_id)

    def list(self) -> List[EmotionSampleLog]:
        """Sessions in creation order."""
        with self._lock:
            return list(self._sessions.values())

    def close(self, session_id: str) -> Optional[EmotionSampleLog]:
        """Freeze a session; None if it does not exist."""
        log = self.get(session_id)
        if log is not None:
            log.freeze()
        return log

    def delete(self, session_id: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(session_id, None)
        if removed is not None:
            logger.info(f"Discarded session {session_id}")
        return removed is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

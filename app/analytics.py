"""
Emotion Analytics

Pure functions over a snapshot of emotion samples: distribution, engagement,
key moments, transitions, the segmented playback timeline, minute-by-minute
trends, the session summary and report insights.

None of these raise on empty or degenerate input. "No data yet" is a normal
state for a live session, so they return empty or zero values instead.
"""
import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

from app.config import KEY_MOMENT_THRESHOLD, TIMELINE_SEGMENTS, TREND_INTERVAL_SECONDS
from app.emotions import EMOTION_LABELS, ENGAGEMENT_WEIGHTS, dominant_label
from app.sample_log import EmotionSample


@dataclass(frozen=True)
class KeyMoment:
    """A sample whose strongest expression reached the key-moment threshold."""
    timestamp: float
    dominant_emotion: str
    intensity: int


@dataclass(frozen=True)
class Transition:
    """Change of dominant emotion between two consecutive samples."""
    from_emotion: str
    to_emotion: str
    timestamp: float
    intensity: int


@dataclass(frozen=True)
class TimelineSegment:
    """
    One non-empty slice of the playback timeline.

    percentages holds the share of the segment's samples dominated by each
    label, for all seven labels.
    """
    start_time: float
    end_time: float
    sample_count: int
    percentages: Dict[str, float]


@dataclass(frozen=True)
class TrendBucket:
    """Probability-weighted distribution of one fixed-width time bucket."""
    time_start: float
    time_end: float
    emotions: Dict[str, float]
    dominant_emotion: str


@dataclass(frozen=True)
class Summary:
    """
    Session-level statistics.

    The defaults describe an empty session.
    """
    dominant_emotion: str = ""
    dominant_emotion_percentage: int = 0
    engagement_score: int = 0
    emotion_distribution: Dict[str, float] = field(default_factory=dict)
    number_of_transitions: int = 0
    key_moments_count: int = 0
    total_duration: float = 0.0
    average_emotion_intensity: int = 0


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def emotion_distribution(samples: Sequence[EmotionSample]) -> Dict[str, float]:
    """
    Probability-weighted share of each emotion, in percent.

    Each label's summed probability over all samples divided by the sum over
    all labels and samples. Returns {} when there is nothing to weigh.
    """
    totals = {label: 0.0 for label in EMOTION_LABELS}
    for sample in samples:
        for label in EMOTION_LABELS:
            totals[label] += sample.expressions.get(label, 0.0)

    grand_total = sum(totals.values())
    if grand_total <= 0:
        return {}
    return {label: value / grand_total * 100 for label, value in totals.items()}


def dominant_emotion(distribution: Dict[str, float]) -> Tuple[str, float]:
    """Highest label of a distribution and its percentage; ('', 0.0) if empty."""
    label = dominant_label(distribution)
    if not label:
        return "", 0.0
    return label, distribution[label]


def dominant_emotion_counts(samples: Sequence[EmotionSample]) -> Dict[str, int]:
    """How many samples each label dominated."""
    counts = {label: 0 for label in EMOTION_LABELS}
    for sample in samples:
        if sample.dominant_emotion in counts:
            counts[sample.dominant_emotion] += 1
    return counts


def engagement_score(samples: Sequence[EmotionSample]) -> int:
    """Mean weighted expression intensity on a 0-100 scale."""
    if not samples:
        return 0

    scores = [
        sum(sample.expressions.get(label, 0.0) * weight
            for label, weight in ENGAGEMENT_WEIGHTS.items())
        for sample in samples
    ]
    average = sum(scores) / len(scores)
    return max(0, min(100, round_half_up(average * 100)))


def key_moments(
    samples: Sequence[EmotionSample],
    threshold: float = KEY_MOMENT_THRESHOLD
) -> List[KeyMoment]:
    """Samples whose strongest expression reaches the threshold."""
    moments = []
    for sample in samples:
        peak = max(sample.expressions.values(), default=0.0)
        if peak >= threshold:
            moments.append(KeyMoment(
                timestamp=sample.timestamp,
                dominant_emotion=sample.dominant_emotion,
                intensity=round_half_up(peak * 100)
            ))
    return moments


def transitions(samples: Sequence[EmotionSample]) -> List[Transition]:
    """Changes of dominant emotion between consecutive samples."""
    changes = []
    for previous, current in zip(samples, samples[1:]):
        if current.dominant_emotion != previous.dominant_emotion:
            changes.append(Transition(
                from_emotion=previous.dominant_emotion,
                to_emotion=current.dominant_emotion,
                timestamp=current.timestamp,
                intensity=round_half_up(
                    current.expressions.get(current.dominant_emotion, 0.0) * 100
                )
            ))
    return changes


def timeline(
    samples: Sequence[EmotionSample],
    duration: float,
    segments: int = TIMELINE_SEGMENTS
) -> List[TimelineSegment]:
    """
    Split [0, duration) into equal half-open segments.

    Each segment reports the share of its samples dominated by each label
    (count based, unlike emotion_distribution). Segments without samples
    are left out.
    """
    if not samples or segments <= 0 or not duration > 0:
        return []

    width = duration / segments
    result = []
    for index in range(segments):
        start = index * width
        end = (index + 1) * width
        inside = [s for s in samples if start <= s.timestamp < end]
        if not inside:
            continue

        counts = dominant_emotion_counts(inside)
        result.append(TimelineSegment(
            start_time=start,
            end_time=end,
            sample_count=len(inside),
            percentages={
                label: count / len(inside) * 100 for label, count in counts.items()
            }
        ))
    return result


def emotion_trends(
    samples: Sequence[EmotionSample],
    interval_seconds: float = TREND_INTERVAL_SECONDS
) -> List[TrendBucket]:
    """
    Fixed-width buckets from 0 up to the last sample's timestamp.

    Non-empty buckets report their own probability-weighted distribution.
    """
    if not samples or not interval_seconds > 0:
        return []

    last_timestamp = samples[-1].timestamp
    buckets = []
    index = 0
    while index * interval_seconds <= last_timestamp:
        start = index * interval_seconds
        end = (index + 1) * interval_seconds
        inside = [s for s in samples if start <= s.timestamp < end]
        if inside:
            distribution = emotion_distribution(inside)
            buckets.append(TrendBucket(
                time_start=start,
                time_end=end,
                emotions=distribution,
                dominant_emotion=dominant_emotion(distribution)[0]
            ))
        index += 1
    return buckets


def summary(
    samples: Sequence[EmotionSample],
    key_moment_threshold: float = KEY_MOMENT_THRESHOLD
) -> Summary:
    """Session-level statistics; a neutral Summary for an empty log."""
    if not samples:
        return Summary()

    distribution = emotion_distribution(samples)
    label, percentage = dominant_emotion(distribution)
    moments = key_moments(samples, key_moment_threshold)
    average_intensity = (
        sum(m.intensity for m in moments) / len(moments) if moments else 0
    )

    return Summary(
        dominant_emotion=label,
        dominant_emotion_percentage=round_half_up(percentage),
        engagement_score=engagement_score(samples),
        emotion_distribution=distribution,
        number_of_transitions=len(transitions(samples)),
        key_moments_count=len(moments),
        total_duration=samples[-1].timestamp,
        average_emotion_intensity=round_half_up(average_intensity)
    )


def format_timestamp(seconds: float) -> str:
    """Format seconds as mm:ss."""
    total = int(max(seconds, 0))
    return f"{total // 60:02d}:{total % 60:02d}"


def insights(samples: Sequence[EmotionSample]) -> List[str]:
    """Plain-language highlights for a session report."""
    if not samples:
        return []

    counts = dominant_emotion_counts(samples)
    most_common = dominant_label(counts)
    share = round_half_up(counts[most_common] / len(samples) * 100)

    peak_happy = samples[0]
    for sample in samples[1:]:
        if sample.expressions.get("happy", 0.0) > peak_happy.expressions.get("happy", 0.0):
            peak_happy = sample
    happy_intensity = round_half_up(peak_happy.expressions.get("happy", 0.0) * 100)

    return [
        f"Most common emotion: {most_common} ({share}% of time)",
        f"Number of emotional transitions: {len(transitions(samples))}",
        f"Peak happiness moment: {format_timestamp(peak_happy.timestamp)} "
        f"({happy_intensity}% confidence)",
    ]

"""
Emotion vocabulary

The label order below is part of the contract: whenever two labels hold the
same value, the one that comes first wins.
"""
import math
from typing import Dict, Mapping, Tuple

from app.config import SMOOTHING_STEEPNESS
from app.errors import ExpressionValidationError

EMOTION_LABELS: Tuple[str, ...] = (
    "happy",
    "sad",
    "angry",
    "fearful",
    "disgusted",
    "surprised",
    "neutral",
)

ENGAGEMENT_WEIGHTS: Dict[str, float] = {
    "happy": 1.0,
    "surprised": 0.8,
    "angry": 0.7,
    "fearful": 0.6,
    "disgusted": 0.5,
    "sad": 0.4,
    "neutral": 0.2,
}


def normalize_expressions(expressions: Mapping[str, float]) -> Dict[str, float]:
    """
    Validate an emotion vector and fill in missing labels.

    Args:
        expressions: Mapping of label to probability

    Returns:
        Dict holding every label in EMOTION_LABELS order

    Raises:
        ExpressionValidationError: Unknown label, non-finite value or a
            value outside [0, 1]
    """
    unknown = set(expressions) - set(EMOTION_LABELS)
    if unknown:
        raise ExpressionValidationError(
            f"Unknown emotion labels: {', '.join(sorted(unknown))}"
        )

    normalized = {}
    for label in EMOTION_LABELS:
        value = float(expressions.get(label, 0.0))
        if not math.isfinite(value) or value < 0.0 or value > 1.0:
            raise ExpressionValidationError(
                f"Expression '{label}' must be within [0, 1], got {value}"
            )
        normalized[label] = value
    return normalized


def dominant_label(values: Mapping[str, float]) -> str:
    """Label with the highest value; first in label order on ties, '' if empty."""
    best_label = ""
    best_value = -math.inf
    for label in EMOTION_LABELS:
        if label not in values:
            continue
        if values[label] > best_value:
            best_label = label
            best_value = values[label]
    return best_label


def smooth_expressions(
    expressions: Mapping[str, float],
    steepness: float = SMOOTHING_STEEPNESS
) -> Dict[str, float]:
    """
    Sharpen raw expression scores the way the live-capture path does.

    Each value goes through 1 / (1 + exp(-k * (x - 0.5))) and the results are
    renormalized to sum to 1.
    """
    smoothed = {
        label: 1.0 / (1.0 + math.exp(-steepness * (expressions.get(label, 0.0) - 0.5)))
        for label in EMOTION_LABELS
    }
    total = sum(smoothed.values())
    return {label: value / total for label, value in smoothed.items()}

"""
Identity Matcher

Nearest-neighbour search over a descriptor store snapshot. Every identity is
scanned; at the identity counts this service targets a linear scan over a
NumPy matrix is fast enough and keeps the tie-break rule exact.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from app.config import RECOGNITION_THRESHOLD, TOP_K_MATCHES
from app.descriptor_store import StoreSnapshot, as_descriptor
from app.errors import DescriptorValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """
    Recognition decision.

    distance is the distance to the nearest identity (None for an empty
    store). confidence is only set when matched.
    """
    matched: bool
    name: Optional[str] = None
    distance: Optional[float] = None
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Candidate:
    """A ranked identity with its distance to the probe."""
    name: str
    distance: float
    position: int


def _distances(snapshot: StoreSnapshot, probe: Sequence[float]) -> np.ndarray:
    vector = as_descriptor(probe, snapshot.dimension)
    if len(snapshot) == 0:
        return np.empty(0, dtype=np.float64)
    diff = snapshot.descriptors - vector
    return np.sqrt(np.sum(diff * diff, axis=1))


def recognize(
    snapshot: StoreSnapshot,
    probe: Sequence[float],
    threshold: float = RECOGNITION_THRESHOLD
) -> MatchResult:
    """
    Decide whether a probe descriptor belongs to an enrolled identity.

    An identity becomes the best candidate only if its distance is strictly
    below the threshold and strictly below the best distance so far, so the
    earliest enrolled identity wins ties.

    Args:
        snapshot: Store snapshot to search
        probe: Descriptor to identify
        threshold: Euclidean acceptance threshold (must be positive)

    Returns:
        MatchResult with confidence = 1 - distance / threshold when matched

    Raises:
        DescriptorValidationError: Malformed probe or non-positive threshold
        DimensionMismatchError: Probe length differs from the store's
    """
    if not threshold > 0:
        raise DescriptorValidationError(f"Threshold must be positive, got {threshold}")

    distances = _distances(snapshot, probe)
    if distances.size == 0:
        return MatchResult(matched=False)

    accepted = np.where(distances < threshold, distances, np.inf)
    # argmin returns the first index holding the minimum
    best = int(np.argmin(accepted))

    if not np.isfinite(accepted[best]):
        nearest = float(distances.min())
        logger.debug(f"No identity within {threshold} (nearest at {nearest:.4f})")
        return MatchResult(matched=False, distance=nearest)

    distance = float(distances[best])
    return MatchResult(
        matched=True,
        name=snapshot.names[best],
        distance=distance,
        confidence=1.0 - distance / threshold
    )


def rank(
    snapshot: StoreSnapshot,
    probe: Sequence[float],
    top_k: int = TOP_K_MATCHES
) -> List[Candidate]:
    """Nearest identities in ascending distance, enrollment order on ties."""
    distances = _distances(snapshot, probe)
    if top_k <= 0 or distances.size == 0:
        return []

    order = np.argsort(distances, kind="stable")[:top_k]
    return [
        Candidate(
            name=snapshot.names[int(i)],
            distance=float(distances[int(i)]),
            position=int(i)
        )
        for i in order
    ]


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two descriptors of equal length."""
    first = np.asarray(a, dtype=np.float64)
    second = as_descriptor(b, first.shape[0])
    return float(np.sqrt(np.sum((first - second) ** 2)))


def match_with_candidates(
    snapshot: StoreSnapshot,
    probe: Sequence[float],
    threshold: float = RECOGNITION_THRESHOLD,
    top_k: int = TOP_K_MATCHES
) -> Tuple[MatchResult, List[Candidate]]:
    """Recognition decision plus the nearest candidates from the same snapshot."""
    return recognize(snapshot, probe, threshold), rank(snapshot, probe, top_k)

"""
Descriptor Store

This module manages the enrolled identities used for face matching. It
provides:
- Validated, append-only registration of named descriptors
- Insertion-ordered iteration
- Consistent snapshots for the matcher

Identities are never updated or removed. The store lives for the lifetime of
the service that owns it.
"""
import logging
import threading
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np

from app.config import EMBEDDING_DIM
from app.errors import DescriptorValidationError, DimensionMismatchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """An enrolled name and its face descriptor."""
    name: str
    descriptor: Tuple[float, ...]


@dataclass(frozen=True)
class RegistrationResult:
    """Outcome of a registration; created is False for a duplicate name."""
    created: bool
    count: int


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Immutable view of the store at one point in time.

    descriptors is an (n, dim) float64 matrix whose rows line up with names.
    """
    names: Tuple[str, ...]
    descriptors: np.ndarray
    dimension: int

    def __len__(self) -> int:
        return len(self.names)


def as_descriptor(values: Sequence[float], dimension: int) -> np.ndarray:
    """
    Convert a descriptor to a float64 vector, validating its shape.

    Raises:
        DescriptorValidationError: Missing, non-numeric or non-finite values
        DimensionMismatchError: Length differs from dimension
    """
    if values is None:
        raise DescriptorValidationError("Descriptor is required")
    try:
        vector = np.asarray(values, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise DescriptorValidationError(f"Descriptor must be a list of numbers: {e}")

    if vector.ndim != 1:
        raise DescriptorValidationError("Descriptor must be a flat list of numbers")
    if vector.shape[0] != dimension:
        raise DimensionMismatchError(expected=dimension, actual=vector.shape[0])
    if not np.all(np.isfinite(vector)):
        raise DescriptorValidationError("Descriptor contains non-finite values")
    return vector


class DescriptorStore:
    """
    Append-only store of enrolled face descriptors.

    Each registration builds a new descriptor matrix and swaps it in under
    the lock, so a snapshot taken at any moment is complete and never
    changes afterwards.
    """

    def __init__(self, dimension: int = EMBEDDING_DIM):
        """Initialize an empty store."""
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._lock = threading.RLock()
        self._dimension = dimension
        self._names: Tuple[str, ...] = ()
        self._name_set: set = set()
        self._descriptors = np.empty((0, dimension), dtype=np.float64)
        self._descriptors.setflags(write=False)

    @property
    def dimension(self) -> int:
        """Descriptor length accepted by this store."""
        return self._dimension

    @property
    def count(self) -> int:
        """Get the number of enrolled identities."""
        with self._lock:
            return len(self._names)

    def register(self, name: str, descriptor: Sequence[float]) -> RegistrationResult:
        """
        Enroll a new identity.

        Args:
            name: Unique identity name (case-sensitive, not normalized)
            descriptor: Face descriptor of length `dimension`

        Returns:
            RegistrationResult with the total identity count. created is
            False, and nothing is stored, when the name already exists.

        Raises:
            DescriptorValidationError: Empty name or malformed descriptor
        """
        if not isinstance(name, str) or not name:
            raise DescriptorValidationError("Name must be a non-empty string")
        vector = as_descriptor(descriptor, self._dimension)

        with self._lock:
            if name in self._name_set:
                logger.warning(f"Rejected duplicate registration for '{name}'")
                return RegistrationResult(created=False, count=len(self._names))

            descriptors = np.vstack([self._descriptors, vector.reshape(1, -1)])
            descriptors.setflags(write=False)

            self._descriptors = descriptors
            self._names = self._names + (name,)
            self._name_set.add(name)

            count = len(self._names)

        logger.info(f"Registered identity '{name}' ({count} total)")
        return RegistrationResult(created=True, count=count)

    def all(self) -> List[Identity]:
        """All identities in insertion order."""
        snapshot = self.snapshot()
        return [
            Identity(name=name, descriptor=tuple(float(v) for v in row))
            for name, row in zip(snapshot.names, snapshot.descriptors)
        ]

    def names(self) -> List[str]:
        """Enrolled names in insertion order."""
        with self._lock:
            return list(self._names)

    def snapshot(self) -> StoreSnapshot:
        """Consistent, read-only view for matching."""
        with self._lock:
            return StoreSnapshot(
                names=self._names,
                descriptors=self._descriptors,
                dimension=self._dimension
            )

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._name_set


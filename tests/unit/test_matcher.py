"""Unit tests for the identity matcher"""

import pytest

from app.descriptor_store import DescriptorStore
from app.errors import DescriptorValidationError, DimensionMismatchError
from app.matcher import MatchResult, euclidean_distance, match_with_candidates, rank, recognize


@pytest.fixture
def alice_store(zero_descriptor):
    store = DescriptorStore()
    store.register("Alice", zero_descriptor)
    return store


class TestRecognize:
    """Tests for the match-or-reject decision"""

    def test_exact_descriptor_matches_with_full_confidence(self, alice_store, zero_descriptor):
        result = recognize(alice_store.snapshot(), zero_descriptor)

        assert result == MatchResult(matched=True, name="Alice", distance=0.0, confidence=1.0)

    def test_close_descriptor_matches(self, alice_store):
        probe = [0.01] + [0.0] * 127

        result = recognize(alice_store.snapshot(), probe)

        assert result.matched
        assert result.name == "Alice"
        assert result.distance == pytest.approx(0.01)
        assert result.confidence == pytest.approx(0.98333, abs=1e-4)

    def test_distance_equal_to_threshold_is_rejected(self):
        store = DescriptorStore(dimension=2)
        store.register("Alice", [0.0, 0.0])

        result = recognize(store.snapshot(), [3.0, 4.0], threshold=5.0)

        assert not result.matched
        assert result.name is None
        assert result.confidence is None
        assert result.distance == 5.0

    def test_nearest_identity_wins(self):
        store = DescriptorStore(dimension=2)
        store.register("Far", [0.5, 0.0])
        store.register("Near", [0.1, 0.0])

        result = recognize(store.snapshot(), [0.0, 0.0])

        assert result.name == "Near"
        assert result.confidence == pytest.approx(1 - 0.1 / 0.6)

    def test_first_enrolled_identity_wins_ties(self):
        store = DescriptorStore(dimension=2)
        store.register("First", [0.2, 0.0])
        store.register("Second", [-0.2, 0.0])
        store.register("Third", [0.0, 0.2])

        result = recognize(store.snapshot(), [0.0, 0.0])

        assert result.name == "First"

    def test_custom_threshold(self):
        store = DescriptorStore(dimension=2)
        store.register("Alice", [0.0, 0.0])

        assert not recognize(store.snapshot(), [0.4, 0.0], threshold=0.3).matched
        result = recognize(store.snapshot(), [0.4, 0.0], threshold=0.8)
        assert result.matched
        assert result.confidence == pytest.approx(0.5)

    def test_empty_store_does_not_match(self, zero_descriptor):
        result = recognize(DescriptorStore().snapshot(), zero_descriptor)

        assert result == MatchResult(matched=False)

    def test_dimension_mismatch_raises(self, alice_store):
        with pytest.raises(DimensionMismatchError):
            recognize(alice_store.snapshot(), [0.0] * 127)

    def test_dimension_mismatch_raises_on_empty_store(self):
        with pytest.raises(DimensionMismatchError):
            recognize(DescriptorStore().snapshot(), [0.0] * 3)

    @pytest.mark.parametrize("threshold", [0.0, -0.6, float("nan")])
    def test_non_positive_threshold_raises(self, alice_store, zero_descriptor, threshold):
        with pytest.raises(DescriptorValidationError):
            recognize(alice_store.snapshot(), zero_descriptor, threshold=threshold)


class TestRank:
    """Tests for nearest-candidate ranking"""

    def test_rank_orders_by_distance_then_enrollment(self):
        store = DescriptorStore(dimension=2)
        store.register("C", [3.0, 0.0])
        store.register("A", [1.0, 0.0])
        store.register("B", [0.0, 1.0])

        candidates = rank(store.snapshot(), [0.0, 0.0], top_k=3)

        assert [c.name for c in candidates] == ["A", "B", "C"]
        assert [c.position for c in candidates] == [1, 2, 0]
        assert candidates[2].distance == pytest.approx(3.0)

    def test_rank_limits_results(self):
        store = DescriptorStore(dimension=1)
        for i in range(10):
            store.register(str(i), [float(i)])

        assert len(rank(store.snapshot(), [0.0], top_k=3)) == 3
        assert rank(store.snapshot(), [0.0], top_k=0) == []

    def test_match_with_candidates_includes_rejected_neighbours(self):
        store = DescriptorStore(dimension=2)
        store.register("Alice", [5.0, 0.0])

        result, candidates = match_with_candidates(store.snapshot(), [0.0, 0.0])

        assert not result.matched
        assert [c.name for c in candidates] == ["Alice"]


def test_euclidean_distance():
    assert euclidean_distance([0.0, 0.0], [3.0, 4.0]) == pytest.approx(5.0)
    with pytest.raises(DimensionMismatchError):
        euclidean_distance([0.0, 0.0], [1.0])

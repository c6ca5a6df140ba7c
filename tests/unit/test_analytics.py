"""Unit tests for the emotion analytics functions"""

import pytest

from app import analytics
from app.analytics import KeyMoment, Summary, Transition
from app.emotions import EMOTION_LABELS
from app.sample_log import make_sample


class TestEmptyInput:
    """Every function must tolerate an empty log"""

    def test_summary_is_neutral(self):
        result = analytics.summary([])

        assert result == Summary()
        assert result.engagement_score == 0
        assert result.emotion_distribution == {}
        assert result.number_of_transitions == 0
        assert result.average_emotion_intensity == 0

    def test_everything_else_is_empty(self):
        assert analytics.emotion_distribution([]) == {}
        assert analytics.engagement_score([]) == 0
        assert analytics.key_moments([]) == []
        assert analytics.transitions([]) == []
        assert analytics.timeline([], 100.0) == []
        assert analytics.emotion_trends([]) == []
        assert analytics.insights([]) == []
        assert analytics.dominant_emotion({}) == ("", 0.0)


class TestDistribution:
    def test_probability_weighted_percentages(self):
        samples = [
            make_sample(0.0, {"happy": 1.0}),
            make_sample(1.0, {"sad": 0.5, "neutral": 0.5}),
        ]

        distribution = analytics.emotion_distribution(samples)

        assert list(distribution) == list(EMOTION_LABELS)
        assert distribution["happy"] == pytest.approx(50.0)
        assert distribution["sad"] == pytest.approx(25.0)
        assert distribution["neutral"] == pytest.approx(25.0)
        assert distribution["angry"] == 0.0

    def test_weighting_differs_from_dominant_count(self):
        samples = [
            make_sample(0.0, {"happy": 0.51, "sad": 0.49}),
            make_sample(1.0, {"happy": 0.51, "sad": 0.49}),
        ]

        distribution = analytics.emotion_distribution(samples)

        assert distribution["happy"] == pytest.approx(51.0)
        assert distribution["sad"] == pytest.approx(49.0)

    def test_all_zero_expressions_give_empty_distribution(self):
        assert analytics.emotion_distribution([make_sample(0.0, {})]) == {}

    def test_dominant_emotion_ties_go_to_label_order(self):
        distribution = {"happy": 40.0, "sad": 20.0, "neutral": 40.0}

        assert analytics.dominant_emotion(distribution) == ("happy", 40.0)

    def test_dominant_emotion_counts_cover_every_label(self, dominated):
        samples = [dominated("happy", 0.0), dominated("happy", 1.0), dominated("sad", 2.0)]

        counts = analytics.dominant_emotion_counts(samples)

        assert counts == {
            "happy": 2, "sad": 1, "angry": 0, "fearful": 0,
            "disgusted": 0, "surprised": 0, "neutral": 0
        }


class TestEngagement:
    @pytest.mark.parametrize("expressions,expected", [
        ({"happy": 1.0}, 100),
        ({"surprised": 1.0}, 80),
        ({"neutral": 1.0}, 20),
        ({"sad": 0.5, "neutral": 0.5}, 30),
        ({"happy": 1.0, "surprised": 1.0}, 100),
    ])
    def test_single_sample(self, expressions, expected):
        assert analytics.engagement_score([make_sample(0.0, expressions)]) == expected

    def test_mean_over_samples(self):
        samples = [make_sample(0.0, {"happy": 1.0}), make_sample(1.0, {"neutral": 1.0})]

        assert analytics.engagement_score(samples) == 60

    def test_round_half_up(self):
        assert analytics.round_half_up(0.5) == 1
        assert analytics.round_half_up(2.5) == 3
        assert analytics.round_half_up(2.4999) == 2


class TestKeyMoments:
    def test_threshold_is_inclusive(self):
        samples = [
            make_sample(0.0, {"happy": 0.7, "neutral": 0.3}),
            make_sample(1.0, {"happy": 0.69, "neutral": 0.31}),
            make_sample(2.0, {"angry": 0.95, "neutral": 0.05}),
        ]

        moments = analytics.key_moments(samples)

        assert moments == [
            KeyMoment(timestamp=0.0, dominant_emotion="happy", intensity=70),
            KeyMoment(timestamp=2.0, dominant_emotion="angry", intensity=95),
        ]

    def test_custom_threshold(self):
        samples = [make_sample(0.0, {"happy": 0.5, "neutral": 0.5})]

        assert analytics.key_moments(samples, threshold=0.9) == []
        assert len(analytics.key_moments(samples, threshold=0.5)) == 1


class TestTransitions:
    def test_single_change(self):
        samples = [
            make_sample(0.0, {"happy": 0.9, "sad": 0.1}),
            make_sample(1.0, {"happy": 0.8, "sad": 0.2}),
            make_sample(2.0, {"happy": 0.2, "sad": 0.75}),
        ]

        changes = analytics.transitions(samples)

        assert changes == [
            Transition(from_emotion="happy", to_emotion="sad", timestamp=2.0, intensity=75)
        ]

    def test_constant_emotion_has_no_transitions(self, dominated):
        samples = [dominated("neutral", float(t)) for t in range(20)]

        assert analytics.transitions(samples) == []

    def test_alternating_emotions(self, dominated):
        samples = [dominated("happy" if t % 2 else "sad", float(t)) for t in range(9)]

        assert len(analytics.transitions(samples)) == 8


class TestTimeline:
    def test_uniform_hundred_second_session(self, dominated):
        samples = [dominated("happy", float(t)) for t in range(100)]

        segments = analytics.timeline(samples, 100.0)

        assert len(segments) == 10
        for index, segment in enumerate(segments):
            assert segment.start_time == pytest.approx(index * 10.0)
            assert segment.end_time == pytest.approx((index + 1) * 10.0)
            assert segment.sample_count == 10
            assert segment.percentages["happy"] == 100.0
            assert segment.percentages["sad"] == 0.0

    def test_empty_segments_are_omitted(self, dominated):
        samples = [dominated("happy", float(t)) for t in range(50)]

        segments = analytics.timeline(samples, 100.0)

        assert len(segments) == 5
        assert segments[-1].start_time == pytest.approx(40.0)

    def test_percentages_are_count_based(self, dominated):
        samples = [
            dominated("happy", 0.0),
            dominated("happy", 1.0),
            dominated("happy", 2.0),
            dominated("sad", 3.0, value=0.4),
        ]

        segment = analytics.timeline(samples, 40.0)[0]

        assert segment.percentages["happy"] == 75.0
        assert segment.percentages["sad"] == 25.0
        assert sum(segment.percentages.values()) == pytest.approx(100.0)

    def test_segments_are_half_open(self, dominated):
        samples = [dominated("happy", 0.0), dominated("sad", 10.0)]

        segments = analytics.timeline(samples, 10.0)

        assert len(segments) == 1
        assert segments[0].sample_count == 1

    @pytest.mark.parametrize("duration", [0.0, -1.0])
    def test_non_positive_duration(self, dominated, duration):
        assert analytics.timeline([dominated("happy", 0.0)], duration) == []


class TestTrends:
    def test_minute_buckets(self, dominated):
        samples = [
            dominated("happy", 0.0),
            dominated("happy", 30.0),
            dominated("sad", 61.0),
            dominated("angry", 120.0),
        ]

        trends = analytics.emotion_trends(samples)

        assert [(t.time_start, t.time_end) for t in trends] == [(0, 60), (60, 120), (120, 180)]
        assert [t.dominant_emotion for t in trends] == ["happy", "sad", "angry"]
        assert sum(trends[0].emotions.values()) == pytest.approx(100.0)

    def test_empty_buckets_are_omitted(self, dominated):
        samples = [dominated("happy", 0.0), dominated("sad", 130.0)]

        trends = analytics.emotion_trends(samples, interval_seconds=60)

        assert [t.time_start for t in trends] == [0, 120]

    def test_custom_interval(self, dominated):
        samples = [dominated("happy", float(t)) for t in range(10)]

        assert len(analytics.emotion_trends(samples, interval_seconds=5)) == 2

    def test_non_positive_interval(self, dominated):
        assert analytics.emotion_trends([dominated("happy", 0.0)], interval_seconds=0) == []


class TestSummary:
    def test_full_summary(self):
        samples = [
            make_sample(0.0, {"happy": 0.9, "neutral": 0.1}),
            make_sample(1.0, {"happy": 0.8, "neutral": 0.2}),
            make_sample(2.0, {"sad": 0.6, "neutral": 0.4}),
            make_sample(4.0, {"happy": 0.5, "neutral": 0.5}),
        ]

        result = analytics.summary(samples)

        # happy 2.2, sad 0.6, neutral 1.2 out of 4.0
        assert result.dominant_emotion == "happy"
        assert result.dominant_emotion_percentage == 55
        assert result.emotion_distribution["neutral"] == pytest.approx(30.0)
        assert result.number_of_transitions == 2
        assert result.key_moments_count == 2
        assert result.average_emotion_intensity == 85
        assert result.total_duration == 4.0
        # (0.92 + 0.84 + 0.32 + 0.6) / 4 = 0.67
        assert result.engagement_score == 67

    def test_no_key_moments_gives_zero_intensity(self):
        samples = [make_sample(0.0, {"happy": 0.5, "neutral": 0.5})]

        result = analytics.summary(samples)

        assert result.key_moments_count == 0
        assert result.average_emotion_intensity == 0


class TestInsights:
    def test_report_lines(self):
        samples = [
            make_sample(0.0, {"neutral": 0.9, "happy": 0.1}),
            make_sample(65.0, {"happy": 0.85, "neutral": 0.15}),
            make_sample(70.0, {"neutral": 0.6, "happy": 0.4}),
        ]

        lines = analytics.insights(samples)

        assert lines == [
            "Most common emotion: neutral (67% of time)",
            "Number of emotional transitions: 2",
            "Peak happiness moment: 01:05 (85% confidence)",
        ]

    @pytest.mark.parametrize("seconds,expected", [
        (0, "00:00"),
        (59.9, "00:59"),
        (75, "01:15"),
        (3600, "60:00"),
    ])
    def test_format_timestamp(self, seconds, expected):
        assert analytics.format_timestamp(seconds) == expected

"""Pytest configuration and fixtures"""

import pytest
from hypothesis import settings, Verbosity

from app.sample_log import make_sample

# Register Hypothesis profiles
settings.register_profile("ci", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("dev", max_examples=20, verbosity=Verbosity.normal)
settings.register_profile("debug", max_examples=10, verbosity=Verbosity.verbose)

# Use CI profile by default
settings.load_profile("ci")


def sample_dominated_by(label, timestamp, value=0.9):
    """Emotion sample whose dominant emotion is `label`."""
    rest = (1.0 - value) / 6
    expressions = {name: rest for name in (
        "happy", "sad", "angry", "fearful", "disgusted", "surprised", "neutral"
    )}
    expressions[label] = value
    return make_sample(timestamp, expressions)


@pytest.fixture
def zero_descriptor():
    return [0.0] * 128


@pytest.fixture
def dominated():
    """Factory for samples dominated by a given label."""
    return sample_dominated_by

"""
Domain exceptions

Validation failures are raised synchronously and never retried. Expected
negative outcomes (duplicate name, no match, unknown session) are returned as
result objects instead and do not appear here.
"""


class ValidationError(ValueError):
    """Input rejected before any state was touched."""


class DescriptorValidationError(ValidationError):
    """Missing or malformed descriptor, or an empty identity name."""


class DimensionMismatchError(DescriptorValidationError):
    """Descriptor length differs from the store's dimensionality."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Descriptor has {actual} dimensions, expected {expected}")


class ExpressionValidationError(ValidationError):
    """Malformed emotion sample."""


class SessionClosedError(Exception):
    """Sample appended to a frozen session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' is closed and read-only")

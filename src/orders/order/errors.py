"""Error taxonomy for order operations.

Each error specializes the protean exception it is closest to, so callers
that already handle protean errors keep working.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class Forbidden(InvalidOperationError):
    """Role, status or assignment guard failed."""


class Locked(InvalidOperationError):
    """Another fulfillment actor holds the work lock."""

    def __init__(self, messages, holder: str | None = None, **kwargs):
        super().__init__(messages, **kwargs)
        self.holder = holder


class InvalidInput(ValidationError):
    """Malformed working copy or request data."""


class NotFound(ObjectNotFoundError):
    """Unknown order or product."""

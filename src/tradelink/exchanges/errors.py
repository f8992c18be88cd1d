"""Typed exception hierarchy for venue operations.

Callers branch on these to pick a retry policy; nothing in this package
retries on their behalf.
"""


class ExchangeError(Exception):
    """Base class for all exchange-related errors."""

    def __init__(self, message: str = "", venue: str = ""):
        super().__init__(message)
        self.venue = venue


class TransportError(ExchangeError, ConnectionError):
    """Network or socket level failure. Safe to retry for reads."""


class VenueError(ExchangeError, RuntimeError):
    """The venue rejected the request. Retrying unchanged will fail again."""

    def __init__(self, message: str = "", venue: str = "", code: str | int = ""):
        super().__init__(message, venue=venue)
        self.code = code
        self.message = message

    def __str__(self) -> str:
        if self.code != "":
            return f"[{self.code}] {self.message}"
        return self.message


class DispatchTimeout(ExchangeError, TimeoutError):
    """The transport call did not complete within the venue timeout."""


class UnknownOrderOutcome(DispatchTimeout):
    """A mutating call timed out; the venue may have applied it.

    Verify open orders before retrying.
    """


class NotSupportedError(ExchangeError, NotImplementedError):
    """The operation has no equivalent on this venue. Permanent."""


class OrderTypeUnsupported(NotSupportedError):
    """The (side, order type) combination cannot be expressed on this venue."""


class PlacementAmbiguous(ExchangeError):
    """The order was accepted but its identifier could not be resolved.

    Raised when reconciliation finds zero or several matching open orders.
    """

    def __init__(self, message: str = "", venue: str = "", candidates: int = 0):
        super().__init__(message, venue=venue)
        self.candidates = candidates
        self.placed = True


class RateLimiterClosed(ExchangeError):
    """The rate limiter was shut down while a caller waited for a slot."""


class UnknownVenueError(ExchangeError, KeyError):
    """No enabled driver is registered under the requested venue name."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""

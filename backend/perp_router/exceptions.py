"""
Domain exceptions for the routing core.

The core raises these instead of transport-specific errors so callers (an
HTTP layer, a bot, a CLI) can translate them however they like. Each error
carries an HTTP-equivalent status code.
"""

from typing import Optional


class AppError(Exception):
    """Base application error with an HTTP-equivalent status code."""

    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Input validation failure (400)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class NotFoundError(AppError):
    """Resource not found (404)."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)


class NoPriceAvailableError(AppError):
    """No price source responded for the requested pair (503)."""

    def __init__(self, pair: str):
        self.pair = pair
        super().__init__(f"No price available for {pair}", status_code=503)


class UnknownVenueError(ValidationError):
    """Venue kind has no registered adapter (400)."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"No adapter registered for venue kind '{kind}'")


class VenueExecutionError(AppError):
    """The venue rejected or failed the on-chain call (502)."""

    def __init__(self, venue: str, message: str):
        self.venue = venue
        super().__init__(f"{venue}: {message}", status_code=502)


class PersistenceAfterExecutionError(AppError):
    """
    The venue call succeeded but the trade record could not be written or
    updated (500). The tx hash is kept so the position can be reconciled.
    """

    def __init__(
        self,
        tx_hash: str,
        venue: str,
        cause: Optional[Exception] = None,
        action: str = "Trade executed",
    ):
        self.tx_hash = tx_hash
        self.venue = venue
        self.cause = cause
        super().__init__(
            f"{action} on {venue} (tx {tx_hash}) but could not be recorded",
            status_code=500,
        )


class PositionNotFoundError(NotFoundError):
    """Trade or on-chain position missing, foreign or already closed (404)."""

    def __init__(self, message: str = "Position not found"):
        super().__init__(message)

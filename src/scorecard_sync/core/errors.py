"""Error taxonomy for the scorecard engine.

Every error exposes ``messages``: an ordered list of human-readable strings
the front end can hand back to the operator verbatim.
"""

from __future__ import annotations

from typing import Optional


class ScorecardError(Exception):
    """Base class for all engine failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def messages(self) -> list[str]:
        return [self.message]


class ValidationError(ScorecardError):
    """One or more field-level problems found before any remote call."""

    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors) if errors else "invalid scorecard")
        self.errors = list(errors)

    @property
    def messages(self) -> list[str]:
        return list(self.errors)


class TransportError(ScorecardError):
    """The request could not be built, sent, or finished before its deadline."""


class EncodeError(TransportError):
    """The wire payload could not be serialized."""


class APIError(ScorecardError):
    """The service answered with a non-success status or ``ok: false``."""

    def __init__(self, status_code: int, body: str, operation: Optional[str] = None):
        prefix = f"{operation}: " if operation else ""
        super().__init__(f"{prefix}unexpected status code: {status_code}, response body: {body}")
        self.status_code = status_code
        self.body = body
        self.operation = operation


class DecodeError(ScorecardError):
    """The response body is malformed or has an unexpected shape."""


class NotFound(ScorecardError):
    """The scorecard no longer exists remotely. Raised by fetch only."""

    def __init__(self, scorecard_id: str):
        super().__init__(f"Scorecard {scorecard_id} was not found")
        self.scorecard_id = scorecard_id

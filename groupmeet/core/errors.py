"""Error taxonomy for the meeting engine.

Engine operations raise one of these; the HTTP layer maps each subclass to a
status code, and the result-returning operations (skip, series RSVP) turn
them into ``success=False`` plus a message.
"""


class EngineError(Exception):
    """Base class for every error raised by the engine."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(EngineError):
    """Bad input: recurrence count out of range, skip on a standalone meeting."""

    status_code = 400


class NotFoundError(EngineError):
    """Unknown meeting, series, attendee record or token."""

    status_code = 404


class StateConflictError(EngineError):
    """The target exists but its current state forbids the operation."""

    status_code = 409


class UpstreamFailure(EngineError):
    """The store or a notification transport failed."""

    status_code = 502

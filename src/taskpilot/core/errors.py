# src/taskpilot/core/errors.py

"""
Error taxonomy shared by the gateway, the mutation controller and the stores.

TaskPilotError
├── InvalidInput          client-side validation, raised before any network call
├── BusyError             a mutation for the same key is still in flight
└── ApiError              anything that went wrong talking to the backend
    ├── NetworkUnreachable    no response at all (connect/read error, timeout)
    ├── Unauthorized          HTTP 401, triggers session invalidation
    ├── DecodeError           response body does not match the expected schema
    └── ServerError           4xx/5xx with an optional {"message": ...} body
        └── InvalidRequest    4xx (other than 401)
"""

from __future__ import annotations

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class TaskPilotError(Exception):
    """Base class; str(err) is always safe to show to the user."""

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class InvalidInput(TaskPilotError):
    pass


class BusyError(TaskPilotError):
    def __init__(self, key: str) -> None:
        super().__init__("Still syncing the previous change. Try again in a moment.")
        self.key = key


class ApiError(TaskPilotError):
    pass


class NetworkUnreachable(ApiError):
    def __init__(self, message: str = "Cannot reach the server. Check your connection.") -> None:
        super().__init__(message)


class Unauthorized(ApiError):
    def __init__(self, message: str = "Your session has expired. Please log in again.") -> None:
        super().__init__(message)


class DecodeError(ApiError):
    def __init__(self, message: str = "Unexpected response from the server.") -> None:
        super().__init__(message)


class ServerError(ApiError):
    def __init__(self, message: str = GENERIC_ERROR_MESSAGE, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidRequest(ServerError):
    def __init__(self, message: str = GENERIC_ERROR_MESSAGE, *, status_code: int = 400) -> None:
        super().__init__(message, status_code=status_code)


def friendly_error_message(err: BaseException) -> str:
    """Convert any error into the single string surfaced for an action."""
    if isinstance(err, TaskPilotError):
        msg = err.message.strip()
        return msg or GENERIC_ERROR_MESSAGE
    return GENERIC_ERROR_MESSAGE

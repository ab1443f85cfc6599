from __future__ import annotations


class AppError(Exception):
    """Base application exception with status metadata."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class NotConnectedError(UnauthorizedError):
    def __init__(self, message: str = "Not connected"):
        super().__init__(message)


class ConflictError(AppError):
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class TransportError(AppError):
    """The simulation API could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, remote_status: int | None = None):
        super().__init__(message, status_code=502)
        self.remote_status = remote_status


class ApiResultError(AppError):
    """The simulation API answered with ``Result: "Error"``."""

    def __init__(self, message: str):
        super().__init__(message, status_code=502)

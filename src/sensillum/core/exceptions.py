"""Sensillum exceptions."""


class SensillumError(Exception):
    """Base exception for sensillum errors."""

    pass


class HandshakeError(SensillumError):
    """Raised when a request is not a valid WebSocket upgrade."""

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


class HeaderValueError(SensillumError):
    """Raised when bytes cannot be placed in an HTTP header value."""

    def __init__(self, value: bytes, reason: str):
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid header value {value!r}: {reason}")


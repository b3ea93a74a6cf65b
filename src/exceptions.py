from typing import Optional


class TransmissionError(Exception):
    """Base class for every failure raised by the Transmission client."""


class ConnectionFailure(TransmissionError):
    """The HTTP exchange with the daemon could not be completed."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class InvalidResponse(TransmissionError):
    """The daemon answered with something that does not follow the protocol."""


class UnexpectedResponse(TransmissionError):
    def __init__(self, status_code: int, message: Optional[str] = None) -> None:
        super().__init__(message or f"Unexpected response received from Transmission (HTTP {status_code})")
        self.status_code = status_code

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_MODE = "invalid_mode"
    MISSING_INPUT = "missing_input"
    UPSTREAM_FAILURE = "upstream_failure"


_STATUS = {
    ErrorKind.INVALID_MODE: 400,
    ErrorKind.MISSING_INPUT: 400,
    ErrorKind.UPSTREAM_FAILURE: 500,
}


class GatewayError(Exception):
    """Single error type raised at every gateway boundary.

    `message` is safe to show to a client; the underlying cause (if any) is
    kept on `__cause__` and only ever logged.
    """

    def __init__(self, kind: ErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return _STATUS[self.kind]

    def to_payload(self) -> dict:
        return {"error": self.message}

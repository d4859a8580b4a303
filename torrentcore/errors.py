"""Exceptions raised by tracker communication."""


class TrackerError(Exception):
    """Base class for every tracker failure."""

    description = "tracker failure"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.description)


class InvalidRequest(TrackerError):
    """The announce request could not be built or sent."""

    description = "invalid tracker request"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"invalid tracker request: {reason}")


class InvalidResponse(TrackerError):
    """The tracker answered with something that could not be understood."""

    description = "invalid tracker response"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"invalid tracker response: {reason}")


class TrackerFailure(TrackerError):
    """The tracker answered with an explicit error message."""

    description = "tracker error response"

    def __init__(self, message: str) -> None:
        self.reason = message
        super().__init__(f"tracker error: {message}")


class TrackerEOF(TrackerError):
    """The tracker closed the connection unexpectedly."""

    description = "the tracker closed the connection unexpectedly"

    def __init__(self) -> None:
        super().__init__("tracker EOF")


class TrackerIOError(TrackerError):
    """The tracker connection experienced an IO error."""

    description = "the tracker connection experienced an IO error"

    def __init__(self) -> None:
        super().__init__("tracker IO error")


class TrackerTimeout(TrackerError):
    """The tracker failed to respond in a timely manner."""

    description = "the tracker failed to respond to the request in a timely manner"

    def __init__(self) -> None:
        super().__init__("tracker timeout")


class DNSTimeout(TrackerError):
    """Resolving the tracker host timed out."""

    description = "the tracker url dns resolution timed out"

    def __init__(self) -> None:
        super().__init__("tracker dns timeout")


class DNSInvalid(TrackerError):
    """The tracker host does not resolve to a valid address."""

    description = "the tracker url does not correspond to a valid IP address"

    def __init__(self) -> None:
        super().__init__("tracker dns invalid")
"""Error taxonomy shared by the tracker clients, the engine and the webhook."""


class JeleaseError(Exception):
    """Base class for all jelease errors."""


class DecodeError(JeleaseError):
    """Inbound webhook body could not be decoded into a ReleaseEvent."""


class MethodError(JeleaseError):
    """Webhook called with a method other than POST."""


class ConfigValidationError(JeleaseError):
    """Configured project or status is missing on the tracker. Fatal at startup."""


class TrackerError(JeleaseError):
    """Transport or tracker-side failure.

    Keeps the HTTP status code and raw response body (when there was a response)
    so the caller can log full context without leaking it to webhook clients.
    """

    def __init__(self, message: str, status_code: int | None = None, response_body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body

    @classmethod
    def from_error(cls, err: "TrackerError") -> "TrackerError":
        wrapped = cls(str(err), status_code=err.status_code, response_body=err.response_body)
        wrapped.__cause__ = err
        return wrapped


class TrackerQueryError(TrackerError):
    """Searching for existing issues failed."""


class TrackerCreateError(TrackerError):
    """Creating a new issue failed."""


class TrackerUpdateError(TrackerError):
    """Updating the canonical issue failed."""


class TemplateError(JeleaseError, ValueError):
    """Description template is malformed or references unknown fields."""

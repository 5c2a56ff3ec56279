"""Exception classes."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pyagency.response import Response


class AgentError(Exception):
    """Base class for all errors raised by pyagency.

    `details` holds structured context about the failure. It always contains a `causes` list (possibly empty)
    describing the underlying errors.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = {"causes": [], **(details or {})}

    def __str__(self) -> str:
        causes = self.details.get("causes") or []
        if not causes:
            return self.message
        return f"{self.message} ({'; '.join(cause['message'] for cause in causes)})"

    @classmethod
    def from_cause(cls, message: str, cause: BaseException, **details: Any) -> "AgentError":
        """Build an error that records `cause` in its details."""
        return cls(message, {"causes": [{"message": str(cause) or type(cause).__name__}], **details})


class BuilderError(AgentError, ValueError):
    """Invalid input given to a builder (agent or request)."""


class TransportError(AgentError):
    """The transport failed to complete a request/response exchange."""


class ConnectError(TransportError):
    """Connection to the remote host could not be established."""


class ConnectTimeoutError(ConnectError, TimeoutError):
    """Connection to the remote host timed out."""


class ReadTimeoutError(TransportError, TimeoutError):
    """Reading the response timed out."""


class WriteTimeoutError(TransportError, TimeoutError):
    """Sending the request timed out."""


class PoolTimeoutError(TransportError, TimeoutError):
    """No connection became available in the connection pool in time."""


class RequestTimeoutError(TransportError, TimeoutError):
    """The whole request chain (including redirects) did not complete in time."""


class StatusError(AgentError):
    """Final response had an error status. Only raised when the agent is built with error_for_status(True)."""

    def __init__(self, message: str, response: "Response") -> None:
        super().__init__(message, {"status": response.status, "url": str(response.url)})
        self.response = response


class DecodeError(AgentError):
    """Response body could not be decoded."""


class JSONDecodeError(DecodeError, ValueError):
    """Response body is not valid JSON."""


class CookieParseError(ValueError):
    """A Set-Cookie value could not be parsed."""


class AgentClosedError(AgentError):
    """The agent was closed and can not send requests anymore."""

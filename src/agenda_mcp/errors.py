"""Error types raised by the calendar core and messages for tool responses."""

AUTH_EXPIRED = "Error: Authentication expired. Please re-run OAuth flow (agenda-mcp-auth)."
AUTH_FAILED = "Error: Authorization failed: {message}"
CONFIGURATION_MISSING = "Error: Google OAuth is not configured: {message}"
QUOTA_EXCEEDED = "Error: Google Calendar API quota exceeded. Try again later."
NETWORK_FAILURE = "Error: Could not reach Google Calendar API. Check network connection."
INVALID_DATE = "Error: Invalid date '{value}'. Expected YYYY-MM-DD."
UNEXPECTED_FAILURE = "Error: Unexpected failure: {message}"


class AgendaError(Exception):
    """Base class for calendar core failures."""


class ConfigurationError(AgendaError):
    """OAuth application identifiers are missing."""


class AuthorizationError(AgendaError):
    """The interactive consent flow did not produce a credential."""


class UpstreamError(AgendaError):
    """Google Calendar (or the transport in front of it) rejected or failed a call."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status

    @property
    def is_auth_failure(self) -> bool:
        return self.status == 401

    @property
    def is_quota_exceeded(self) -> bool:
        return self.status in (403, 429) and "quota" in str(self).lower()


def auth_failed(message: str) -> str:
    return AUTH_FAILED.format(message=message)


def configuration_missing(message: str) -> str:
    return CONFIGURATION_MISSING.format(message=message)


def invalid_date(value: str) -> str:
    return INVALID_DATE.format(value=value)


def unexpected_failure(message: str) -> str:
    return UNEXPECTED_FAILURE.format(message=message)


def describe(error: AgendaError) -> str:
    """Render a core failure as a tool response line."""
    if isinstance(error, ConfigurationError):
        return configuration_missing(str(error))
    if isinstance(error, AuthorizationError):
        return auth_failed(str(error))
    if isinstance(error, UpstreamError):
        if error.is_auth_failure:
            return AUTH_EXPIRED
        if error.is_quota_exceeded:
            return QUOTA_EXCEEDED
        if error.status is None or error.status >= 500:
            return NETWORK_FAILURE
    return unexpected_failure(str(error))

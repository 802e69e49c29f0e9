"""Custom exceptions for the gateway application."""


class GatewayException(Exception):
    """Base class for gateway exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code for consistent HTTP response handling.
    """
    status_code: int = 500

    def __init__(self, message: str = "Gateway error"):
        self.message = message
        super().__init__(message)


class InvalidPromptError(GatewayException, ValueError):
    """Raised when a caller passes an unusable prompt or call limit.

    This is the only error ``Dispatcher.generate`` lets through.
    Maps to HTTP 400 Bad Request.
    """
    status_code = 400


class AuthenticationError(GatewayException):
    """Raised when admin token authentication fails.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401

    def __init__(self, detail: str = "Invalid or missing admin token"):
        self.detail = detail
        super().__init__(detail)


class ConfigurationError(GatewayException):
    """Raised when no provider credential is configured."""
    status_code = 503

    def __init__(self, message: str = "API key not configured"):
        super().__init__(message)


class ProviderError(GatewayException):
    """Base class for upstream provider failures.

    Attributes:
        provider: Provider tag value the request was sent to
        code: Machine-readable failure code
    """
    status_code = 502
    code: str = "provider_error"

    def __init__(self, provider: str, message: str):
        self.provider = provider
        super().__init__(message)


class ProviderTransportError(ProviderError):
    """DNS, connection or timeout failure before a response arrived."""
    code = "transport_error"


class ProviderProtocolError(ProviderError):
    """Upstream answered, but not with a usable chat completion.

    ``code`` is one of ``http_status``, ``invalid_json`` or
    ``missing_content``.
    """

    HTTP_STATUS = "http_status"
    INVALID_JSON = "invalid_json"
    MISSING_CONTENT = "missing_content"

    def __init__(
        self,
        provider: str,
        code: str,
        message: str,
        status_code: int | None = None,
        body: str = "",
    ):
        self.code = code
        self.upstream_status = status_code
        self.body = body[:500]
        super().__init__(provider, message)

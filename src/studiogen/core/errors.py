"""Error taxonomy for the generation service.

Every failure the service can produce is one of the exceptions below.  Each
carries an HTTP status and a user-safe message taken from a fixed catalog;
the detail passed to the constructor is for server-side logs only and is
never serialised into a response body.

Catalog
-------
==========================  ======  ==================================================
Kind                        Status  Message
==========================  ======  ==================================================
``invalid_request``         400     Invalid request format. / Invalid request parameters.
``rate_limited``            429     Rate limit exceeded. Please try again later.
``upstream_busy``           429     Service is temporarily busy. Please try again later.
``service_unavailable``     503     Image generation service unavailable. ...
``upstream_error``          500     Failed to generate image. Please try again later.
``unexpected``              500     An unexpected error occurred. Please try again later.
==========================  ======  ==================================================
"""

from __future__ import annotations

from enum import Enum

INVALID_FORMAT_MESSAGE = "Invalid request format."
INVALID_PARAMETERS_MESSAGE = "Invalid request parameters. Please check your input."
RATE_LIMITED_MESSAGE = "Rate limit exceeded. Please try again later."
UPSTREAM_BUSY_MESSAGE = "Service is temporarily busy. Please try again later."
SERVICE_UNAVAILABLE_MESSAGE = "Image generation service unavailable. Please try again later."
GENERATION_FAILED_MESSAGE = "Failed to generate image. Please try again later."
UNEXPECTED_MESSAGE = "An unexpected error occurred. Please try again later."


class ErrorKind(str, Enum):
    """Classified failure kinds surfaced to callers."""

    INVALID_REQUEST = "invalid_request"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_BUSY = "upstream_busy"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UPSTREAM_ERROR = "upstream_error"
    UNEXPECTED = "unexpected"


class StudiogenError(Exception):
    """Base class for all classified service failures.

    Args:
        detail: Internal description, logged server-side only.
        public_message: Override for the catalog message returned to the
            caller.  Must itself come from the catalog above.
        original_error: The underlying exception, kept for debugging.
    """

    kind: ErrorKind = ErrorKind.UNEXPECTED
    status_code: int = 500
    default_message: str = UNEXPECTED_MESSAGE

    def __init__(
        self,
        detail: str | None = None,
        *,
        public_message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(detail or self.default_message)
        self.detail = detail
        self.public_message = public_message or self.default_message
        self.original_error = original_error


class InvalidRequestError(StudiogenError):
    """The request body could not be parsed or failed schema validation."""

    kind = ErrorKind.INVALID_REQUEST
    status_code = 400
    default_message = INVALID_PARAMETERS_MESSAGE


class RateLimitExceededError(StudiogenError):
    """The caller's identity has used up its admissions for the window."""

    kind = ErrorKind.RATE_LIMITED
    status_code = 429
    default_message = RATE_LIMITED_MESSAGE

    def __init__(self, detail: str | None = None, *, retry_after: int = 3600) -> None:
        super().__init__(detail)
        self.retry_after = retry_after


class ConfigurationError(StudiogenError):
    """A required configuration value (the upstream credential) is absent."""

    kind = ErrorKind.SERVICE_UNAVAILABLE
    status_code = 503
    default_message = SERVICE_UNAVAILABLE_MESSAGE


class UpstreamBusyError(StudiogenError):
    """The provider throttled us (HTTP 429)."""

    kind = ErrorKind.UPSTREAM_BUSY
    status_code = 429
    default_message = UPSTREAM_BUSY_MESSAGE


class UpstreamUnavailableError(StudiogenError):
    """The provider refused for billing or quota reasons (HTTP 402)."""

    kind = ErrorKind.SERVICE_UNAVAILABLE
    status_code = 503
    default_message = SERVICE_UNAVAILABLE_MESSAGE


class UpstreamError(StudiogenError):
    """Any other provider failure: non-2xx, missing image URL, or transport."""

    kind = ErrorKind.UPSTREAM_ERROR
    status_code = 500
    default_message = GENERATION_FAILED_MESSAGE

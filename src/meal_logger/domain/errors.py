"""Error taxonomy shared by the gateway and the meal client."""

GENERIC_UPSTREAM_MESSAGE = "Unable to analyze meal right now."


class MealLoggerError(Exception):
    """Base error carrying a user-facing message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MealLoggerError):
    """Caller input is missing or unusable."""

    status_code = 400


class BadRequestError(ValidationError):
    """Gateway request body is malformed or empty."""


class SubmissionInProgressError(MealLoggerError):
    """Another submission is still pending for the session."""

    status_code = 409

    def __init__(
        self, message: str = "A meal is already being analyzed. Please wait."
    ) -> None:
        super().__init__(message)


class SessionNotFoundError(MealLoggerError):
    """Requested logging session does not exist."""

    status_code = 404

    def __init__(self, message: str = "Session not found.") -> None:
        super().__init__(message)


class ConfigurationError(MealLoggerError):
    """Deployment is missing required configuration."""


class UpstreamError(MealLoggerError):
    """Estimation service failed or could not be reached."""

    def __init__(self, message: str = GENERIC_UPSTREAM_MESSAGE) -> None:
        super().__init__(message)


class UpstreamFormatError(UpstreamError):
    """Estimation service returned content that is not a JSON object."""


class UpstreamTimeoutError(UpstreamError):
    """Estimation service did not answer within the configured bound."""


class GatewayResponseError(UpstreamError):
    """Remote gateway answered with an error response."""

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status

from typing import Any


class InputError(Exception):
    """Request parameters are missing or malformed. Raised before any upstream call."""

    def __init__(self, message: str | None = None, missing_fields: list[str] | None = None):
        self.missing_fields = list(missing_fields or [])
        if message is None:
            message = f"Missing required fields: {', '.join(self.missing_fields)}"
        super().__init__(message)
        self.message = message


class ProviderError(Exception):
    """The Cloudbeds API failed or reported failure. Never retried."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: Any = None,
        endpoint: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload
        self.endpoint = endpoint


class ConfigurationError(Exception):
    """No provider or credential is configured for the request."""

    pass

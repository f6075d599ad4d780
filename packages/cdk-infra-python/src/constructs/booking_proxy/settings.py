"""
Deployment settings for the booking proxy, read from CDK context.

Context keys (cdk.json or ``--context``):
- providers: list of provider slots, each with ``slot`` and any of ``name``,
  ``property_id``, ``api_base``, ``booking_url``, ``auth_style``, ``api_key``
- parameter_path: SSM path whose ``<slot>/<field>`` SecureStrings override the slots
- default_property_id, response_language, allowed_origin, request_timeout, log_level

Credentials belong in Parameter Store; ``api_key`` in context is for local
experiments only.
"""

from dataclasses import dataclass, field
from typing import Any, Callable


# Context field -> environment variable (suffixed with _<slot> for slots 2 and 3)
PROVIDER_ENV_NAMES = {
    "api_key": "CLOUDBEDS_API_KEY",
    "property_id": "CLOUDBEDS_PROPERTY_ID",
    "api_base": "CLOUDBEDS_API_BASE",
    "booking_url": "CLOUDBEDS_BOOKING_URL",
    "name": "CLOUDBEDS_PROVIDER_NAME",
    "auth_style": "CLOUDBEDS_AUTH_STYLE",
}

# (function directory, API route, HTTP methods)
HANDLERS = (
    ("get_reservation", "get-reservation", ("GET", "POST")),
    ("get_rates_lite", "get-rates-lite", ("GET", "POST")),
    ("get_reservation_summary", "get-reservation-summary", ("GET", "POST")),
    ("get_price", "get-price", ("GET", "POST")),
    ("build_booking_link", "build-booking-link", ("GET", "POST")),
    ("check_availability", "check-availability", ("GET",)),
    ("can_book", "can-book", ("GET",)),
    ("get_availability", "get-availability", ("GET", "POST")),
    ("get_reservations", "get-reservations", ("GET",)),
    ("reserve", "reserve", ("POST",)),
)

# API Gateway REST integrations give up after 29 seconds
API_INTEGRATION_TIMEOUT_SECONDS = 29


@dataclass(frozen=True)
class ProxySettings:
    providers: list[dict[str, Any]] = field(default_factory=list)
    parameter_path: str = ""
    default_property_id: str = ""
    response_language: str = "en"
    allowed_origin: str = "*"
    request_timeout: int = 8
    log_level: str = "INFO"

    @classmethod
    def from_context(cls, try_get_context: Callable[[str], Any]) -> "ProxySettings":
        """Build settings from a CDK ``node.try_get_context`` callable."""
        providers = try_get_context("providers") or []
        if not isinstance(providers, list):
            raise ValueError("Context value 'providers' must be a list of provider slots")
        request_timeout = int(try_get_context("request_timeout") or 8)
        if not 0 < request_timeout < API_INTEGRATION_TIMEOUT_SECONDS:
            raise ValueError(
                f"Context value 'request_timeout' must be between 1 and {API_INTEGRATION_TIMEOUT_SECONDS - 1} seconds"
            )
        return cls(
            providers=[dict(provider) for provider in providers],
            parameter_path=str(try_get_context("parameter_path") or ""),
            default_property_id=str(try_get_context("default_property_id") or ""),
            response_language=str(try_get_context("response_language") or "en"),
            allowed_origin=str(try_get_context("allowed_origin") or "*"),
            request_timeout=request_timeout,
            log_level=str(try_get_context("log_level") or "INFO"),
        )

    @property
    def function_timeout(self) -> int:
        """Lambda timeout, bounded by how long API Gateway waits for the integration."""
        return API_INTEGRATION_TIMEOUT_SECONDS

    def environment(self) -> dict[str, str]:
        """Lambda environment variables shared by every handler."""
        env = {
            "LOG_LEVEL": self.log_level,
            "REQUEST_TIMEOUT": str(self.request_timeout),
            "RESPONSE_LANGUAGE": self.response_language,
            "ALLOWED_ORIGIN": self.allowed_origin,
        }
        if self.default_property_id:
            env["DEFAULT_PROPERTY_ID"] = self.default_property_id
        if self.parameter_path:
            env["CLOUDBEDS_PARAMETER_PATH"] = self.parameter_path

        for index, provider in enumerate(self.providers, start=1):
            slot = str(provider.get("slot") or index)
            for key, name in PROVIDER_ENV_NAMES.items():
                value = provider.get(key)
                if value:
                    env[name if slot == "1" else f"{name}_{slot}"] = str(value)
        return env

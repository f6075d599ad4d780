"""
Configuration for the booking proxy functions.

Provider credentials and URLs come from the Lambda environment and,
optionally, from AWS Systems Manager Parameter Store. They are read once per
container into an immutable AppConfig that handlers pass down explicitly;
nothing below the handler entry points reads the environment.
"""

import boto3
import logging
import os
from .errors import ConfigurationError
from botocore.exceptions import BotoCoreError, ClientError
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Any


# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.cloudbeds.com/api/v1.3"
PROVIDER_SLOTS = ("1", "2", "3")
AUTH_BEARER = "bearer"
AUTH_API_KEY = "api_key"

# Parameter Store names under <path>/<slot>/ and the ProviderConfig field each one sets
PARAMETER_FIELDS = {
    "api_key": "api_key",
    "property_id": "property_id",
    "api_base": "api_base",
    "booking_url": "booking_base",
    "name": "name",
    "auth_style": "auth_style",
}


def infer_auth_style(api_key: str, explicit: str = "") -> str:
    """
    Pick the authentication header style for a credential.

    Cloudbeds OAuth access tokens start with ``cbat_`` and go in a bearer
    Authorization header; API keys go in ``x-api-key``.
    """
    explicit = (explicit or "").strip().lower().replace("-", "_")
    if explicit in (AUTH_BEARER, AUTH_API_KEY):
        return explicit
    if explicit == "x_api_key":
        return AUTH_API_KEY
    return AUTH_BEARER if api_key.startswith("cbat_") else AUTH_API_KEY


@dataclass(frozen=True)
class ProviderConfig:
    """
    One Cloudbeds property the proxy can talk to.
    """

    slot: str
    name: str
    property_id: str = ""
    api_key: str = ""
    api_base: str = DEFAULT_API_BASE
    booking_base: str = ""
    auth_style: str = AUTH_API_KEY

    def auth_headers(self) -> dict[str, str]:
        """Return the credential header for this provider's auth style."""
        if self.auth_style == AUTH_BEARER:
            return {"Authorization": f"Bearer {self.api_key}"}
        return {"x-api-key": self.api_key}

    def is_empty(self) -> bool:
        return not (self.api_key or self.property_id or self.booking_base)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable configuration shared by every handler in a container.
    """

    providers: tuple[ProviderConfig, ...] = field(default_factory=tuple)
    default_property_id: str = ""
    response_language: str = "en"
    request_timeout: float = 8.0
    allowed_origin: str = "*"

    @property
    def registry(self) -> "ProviderRegistry":
        return ProviderRegistry(self.providers)


class ProviderRegistry:
    """Look up providers by property ID or slot."""

    def __init__(self, providers: tuple[ProviderConfig, ...]):
        self.providers = tuple(providers)

    def __len__(self) -> int:
        return len(self.providers)

    def for_property(self, property_id: str) -> ProviderConfig | None:
        """Return the provider configured for a property ID, if any."""
        wanted = str(property_id or "").strip()
        if not wanted:
            return None
        for provider in self.providers:
            if provider.property_id == wanted:
                return provider
        return None

    def for_slot(self, slot: str) -> ProviderConfig | None:
        wanted = str(slot or "").strip()
        for provider in self.providers:
            if provider.slot == wanted:
                return provider
        return None

    def default(self) -> ProviderConfig | None:
        """Return the first provider that has a credential."""
        for provider in self.providers:
            if provider.api_key:
                return provider
        return None

    def resolve(self, property_id: str = "") -> ProviderConfig:
        """
        Return the provider to use for a property.

        A property with its own provider uses it. Otherwise the default
        provider's credential is used with the requested property ID, which
        covers accounts whose single key is scoped to several properties.

        Raises:
            ConfigurationError: If no provider has a credential
        """
        provider = self.for_property(property_id)
        if provider is not None and provider.api_key:
            return provider
        fallback = self.default()
        if fallback is None:
            raise ConfigurationError("No Cloudbeds credential is configured")
        if property_id and property_id != fallback.property_id:
            return replace(fallback, property_id=str(property_id))
        return fallback

    def ordered(self, property_id: str = "", slot: str = "") -> list[ProviderConfig]:
        """
        Return every provider, the requested one first and the rest in slot order.

        A property ID takes precedence over a slot.
        """
        ordered = list(self.providers)
        hit = self.for_property(property_id) if property_id else self.for_slot(slot) if slot else None
        if hit is not None:
            ordered.remove(hit)
            ordered.insert(0, hit)
        return ordered


def _suffixed(name: str, slot: str) -> str:
    return name if slot == "1" else f"{name}_{slot}"


def _providers_from_environ(environ: Mapping[str, str]) -> dict[str, dict[str, str]]:
    shared_base = environ.get("CLOUDBEDS_API_BASE") or DEFAULT_API_BASE
    raw: dict[str, dict[str, str]] = {}
    for slot in PROVIDER_SLOTS:
        raw[slot] = {
            "api_key": environ.get(_suffixed("CLOUDBEDS_API_KEY", slot), ""),
            "property_id": environ.get(_suffixed("CLOUDBEDS_PROPERTY_ID", slot), ""),
            "api_base": environ.get(_suffixed("CLOUDBEDS_API_BASE", slot)) or shared_base,
            "booking_base": environ.get(_suffixed("CLOUDBEDS_BOOKING_URL", slot), ""),
            "name": environ.get(_suffixed("CLOUDBEDS_PROVIDER_NAME", slot)) or f"PROVIDER {slot}",
            "auth_style": environ.get(_suffixed("CLOUDBEDS_AUTH_STYLE", slot), ""),
        }
    return raw


def _load_parameters(path: str, ssm_client: Any) -> dict[str, dict[str, str]]:
    """
    Read provider overrides from Parameter Store.

    Parameters are named ``<path>/<slot>/<field>``, e.g.
    ``/booking_proxy/providers/2/api_key``.

    Raises:
        ConfigurationError: If Parameter Store cannot be read
    """
    prefix = path.rstrip("/") + "/"
    overrides: dict[str, dict[str, str]] = {}
    try:
        if ssm_client is None:
            ssm_client = boto3.client("ssm")
        paginator = ssm_client.get_paginator("get_parameters_by_path")
        count = 0
        for page in paginator.paginate(Path=prefix, Recursive=True, WithDecryption=True):
            for param in page.get("Parameters", []):
                count += 1
                relative = param["Name"][len(prefix) :].strip("/").split("/")
                if len(relative) != 2 or relative[1] not in PARAMETER_FIELDS:
                    logger.warning(f"Ignoring unrecognised parameter {param['Name']}")
                    continue
                slot, name = relative
                overrides.setdefault(slot, {})[PARAMETER_FIELDS[name]] = param["Value"]
        logger.info(f"Loaded {count} parameters from Parameter Store path {prefix}")
    except (BotoCoreError, ClientError) as e:
        raise ConfigurationError(f"Failed to load configuration from Parameter Store: {e}") from e
    return overrides


def load_config(environ: Mapping[str, str] | None = None, ssm_client: Any = None) -> AppConfig:
    """
    Build the AppConfig from an environment mapping.

    Args:
        environ: Environment variables (defaults to ``os.environ``)
        ssm_client: Optional boto3 SSM client, created on demand when
            ``CLOUDBEDS_PARAMETER_PATH`` is set

    Returns:
        AppConfig with empty provider slots dropped
    """
    environ = os.environ if environ is None else environ
    raw = _providers_from_environ(environ)

    parameter_path = environ.get("CLOUDBEDS_PARAMETER_PATH", "")
    if parameter_path:
        for slot, values in _load_parameters(parameter_path, ssm_client).items():
            raw.setdefault(slot, {"api_base": DEFAULT_API_BASE, "name": f"PROVIDER {slot}"}).update(values)

    providers = []
    for slot in sorted(raw):
        values = raw[slot]
        api_key = values.get("api_key", "")
        provider = ProviderConfig(
            slot=slot,
            name=values.get("name") or f"PROVIDER {slot}",
            property_id=str(values.get("property_id", "")).strip(),
            api_key=api_key,
            api_base=(values.get("api_base") or DEFAULT_API_BASE).rstrip("/"),
            booking_base=values.get("booking_base", ""),
            auth_style=infer_auth_style(api_key, values.get("auth_style", "")),
        )
        if not provider.is_empty():
            providers.append(provider)

    try:
        timeout = float(environ.get("REQUEST_TIMEOUT", "8"))
    except ValueError:
        logger.warning("REQUEST_TIMEOUT is not a number, using 8 seconds")
        timeout = 8.0

    language = environ.get("RESPONSE_LANGUAGE", "en").strip().lower()

    config = AppConfig(
        providers=tuple(providers),
        default_property_id=environ.get("DEFAULT_PROPERTY_ID", "") or (providers[0].property_id if providers else ""),
        response_language=language if language in ("en", "es") else "en",
        request_timeout=timeout,
        allowed_origin=environ.get("ALLOWED_ORIGIN", "*") or "*",
    )
    logger.info(f"Configured {len(config.providers)} Cloudbeds provider(s)")
    return config


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Load the configuration once per Lambda container."""
    return load_config()

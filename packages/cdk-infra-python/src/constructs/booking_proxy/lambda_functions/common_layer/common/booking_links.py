"""
Booking-engine deep links.

Each provider has a public Cloudbeds booking-engine URL. A link pre-fills the
stay by appending query parameters to it; optional parameters are only added
when they carry a value.
"""

import logging
from .cloudbeds_client import CloudbedsClient, plan_nightly_rates
from .config import ProviderConfig
from .errors import ProviderError
from .rate_plans import plan_rate_id, plan_room_type_ids
from .stay_rules import evaluate
from dataclasses import dataclass
from urllib.parse import urlencode


# Configure logging
logger = logging.getLogger(__name__)

LINK_SEPARATOR = " || "


@dataclass(frozen=True)
class LinkRequest:
    """Stay and booking options for a deep link."""

    checkin: str
    checkout: str
    adults: int = 2
    children: int = 0
    currency: str = ""
    room_type_id: str = ""
    rate_plan_id: str = ""
    promo_code: str = ""


@dataclass
class LinkAttempt:
    """What happened when trying one provider."""

    name: str
    url: str = ""
    reason: str = ""


def build_booking_link(booking_base: str, request: LinkRequest) -> str:
    """
    Build a booking-engine URL for a stay.

    Args:
        booking_base: The provider's booking-engine URL
        request: Stay and booking options

    Returns:
        The URL with the stay appended as query parameters
    """
    params = {
        "checkin": request.checkin,
        "checkout": request.checkout,
        "adults": str(request.adults),
        "children": str(request.children),
    }
    optional = {
        "currency": request.currency,
        "roomTypeId": request.room_type_id,
        "ratePlanId": request.rate_plan_id,
        "promoCode": request.promo_code,
    }
    params.update({key: value for key, value in optional.items() if value})
    return f"{booking_base}?{urlencode(params)}"


def attempt_provider(provider: ProviderConfig, request: LinkRequest, timeout: float = 8.0) -> LinkAttempt:
    """
    Check one provider's rate plans for the stay and build its link if the stay is bookable.

    Never raises; every failure is recorded as the attempt's reason.
    """
    attempt = LinkAttempt(name=provider.name)
    if not provider.api_key:
        attempt.reason = "Missing API key"
        return attempt
    if not provider.property_id:
        attempt.reason = "Missing property ID"
        return attempt
    if not provider.booking_base:
        attempt.reason = "Missing booking link"
        return attempt

    client = CloudbedsClient(provider, timeout=timeout)
    try:
        plans = client.get_rate_plans(
            request.checkin, request.checkout, request.adults, request.children, request.promo_code
        )
    except ProviderError as e:
        logger.warning(f"Rate plan lookup failed for {provider.name}: {e.message}")
        attempt.reason = e.message
        return attempt

    if not plans:
        attempt.reason = "No plans found"
        return attempt

    candidates = [
        plan
        for plan in plans
        if (not request.rate_plan_id or plan_rate_id(plan) == request.rate_plan_id)
        and (not request.room_type_id or request.room_type_id in plan_room_type_ids(plan))
    ]
    if not candidates:
        attempt.reason = "No matching room/rate plan"
        return attempt

    verdict = evaluate(request.checkin, request.checkout, plan_nightly_rates(candidates[0]))
    logger.info(f"Stay verdict for {provider.name}: {verdict.code}")
    if not verdict.valid:
        attempt.reason = verdict.reason
        return attempt

    attempt.url = build_booking_link(provider.booking_base, request)
    return attempt


def collect_booking_links(
    providers: list[ProviderConfig], request: LinkRequest, fallback: bool = True, timeout: float = 8.0
) -> list[LinkAttempt]:
    """
    Try providers in order and record each attempt.

    With fallback every provider is tried; without it the first failing
    provider stops the search.
    """
    attempts = []
    for provider in providers:
        attempt = attempt_provider(provider, request, timeout=timeout)
        attempts.append(attempt)
        if not attempt.url and not fallback:
            break
    return attempts


def summarize_attempts(attempts: list[LinkAttempt]) -> str:
    """Join found links, or describe why each provider failed."""
    links = [attempt.url for attempt in attempts if attempt.url]
    if links:
        return LINK_SEPARATOR.join(links)
    reasons = " | ".join(f"{attempt.name}: {attempt.reason or 'failed'}" for attempt in attempts)
    return f"ERROR: {reasons}"

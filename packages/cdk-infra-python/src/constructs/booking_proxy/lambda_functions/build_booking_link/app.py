import logging
import os
from common.booking_links import LinkRequest, collect_booking_links, summarize_attempts
from common.config import get_config
from common.errors import InputError
from common.request_utils import (
    first_value,
    get_params,
    nights_between,
    normalize_currency,
    normalize_date,
    to_bool,
    to_int,
    to_str,
)
from common.response_utils import build_link_response


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET/POST /api/build-booking-link.

    Checks each configured property for the stay (requested property or
    provider slot first) and returns booking-engine links for every property
    where the stay is bookable.

    Parameters (query or body):
    - startDate / checkin, endDate / checkout: stay dates (required)
    - adults, children, currency, roomTypeId, ratePlanId, promoCode
    - propertyID: property to try first
    - provider: slot (1, 2, 3) to try first when no propertyID is given
    - fallback: keep trying other properties after a failure (default true)

    Returns:
        Always HTTP 200 with {success: true, url}. url holds the links joined
        by " || ", or "ERROR: ..." describing each attempt.
    """
    try:
        params = get_params(event)
        checkin = normalize_date(first_value(params, "startDate", "checkin"))
        checkout = normalize_date(first_value(params, "endDate", "checkout"))
        if not checkin or not checkout:
            return build_link_response("ERROR: Missing check-in or check-out (YYYY-MM-DD).")
        if nights_between(checkin, checkout) <= 0:
            return build_link_response("ERROR: checkout must be after checkin")

        config = get_config()
        providers = config.registry.ordered(
            property_id=to_str(first_value(params, "propertyID", "propertyId")),
            slot=to_str(params.get("provider")),
        )
        if not providers:
            return build_link_response("ERROR: No providers configured.")

        request = LinkRequest(
            checkin=checkin,
            checkout=checkout,
            adults=to_int(params.get("adults"), 2),
            children=to_int(params.get("children"), 0),
            currency=normalize_currency(params.get("currency")),
            room_type_id=to_str(first_value(params, "roomTypeId", "roomTypeID")),
            rate_plan_id=to_str(params.get("ratePlanId")),
            promo_code=to_str(params.get("promoCode")),
        )
        attempts = collect_booking_links(
            providers, request, fallback=to_bool(params.get("fallback"), True), timeout=config.request_timeout
        )
        result = summarize_attempts(attempts)
        logger.info(f"Booking link result: {result}")
        return build_link_response(result)

    except InputError as e:
        return build_link_response(f"ERROR: {e.message}")
    except Exception:
        logger.exception("Unexpected error building booking link")
        return build_link_response("ERROR: Unexpected server error.")

import logging
import os
from common.cloudbeds_client import CloudbedsClient
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.rate_plans import best_price, filter_plans
from common.request_utils import first_value, get_params, nights_between, parse_stay_params, to_str
from common.response_utils import build_price_response


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def quote_price(params: dict, config) -> float:
    """
    Price a stay for the requested room type.

    Only properties with their own configured provider are priced. Returns 0
    when the stay cannot be priced for a business reason.
    """
    stay = parse_stay_params(params)
    if not stay["property_id"] or not stay["checkin"] or not stay["checkout"]:
        return 0
    if nights_between(stay["checkin"], stay["checkout"]) <= 0:
        return 0

    provider = config.registry.for_property(stay["property_id"])
    if provider is None or not provider.api_key:
        logger.info(f"No provider configured for property {stay['property_id']}")
        return 0

    room_type_id = to_str(first_value(params, "roomTypeID", "roomTypeId"))
    room_type_name = to_str(first_value(params, "roomTypeName", "roomType", "room"))
    rate_plan_id = to_str(params.get("ratePlanId"))

    client = CloudbedsClient(provider, timeout=config.request_timeout)
    plans = client.get_rate_plans(stay["checkin"], stay["checkout"], stay["adults"], stay["children"])
    candidates = filter_plans(plans, room_type_id, room_type_name, rate_plan_id)
    best = best_price(candidates, stay["checkin"], stay["checkout"], room_type_id, room_type_name)
    return best.amount if best else 0


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET/POST /api/get-price.

    Returns only the total price for the requested room type at the requested
    property. Any failure (missing input, unknown property, Cloudbeds error,
    unbookable stay) yields a total of 0.

    Returns:
        Always HTTP 200 with {totalPrice}
    """
    try:
        config = get_config()
        amount = quote_price(get_params(event), config)
    except InputError as e:
        logger.warning(f"Invalid request: {e.message}")
        amount = 0
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        amount = 0
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        amount = 0
    except Exception:
        logger.exception("Unexpected error pricing stay")
        amount = 0

    return build_price_response(amount)

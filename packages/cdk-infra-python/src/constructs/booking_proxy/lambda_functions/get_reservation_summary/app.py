import logging
import os
from common.cloudbeds_client import CloudbedsClient
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.rate_plans import choose_plan, summarize_plan
from common.request_utils import get_params, nights_between, parse_stay_params, require
from common.response_utils import build_error_response, build_success_response


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET/POST /api/get-reservation-summary.

    Summarizes the most relevant rate plan for a stay in a shape the bot can
    read directly.

    Returns:
        {success, startDate, endDate, nights, adults, children, roomRate, minLos,
         rateID, roomTypeID, roomTypeName, roomsAvailable, arrival, departure, nightly}
    """
    try:
        config = get_config()
        stay = parse_stay_params(get_params(event))
        require(startDate=stay["checkin"], endDate=stay["checkout"])

        nights = nights_between(stay["checkin"], stay["checkout"])
        if nights <= 0:
            return build_error_response(200, "checkout must be after checkin")

        provider = config.registry.resolve(stay["property_id"] or config.default_property_id)
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        plans = client.get_rate_plans(stay["checkin"], stay["checkout"], stay["adults"], stay["children"])

        body = {
            "startDate": stay["checkin"],
            "endDate": stay["checkout"],
            "nights": nights,
            "adults": stay["adults"],
            "children": stay["children"],
        }

        plan = choose_plan(plans)
        if plan is None:
            body.update({"roomRate": 0, "minLos": 1, "roomsAvailable": 0, "nightly": []})
            return build_success_response(body)

        body.update(summarize_plan(plan, stay["checkin"], stay["checkout"]))
        return build_success_response(body)

    except InputError as e:
        return build_error_response(400, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_error_response(500, str(e))
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        return build_error_response(502, e.message)
    except Exception as e:
        logger.exception("Unexpected error building reservation summary")
        return build_error_response(500, str(e))

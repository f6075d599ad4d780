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
    Handler for GET/POST /api/get-rates-lite.

    Returns only the stay total quoted by Cloudbeds and the minimum length of
    stay, for chat tools that cannot read the full rate plan.

    Returns:
        {success, roomRate, minLos}; roomRate 0 and minLos 1 when there are no plans
    """
    try:
        config = get_config()
        stay = parse_stay_params(get_params(event))
        require(startDate=stay["checkin"], endDate=stay["checkout"])
        if nights_between(stay["checkin"], stay["checkout"]) <= 0:
            raise InputError("endDate must be after startDate")

        provider = config.registry.resolve(stay["property_id"] or config.default_property_id)
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        plans = client.get_rate_plans(stay["checkin"], stay["checkout"], stay["adults"], stay["children"])

        plan = choose_plan(plans)
        if plan is None:
            return build_success_response({"roomRate": 0, "minLos": 1})

        summary = summarize_plan(plan, stay["checkin"], stay["checkout"])
        return build_success_response({"roomRate": summary["roomRate"], "minLos": summary["minLos"]})

    except InputError as e:
        return build_error_response(400, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_error_response(500, str(e))
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        return build_error_response(502, e.message)
    except Exception as e:
        logger.exception("Unexpected error fetching rates")
        return build_error_response(500, str(e))

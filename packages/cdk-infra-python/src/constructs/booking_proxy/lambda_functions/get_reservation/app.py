import logging
import os
from common import stay_rules
from common.cloudbeds_client import CloudbedsClient, plan_nightly_rates
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.request_utils import get_params, parse_stay_params
from common.response_utils import build_verdict_response
from common.stay_rules import StayVerdict


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))


def check_stay(params: dict, config) -> StayVerdict:
    """
    Fetch the property's rate plans and evaluate the stay against the first one.

    Raises:
        ConfigurationError: If no credential is configured
        ProviderError: If Cloudbeds fails
    """
    stay = parse_stay_params(params)
    if not stay["checkin"] or not stay["checkout"]:
        return StayVerdict.invalid(stay_rules.MISSING_DATES, "missing check-in or check-out date (YYYY-MM-DD)")

    verdict = stay_rules.evaluate(stay["checkin"], stay["checkout"], [])
    if verdict.code == stay_rules.INVALID_DATE_RANGE:
        return verdict

    provider = config.registry.resolve(stay["property_id"] or config.default_property_id)
    client = CloudbedsClient(provider, timeout=config.request_timeout)
    plans = client.get_rate_plans(stay["checkin"], stay["checkout"], stay["adults"], stay["children"])
    if not plans:
        return StayVerdict.invalid(stay_rules.NO_RATE_PLANS, "no rate plans available for these dates")

    return stay_rules.evaluate(stay["checkin"], stay["checkout"], plan_nightly_rates(plans[0]))


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET/POST /api/get-reservation.

    Tells the chat tool whether a stay can be booked and, if not, why.

    Parameters (query or body):
    - propertyID: Cloudbeds property (defaults to the configured property)
    - startDate / checkin, endDate / checkout: stay dates
    - adults, children: occupancy

    Returns:
        Always HTTP 200 with {valid, minimumNightsRequiredToStay, reason?}
    """
    config = None
    try:
        config = get_config()
        params = get_params(event)
        verdict = check_stay(params, config)
        logger.info(f"Stay verdict: {verdict.code}")
        return build_verdict_response(verdict, config.response_language)

    except InputError as e:
        logger.warning(f"Invalid request: {e.message}")
        verdict = StayVerdict.invalid(stay_rules.INVALID_DATE_RANGE, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        verdict = StayVerdict.invalid(stay_rules.CONFIGURATION_ERROR, "server configuration missing")
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        verdict = StayVerdict.invalid(stay_rules.NO_RATE_PLANS, f"rate lookup failed: {e.message}")
    except Exception:
        logger.exception("Unexpected error evaluating stay")
        verdict = StayVerdict.invalid(stay_rules.INTERNAL_ERROR, "error processing the request")

    language = config.response_language if config else os.environ.get("RESPONSE_LANGUAGE", "en")
    return build_verdict_response(verdict, language)

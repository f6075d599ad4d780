import logging
import os
from common.cloudbeds_client import CloudbedsClient
from common.config import get_config
from common.errors import ConfigurationError, InputError, ProviderError
from common.request_utils import get_params, http_method, normalize_date, to_str
from common.response_utils import build_error_response, build_success_response


logger = logging.getLogger()
logger.setLevel(os.environ.get("LOG_LEVEL", "INFO"))

FILTER_FIELDS = ("reservationID", "email", "status", "propertyID", "page", "limit")


def read_filters(params: dict) -> dict[str, str]:
    """Collect the getReservations filters present in the request."""
    filters = {
        "startDate": normalize_date(params.get("startDate")),
        "endDate": normalize_date(params.get("endDate")),
    }
    for field in FILTER_FIELDS:
        filters[field] = to_str(params.get(field))
    return {key: value for key, value in filters.items() if value}


def handler(event, context):  # noqa: ARG001
    """
    Handler for GET /api/get-reservations.

    Lists reservations with optional filters: startDate, endDate,
    reservationID, email, status, propertyID, page, limit.

    Returns:
        {success, data} where data is the Cloudbeds payload
    """
    if http_method(event) != "GET":
        return build_error_response(405, "Use GET.")

    try:
        config = get_config()
        filters = read_filters(get_params(event))

        provider = config.registry.resolve(filters.get("propertyID", ""))
        client = CloudbedsClient(provider, timeout=config.request_timeout)
        data = client.get_reservations(filters)
        return build_success_response({"data": data})

    except InputError as e:
        return build_error_response(400, e.message)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return build_error_response(500, str(e))
    except ProviderError as e:
        logger.warning(f"Cloudbeds error: {e.message}")
        return build_error_response(e.status_code or 502, e.message, extra={"cloudbeds": e.payload})
    except Exception as e:
        logger.exception("Unexpected error listing reservations")
        return build_error_response(500, str(e))

import json
from . import stay_rules
from .stay_rules import StayVerdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any


# Verdict reasons in Spanish, keyed by verdict code. {n} is the minimum stay.
SPANISH_REASONS = {
    stay_rules.MISSING_DATES: "Fechas inválidas: faltan check-in o check-out (usar YYYY-MM-DD).",
    stay_rules.INVALID_DATE_RANGE: "Fechas inválidas: el check-out debe ser posterior al check-in.",
    stay_rules.MALFORMED_RATE_DATA: "No se pudieron leer las tarifas para ese rango.",
    stay_rules.NO_RATE_PLANS: "No hay planes/tarifas disponibles para ese rango.",
    stay_rules.INCOMPLETE_RATE_DATA: "No hay datos de tarifa para todas las noches solicitadas.",
    stay_rules.MINIMUM_STAY: "La estadía mínima es de {n} noches.",
    stay_rules.CLOSED_TO_ARRIVAL: "No se permite llegada en la fecha seleccionada.",
    stay_rules.CLOSED_TO_DEPARTURE: "No se permite salida en la fecha seleccionada.",
    stay_rules.NO_AVAILABILITY: "No hay disponibilidad en una o más noches.",
    stay_rules.NO_RATE: "No hay tarifa publicada para una o más noches.",
    stay_rules.CONFIGURATION_ERROR: "Configuración del servidor faltante.",
    stay_rules.INTERNAL_ERROR: "Error al procesar la solicitud.",
}
SPANISH_FALLBACK = "Error al procesar la solicitud."


def build_response(status_code: int, body: Any, headers: dict[str, str] | None = None) -> dict[str, Any]:
    """
    Build an API Gateway proxy response.

    Args:
        status_code: HTTP status code
        body: Response body (will be converted to JSON)
        headers: Optional headers merged over the standard ones

    Returns:
        API Gateway compatible response dictionary
    """
    standard_headers = {
        "Content-Type": "application/json",
        "Cache-Control": "no-store",
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Headers": "Content-Type,Authorization",
        "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
    }

    if headers:
        standard_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": standard_headers,
        "body": json.dumps(body, default=json_serializer, ensure_ascii=False),
    }


def build_error_response(
    status_code: int, message: str, extra: dict[str, Any] | None = None, message_key: str = "message"
) -> dict[str, Any]:
    """
    Build a ``{success: false, <message_key>: message}`` response that reflects the status.

    Args:
        status_code: HTTP status code
        message: Human-readable error message
        extra: Optional additional fields for the body
        message_key: Body key for the message (``message`` or ``error``)
    """
    body = {"success": False, message_key: message}
    if extra:
        body.update(extra)
    return build_response(status_code, body)


def build_success_response(body: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a 200 ``{success: true, ...}`` response."""
    success_body: dict[str, Any] = {"success": True}
    if body:
        success_body.update(body)
    return build_response(200, success_body)


def localize_reason(verdict: StayVerdict, language: str = "en") -> str:
    """Render a verdict's reason in the configured response language."""
    if language != "es":
        return verdict.reason
    template = SPANISH_REASONS.get(verdict.code)
    if template is None:
        return SPANISH_FALLBACK
    return template.format(n=verdict.minimum_nights_required)


def build_verdict_response(verdict: StayVerdict, language: str = "en") -> dict[str, Any]:
    """
    Always-200 stay verdict envelope: ``{valid, minimumNightsRequiredToStay, reason?}``.

    ``reason`` is only present on invalid verdicts.
    """
    body: dict[str, Any] = {
        "valid": verdict.valid,
        "minimumNightsRequiredToStay": verdict.minimum_nights_required,
    }
    if not verdict.valid:
        body["reason"] = localize_reason(verdict, language)
    return build_response(200, body)


def build_price_response(amount: float) -> dict[str, Any]:
    """Always-200 price envelope: ``{totalPrice}``; 0 means no price could be found."""
    return build_response(200, {"totalPrice": amount})


def build_link_response(url: str) -> dict[str, Any]:
    """Always-200 link envelope: ``{success: true, url}``; failures travel as ``ERROR: ...`` in url."""
    return build_response(200, {"success": True, "url": str(url or "")})


def json_serializer(obj):
    """
    Serialize objects the default JSON encoder does not handle.
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()

    if isinstance(obj, Decimal):
        return float(obj)

    raise TypeError(f"Type {type(obj)} not serializable")

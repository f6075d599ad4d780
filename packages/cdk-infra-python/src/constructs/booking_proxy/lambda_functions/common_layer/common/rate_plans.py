"""
Helpers for working with Cloudbeds rate plans (``getRatePlans`` with detailed rates).
"""

from .cloudbeds_client import plan_nightly_rates
from .request_utils import normalize_text, to_int, to_num, to_str
from .stay_rules import StayVerdict, evaluate, infer_min_los, stay_window
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any


@dataclass(frozen=True)
class StayPrice:
    """Price of a stay under one plan, with the verdict that allowed or refused it."""

    plan: dict[str, Any]
    verdict: StayVerdict
    amount: float = 0.0

    @property
    def ok(self) -> bool:
        return self.verdict.valid


def choose_plan(plans: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Prefer the first plan quoting a stay total above zero, else the first plan."""
    for plan in plans:
        if to_num(plan.get("roomRate")) > 0:
            return plan
    return plans[0] if plans else None


def plan_room_type_ids(plan: dict[str, Any]) -> set[str]:
    """Room type IDs a plan covers, from the plan itself or its nightly entries."""
    ids = {to_str(plan.get("roomTypeID")), to_str(plan.get("roomTypeId"))}
    for entry in plan.get("roomRateDetailed") or []:
        if isinstance(entry, dict):
            ids.add(to_str(entry.get("roomTypeID") or entry.get("roomTypeId")))
    ids.discard("")
    return ids


def plan_rate_id(plan: dict[str, Any]) -> str:
    return to_str(plan.get("rateID") or plan.get("ratePlanID") or plan.get("ratePlanId"))


def filter_plans(
    plans: list[dict[str, Any]], room_type_id: str = "", room_type_name: str = "", rate_plan_id: str = ""
) -> list[dict[str, Any]]:
    """
    Keep the plans matching the requested rate plan and room type.

    A plan matches a room type by ID, or by name when one name contains the
    other after accent and case folding. No room type criteria keeps every plan.
    """
    wanted_name = normalize_text(room_type_name)
    matches = []
    for plan in plans:
        if rate_plan_id and plan_rate_id(plan) != rate_plan_id:
            continue
        if room_type_id and room_type_id in plan_room_type_ids(plan):
            matches.append(plan)
            continue
        if room_type_id and not wanted_name:
            continue
        plan_name = normalize_text(plan.get("roomTypeName"))
        if not wanted_name or (plan_name and (wanted_name in plan_name or plan_name in wanted_name)):
            matches.append(plan)
    return matches


def score_room_match(plan: dict[str, Any], room_type_id: str = "", room_type_name: str = "") -> int:
    """3 for an ID match, 2 for an exact name, 1 for a partial name, else 0."""
    if room_type_id and room_type_id in plan_room_type_ids(plan):
        return 3
    wanted_name = normalize_text(room_type_name)
    plan_name = normalize_text(plan.get("roomTypeName"))
    if wanted_name and plan_name == wanted_name:
        return 2
    if wanted_name and wanted_name in plan_name:
        return 1
    return 0


def price_stay(plan: dict[str, Any], checkin: str, checkout: str) -> StayPrice:
    """
    Check the stay against a plan's nightly rules and price it.

    The plan's quoted ``roomRate`` is used when positive; otherwise the nightly
    rates of the stay are summed.
    """
    nightly = plan_nightly_rates(plan)
    verdict = evaluate(checkin, checkout, nightly)
    if not verdict.valid:
        return StayPrice(plan=plan, verdict=verdict)
    amount = to_num(plan.get("roomRate"))
    if amount <= 0:
        amount = sum(night.rate for night in stay_window(checkin, checkout, nightly))
    return StayPrice(plan=plan, verdict=verdict, amount=round(amount, 2))


def best_price(
    plans: list[dict[str, Any]], checkin: str, checkout: str, room_type_id: str = "", room_type_name: str = ""
) -> StayPrice | None:
    """
    Return the bookable plan that best matches the room type, cheapest first among equals.
    """
    priced = []
    for plan in plans:
        price = price_stay(plan, checkin, checkout)
        if price.ok:
            priced.append((score_room_match(plan, room_type_id, room_type_name), price))
    if not priced:
        return None
    priced.sort(key=lambda item: (-item[0], item[1].amount))
    return priced[0][1]


def summarize_plan(plan: dict[str, Any], checkin: str, checkout: str) -> dict[str, Any]:
    """
    Summarize a plan for the chat tool: stay-level figures, flags and nightly detail.
    """
    nightly = plan_nightly_rates(plan)
    by_date = {}
    for night in nightly:
        by_date.setdefault(night.date, night)

    start = date.fromisoformat(checkin)
    end = date.fromisoformat(checkout)
    stay_nights = [start + timedelta(days=i) for i in range((end - start).days)]
    arrival = by_date.get(start)
    departure = by_date.get(end)

    return {
        "roomRate": to_num(plan.get("roomRate")),
        "minLos": infer_min_los(by_date, start, stay_nights),
        "rateID": plan_rate_id(plan) or None,
        "roomTypeID": to_str(plan.get("roomTypeID")) or None,
        "roomTypeName": to_str(plan.get("roomTypeName")) or None,
        "roomsAvailable": to_int(plan.get("roomsAvailable"), 0),
        "arrival": {"closedToArrival": bool(arrival and arrival.closed_to_arrival)},
        "departure": {"closedToDeparture": bool(departure and departure.closed_to_departure)},
        "nightly": [night.to_dict() for night in nightly],
    }

"""
Stay validity rules.

Decides whether a stay can be booked from the nightly detail Cloudbeds returns
for a rate plan (``roomRateDetailed``). The rules run in a fixed order and the
first failing rule decides the verdict:

1. every night of the stay has a nightly record
2. the stay is at least the minimum length of stay
3. the check-in date is not closed to arrival
4. the check-out date (or the last night) is not closed to departure
5. every night has at least one room available
6. every night has a published rate above zero

The stay window is half-open: ``[checkin, checkout)``. The check-out date's own
record is only consulted for the closed-to-departure flag.
"""

from .request_utils import to_int, to_num
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any


OK = "ok"
MISSING_DATES = "missing_dates"
INVALID_DATE_RANGE = "invalid_date_range"
MALFORMED_RATE_DATA = "malformed_rate_data"
NO_RATE_PLANS = "no_rate_plans"
INCOMPLETE_RATE_DATA = "incomplete_rate_data"
MINIMUM_STAY = "minimum_stay"
CLOSED_TO_ARRIVAL = "closed_to_arrival"
CLOSED_TO_DEPARTURE = "closed_to_departure"
NO_AVAILABILITY = "no_availability"
NO_RATE = "no_rate"

# Verdicts for stays that could not be evaluated at all
CONFIGURATION_ERROR = "configuration_error"
INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class NightlyRate:
    """
    One night of a rate plan as reported by Cloudbeds.
    """

    date: date
    rate: float = 0.0
    rooms_available: int = 0
    min_los: int = 0
    closed_to_arrival: bool = False
    closed_to_departure: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NightlyRate":
        """
        Create a NightlyRate from a ``roomRateDetailed`` entry.

        Numeric fields coerce leniently (missing or unreadable values become 0).

        Raises:
            ValueError: If the entry has no readable date
        """
        raw_date = str(data.get("date") or "")[:10]
        return cls(
            date=date.fromisoformat(raw_date),
            rate=to_num(data.get("rate"), 0.0),
            rooms_available=to_int(data.get("roomsAvailable"), 0),
            min_los=to_int(data.get("minLos"), 0),
            closed_to_arrival=bool(data.get("closedToArrival")),
            closed_to_departure=bool(data.get("closedToDeparture")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the camelCase shape the chat tool reads."""
        return {
            "date": self.date.isoformat(),
            "rate": self.rate,
            "minLos": self.min_los,
            "roomsAvailable": self.rooms_available,
            "closedToArrival": self.closed_to_arrival,
            "closedToDeparture": self.closed_to_departure,
        }


@dataclass(frozen=True)
class StayVerdict:
    """
    Outcome of evaluating a stay. ``code`` names the rule that decided it.
    """

    valid: bool
    minimum_nights_required: int = 1
    reason: str = ""
    code: str = OK

    @classmethod
    def invalid(cls, code: str, reason: str, minimum_nights_required: int = 1) -> "StayVerdict":
        return cls(valid=False, minimum_nights_required=max(1, minimum_nights_required), reason=reason, code=code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "minimumNightsRequired": self.minimum_nights_required,
            "reason": self.reason,
            "code": self.code,
        }


def _as_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


def _index_records(records: Iterable[Any]) -> dict[date, NightlyRate]:
    """Index records by date, keeping the first record seen for each date."""
    by_date: dict[date, NightlyRate] = {}
    for record in records:
        if not isinstance(record, NightlyRate):
            record = NightlyRate.from_dict(record)
        by_date.setdefault(record.date, record)
    return by_date


def infer_min_los(records_by_date: Mapping[date, NightlyRate], checkin: date, stay_nights: list[date]) -> int:
    """
    Minimum length of stay for a stay starting on checkin.

    The check-in night's own value wins when positive; otherwise the largest
    positive value among the stay's nights; otherwise 1.
    """
    arrival = records_by_date.get(checkin)
    if arrival is not None and arrival.min_los > 0:
        return arrival.min_los
    values = [records_by_date[d].min_los for d in stay_nights if d in records_by_date]
    positive = [v for v in values if v > 0]
    return max(positive) if positive else 1


def evaluate(checkin: Any, checkout: Any, nightly_records: Iterable[Any]) -> StayVerdict:
    """
    Decide whether a stay is bookable.

    Args:
        checkin: Check-in date (``date`` or YYYY-MM-DD string)
        checkout: Check-out date (``date`` or YYYY-MM-DD string)
        nightly_records: NightlyRate instances or raw ``roomRateDetailed`` dicts

    Returns:
        StayVerdict. Never raises; unreadable input gives an invalid verdict.
    """
    start = _as_date(checkin)
    end = _as_date(checkout)
    if start is None or end is None or end <= start:
        return StayVerdict.invalid(INVALID_DATE_RANGE, "invalid date range")

    try:
        by_date = _index_records(nightly_records or [])
    except (AttributeError, TypeError, ValueError):
        return StayVerdict.invalid(MALFORMED_RATE_DATA, "malformed rate data")

    nights = (end - start).days
    stay_nights = [start + timedelta(days=i) for i in range(nights)]
    last_night = stay_nights[-1]
    min_los = infer_min_los(by_date, start, stay_nights)

    if any(d not in by_date for d in stay_nights):
        return StayVerdict.invalid(INCOMPLETE_RATE_DATA, "incomplete rate data for the requested nights", min_los)

    if nights < min_los:
        return StayVerdict.invalid(MINIMUM_STAY, f"minimum stay is {min_los} nights", min_los)

    if by_date[start].closed_to_arrival:
        return StayVerdict.invalid(CLOSED_TO_ARRIVAL, f"closed to arrival on {start.isoformat()}", min_los)

    # Providers put the departure flag on either the checkout date or the last night.
    departure = by_date.get(end)
    if (departure is not None and departure.closed_to_departure) or by_date[last_night].closed_to_departure:
        return StayVerdict.invalid(CLOSED_TO_DEPARTURE, f"closed to departure on {end.isoformat()}", min_los)

    if any(by_date[d].rooms_available <= 0 for d in stay_nights):
        return StayVerdict.invalid(NO_AVAILABILITY, "no availability on one or more nights", min_los)

    if any(by_date[d].rate <= 0 for d in stay_nights):
        return StayVerdict.invalid(NO_RATE, "no published rate on one or more nights", min_los)

    return StayVerdict(valid=True, minimum_nights_required=min_los, reason="", code=OK)


def stay_window(checkin: Any, checkout: Any, nightly_records: Iterable[Any]) -> list[NightlyRate]:
    """
    Return the records covering ``[checkin, checkout)`` in date order.

    Records that cannot be read are skipped.
    """
    start = _as_date(checkin)
    end = _as_date(checkout)
    if start is None or end is None:
        return []
    window = {}
    for record in nightly_records or []:
        if not isinstance(record, NightlyRate):
            try:
                record = NightlyRate.from_dict(record)
            except (AttributeError, TypeError, ValueError):
                continue
        if start <= record.date < end:
            window.setdefault(record.date, record)
    return [window[d] for d in sorted(window)]

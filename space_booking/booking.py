from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import StrEnum
from typing import Any, Iterable
import logging

logger = logging.getLogger(__name__)

HOURS_PER_DAY = 24
ALL_HOURS = frozenset(range(HOURS_PER_DAY))
MAX_HOUR_COUNT = 24


class DurationClass(StrEnum):
    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY = "monthly"


class ReservationConflictError(ValueError):
    pass


class UnbookableDateError(ValueError):
    pass


@dataclass(frozen=True)
class Reservation:
    reservation_id: str
    resource_id: str
    duration: DurationClass | str
    day: date | datetime | str | None
    booker_name: str
    start_hour: int | None = None
    hour_count: int | None = None
    add_ons: frozenset[str] = field(default_factory=frozenset)
    total_price: Decimal = Decimal("0")
    resource_name: str | None = None
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "reservation_id": self.reservation_id,
            "resource_id": self.resource_id,
            "duration": str(self.duration),
            "date": _day_to_text(self.day),
            "start_hour": self.start_hour,
            "hour_count": self.hour_count,
            "add_ons": sorted(self.add_ons),
            "total_price": str(self.total_price),
            "booker_name": self.booker_name,
        }
        if self.resource_name is not None:
            payload["resource_name"] = self.resource_name
        if self.created_at is not None:
            payload["created_at"] = self.created_at.isoformat(timespec="seconds")
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "Reservation":
        """Build a reservation from a stored mapping.

        Only ``reservation_id`` and ``resource_id`` are required. Broken
        hourly fields load as ``None`` so the record occupies no hours
        instead of failing the whole load.
        """
        created_at = data.get("created_at")
        return Reservation(
            reservation_id=str(data["reservation_id"]),
            resource_id=str(data["resource_id"]),
            duration=_parse_duration(data.get("duration")),
            day=_parse_day(data.get("date")),
            booker_name=str(data.get("booker_name") or ""),
            start_hour=_optional_int(data.get("start_hour")),
            hour_count=_optional_int(data.get("hour_count")),
            add_ons=frozenset(str(item) for item in (data.get("add_ons") or [])),
            total_price=_parse_amount(data.get("total_price")),
            resource_name=(str(data["resource_name"]) if data.get("resource_name") is not None else None),
            created_at=(datetime.fromisoformat(str(created_at)) if created_at else None),
        )


def to_calendar_day(value: date | datetime | str | None) -> date | None:
    """Reduce a stored or requested day to a calendar date.

    Aware datetimes are converted to local time first, so a timestamp stored
    in UTC lands on the day the booker picked. Returns None when the value
    cannot be read as a date.
    """
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().date()
        return value.date()
    if isinstance(value, date):
        return value
    return None


def hourly_range(start_hour: int, hour_count: int) -> set[int]:
    """Hours covered by an hourly booking, with anything past 23 dropped."""
    return {hour for hour in range(start_hour, start_hour + hour_count) if 0 <= hour < HOURS_PER_DAY}


def reservation_hours(reservation: Reservation) -> set[int]:
    if reservation.duration != DurationClass.HOURLY:
        return set(ALL_HOURS)

    start_hour = reservation.start_hour
    hour_count = reservation.hour_count
    if not isinstance(start_hour, int) or not isinstance(hour_count, int):
        logger.warning(
            "Reservation %s is hourly but has no usable start_hour/hour_count; ignoring it.",
            reservation.reservation_id,
        )
        return set()
    return hourly_range(start_hour, hour_count)


def occupied_hours(
    resource_id: str,
    day: date | datetime | str,
    reservations: Iterable[Reservation],
) -> set[int]:
    target = to_calendar_day(day)
    if target is None:
        raise ValueError("day must be a calendar date.")

    occupied: set[int] = set()
    for reservation in reservations:
        if reservation.resource_id != resource_id:
            continue
        if to_calendar_day(reservation.day) != target:
            continue
        occupied |= reservation_hours(reservation)
        if len(occupied) == HOURS_PER_DAY:
            break
    return occupied


def available_start_hours(
    resource_id: str,
    day: date | datetime | str,
    reservations: Iterable[Reservation],
) -> list[int]:
    occupied = occupied_hours(resource_id, day, reservations)
    return [hour for hour in range(HOURS_PER_DAY) if hour not in occupied]


def is_date_bookable(
    resource_id: str,
    day: date | datetime | str,
    reservations: Iterable[Reservation],
    today: date | None = None,
) -> bool:
    """Return False for past days and for days with every hour taken.

    A bookable day may still be too full for a particular request; callers
    check that with ``conflicting_hours``.
    """
    target = to_calendar_day(day)
    if target is None:
        raise ValueError("day must be a calendar date.")
    if target < (today or date.today()):
        return False
    return occupied_hours(resource_id, target, reservations) != ALL_HOURS


def requested_hours(duration: DurationClass | str, start_hour: int | None, hour_count: int | None) -> set[int]:
    if duration != DurationClass.HOURLY:
        return set(ALL_HOURS)
    if start_hour is None or hour_count is None:
        return set()
    return hourly_range(start_hour, hour_count)


def conflicting_hours(candidate: Reservation, existing: Iterable[Reservation]) -> set[int]:
    """Hours of ``candidate`` already taken on its day for its resource."""
    target = to_calendar_day(candidate.day)
    if target is None:
        raise ValueError("Reservation day must be a calendar date.")

    occupied = occupied_hours(
        candidate.resource_id,
        target,
        [row for row in existing if row.reservation_id != candidate.reservation_id],
    )
    return occupied & requested_hours(candidate.duration, candidate.start_hour, candidate.hour_count)


def can_book(
    resource_id: str,
    day: date | datetime | str,
    duration: DurationClass | str,
    start_hour: int | None,
    hour_count: int | None,
    reservations: Iterable[Reservation],
) -> bool:
    occupied = occupied_hours(resource_id, day, reservations)
    return not (occupied & requested_hours(duration, start_hour, hour_count))


def _parse_duration(value: Any) -> DurationClass | str:
    text = str(value or "").strip().lower()
    try:
        return DurationClass(text)
    except ValueError:
        return text


def _parse_day(value: Any) -> date | datetime | str | None:
    parsed = to_calendar_day(value)
    return parsed if parsed is not None else value


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _parse_amount(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def _day_to_text(value: date | datetime | str | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)

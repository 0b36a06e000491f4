from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Iterable, Protocol
from uuid import uuid4

from .booking import (
    HOURS_PER_DAY,
    MAX_HOUR_COUNT,
    DurationClass,
    Reservation,
    UnbookableDateError,
    is_date_bookable,
    to_calendar_day,
)
from .pricing import DEFAULT_RATE_TABLE, RateTable, compute_price


class ValidationError(ValueError):
    pass


class ReservationStore(Protocol):
    def load(self, resource_id: str) -> list[Reservation]: ...

    def append(self, reservation: Reservation) -> Reservation: ...


@dataclass(frozen=True)
class BookingRequest:
    resource_id: str
    resource_category: str
    duration: DurationClass | str
    day: date | datetime | str | None
    booker_name: str | None
    start_hour: int = 9
    hour_count: int = 1
    add_ons: Iterable[str] = field(default_factory=tuple)
    resource_name: str | None = None


def assemble_reservation(
    request: BookingRequest,
    rates: RateTable = DEFAULT_RATE_TABLE,
    now: datetime | None = None,
    id_factory: Callable[[], str] | None = None,
) -> Reservation:
    """Validate a booking request and build the reservation to store.

    Raises ValidationError when the date or booker name is missing, or when
    the hourly fields fall outside the allowed ranges. Nothing is built on
    failure.
    """
    if request.day is None or (isinstance(request.day, str) and not request.day.strip()):
        raise ValidationError("Please choose a date for the booking.")
    day = to_calendar_day(request.day)
    if day is None:
        raise ValidationError("Booking date is not a valid calendar date.")

    booker_name = str(request.booker_name or "").strip()
    if not booker_name:
        raise ValidationError("Please enter the name the booking is for.")

    try:
        duration = DurationClass(str(request.duration).strip().lower())
    except ValueError as error:
        raise ValidationError(f"Unknown booking duration: {request.duration}") from error

    start_hour: int | None = None
    hour_count: int | None = None
    if duration == DurationClass.HOURLY:
        start_hour, hour_count = check_hourly_fields(request.start_hour, request.hour_count)

    add_ons = frozenset(str(item).strip() for item in request.add_ons if str(item).strip())
    total_price = compute_price(
        request.resource_category,
        duration,
        hour_count or 0,
        add_ons,
        start_hour or 0,
        rates=rates,
    )

    return Reservation(
        reservation_id=(id_factory or _new_reservation_id)(),
        resource_id=request.resource_id,
        duration=duration,
        day=day,
        booker_name=booker_name,
        start_hour=start_hour,
        hour_count=hour_count,
        add_ons=add_ons,
        total_price=total_price,
        resource_name=request.resource_name,
        created_at=now or datetime.now(),
    )


def check_hourly_fields(start_hour: object, hour_count: object) -> tuple[int, int]:
    """Return the hourly fields as ints, raising ValidationError when out of range."""
    checked_start = _require_int(start_hour, "start_hour")
    checked_count = _require_int(hour_count, "hour_count")
    if not 0 <= checked_start < HOURS_PER_DAY:
        raise ValidationError(f"start_hour must be between 0 and {HOURS_PER_DAY - 1}.")
    if not 1 <= checked_count <= MAX_HOUR_COUNT:
        raise ValidationError(f"hour_count must be between 1 and {MAX_HOUR_COUNT}.")
    return checked_start, checked_count


def submit_reservation(
    store: ReservationStore,
    request: BookingRequest,
    rates: RateTable = DEFAULT_RATE_TABLE,
    now: datetime | None = None,
) -> Reservation:
    effective_now = now or datetime.now()
    reservation = assemble_reservation(request, rates=rates, now=effective_now)

    existing = store.load(reservation.resource_id)
    if not is_date_bookable(reservation.resource_id, reservation.day, existing, today=effective_now.date()):
        raise UnbookableDateError("This date is in the past or already fully booked.")

    return store.append(reservation)


def _require_int(value: object, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a whole number.")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError(f"{label} must be a whole number.")
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError) as error:
        raise ValidationError(f"{label} must be a whole number.") from error


def _new_reservation_id() -> str:
    return str(uuid4())

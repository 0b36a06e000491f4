from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Iterable, Mapping
import logging

import yaml

from .booking import DurationClass

logger = logging.getLogger(__name__)

PEAK_START_HOUR = 9
PEAK_END_HOUR = 17
PEAK_MULTIPLIER = Decimal("1.3")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class RateTable:
    base_rates: Mapping[tuple[str, str], Decimal] = field(default_factory=dict)
    add_on_prices: Mapping[str, Decimal] = field(default_factory=dict)

    def base_rate(self, resource_category: str, duration: DurationClass | str) -> Decimal:
        key = (resource_category, str(duration))
        rate = self.base_rates.get(key)
        if rate is None:
            logger.warning("No base rate for %s/%s; pricing it at zero.", key[0], key[1])
            return Decimal("0")
        return rate

    def add_on_price(self, add_on_id: str) -> Decimal:
        price = self.add_on_prices.get(add_on_id)
        if price is None:
            logger.warning("Unknown add-on %r; pricing it at zero.", add_on_id)
            return Decimal("0")
        return price

    def categories(self) -> list[str]:
        return sorted({category for category, _ in self.base_rates})


DEFAULT_RATE_TABLE = RateTable(
    base_rates={
        ("meeting_room", "hourly"): Decimal("25"),
        ("meeting_room", "daily"): Decimal("150"),
        ("meeting_room", "monthly"): Decimal("2500"),
        ("private_office", "hourly"): Decimal("40"),
        ("private_office", "daily"): Decimal("250"),
        ("private_office", "monthly"): Decimal("4000"),
        ("hot_desk", "hourly"): Decimal("8"),
        ("hot_desk", "daily"): Decimal("40"),
        ("hot_desk", "monthly"): Decimal("600"),
    },
    add_on_prices={
        "projector": Decimal("15"),
        "whiteboard": Decimal("5"),
        "parking": Decimal("10"),
        "lockers": Decimal("8"),
        "printer": Decimal("12"),
    },
)


def is_peak_hour(hour: int) -> bool:
    return PEAK_START_HOUR <= hour <= PEAK_END_HOUR


def peak_hour_count(start_hour: int, hour_count: int) -> int:
    return sum(1 for hour in range(start_hour, start_hour + max(hour_count, 0)) if is_peak_hour(hour))


def compute_price(
    resource_category: str,
    duration: DurationClass | str,
    hour_count: int,
    add_on_ids: Iterable[str],
    start_hour: int,
    rates: RateTable = DEFAULT_RATE_TABLE,
) -> Decimal:
    """Return the unrounded total for a candidate reservation.

    Hourly bookings charge the base rate for every hour, with each hour in the
    peak window (09-17 inclusive) charged at 1.3x. Daily and monthly bookings
    charge their flat rate. Each distinct add-on is added once; unknown keys
    price at zero.
    """
    base = rates.base_rate(resource_category, duration)

    if duration == DurationClass.HOURLY:
        total = Decimal("0")
        for hour in range(start_hour, start_hour + max(hour_count, 0)):
            total += base * PEAK_MULTIPLIER if is_peak_hour(hour) else base
    else:
        total = base

    for add_on_id in set(add_on_ids):
        total += rates.add_on_price(add_on_id)
    return total


def round_price(amount: Decimal) -> Decimal:
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_price(amount: Decimal) -> str:
    return f"{round_price(amount):.2f}"


def load_rate_table(path: str | Path) -> RateTable:
    """Read a rate table from YAML.

    Expected layout::

        base_rates:
          meeting_room: {hourly: 25, daily: 150, monthly: 2500}
        add_ons:
          projector: 15
    """
    try:
        payload = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    except yaml.YAMLError as error:
        raise ValueError(f"Rate file is not valid YAML: {path}") from error

    if not isinstance(payload, dict):
        raise ValueError("Rate file must contain a mapping at the top level.")

    raw_base_rates = payload.get("base_rates") or {}
    raw_add_ons = payload.get("add_ons") or {}
    if not isinstance(raw_base_rates, dict) or not isinstance(raw_add_ons, dict):
        raise ValueError("base_rates and add_ons must be mappings.")

    base_rates: dict[tuple[str, str], Decimal] = {}
    for category, by_duration in raw_base_rates.items():
        if not isinstance(by_duration, dict):
            raise ValueError(f"base_rates.{category} must be a mapping of duration to price.")
        for duration, price in by_duration.items():
            duration_key = str(duration).strip().lower()
            if duration_key not in {member.value for member in DurationClass}:
                raise ValueError(f"Unknown duration class in rate file: {duration}")
            base_rates[(str(category), duration_key)] = _to_amount(price, f"base_rates.{category}.{duration}")

    add_on_prices = {
        str(add_on_id): _to_amount(price, f"add_ons.{add_on_id}")
        for add_on_id, price in raw_add_ons.items()
    }
    return RateTable(base_rates=base_rates, add_on_prices=add_on_prices)


def _to_amount(value: Any, label: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{label} must be a number.")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as error:
        raise ValueError(f"{label} must be a number.") from error
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{label} must be a non-negative amount.")
    return amount

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from space_booking import (
    ADD_ONS,
    DEFAULT_RATE_TABLE,
    SPACES,
    BookingRequest,
    ReservationYamlRepository,
    Space,
    available_start_hours,
    check_hourly_fields,
    compute_price,
    find_space,
    format_price,
    is_date_bookable,
    submit_reservation,
)

mcp = FastMCP(
    "Space Booking MCP Server",
    instructions="Check availability, quote prices and book shared spaces.",
    json_response=True,
)

DATA_DIR = Path(__file__).parent / "data"
REPOSITORY = ReservationYamlRepository(DATA_DIR)


def _require_space(space_id: str) -> Space:
    space = find_space(space_id)
    if space is None:
        raise ValueError(f"Unknown space: {space_id}")
    return space


@mcp.resource("booking://spaces")
async def list_spaces() -> list[dict[str, str]]:
    """List bookable spaces with their pricing category."""
    return [space.to_dict() for space in SPACES]


@mcp.resource("booking://add-ons")
async def list_add_ons() -> list[dict[str, str]]:
    """List optional add-ons with their flat prices."""
    return [
        {"id": add_on_id, "label": ADD_ONS.get(add_on_id, add_on_id), "price": format_price(price)}
        for add_on_id, price in sorted(DEFAULT_RATE_TABLE.add_on_prices.items())
    ]


@mcp.tool()
def available_hours(space_id: str, date_iso: str) -> dict[str, object]:
    """Return the free start hours for a space on a date (YYYY-MM-DD)."""
    space = _require_space(space_id)
    target = date.fromisoformat(date_iso)
    existing = REPOSITORY.load(space.space_id)
    return {
        "space_id": space.space_id,
        "date": target.isoformat(),
        "bookable": is_date_bookable(space.space_id, target, existing),
        "available_start_hours": available_start_hours(space.space_id, target, existing),
    }


@mcp.tool()
def quote_price(
    space_id: str,
    duration: str = "hourly",
    hour_count: int = 1,
    start_hour: int = 9,
    add_ons: list[str] | None = None,
) -> dict[str, str]:
    """Quote the total price for a candidate booking."""
    space = _require_space(space_id)
    if duration.strip().lower() == "hourly":
        start_hour, hour_count = check_hourly_fields(start_hour, hour_count)
    total = compute_price(space.category, duration, hour_count, add_ons or [], start_hour)
    return {"space_id": space.space_id, "duration": duration, "total_price": format_price(total)}


@mcp.tool()
def book_space(
    space_id: str,
    date_iso: str,
    booker_name: str,
    duration: str = "hourly",
    start_hour: int = 9,
    hour_count: int = 1,
    add_ons: list[str] | None = None,
) -> dict[str, object]:
    """Book a space; fails when the requested hours are already taken."""
    space = _require_space(space_id)
    created = submit_reservation(
        REPOSITORY,
        BookingRequest(
            resource_id=space.space_id,
            resource_category=space.category,
            resource_name=space.name,
            duration=duration,
            day=date_iso,
            booker_name=booker_name,
            start_hour=start_hour,
            hour_count=hour_count,
            add_ons=add_ons or [],
        ),
        now=datetime.now(),
    )
    return created.to_dict()


@mcp.tool()
def get_booking(reservation_id: str) -> dict[str, object] | None:
    """Look up a stored booking by id."""
    record = REPOSITORY.get_reservation(reservation_id)
    return record.to_dict() if record is not None else None


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Callable

from flask import Flask, jsonify, request

from .booking import (
    HOURS_PER_DAY,
    DurationClass,
    ReservationConflictError,
    UnbookableDateError,
    available_start_hours,
    is_date_bookable,
    occupied_hours,
)
from .catalog import ADD_ONS, SPACES, Space, find_space
from .pricing import DEFAULT_RATE_TABLE, RateTable, compute_price, format_price, is_peak_hour, peak_hour_count
from .submission import BookingRequest, ValidationError, check_hourly_fields, submit_reservation
from .yaml_store import ReservationStorageError, ReservationYamlRepository

MAX_CALENDAR_DAYS = 92


def create_app(
    data_dir: str | Path = "data",
    rates: RateTable | None = None,
    spaces: list[Space] | None = None,
    now_provider: Callable[[], datetime] | None = None,
) -> Flask:
    app = Flask(__name__)
    repository = ReservationYamlRepository(data_dir)
    rate_table = rates or DEFAULT_RATE_TABLE
    catalog = spaces if spaces is not None else SPACES
    unpriced = sorted({space.category for space in catalog} - set(rate_table.categories()))
    if unpriced:
        raise ValueError(f"No rates configured for space categories: {', '.join(unpriced)}")
    clock: Callable[[], datetime] = now_provider or datetime.now

    def _serialize_reservation(record: Any) -> dict[str, Any]:
        payload = record.to_dict()
        payload["display_price"] = format_price(record.total_price)
        return payload

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response

    @app.get("/api/spaces")
    def list_spaces() -> Any:
        return jsonify({"ok": True, "spaces": [space.to_dict() for space in catalog]})

    @app.get("/api/add-ons")
    def list_add_ons() -> Any:
        items = [
            {
                "id": add_on_id,
                "label": ADD_ONS.get(add_on_id, add_on_id),
                "price": format_price(price),
            }
            for add_on_id, price in sorted(rate_table.add_on_prices.items())
        ]
        return jsonify({"ok": True, "add_ons": items})

    @app.get("/api/spaces/<space_id>/availability")
    def get_availability(space_id: str) -> Any:
        space = find_space(space_id, catalog)
        if space is None:
            return jsonify({"ok": False, "message": "Space not found."}), 404

        raw_date = str(request.args.get("date", "")).strip()
        if not raw_date:
            hours = list(range(HOURS_PER_DAY))
            return jsonify(
                {
                    "ok": True,
                    "space_id": space.space_id,
                    "date": None,
                    "bookable": None,
                    "occupied_hours": [],
                    "available_start_hours": hours,
                    "peak_hours": [hour for hour in hours if is_peak_hour(hour)],
                }
            )

        try:
            target = date.fromisoformat(raw_date)
        except ValueError:
            return jsonify({"ok": False, "message": "date must be formatted as YYYY-MM-DD."}), 400

        existing = repository.load(space.space_id)
        available = available_start_hours(space.space_id, target, existing)
        return jsonify(
            {
                "ok": True,
                "space_id": space.space_id,
                "date": target.isoformat(),
                "bookable": is_date_bookable(space.space_id, target, existing, today=clock().date()),
                "occupied_hours": sorted(occupied_hours(space.space_id, target, existing)),
                "available_start_hours": available,
                "peak_hours": [hour for hour in available if is_peak_hour(hour)],
            }
        )

    @app.get("/api/spaces/<space_id>/calendar")
    def get_calendar(space_id: str) -> Any:
        space = find_space(space_id, catalog)
        if space is None:
            return jsonify({"ok": False, "message": "Space not found."}), 404

        today = clock().date()
        try:
            start = date.fromisoformat(str(request.args["start"])) if request.args.get("start") else today
            days = int(request.args.get("days", 30))
        except ValueError:
            return jsonify({"ok": False, "message": "start must be YYYY-MM-DD and days a whole number."}), 400
        if not 1 <= days <= MAX_CALENDAR_DAYS:
            return jsonify({"ok": False, "message": f"days must be between 1 and {MAX_CALENDAR_DAYS}."}), 400

        existing = repository.load(space.space_id)
        window = [start + timedelta(days=offset) for offset in range(days)]
        disabled = [day.isoformat() for day in window if not is_date_bookable(space.space_id, day, existing, today=today)]
        return jsonify(
            {
                "ok": True,
                "space_id": space.space_id,
                "start": start.isoformat(),
                "days": days,
                "disabled_dates": disabled,
            }
        )

    @app.post("/api/spaces/<space_id>/quote")
    def quote(space_id: str) -> Any:
        space = find_space(space_id, catalog)
        if space is None:
            return jsonify({"ok": False, "message": "Space not found."}), 404

        payload = request.get_json(silent=True) or {}
        duration = str(payload.get("duration", "hourly")).strip().lower()
        start_hour, hour_count = 0, 0
        if duration == DurationClass.HOURLY:
            try:
                start_hour, hour_count = check_hourly_fields(payload.get("start_hour", 9), payload.get("hour_count", 1))
            except ValidationError as error:
                return jsonify({"ok": False, "message": str(error)}), 400
        add_ons = _read_add_ons(payload)

        total = compute_price(space.category, duration, hour_count, add_ons, start_hour, rates=rate_table)
        return jsonify(
            {
                "ok": True,
                "space_id": space.space_id,
                "duration": duration,
                "total_price": format_price(total),
                "peak_hours": peak_hour_count(start_hour, hour_count),
            }
        )

    @app.post("/api/spaces/<space_id>/bookings")
    def create_booking(space_id: str) -> Any:
        space = find_space(space_id, catalog)
        if space is None:
            return jsonify({"ok": False, "message": "Space not found."}), 404

        payload = request.get_json(silent=True) or {}
        booking_request = BookingRequest(
            resource_id=space.space_id,
            resource_category=space.category,
            resource_name=space.name,
            duration=str(payload.get("duration", "hourly")),
            day=payload.get("date"),
            booker_name=payload.get("booker_name"),
            start_hour=payload.get("start_hour", 9),
            hour_count=payload.get("hour_count", 1),
            add_ons=_read_add_ons(payload),
        )

        try:
            created = submit_reservation(repository, booking_request, rates=rate_table, now=clock())
        except ValidationError as error:
            return jsonify({"ok": False, "message": str(error)}), 400
        except (ReservationConflictError, UnbookableDateError) as error:
            return jsonify({"ok": False, "message": str(error)}), 409
        except ReservationStorageError:
            return jsonify({"ok": False, "message": "The booking could not be saved. Please try again."}), 500

        return jsonify({"ok": True, "reservation": _serialize_reservation(created)}), 201

    @app.get("/api/bookings/<reservation_id>")
    def get_booking(reservation_id: str) -> Any:
        record = repository.get_reservation(reservation_id)
        if record is None:
            return jsonify({"ok": False, "message": "Booking not found."}), 404
        return jsonify({"ok": True, "reservation": _serialize_reservation(record)})

    return app


def _read_add_ons(payload: dict[str, Any]) -> list[str]:
    raw = payload.get("add_ons") or []
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        return []
    return [str(item).strip() for item in raw if str(item).strip()]


if __name__ == "__main__":
    app = create_app()
    app.run(host="127.0.0.1", port=5000, debug=False)

from __future__ import annotations

from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Iterable
import random
import shutil
from uuid import uuid4

import yaml

from .booking import DurationClass, Reservation, ReservationConflictError, conflicting_hours
from .catalog import SPACES, Space
from .pricing import DEFAULT_RATE_TABLE, RateTable, compute_price


class ReservationStorageError(RuntimeError):
    pass


class ReservationYamlRepository:
    def __init__(self, base_dir: str | Path = "data") -> None:
        self.base_dir = Path(base_dir)
        self.reservations_file = self.base_dir / "reservations.yaml"
        self.log_file = self.base_dir / "reservation_events.yaml"
        self._ensure_files()

    def _ensure_files(self) -> None:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        for path in (self.reservations_file, self.log_file):
            if not path.exists():
                path.write_text("[]\n", encoding="utf-8")

    def _read_yaml_list(self, path: Path) -> list[dict[str, Any]]:
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            path.write_text("[]\n", encoding="utf-8")
            return []
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as error:
            self._recover_corrupted_yaml(path, error)
            return []

        if payload is None:
            return []
        if not isinstance(payload, list):
            self._recover_corrupted_yaml(path, ValueError("top-level YAML is not a list"))
            return []

        sanitized: list[dict[str, Any]] = []
        for index, row in enumerate(payload):
            if isinstance(row, dict):
                sanitized.append(row)
            elif path != self.log_file:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(path.name),
                        "index": index,
                        "reason": "row is not a mapping",
                    },
                )
        return sanitized

    def _write_yaml_list(self, path: Path, rows: list[dict[str, Any]]) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            temp_path.write_text(yaml.safe_dump(rows, allow_unicode=True, sort_keys=False), encoding="utf-8")
            temp_path.replace(path)
        except OSError as error:
            raise ReservationStorageError(f"Failed to write YAML file: {path}") from error
        finally:
            if temp_path.exists():
                temp_path.unlink(missing_ok=True)

    def _recover_corrupted_yaml(self, path: Path, error: Exception) -> None:
        timestamp = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = path.with_name(f"{path.stem}.corrupt.{timestamp}{path.suffix}")
        try:
            if path.exists():
                shutil.copy2(path, backup_path)
        except OSError:
            pass

        path.write_text("[]\n", encoding="utf-8")
        if path != self.log_file:
            self._log_event(
                "YAML_RECOVERED",
                {
                    "file": str(path.name),
                    "backup": str(backup_path.name),
                    "reason": str(error),
                },
            )

    def _log_event(self, event_type: str, payload: dict[str, Any], event_time: datetime | None = None) -> None:
        timestamp = (event_time or datetime.now()).isoformat(timespec="seconds")
        events = self._read_yaml_list(self.log_file)
        events.append({"event_time": timestamp, "event_type": event_type, "payload": payload})
        self._write_yaml_list(self.log_file, events)

    def _load_records(self) -> list[Reservation]:
        records: list[Reservation] = []
        for index, row in enumerate(self._read_yaml_list(self.reservations_file)):
            try:
                records.append(Reservation.from_dict(row))
            except (KeyError, TypeError, ValueError) as error:
                self._log_event(
                    "YAML_ROW_SKIPPED",
                    {
                        "file": str(self.reservations_file.name),
                        "index": index,
                        "reason": f"unreadable reservation: {error}",
                    },
                )
        return records

    def get_reservations(self) -> list[Reservation]:
        return self._load_records()

    def get_reservation(self, reservation_id: str) -> Reservation | None:
        for record in self._load_records():
            if record.reservation_id == reservation_id:
                return record
        return None

    def load(self, resource_id: str) -> list[Reservation]:
        return [record for record in self._load_records() if record.resource_id == resource_id]

    def append(self, reservation: Reservation) -> Reservation:
        """Store a reservation unless its hours collide with a stored one.

        The conflict check and the write happen in this one call; raises
        ReservationConflictError and writes nothing on collision.
        """
        clashes = conflicting_hours(reservation, self.load(reservation.resource_id))
        if clashes:
            self._log_event(
                "RESERVATION_REJECTED",
                {
                    "resource_id": reservation.resource_id,
                    "date": reservation.to_dict()["date"],
                    "hours": sorted(clashes),
                },
                reservation.created_at,
            )
            raise ReservationConflictError(
                f"Requested hours overlap an existing reservation: {', '.join(str(hour) for hour in sorted(clashes))}"
            )

        rows = self._read_yaml_list(self.reservations_file)
        rows.append(reservation.to_dict())
        self._write_yaml_list(self.reservations_file, rows)

        self._log_event(
            "RESERVATION_CREATED",
            {
                "reservation_id": reservation.reservation_id,
                "resource_id": reservation.resource_id,
                "duration": str(reservation.duration),
                "date": reservation.to_dict()["date"],
                "start_hour": reservation.start_hour,
                "hour_count": reservation.hour_count,
                "total_price": str(reservation.total_price),
            },
            reservation.created_at,
        )
        return reservation

    def seed_sample_data(
        self,
        spaces: Iterable[Space] = SPACES,
        now: datetime | None = None,
        days: int = 14,
        overwrite: bool = True,
        rates: RateTable = DEFAULT_RATE_TABLE,
    ) -> list[Reservation]:
        effective_now = now or datetime.now()
        generated = generate_sample_reservations(list(spaces), effective_now.date(), days=days, rates=rates, now=effective_now)

        rows = [] if overwrite else self._read_yaml_list(self.reservations_file)
        rows.extend(record.to_dict() for record in generated)
        self._write_yaml_list(self.reservations_file, rows)

        self._log_event(
            "SAMPLE_DATA_GENERATED",
            {
                "count": len(generated),
                "days": days,
                "overwrite": overwrite,
            },
            effective_now,
        )
        return generated


def generate_sample_reservations(
    spaces: list[Space],
    start_date: date,
    days: int = 14,
    rates: RateTable = DEFAULT_RATE_TABLE,
    now: datetime | None = None,
) -> list[Reservation]:
    if days <= 0:
        raise ValueError("days must be greater than zero")

    rng = random.Random(f"sample:{start_date.isoformat()}:{days}")
    created_at = now or datetime.now()
    booker_names = ["Avery", "Jordan", "Riley", "Sam", "Taylor"]
    records: list[Reservation] = []

    for offset in range(days):
        day = start_date + timedelta(days=offset)
        for space in spaces:
            roll = rng.random()
            slots: list[tuple[int | None, int | None]] = []
            if roll < 0.08:
                duration = DurationClass.DAILY
                slots.append((None, None))
            elif roll < 0.6:
                duration = DurationClass.HOURLY
                cursor = rng.randint(7, 11)
                for _ in range(rng.randint(1, 3)):
                    length = rng.randint(1, 3)
                    if cursor + length > 20:
                        break
                    slots.append((cursor, length))
                    cursor += length + rng.randint(0, 3)
            else:
                continue

            for start_hour, hour_count in slots:
                add_on_pool = sorted(rates.add_on_prices)
                add_ons = frozenset(rng.sample(add_on_pool, k=rng.randint(0, min(2, len(add_on_pool)))))
                records.append(
                    Reservation(
                        reservation_id=str(uuid4()),
                        resource_id=space.space_id,
                        duration=duration,
                        day=day,
                        booker_name=rng.choice(booker_names),
                        start_hour=start_hour,
                        hour_count=hour_count,
                        add_ons=add_ons,
                        total_price=compute_price(
                            space.category,
                            duration,
                            hour_count or 0,
                            add_ons,
                            start_hour or 0,
                            rates=rates,
                        ),
                        resource_name=space.name,
                        created_at=created_at,
                    )
                )

    return records


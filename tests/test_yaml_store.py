import tempfile
import unittest
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

import yaml

from space_booking import (
    SPACES,
    DurationClass,
    Reservation,
    ReservationConflictError,
    ReservationYamlRepository,
    conflicting_hours,
    generate_sample_reservations,
    occupied_hours,
)

NOW = datetime(2024, 5, 30, 9, 0)


def _reservation(reservation_id: str, start_hour: int, hour_count: int, resource_id: str = "room-a") -> Reservation:
    return Reservation(
        reservation_id=reservation_id,
        resource_id=resource_id,
        duration=DurationClass.HOURLY,
        day=date(2024, 6, 1),
        booker_name="Avery",
        start_hour=start_hour,
        hour_count=hour_count,
        add_ons=frozenset({"projector"}),
        total_price=Decimal("112.5"),
        resource_name="Meeting Room A",
        created_at=NOW,
    )


class TestReservationYamlRepository(unittest.TestCase):
    def test_append_then_load_by_resource(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            repo.append(_reservation("r1", 9, 3))
            repo.append(_reservation("r2", 9, 3, resource_id="room-b"))

            loaded = repo.load("room-a")

            self.assertEqual(len(loaded), 1)
            self.assertEqual(loaded[0], _reservation("r1", 9, 3))
            self.assertEqual(len(repo.get_reservations()), 2)
            self.assertEqual(repo.get_reservation("r2").resource_id, "room-b")
            self.assertIsNone(repo.get_reservation("missing"))

    def test_append_rejects_overlap_without_writing(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            repo.append(_reservation("r1", 9, 3))

            with self.assertRaises(ReservationConflictError):
                repo.append(_reservation("r2", 10, 2))

            self.assertEqual([row.reservation_id for row in repo.load("room-a")], ["r1"])

    def test_logs_created_and_rejected_events(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            repo.append(_reservation("r1", 9, 3))
            with self.assertRaises(ReservationConflictError):
                repo.append(_reservation("r2", 11, 1))

            contents = (Path(temp_dir) / "data" / "reservation_events.yaml").read_text(encoding="utf-8")
            self.assertIn("RESERVATION_CREATED", contents)
            self.assertIn("RESERVATION_REJECTED", contents)

    def test_skips_unreadable_rows_and_keeps_the_rest(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = ReservationYamlRepository(data_dir)
            rows = [
                "not a mapping",
                {"resource_id": "room-a", "date": "2024-06-01"},
                {"reservation_id": "broken", "resource_id": "room-a", "duration": "hourly", "date": "2024-06-01"},
                _reservation("ok", 14, 2).to_dict(),
            ]
            (data_dir / "reservations.yaml").write_text(yaml.safe_dump(rows), encoding="utf-8")

            loaded = repo.load("room-a")

            self.assertEqual(sorted(row.reservation_id for row in loaded), ["broken", "ok"])
            self.assertEqual(occupied_hours("room-a", date(2024, 6, 1), loaded), {14, 15})
            events = (data_dir / "reservation_events.yaml").read_text(encoding="utf-8")
            self.assertEqual(events.count("YAML_ROW_SKIPPED"), 2)

    def test_recovers_from_corrupted_yaml(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            repo = ReservationYamlRepository(data_dir)
            (data_dir / "reservations.yaml").write_text("- [unclosed\n", encoding="utf-8")

            self.assertEqual(repo.get_reservations(), [])
            self.assertEqual(len(list(data_dir.glob("reservations.corrupt.*.yaml"))), 1)
            self.assertIn("YAML_RECOVERED", (data_dir / "reservation_events.yaml").read_text(encoding="utf-8"))

            repo.append(_reservation("r1", 9, 1))
            self.assertEqual(len(repo.get_reservations()), 1)

    def test_seed_sample_data_writes_reservations(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            repo = ReservationYamlRepository(Path(temp_dir) / "data")
            repo.append(_reservation("old", 9, 1))

            generated = repo.seed_sample_data(now=NOW, days=7, overwrite=True)

            self.assertGreater(len(generated), 0)
            self.assertEqual(len(repo.get_reservations()), len(generated))
            self.assertIsNone(repo.get_reservation("old"))


class TestGenerateSampleReservations(unittest.TestCase):
    def test_samples_never_overlap(self) -> None:
        records = generate_sample_reservations(SPACES, date(2024, 6, 1), days=14, now=NOW)

        self.assertGreater(len(records), 0)
        for record in records:
            self.assertEqual(conflicting_hours(record, records), set())
            self.assertGreaterEqual(record.day, date(2024, 6, 1))
            self.assertLess(record.day, date(2024, 6, 15))
            if record.duration == DurationClass.HOURLY:
                self.assertLessEqual(record.start_hour + record.hour_count, 20)

    def test_is_deterministic_per_start_date(self) -> None:
        first = generate_sample_reservations(SPACES, date(2024, 6, 1), days=5, now=NOW)
        second = generate_sample_reservations(SPACES, date(2024, 6, 1), days=5, now=NOW)

        def _shape(records):
            return [(row.resource_id, row.day, row.start_hour, row.hour_count, row.total_price) for row in records]

        self.assertEqual(_shape(first), _shape(second))

    def test_rejects_empty_window(self) -> None:
        with self.assertRaises(ValueError):
            generate_sample_reservations(SPACES, date(2024, 6, 1), days=0)


if __name__ == "__main__":
    unittest.main()

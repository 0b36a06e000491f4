import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from space_booking import DEFAULT_RATE_TABLE, DurationClass, RateTable, compute_price, format_price, load_rate_table, round_price
from space_booking.pricing import peak_hour_count

HOURLY_RATE = DEFAULT_RATE_TABLE.base_rate("meeting_room", DurationClass.HOURLY)


class TestComputePrice(unittest.TestCase):
    def test_peak_hour_costs_thirty_percent_more(self) -> None:
        peak = compute_price("meeting_room", DurationClass.HOURLY, 1, [], 9)
        off_peak = compute_price("meeting_room", DurationClass.HOURLY, 1, [], 8)

        self.assertEqual(off_peak, HOURLY_RATE)
        self.assertEqual(peak - off_peak, HOURLY_RATE * Decimal("0.3"))

    def test_surcharge_is_applied_per_hour_across_the_peak_boundary(self) -> None:
        price = compute_price("meeting_room", DurationClass.HOURLY, 2, [], 17)

        self.assertEqual(price, HOURLY_RATE * Decimal("2.3"))
        self.assertNotEqual(price, HOURLY_RATE * Decimal("2.6"))
        self.assertNotEqual(price, HOURLY_RATE * Decimal("2.0"))

    def test_span_starting_before_peak_picks_up_peak_hours(self) -> None:
        price = compute_price("meeting_room", DurationClass.HOURLY, 3, [], 7)

        self.assertEqual(price, HOURLY_RATE * Decimal("3.3"))
        self.assertEqual(peak_hour_count(7, 3), 1)

    def test_is_deterministic(self) -> None:
        first = compute_price("hot_desk", DurationClass.HOURLY, 5, ["printer", "lockers"], 13)
        second = compute_price("hot_desk", DurationClass.HOURLY, 5, ["lockers", "printer"], 13)

        self.assertEqual(first, second)

    def test_daily_and_monthly_use_flat_rate_and_ignore_hours(self) -> None:
        self.assertEqual(compute_price("meeting_room", DurationClass.DAILY, 8, [], 12), Decimal("150"))
        self.assertEqual(compute_price("meeting_room", "monthly", 1, [], 9), Decimal("2500"))

    def test_add_ons_are_additive_and_deduplicated(self) -> None:
        base = compute_price("meeting_room", DurationClass.DAILY, 1, [], 9)
        single = compute_price("meeting_room", DurationClass.DAILY, 1, ["projector"], 9)
        duplicated = compute_price("meeting_room", DurationClass.DAILY, 1, ["projector", "projector"], 9)
        both = compute_price("meeting_room", DurationClass.DAILY, 1, ["projector", "parking"], 9)

        self.assertEqual(single - base, Decimal("15"))
        self.assertEqual(duplicated, single)
        self.assertEqual(both - base, Decimal("25"))

    def test_unknown_keys_price_at_zero(self) -> None:
        with self.assertLogs("space_booking.pricing", level="WARNING"):
            unknown_add_on = compute_price("meeting_room", DurationClass.DAILY, 1, ["jacuzzi"], 9)
        self.assertEqual(unknown_add_on, Decimal("150"))

        with self.assertLogs("space_booking.pricing", level="WARNING"):
            unknown_category = compute_price("ballroom", DurationClass.HOURLY, 3, ["projector"], 9)
        self.assertEqual(unknown_category, Decimal("15"))

        with self.assertLogs("space_booking.pricing", level="WARNING"):
            unknown_duration = compute_price("meeting_room", "weekly", 3, [], 9)
        self.assertEqual(unknown_duration, Decimal("0"))

    def test_uses_supplied_rate_table(self) -> None:
        rates = RateTable(base_rates={("studio", "hourly"): Decimal("10")}, add_on_prices={"mic": Decimal("2.5")})

        self.assertEqual(compute_price("studio", "hourly", 2, ["mic"], 9, rates=rates), Decimal("28.5"))

    def test_keeps_full_precision_until_presentation(self) -> None:
        rates = RateTable(base_rates={("studio", "hourly"): Decimal("0.333")})

        price = compute_price("studio", "hourly", 1, [], 10, rates=rates)

        self.assertEqual(price, Decimal("0.4329"))
        self.assertEqual(round_price(price), Decimal("0.43"))
        self.assertEqual(format_price(price), "0.43")


class TestFormatPrice(unittest.TestCase):
    def test_rounds_half_up_to_cents(self) -> None:
        self.assertEqual(format_price(Decimal("10.005")), "10.01")
        self.assertEqual(format_price(Decimal("32.5")), "32.50")


class TestLoadRateTable(unittest.TestCase):
    def test_reads_base_rates_and_add_ons(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "rates.yaml"
            path.write_text(
                "base_rates:\n"
                "  studio: {hourly: 12.5, daily: 80}\n"
                "add_ons:\n"
                "  mic: 3\n",
                encoding="utf-8",
            )

            rates = load_rate_table(path)

        self.assertEqual(rates.base_rate("studio", "hourly"), Decimal("12.5"))
        self.assertEqual(rates.base_rate("studio", DurationClass.DAILY), Decimal("80"))
        self.assertEqual(rates.add_on_price("mic"), Decimal("3"))
        self.assertEqual(rates.categories(), ["studio"])

    def test_rejects_malformed_files(self) -> None:
        bad_payloads = [
            "- just\n- a list\n",
            "base_rates:\n  studio: {weekly: 10}\n",
            "base_rates:\n  studio: {hourly: -1}\n",
            "base_rates:\n  studio: {hourly: lots}\n",
            "add_ons: [mic]\n",
            "base_rates: {studio: [\n",
        ]
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "rates.yaml"
            for text in bad_payloads:
                path.write_text(text, encoding="utf-8")
                with self.subTest(text=text):
                    with self.assertRaises(ValueError):
                        load_rate_table(path)


if __name__ == "__main__":
    unittest.main()

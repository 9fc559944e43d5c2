import unittest

from crm_dashboards.services.date_range import DATE_RANGE_KEYWORDS, DateRange, previous_period, resolve_date_range
from crm_dashboards.utils.datetime import MS_PER_DAY

NOW = 1_700_000_000_000  # 2023-11-14T22:13:20Z


class TestResolveDateRange(unittest.TestCase):

    def test_trailing_windows(self):
        for keyword, days in (("week", 7), ("month", 30), ("quarter", 90), ("year", 365)):
            with self.subTest(keyword=keyword):
                self.assertEqual(
                    resolve_date_range(keyword, now_ms=NOW),
                    DateRange(start=NOW - days * MS_PER_DAY, end=NOW),
                )

    def test_today_starts_at_midnight(self):
        window = resolve_date_range("today", now_ms=NOW, tz="UTC")
        self.assertEqual(window, DateRange(start=NOW // MS_PER_DAY * MS_PER_DAY, end=NOW))

    def test_today_honours_timezone(self):
        # 22:13 UTC is already the next day in Tokyo (UTC+9)
        window = resolve_date_range("today", now_ms=NOW, tz="Asia/Tokyo")
        utc_midnight = NOW // MS_PER_DAY * MS_PER_DAY
        self.assertEqual(window.start, utc_midnight + MS_PER_DAY - 9 * 60 * 60 * 1000)

    def test_custom_bounds(self):
        self.assertEqual(
            resolve_date_range("custom", custom_start=1000, custom_end=2000, now_ms=NOW),
            DateRange(start=1000, end=2000),
        )

    def test_custom_defaults(self):
        self.assertEqual(
            resolve_date_range("custom", now_ms=NOW),
            DateRange(start=NOW - 30 * MS_PER_DAY, end=NOW),
        )

    def test_all_missing_and_unknown_cover_everything(self):
        for keyword in ("all", None, "fortnight"):
            with self.subTest(keyword=keyword):
                self.assertEqual(resolve_date_range(keyword, now_ms=NOW), DateRange(start=0, end=NOW))

    def test_contains_is_inclusive(self):
        window = DateRange(start=10, end=20)
        self.assertTrue(window.contains(10))
        self.assertTrue(window.contains(20))
        self.assertFalse(window.contains(21))


    def test_start_never_after_end(self):
        for keyword in DATE_RANGE_KEYWORDS:
            with self.subTest(keyword=keyword):
                window = resolve_date_range(keyword, now_ms=NOW)
                self.assertLessEqual(window.start, window.end)


class TestPreviousPeriod(unittest.TestCase):

    def test_equal_length_window_before(self):
        current = resolve_date_range("week", now_ms=NOW)
        previous = previous_period(current)
        self.assertEqual(previous.end, current.start)
        self.assertEqual(previous.end - previous.start, 7 * MS_PER_DAY)


if __name__ == "__main__":
    unittest.main()

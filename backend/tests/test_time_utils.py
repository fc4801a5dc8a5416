# Overview: Pytest coverage for timestamp conversion helpers.

from datetime import date, datetime, timedelta, timezone

from printmarket.time_utils import month_start, parse_iso_datetime, to_datetime, to_utc_z


class _FirestoreLike:
    def __init__(self, value):
        self._value = value

    def toDate(self):
        return self._value


class _Broken:
    def to_date(self):
        raise RuntimeError("corrupt timestamp")


class TestToDatetime:
    def test_native_datetime_passes_through(self):
        value = datetime(2026, 3, 4, 5, 6, 7)
        assert to_datetime(value) == value

    def test_aware_datetime_is_normalized_to_utc(self):
        value = datetime(2026, 3, 4, 13, 0, tzinfo=timezone(timedelta(hours=8)))
        assert to_datetime(value) == datetime(2026, 3, 4, 5, 0)

    def test_date_becomes_midnight(self):
        assert to_datetime(date(2026, 1, 2)) == datetime(2026, 1, 2)

    def test_epoch_milliseconds(self):
        assert to_datetime(1_767_225_600_000) == datetime(2026, 1, 1)

    def test_iso_string_with_z(self):
        assert to_datetime("2026-01-01T10:30:00Z") == datetime(2026, 1, 1, 10, 30)

    def test_object_with_to_date_method(self):
        assert to_datetime(_FirestoreLike(datetime(2026, 2, 1))) == datetime(2026, 2, 1)

    def test_seconds_nanoseconds_mapping(self):
        value = {"seconds": 1_767_225_600, "nanoseconds": 500_000_000}
        assert to_datetime(value) == datetime(2026, 1, 1, 0, 0, 0, 500_000)

    def test_underscored_seconds_mapping(self):
        assert to_datetime({"_seconds": 1_767_225_600, "_nanoseconds": 0}) == datetime(2026, 1, 1)

    def test_unparsable_values_return_none(self):
        """Garbage never raises."""
        for value in (None, "", "not a date", True, {"foo": 1}, [], float("nan"), _Broken()):
            assert to_datetime(value) is None

    def test_to_date_returning_garbage_is_none(self):
        assert to_datetime(_FirestoreLike("yesterday")) is None


class TestFormatting:
    def test_parse_iso_datetime_offset(self):
        assert parse_iso_datetime("2026-01-01T10:00:00+02:00") == datetime(2026, 1, 1, 8, 0)

    def test_parse_iso_datetime_blank(self):
        assert parse_iso_datetime("  ") is None

    def test_to_utc_z(self):
        assert to_utc_z(datetime(2026, 1, 1, 8, 0, 0, 1234)) == "2026-01-01T08:00:00Z"
        assert to_utc_z(None) is None

    def test_month_start(self):
        assert month_start(datetime(2026, 10, 16, 12, 30, 5)) == datetime(2026, 10, 1)

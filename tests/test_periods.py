from datetime import date

import pytest

from periods import InvalidRange, month_windows, resolve_period


def test_default_period_is_current_month_through_today() -> None:
    period = resolve_period(None, None, None, today=date(2026, 10, 19))

    assert period.slug == "this_month"
    assert period.start == date(2026, 10, 1)
    assert period.end == date(2026, 10, 19)
    assert period.days == 19


def test_last_month_crosses_year_boundary() -> None:
    period = resolve_period("last_month", None, None, today=date(2026, 1, 5))

    assert period.start == date(2025, 12, 1)
    assert period.end == date(2025, 12, 31)


def test_explicit_dates_imply_custom_period() -> None:
    period = resolve_period(None, "2025-01-15", "2025-02-15", today=date(2026, 1, 1))

    assert period.slug == "custom"
    assert period.days == 32


def test_reversed_range_is_rejected() -> None:
    with pytest.raises(InvalidRange):
        resolve_period("custom", "2025-03-01", "2025-02-01")


def test_invalid_range_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        resolve_period("custom", "2025-03-01", None)


def test_malformed_date_is_rejected() -> None:
    with pytest.raises(InvalidRange):
        resolve_period("custom", "2025-13-01", "2025-12-31")


def test_unknown_period_slug_is_rejected() -> None:
    with pytest.raises(InvalidRange):
        resolve_period("fortnight", None, None, today=date(2026, 1, 1))


def test_month_windows_are_clipped() -> None:
    windows = list(month_windows(date(2024, 12, 20), date(2025, 2, 3)))

    assert windows == [
        (date(2024, 12, 1), date(2024, 12, 20), date(2024, 12, 31)),
        (date(2025, 1, 1), date(2025, 1, 1), date(2025, 1, 31)),
        (date(2025, 2, 1), date(2025, 2, 1), date(2025, 2, 3)),
    ]


def test_month_windows_reject_reversed_range() -> None:
    with pytest.raises(InvalidRange):
        list(month_windows(date(2025, 2, 1), date(2025, 1, 1)))

import pytest
from datetime import date
from services.rotation.weeks import InvalidMonthError, month_weeks, shift_month

def test_march_2025_drops_trailing_single_day():
    weeks = month_weeks(2025, 3)

    assert [w.week_number for w in weeks] == [1, 2, 3, 4]
    assert weeks[0].start_date == date(2025, 3, 3)
    assert weeks[0].end_date == date(2025, 3, 7)
    assert weeks[1].dates[2] == date(2025, 3, 12) # Wednesday of week 2
    # Mon 31 March alone is below the threshold
    assert all(date(2025, 3, 31) not in w.dates for w in weeks)

def test_partial_last_week_kept_at_three_days():
    # December 2025 starts on a Monday; 29-31 is a three-day week
    weeks = month_weeks(2025, 12, min_weekdays=3)

    assert len(weeks) == 5
    assert weeks[-1].dates == [date(2025, 12, 29), date(2025, 12, 30), date(2025, 12, 31)]
    assert weeks[-1].end_date == date(2025, 12, 31)

def test_full_weeks_only_threshold():
    weeks = month_weeks(2025, 12, min_weekdays=5)

    assert len(weeks) == 4
    assert all(len(w.dates) == 5 for w in weeks)

def test_month_starting_midweek_has_no_leading_week():
    # October 2025 starts on a Wednesday; the first Monday is the 6th
    weeks = month_weeks(2025, 10)

    assert weeks[0].start_date == date(2025, 10, 6)
    assert len(weeks) == 4

@pytest.mark.parametrize("year", [2024, 2025, 2026])
@pytest.mark.parametrize("month", range(1, 13))
@pytest.mark.parametrize("min_weekdays", [3, 5])
def test_partition_properties(year, month, min_weekdays):
    weeks = month_weeks(year, month, min_weekdays)
    seen = set()
    previous = None

    for index, week in enumerate(weeks, start=1):
        assert week.week_number == index
        assert len(week.dates) >= min_weekdays
        assert week.start_date.weekday() == 0
        for d in week.dates:
            assert (d.year, d.month) == (year, month)
            assert d.weekday() < 5
            assert d not in seen
            seen.add(d)
        assert week.dates == sorted(week.dates)
        if previous is not None:
            assert previous < week.dates[0]
        previous = week.dates[-1]

def test_repeated_calls_are_identical():
    assert month_weeks(2025, 3) == month_weeks(2025, 3)

@pytest.mark.parametrize("year,month", [(2025, 0), (2025, 13), (1999, 5), (2101, 1)])
def test_invalid_month_rejected(year, month):
    with pytest.raises(InvalidMonthError):
        month_weeks(year, month)

def test_invalid_threshold_rejected():
    with pytest.raises(InvalidMonthError):
        month_weeks(2025, 3, min_weekdays=0)
    with pytest.raises(InvalidMonthError):
        month_weeks(2025, 3, min_weekdays=6)

def test_shift_month():
    assert shift_month(2025, 1, -1) == (2024, 12)
    assert shift_month(2024, 12, 1) == (2025, 1)
    assert shift_month(2025, 3, -6) == (2024, 9)
    assert shift_month(2025, 3, 0) == (2025, 3)

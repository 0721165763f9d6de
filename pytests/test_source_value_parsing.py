from __future__ import annotations

from datetime import date

import pytest

from utils.time_utils import iso_date, parse_source_date
from utils.value_parsing import blank_to_none, parse_int_strict


def test_parse_source_date_day_month_year() -> None:
    assert parse_source_date("05-03-1998") == date(1998, 3, 5)
    assert parse_source_date(" 09-08-1960 ") == date(1960, 8, 9)


@pytest.mark.parametrize(
    "raw",
    ["", None, "1998-03-05", "5-3-1998", "31-02-2020", "05/03/1998", "garbage"],
)
def test_parse_source_date_rejects_other_layouts(raw) -> None:
    with pytest.raises(ValueError):
        parse_source_date(raw)


def test_iso_date() -> None:
    assert iso_date(date(2024, 1, 6)) == "2024-01-06"
    assert iso_date(None) is None


def test_blank_to_none() -> None:
    assert blank_to_none("") is None
    assert blank_to_none(None) is None
    assert blank_to_none("x") == "x"
    # Whitespace is data, not absence.
    assert blank_to_none(" ") == " "


def test_parse_int_strict() -> None:
    assert parse_int_strict("2008") == 2008
    assert parse_int_strict(" 2025 ") == 2025
    for bad in ("20O8", "", None, "2008.0"):
        with pytest.raises(ValueError):
            parse_int_strict(bad)

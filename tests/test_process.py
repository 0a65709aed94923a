"""Unit tests for dataset cleaning and the chart's numeric helpers."""

from __future__ import annotations

import pandas as pd
import pytest

from data.process import (
    DateScale,
    dataset_span,
    extent,
    filter_range,
    format_date,
    format_magnitude,
    load_dataset,
    nearest_observation,
    normalize_range,
    parse_date,
    value_ticks,
)

pytestmark = pytest.mark.unit


def _dates_frame(*days: str) -> pd.DataFrame:
    return pd.DataFrame({"date": pd.to_datetime(list(days)), "price_usd": range(len(days))})


# ── load_dataset ───────────────────────────────────────────────────────────────


@pytest.mark.parametrize("missing", ["price_usd", "market_cap", "24h_vol"])
def test_records_missing_a_metric_are_dropped(missing: str) -> None:
    """Any record without all three metric fields never reaches the dataset."""

    record = {"date": "02/01/2015", "price_usd": "1", "market_cap": "2", "24h_vol": "3"}
    incomplete = {k: v for k, v in record.items() if k != missing}

    dataset = load_dataset({"bitcoin": [record, incomplete]})

    assert len(dataset["bitcoin"]) == 1


def test_empty_price_string_excludes_record() -> None:
    """A blank price drops the record even when everything else is valid."""

    raw = {"bitcoin": [
        {"date": "01/01/2015", "price_usd": "", "market_cap": "100", "24h_vol": "10"},
        {"date": "02/01/2015", "price_usd": "5", "market_cap": "100", "24h_vol": "10"},
    ]}

    df = load_dataset(raw)["bitcoin"]

    assert df["date"].tolist() == [pd.Timestamp("2015-01-02")]


def test_null_zero_and_unparseable_values_are_dropped() -> None:
    """Nulls, numeric zero, non-numeric strings and bad dates are all skipped."""

    raw = {"litecoin": [
        {"date": "01/01/2015", "price_usd": None, "market_cap": "1", "24h_vol": "1"},
        {"date": "02/01/2015", "price_usd": 0, "market_cap": "1", "24h_vol": "1"},
        {"date": "03/01/2015", "price_usd": "abc", "market_cap": "1", "24h_vol": "1"},
        {"date": "31/02/2015", "price_usd": "1", "market_cap": "1", "24h_vol": "1"},
        {"date": "05/01/2015", "price_usd": 2.5, "market_cap": 10, "24h_vol": "7"},
    ]}

    df = load_dataset(raw)["litecoin"]

    assert len(df) == 1
    assert df.loc[0, "price_usd"] == 2.5
    assert df.loc[0, "24h_vol"] == 7.0


def test_observations_are_sorted_by_date() -> None:
    """Out-of-order input comes back ascending."""

    raw = {"ripple": [
        {"date": "03/01/2015", "price_usd": "3", "market_cap": "3", "24h_vol": "3"},
        {"date": "01/01/2015", "price_usd": "1", "market_cap": "1", "24h_vol": "1"},
        {"date": "02/01/2015", "price_usd": "2", "market_cap": "2", "24h_vol": "2"},
    ]}

    df = load_dataset(raw)["ripple"]

    assert df["date"].is_monotonic_increasing
    assert df["price_usd"].tolist() == [1.0, 2.0, 3.0]


def test_coin_with_no_usable_records_is_empty_frame() -> None:
    dataset = load_dataset({"ethereum": [{"date": "01/01/2016"}]})

    assert dataset["ethereum"].empty
    assert list(dataset["ethereum"].columns) == ["date", "price_usd", "market_cap", "24h_vol"]
    assert dataset_span(dataset) is None


# ── Dates ──────────────────────────────────────────────────────────────────────


def test_date_format_round_trip() -> None:
    """Formatting then re-parsing gives back the same date, and vice versa."""

    assert format_date(parse_date("12/05/2013")) == "12/05/2013"
    day = pd.Timestamp("2017-10-31")
    assert parse_date(format_date(day)) == day


def test_date_scale_maps_offsets_inside_span() -> None:
    scale = DateScale("2013-05-12", "2017-10-31")

    assert scale.invert(0) == pd.Timestamp("2013-05-12")
    assert scale.invert(scale.span_days) == pd.Timestamp("2017-10-31")
    assert scale.invert(-10) == pd.Timestamp("2013-05-12")
    assert scale(pd.Timestamp("2013-05-22")) == 10


# ── Range filtering ────────────────────────────────────────────────────────────


def test_filter_range_is_inclusive_on_both_ends() -> None:
    df = _dates_frame("2015-01-01", "2015-01-02", "2015-01-03", "2015-01-04")

    out = filter_range(df, "2015-01-02", "2015-01-03")

    assert out["date"].dt.day.tolist() == [2, 3]


def test_normalize_range_swaps_and_clamps() -> None:
    bounds = (pd.Timestamp("2015-01-01"), pd.Timestamp("2015-12-31"))

    start, end = normalize_range("2016-06-01", "2015-03-01", bounds)

    assert start == pd.Timestamp("2015-03-01")
    assert end == pd.Timestamp("2015-12-31")


def test_extent_of_empty_series_is_none() -> None:
    assert extent(pd.Series([], dtype=float)) is None
    assert extent(pd.Series([3.0, 1.0, 2.0])) == (1.0, 3.0)


# ── Nearest-point lookup ───────────────────────────────────────────────────────


def test_nearest_picks_closer_neighbour() -> None:
    df = _dates_frame("2015-01-01", "2015-01-11")

    assert nearest_observation(df, "2015-01-03")["price_usd"] == 0
    assert nearest_observation(df, "2015-01-09")["price_usd"] == 1


def test_nearest_tie_prefers_later() -> None:
    """Exactly halfway between two observations resolves to the later one."""

    df = _dates_frame("2015-01-01", "2015-01-03")

    assert nearest_observation(df, "2015-01-02")["date"] == pd.Timestamp("2015-01-03")


def test_nearest_clamps_outside_range() -> None:
    df = _dates_frame("2015-01-01", "2015-01-05", "2015-01-09")

    assert nearest_observation(df, "2014-01-01")["date"] == pd.Timestamp("2015-01-01")
    assert nearest_observation(df, "2016-01-01")["date"] == pd.Timestamp("2015-01-09")
    assert nearest_observation(df, "2015-01-05")["date"] == pd.Timestamp("2015-01-05")


def test_nearest_on_empty_frame_is_none() -> None:
    assert nearest_observation(_dates_frame(), "2015-01-01") is None


# ── Value axis ─────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (1500, "1.5K"),
        (2_500_000_000, "2.5B"),
        (16_000_000, "16M"),
        (999_600, "1.0M"),
        (300, "300"),
        (0.25, "0.25"),
        (0, "0"),
    ],
)
def test_format_magnitude(value: float, expected: str) -> None:
    assert format_magnitude(value) == expected


def test_value_ticks_are_nice_steps() -> None:
    assert value_ticks(300, 400) == [300 + 10 * i for i in range(11)]
    assert value_ticks(0, 1, 4) == [0.0, 0.2, 0.4, 0.6, 0.8, 1.0]
    assert value_ticks(5, 5) == [5.0]


def test_date_scale_labels_follow_slider_handles() -> None:
    """Handle labels come from the slider value, earlier date first."""

    scale = DateScale("2013-05-12", "2017-10-31")

    assert scale.labels([0, scale.span_days]) == ("12/05/2013", "31/10/2017")
    assert scale.labels([20, 10]) == ("22/05/2013", "01/06/2013")
    assert scale.labels(None) == ("12/05/2013", "31/10/2017")

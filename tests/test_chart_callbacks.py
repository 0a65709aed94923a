"""Tests for the Dash callbacks in components.chart, driven with plain arguments."""

from __future__ import annotations

import pandas as pd
import pytest
from dash import Patch, dcc, no_update

import components.chart as chart
from components.chart import _hover_date, build_readout, Focus, update_chart, update_focus

pytestmark = pytest.mark.unit

FULL_RANGE = [0, 365]


def _hover(x: str) -> dict:
    return {"points": [{"curveNumber": 0, "pointIndex": 0, "x": x, "y": 0}]}


def test_update_chart_full_range(loaded_state) -> None:
    """Initial render draws both points and clears the readout."""

    fig, stats, readout = update_chart("bitcoin", "price_usd", FULL_RANGE)

    assert list(fig.data[0].y) == [300.0, 400.0]
    assert stats.children[0].children[0].children == "2"
    assert readout == ""


def test_update_chart_slider_narrows_range(loaded_state) -> None:
    fig, _, _ = update_chart("bitcoin", "24h_vol", [0, 100])

    assert list(fig.data[0].y) == [10.0]


def test_update_focus_snaps_to_nearest(loaded_state) -> None:
    patched, readout = update_focus(_hover("2015-12-01"), "bitcoin", "price_usd", FULL_RANGE)

    assert isinstance(patched, Patch)
    assert readout == "01/01/2016 · Price: 400 USD"


def test_update_focus_unhover_clears_readout(loaded_state) -> None:
    patched, readout = update_focus(None, "bitcoin", "price_usd", FULL_RANGE)

    assert isinstance(patched, Patch)
    assert readout == ""


def test_update_focus_with_nothing_drawn(loaded_state) -> None:
    """Slider parked between the two observations: the empty figure is left alone."""

    patched, readout = update_focus(_hover("2015-06-01"), "bitcoin", "price_usd", [100, 200])

    assert patched is no_update
    assert readout == ""


def test_hover_date_parsing() -> None:
    assert _hover_date(_hover("2015-01-01")) == pd.Timestamp("2015-01-01")
    assert _hover_date(_hover("not a date")) is None
    assert _hover_date({"points": []}) is None
    assert _hover_date(None) is None


def test_build_readout() -> None:
    focus = Focus(date=pd.Timestamp("2017-10-31"), value=16_000_000_000.0)

    assert build_readout(focus, "market_cap") == "31/10/2017 · Market Capitalization: 16,000,000,000 USD"
    assert build_readout(None, "market_cap") == ""


def test_update_focus_skips_figure_building(loaded_state, monkeypatch) -> None:
    """Hover only looks up the nearest point; the full figure is never rebuilt."""

    def fail(*args, **kwargs):
        raise AssertionError("make_chart_figure called on hover")

    monkeypatch.setattr(chart, "make_chart_figure", fail)

    patched, readout = update_focus(_hover("2015-01-02"), "bitcoin", "price_usd", FULL_RANGE)

    assert isinstance(patched, Patch)
    assert readout == "01/01/2015 · Price: 300 USD"


def test_spinner_only_tracks_full_redraw() -> None:
    """The loading wrapper watches the stats strip, not the hover-patched graph."""

    panel = chart.build_chart_panel()
    loading = panel.children[0]

    assert isinstance(loading, dcc.Loading)
    assert loading.target_components == {"chart-stats": "children"}
    assert [c.id for c in loading.children] == ["chart-stats", "coin-chart"]

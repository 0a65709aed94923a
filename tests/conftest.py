"""Shared fixtures for the chart and data tests."""

from __future__ import annotations

import pytest

import data.state as _state
from data.process import DateScale, dataset_span, load_dataset


@pytest.fixture
def two_point_raw() -> dict:
    """Bitcoin with one observation at the start of 2015 and one at the start of 2016."""

    return {
        "bitcoin": [
            {"date": "01/01/2015", "price_usd": "300", "market_cap": "100", "24h_vol": "10"},
            {"date": "01/01/2016", "price_usd": "400", "market_cap": "200", "24h_vol": "20"},
        ]
    }


@pytest.fixture
def two_point_dataset(two_point_raw):
    return load_dataset(two_point_raw)


@pytest.fixture
def loaded_state(monkeypatch, two_point_dataset):
    """Populate data.state the way app.py does at startup."""

    monkeypatch.setattr(_state, "dataset", two_point_dataset)
    monkeypatch.setattr(_state, "date_scale", DateScale(*dataset_span(two_point_dataset)))
    return _state

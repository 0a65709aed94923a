"""
data/process.py
Dataset cleaning plus the small numeric helpers the chart leans on:
date parsing, range filtering, extents, nearest-point lookup, value-axis ticks.
Depends on the raw JSON from fetch.py; call fetch_coin_data() first, then pass it here.
"""

from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# ── Constants ──────────────────────────────────────────────────────────────────
METRICS = ("price_usd", "market_cap", "24h_vol")
METRIC_LABELS: dict[str, str] = {
    "price_usd":  "Price",
    "market_cap": "Market Capitalization",
    "24h_vol":    "24 Hour Trading Volume",
}
COLUMNS = ["date", *METRICS]
DATE_FORMAT = "%d/%m/%Y"

# Largest first; values are rounded before a suffix is picked
_MAGNITUDES = [(1e9, "B"), (1e6, "M"), (1e3, "K")]


# ── Dates ──────────────────────────────────────────────────────────────────────

def parse_date(value):
    """
    Parse a DD/MM/YYYY string (or a Series of them) into a Timestamp.
    Unparseable input becomes NaT rather than raising.
    """
    return pd.to_datetime(value, format=DATE_FORMAT, errors="coerce")


def format_date(value) -> str:
    """Inverse of parse_date for a single date."""
    return pd.Timestamp(value).strftime(DATE_FORMAT)


# ── Dataset loading ────────────────────────────────────────────────────────────

def _is_present(value) -> bool:
    """Truthiness of a raw field: missing, null, empty string and zero all count as absent."""
    if value is None:
        return False
    if isinstance(value, str):
        return value != ""
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    return True


def empty_observations() -> pd.DataFrame:
    """An Observation frame with the right columns and dtypes but no rows."""
    df = pd.DataFrame(columns=COLUMNS)
    df["date"] = pd.to_datetime(df["date"])
    for metric in METRICS:
        df[metric] = df[metric].astype(float)
    return df


def load_dataset(raw: dict) -> dict[str, pd.DataFrame]:
    """
    Turn the raw coin JSON into the working Dataset.

    A record survives only if all three metric fields are present and non-empty,
    every metric coerces to a finite number and the date parses. Anything else is
    skipped silently. Each coin's frame is sorted ascending by date.

    Args:
        raw: Mapping of coin id → list of record dicts, as read from coins.json.

    Returns:
        Mapping of coin id → DataFrame with columns date, price_usd, market_cap, 24h_vol.
    """
    dataset: dict[str, pd.DataFrame] = {}

    for coin, records in raw.items():
        records = records if isinstance(records, list) else []
        kept = [
            r for r in records
            if isinstance(r, dict) and all(_is_present(r.get(m)) for m in METRICS)
        ]
        if not kept:
            dataset[coin] = empty_observations()
            logger.debug(f"{coin}: no usable records out of {len(records)}")
            continue

        df = pd.DataFrame(kept).reindex(columns=COLUMNS)
        df["date"] = parse_date(df["date"].astype(str))
        for metric in METRICS:
            df[metric] = pd.to_numeric(df[metric], errors="coerce").astype(float)

        df = df.replace([np.inf, -np.inf], np.nan).dropna(subset=COLUMNS)
        df = df.sort_values("date", kind="stable").reset_index(drop=True)

        dropped = len(records) - len(df)
        if dropped:
            logger.debug(f"{coin}: dropped {dropped} of {len(records)} records")
        dataset[coin] = df

    return dataset


def dataset_span(dataset: dict[str, pd.DataFrame]) -> tuple[pd.Timestamp, pd.Timestamp] | None:
    """Earliest and latest date across every coin, or None if nothing loaded."""
    frames = [df["date"] for df in dataset.values() if not df.empty]
    if not frames:
        return None
    dates = pd.concat(frames)
    return dates.min(), dates.max()


# ── Range handling ─────────────────────────────────────────────────────────────

def normalize_range(start, end, bounds=None) -> tuple[pd.Timestamp, pd.Timestamp]:
    """
    Return (start, end) with start <= end, clamped to bounds when given.

    Args:
        start, end: Anything pd.Timestamp accepts.
        bounds:     Optional (lo, hi) pair, usually dataset_span().
    """
    start, end = pd.Timestamp(start), pd.Timestamp(end)
    if start > end:
        start, end = end, start
    if bounds is not None:
        lo, hi = pd.Timestamp(bounds[0]), pd.Timestamp(bounds[1])
        start = min(max(start, lo), hi)
        end = min(max(end, lo), hi)
    return start, end


def filter_range(observations: pd.DataFrame, start, end) -> pd.DataFrame:
    """Observations with start <= date <= end, order preserved."""
    mask = (observations["date"] >= pd.Timestamp(start)) & (observations["date"] <= pd.Timestamp(end))
    return observations[mask].reset_index(drop=True)


def extent(values: pd.Series) -> tuple | None:
    """(min, max) of a Series, or None when it is empty."""
    if values.empty:
        return None
    return values.min(), values.max()


# ── Tooltip lookup ─────────────────────────────────────────────────────────────

def nearest_observation(observations: pd.DataFrame, x0) -> pd.Series | None:
    """
    Find the Observation whose date is closest to x0.

    Bisect-left for x0 among the (sorted) dates, then compare the neighbours on
    either side of the insertion point. On an exact tie the later one wins.

    Args:
        observations: Frame sorted ascending by date.
        x0:           Query date.

    Returns:
        The matching row, or None for an empty frame.
    """
    if observations.empty:
        return None

    x0 = pd.Timestamp(x0)
    i = int(observations["date"].searchsorted(x0, side="left"))
    if i <= 0:
        return observations.iloc[0]
    if i >= len(observations):
        return observations.iloc[-1]

    d0 = observations.iloc[i - 1]
    d1 = observations.iloc[i]
    return d1 if x0 - d0["date"] >= d1["date"] - x0 else d0


# ── Slider scale ───────────────────────────────────────────────────────────────

class DateScale:
    """
    Maps whole-day offsets (what the range slider emits) onto dates in a fixed span.
    Offsets outside [0, span_days] are clamped.
    """

    def __init__(self, start, end):
        self.start = pd.Timestamp(start).normalize()
        self.end = pd.Timestamp(end).normalize()

    @property
    def span_days(self) -> int:
        return int((self.end - self.start).days)

    def __call__(self, date) -> int:
        offset = int((pd.Timestamp(date).normalize() - self.start).days)
        return min(max(offset, 0), self.span_days)

    def invert(self, offset) -> pd.Timestamp:
        offset = min(max(int(round(offset)), 0), self.span_days)
        return self.start + pd.Timedelta(days=offset)

    def labels(self, offsets) -> tuple[str, str]:
        """
        Date labels for the two slider handles, earlier first.
        Missing offsets mean the full span.
        """
        start, end = sorted(offsets or [0, self.span_days])
        return format_date(self.invert(start)), format_date(self.invert(end))


# ── Value axis ─────────────────────────────────────────────────────────────────

def _tick_increment(lo: float, hi: float, count: int) -> float:
    """Step of 1, 2 or 5 × 10^k giving roughly `count` ticks over [lo, hi]."""
    step = (hi - lo) / count
    power = math.floor(math.log10(step))
    error = step / 10 ** power
    if error >= math.sqrt(50):
        factor = 10
    elif error >= math.sqrt(10):
        factor = 5
    elif error >= math.sqrt(2):
        factor = 2
    else:
        factor = 1
    return factor * 10.0 ** power


def value_ticks(lo: float, hi: float, count: int = 10) -> list[float]:
    """
    Evenly spaced "nice" tick values inside [lo, hi].

    Examples:
        value_ticks(300, 400)  → [300, 310, ..., 400]
        value_ticks(0, 1, 4)   → [0.0, 0.2, 0.4, 0.6, 0.8, 1.0]
    """
    if not (np.isfinite(lo) and np.isfinite(hi)):
        return []
    lo, hi = min(lo, hi), max(lo, hi)
    if lo == hi:
        return [float(lo)]

    step = _tick_increment(lo, hi, count)
    first = math.ceil(lo / step - 1e-9)
    last = math.floor(hi / step + 1e-9)
    # Divide by the inverse for fractional steps to keep 0.1-ish ticks exact
    if step < 1:
        inverse = round(1 / step)
        return [i / inverse for i in range(first, last + 1)]
    return [i * step for i in range(first, last + 1)]


def format_magnitude(value: float) -> str:
    """
    Two-significant-digit label with a thousand/million/billion suffix.

    Examples:
        1500           → "1.5K"
        2_500_000_000  → "2.5B"
        300            → "300"
        0.25           → "0.25"
    """
    if value is None or not np.isfinite(value):
        return ""
    if value == 0:
        return "0"

    rounded = float(f"{value:.2g}")
    scale, suffix = 1.0, ""
    for threshold, letter in _MAGNITUDES:
        if abs(rounded) >= threshold:
            scale, suffix = threshold, letter
            break

    scaled = rounded / scale
    decimals = max(0, 1 - math.floor(math.log10(abs(scaled))))
    return f"{scaled:.{decimals}f}{suffix}"


def format_exact(value: float) -> str:
    """Full-precision readout value with thousands separators."""
    return f"{value:,.15g}"

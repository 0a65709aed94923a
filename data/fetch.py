"""
data/fetch.py
Handles getting the raw coin JSON: a remote URL, a local coins.json, or generated mock data.
Downloads are cached as JSON in data/cache/ to avoid repeated requests.
"""

import os
import json
import logging
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
import requests
from dotenv import load_dotenv

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
logger = logging.getLogger(__name__)

load_dotenv()  # loads COINSTATS_* settings from .env file

# ── Constants ──────────────────────────────────────────────────────────────────
CACHE_DIR = Path(__file__).parent / "cache"
CACHE_DIR.mkdir(exist_ok=True)

CACHE_TTL_HOURS = float(os.getenv("COINSTATS_CACHE_TTL_HOURS", "24"))  # re-download if older
DATA_URL = os.getenv("COINSTATS_DATA_URL", "")
DATA_PATH = Path(os.getenv("COINSTATS_DATA_PATH", str(Path(__file__).parent / "coins.json")))
REQUEST_TIMEOUT = 15

# ── Cache helpers ──────────────────────────────────────────────────────────────

def _cache_is_fresh(path: Path) -> bool:
    """Return True if the cache file exists and is less than CACHE_TTL_HOURS old."""
    if not path.exists():
        return False
    age_hours = (datetime.now().timestamp() - path.stat().st_mtime) / 3600
    return age_hours < CACHE_TTL_HOURS


def _save_cache(raw: dict, path: Path) -> None:
    """Save the raw coin JSON to the cache."""
    path.write_text(json.dumps(raw))
    logger.info(f"Cached {len(raw)} coins → {path.name}")


def _read_json(path: Path) -> dict:
    """Read a coins JSON file, insisting on a top-level object."""
    with open(path, encoding="utf-8") as fh:
        raw = json.load(fh)
    if not isinstance(raw, dict):
        raise ValueError(f"{path.name}: expected a JSON object of coin → records")
    return raw


# ── Mock data generator ────────────────────────────────────────────────────────

# (coin id, first date, opening price, circulating supply)
_MOCK_COINS = [
    ("bitcoin",      "12/05/2013", 115.0,  11_100_000),
    ("ethereum",     "07/08/2015", 2.8,    72_000_000),
    ("bitcoin_cash", "23/07/2017", 300.0,  16_400_000),
    ("litecoin",     "12/05/2013", 3.3,    17_500_000),
    ("ripple",       "04/08/2013", 0.006,  7_800_000_000),
]
_MOCK_END = "31/10/2017"


def _generate_mock_coins() -> dict:
    """
    Generate a daily random-walk history for five coins, shaped like coins.json.
    Used as fallback when neither a URL nor a local file is available.
    Values are strings, and roughly 2% of fields are blanked the way the real
    file has gaps.
    """
    logger.warning("Using MOCK coin data — set COINSTATS_DATA_URL or COINSTATS_DATA_PATH for real data.")

    rng = np.random.default_rng(42)  # fixed seed for reproducibility
    end = pd.to_datetime(_MOCK_END, format="%d/%m/%Y")

    raw = {}
    for coin, first, opening, supply in _MOCK_COINS:
        dates = pd.date_range(pd.to_datetime(first, format="%d/%m/%Y"), end, freq="D")
        n = len(dates)

        returns = rng.normal(0.002, 0.045, n)
        price = opening * np.exp(np.cumsum(returns))
        circulating = supply * np.linspace(1.0, 1.25, n)
        market_cap = price * circulating
        volume = market_cap * rng.uniform(0.005, 0.08, n)

        blanks = rng.random((n, 3)) < 0.02

        records = []
        for i, date in enumerate(dates):
            values = [f"{price[i]:.6g}", f"{market_cap[i]:.0f}", f"{volume[i]:.0f}"]
            values = ["" if blanks[i, j] else v for j, v in enumerate(values)]
            records.append({
                "date": date.strftime("%d/%m/%Y"),
                "price_usd": values[0],
                "market_cap": values[1],
                "24h_vol": values[2],
            })
        raw[coin] = records

    return raw


# ── Main fetch function ────────────────────────────────────────────────────────

def fetch_coin_data() -> dict:
    """
    Get the raw coin history as a dict of coin id → list of records.

    Tries, in order: a fresh download cache, COINSTATS_DATA_URL, the local file
    at COINSTATS_DATA_PATH, then generated mock data. A failure at any source is
    logged and the next one is tried.

    Returns:
        Raw JSON object; records still hold strings and may have empty fields.
    """
    cache_path = CACHE_DIR / "coins.json"

    if DATA_URL:
        # Use cache if fresh
        if _cache_is_fresh(cache_path):
            try:
                logger.info("Loading coin data from cache.")
                return _read_json(cache_path)
            except (OSError, ValueError) as e:
                logger.warning(f"Cache unreadable: {e}. Downloading again.")

        try:
            resp = requests.get(DATA_URL, timeout=REQUEST_TIMEOUT)
            resp.raise_for_status()
            raw = resp.json()
            if not isinstance(raw, dict):
                raise ValueError("expected a JSON object of coin → records")

            _save_cache(raw, cache_path)
            logger.info(f"Fetched {len(raw)} coins from {DATA_URL}.")
            return raw

        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Download from {DATA_URL} failed: {e}. Trying local file.")

    if DATA_PATH.exists():
        try:
            raw = _read_json(DATA_PATH)
            logger.info(f"Loaded {len(raw)} coins from {DATA_PATH}.")
            return raw
        except (OSError, ValueError) as e:
            logger.warning(f"Could not read {DATA_PATH}: {e}. Falling back to mock data.")

    return _generate_mock_coins()

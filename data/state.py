"""
data/state.py
Module-level shared state. Holds the loaded Dataset and the slider scale so
component callbacks can reach them without circular imports back to app.py.
Populated once by app.py at startup and read-only afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from data.process import DateScale

# Set by app.py after data loading is complete.
dataset: dict[str, pd.DataFrame] = {}
date_scale: DateScale | None = None


@dataclass
class Selection:
    """What the user is currently looking at. Resets to these defaults on reload."""

    coin: str = "bitcoin"
    metric: str = "price_usd"
    start: pd.Timestamp | None = None
    end: pd.Timestamp | None = None

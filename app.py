"""
app.py — CoinStats
Entry point. Initializes Dash, loads data, defines layout, wires callbacks.
Keep this file thin — chart logic lives in components/.
"""

from dash import Dash, dcc, html, Input, Output, callback

# ── Data loading (runs once at startup) ───────────────────────────────────────
from data.fetch import fetch_coin_data
from data.process import (
    METRICS,
    METRIC_LABELS,
    DateScale,
    dataset_span,
    format_date,
    load_dataset,
)
import data.state as _state  # shared runtime state (avoids circular imports)

# ══════════════════════════════════════════════════════════════════════════════
# DATA LOADING
# ══════════════════════════════════════════════════════════════════════════════

print("Loading coin data...")
raw = fetch_coin_data()

print("Cleaning observations...")
dataset = load_dataset(raw)

span = dataset_span(dataset)
if span is None:
    raise SystemExit("No usable observations in the coin data.")

print(f"Ready — {sum(len(df) for df in dataset.values()):,} observations "
      f"across {len(dataset)} coins.\n")

# ── Populate shared state (BEFORE importing components) ───────────────────────
_state.dataset = dataset
_state.date_scale = DateScale(*span)

# ── Component callbacks (importing registers them with Dash) ──────────────────
import components.chart as _chart   # noqa: F401, E402

# ── Derived lists for dropdowns ───────────────────────────────────────────────
ALL_COINS = list(dataset)
DEFAULT_COIN = "bitcoin" if "bitcoin" in dataset else ALL_COINS[0]
SLIDER_MAX = _state.date_scale.span_days

# ══════════════════════════════════════════════════════════════════════════════
# APP
# ══════════════════════════════════════════════════════════════════════════════

app = Dash(
    __name__,
    title="CoinStats",
    suppress_callback_exceptions=True,
)

# ══════════════════════════════════════════════════════════════════════════════
# LAYOUT
# ══════════════════════════════════════════════════════════════════════════════


def _filter_block(title: str, children) -> html.Div:
    """Wrap a control in a labeled section block."""
    return html.Div(className="filter-block", children=[
        html.Div(title, className="filter-title"),
        *([children] if not isinstance(children, list) else children),
    ])


def coin_label(coin: str) -> str:
    """bitcoin_cash → Bitcoin Cash"""
    return coin.replace("_", " ").title()


def build_sidebar() -> html.Div:
    """Build the left sidebar with the coin, metric and date controls."""
    return html.Div(id="sidebar", children=[

        # ── Coin ──────────────────────────────────────────────
        _filter_block("COIN", dcc.Dropdown(
            id="coin-select",
            options=[{"label": coin_label(c), "value": c} for c in ALL_COINS],
            value=DEFAULT_COIN,
            clearable=False,
        )),

        # ── Metric ────────────────────────────────────────────
        _filter_block("METRIC", dcc.Dropdown(
            id="metric-select",
            options=[{"label": METRIC_LABELS[m], "value": m} for m in METRICS],
            value="price_usd",
            clearable=False,
        )),

        # ── Date range ─────────────────────────────────────────
        _filter_block("DATE RANGE", [
            html.Div(className="date-row", children=[
                html.Span(format_date(span[0]), id="date-label-start"),
                html.Span("→", className="date-arrow"),
                html.Span(format_date(span[1]), id="date-label-end"),
            ]),
            dcc.RangeSlider(
                id="date-slider",
                min=0,
                max=SLIDER_MAX,
                step=1,
                value=[0, SLIDER_MAX],
                marks=None,
                allowCross=False,
                updatemode="drag",
            ),
        ]),
    ])


app.layout = html.Div(id="app-wrapper", children=[

    # ── Header ────────────────────────────────────────────────────
    html.Div(id="header", children=[
        html.Div(id="header-left", children=[
            html.Span("COINSTATS", id="header-logo"),
            html.Span("Cryptocurrency Price, Market Cap & Volume", id="header-subtitle"),
        ]),
    ]),

    # ── Body ──────────────────────────────────────────────────────
    html.Div(id="body-layout", children=[
        build_sidebar(),
        html.Div(id="main-content", children=[
            _chart.build_chart_panel(),
        ]),
    ]),

    # ── Footer ────────────────────────────────────────────────────
    html.Div(id="footer", children=[
        html.Span(f"{format_date(span[0])} – {format_date(span[1])}"),
    ]),
])

# ══════════════════════════════════════════════════════════════════════════════
# CALLBACKS
# ══════════════════════════════════════════════════════════════════════════════

@callback(
    Output("date-label-start", "children"),
    Output("date-label-end",   "children"),
    Input("date-slider", "value"),
)
def update_range_labels(slider_value):
    """Show the dates under the slider handles; derived from the slider value only."""
    return _state.date_scale.labels(slider_value)


# ══════════════════════════════════════════════════════════════════════════════
# ENTRY POINT
# ══════════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    app.run(debug=True, host="127.0.0.1", port=8050)

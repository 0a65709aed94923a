"""
components/chart.py
The coin chart: one metric for one coin over the chosen date range, with a
hover readout that snaps to the nearest observation.
"""

from __future__ import annotations

from dataclasses import dataclass

import pandas as pd
import plotly.graph_objects as go
from dash import dcc, html

from data.process import (
    METRICS,
    METRIC_LABELS,
    dataset_span,
    empty_observations,
    extent,
    filter_range,
    format_date,
    format_exact,
    format_magnitude,
    nearest_observation,
    normalize_range,
    value_ticks,
)
from data.state import Selection

# ── Color constants ────────────────────────────────────────────────────────────
LINE_COLOR  = "#9ca3af"   # grey
FOCUS_COLOR = "#f0c040"

CHART_BG   = "#06090f"
PAPER_BG   = "#06090f"
GRID_COLOR = "#1e2a36"
TEXT_COLOR = "#e2e8f0"
LABEL_COLOR = "#5D6971"

CHART_HEIGHT = 500
CHART_MARGIN = {"l": 80, "r": 100, "t": 50, "b": 100}
TIME_TICKS  = 4
VALUE_TICKS = 10
FOCUS_RADIUS_PX = 7.5


@dataclass
class Focus:
    """The observation the pointer is nearest to."""

    date: pd.Timestamp
    value: float

    @property
    def label(self) -> str:
        return format_exact(self.value)


class ChartController:
    """
    Owns the selection and the derived view for one chart.

    Every setter mutates the selection and redraws. After a redraw,
    `filtered`, `x_domain` and `y_domain` describe what is on screen; both
    domains are None when the selected range holds no observations.
    """

    def __init__(self, dataset: dict[str, pd.DataFrame], selection: Selection | None = None):
        self.dataset = dataset
        self.span = dataset_span(dataset)
        self.selection = selection or Selection()

        if self.selection.coin not in dataset and dataset:
            self.selection.coin = next(iter(dataset))
        if self.span is not None:
            if self.selection.start is None:
                self.selection.start = self.span[0]
            if self.selection.end is None:
                self.selection.end = self.span[1]

        self.filtered = empty_observations()
        self.x_domain = None
        self.y_domain = None

    # ── Selection ──────────────────────────────────────────────

    def set_coin(self, coin: str) -> go.Figure:
        if coin not in self.dataset:
            raise ValueError(f"Unknown coin: {coin!r}")
        self.selection.coin = coin
        return self.redraw()

    def set_metric(self, metric: str) -> go.Figure:
        if metric not in METRICS:
            raise ValueError(f"Unknown metric: {metric!r}")
        self.selection.metric = metric
        return self.redraw()

    def set_date_range(self, start, end) -> go.Figure:
        """Store a new range, swapped if inverted and clamped to the dataset span."""
        self.selection.start, self.selection.end = normalize_range(start, end, self.span)
        return self.redraw()

    # ── View ───────────────────────────────────────────────────

    def redraw(self) -> go.Figure:
        """Recompute the visible subset and both domains, then build the figure."""
        self.derive()
        return make_chart_figure(self.filtered, self.selection.metric, self.x_domain, self.y_domain)

    def derive(self) -> None:
        """Recompute `filtered`, `x_domain` and `y_domain` without building a figure."""
        metric = self.selection.metric
        observations = self.dataset.get(self.selection.coin, empty_observations())

        if self.span is None or self.selection.start is None or self.selection.end is None:
            self.filtered = empty_observations()
        else:
            start, end = normalize_range(self.selection.start, self.selection.end, self.span)
            self.filtered = filter_range(observations, start, end)

        self.x_domain = extent(self.filtered["date"])
        self.y_domain = extent(self.filtered[metric])

    def hover(self, x0) -> Focus | None:
        """Nearest observation to the pointer's date, or None if nothing is drawn."""
        row = nearest_observation(self.filtered, x0)
        if row is None:
            return None
        return Focus(date=row["date"], value=float(row[self.selection.metric]))


# ── Figure ─────────────────────────────────────────────────────────────────────

def _axis_range(lo, hi, pad):
    """Widen a degenerate (single-value) domain so the axis stays drawable."""
    if lo == hi:
        return [lo - pad, hi + pad]
    return [lo, hi]


def make_chart_figure(
    filtered: pd.DataFrame,
    metric: str,
    x_domain: tuple | None,
    y_domain: tuple | None,
) -> go.Figure:
    """
    Build the line figure for an already-filtered set of observations.

    Args:
        filtered: Observations inside the selected range, sorted by date.
        metric:   Column to plot on the value axis.
        x_domain: (first date, last date) of `filtered`.
        y_domain: (min, max) of `filtered[metric]`.

    Returns:
        Plotly Figure; an annotated blank one when `filtered` is empty.
    """
    if filtered.empty or x_domain is None or y_domain is None:
        return _empty_fig("No data in the selected date range.")

    label = METRIC_LABELS[metric]
    y_lo, y_hi = y_domain
    tickvals = value_ticks(y_lo, y_hi, VALUE_TICKS)

    fig = go.Figure(
        go.Scatter(
            x=filtered["date"],
            y=filtered[metric],
            mode="lines",
            line={"color": LINE_COLOR, "width": 1.5, "shape": "linear"},
            name=label,
            hovertemplate="%{x|%d/%m/%Y}<extra></extra>",
        )
    )

    fig.update_layout(
        height=CHART_HEIGHT,
        paper_bgcolor=PAPER_BG,
        plot_bgcolor=CHART_BG,
        font={"color": TEXT_COLOR, "family": "IBM Plex Mono, monospace", "size": 11},
        margin=CHART_MARGIN,
        hovermode="x",
        showlegend=False,
        transition={"duration": 500},
    )
    fig.update_xaxes(
        title={"text": "Time", "font": {"size": 20, "color": LABEL_COLOR}},
        range=_axis_range(x_domain[0], x_domain[1], pd.Timedelta(days=1)),
        nticks=TIME_TICKS,
        gridcolor=GRID_COLOR,
        zeroline=False,
    )
    fig.update_yaxes(
        title={"text": f"{label} (USD)", "font": {"size": 20, "color": LABEL_COLOR}},
        range=_axis_range(y_lo, y_hi, abs(y_lo) * 0.05 or 1),
        tickmode="array",
        tickvals=tickvals,
        ticktext=[format_magnitude(v) for v in tickvals],
        gridcolor=GRID_COLOR,
        zeroline=False,
    )
    return fig


def focus_overlay(focus: Focus, x_domain: tuple, y_domain: tuple) -> dict:
    """
    Layout pieces that mark the focused observation: hover lines running from
    each axis to the point, a circle on it, and its value beside it.

    Returns:
        {"shapes": [...], "annotations": [...]} ready to drop into a figure layout.
    """
    x_lo = x_domain[0]
    y_lo = y_domain[0]
    line = {"color": FOCUS_COLOR, "width": 1, "dash": "dot"}

    shapes = [
        {"type": "line", "xref": "x", "yref": "y",
         "x0": focus.date, "x1": focus.date, "y0": y_lo, "y1": focus.value, "line": line},
        {"type": "line", "xref": "x", "yref": "y",
         "x0": x_lo, "x1": focus.date, "y0": focus.value, "y1": focus.value, "line": line},
        {"type": "circle", "xref": "x", "yref": "y",
         "xsizemode": "pixel", "ysizemode": "pixel",
         "xanchor": focus.date, "yanchor": focus.value,
         "x0": -FOCUS_RADIUS_PX, "x1": FOCUS_RADIUS_PX,
         "y0": -FOCUS_RADIUS_PX, "y1": FOCUS_RADIUS_PX,
         "line": {"color": FOCUS_COLOR, "width": 1.5}},
    ]
    annotations = [
        {"x": focus.date, "y": focus.value, "xref": "x", "yref": "y",
         "text": focus.label, "showarrow": False,
         "xanchor": "left", "xshift": 15,
         "font": {"color": FOCUS_COLOR}},
    ]
    return {"shapes": shapes, "annotations": annotations}


def _empty_fig(message: str) -> go.Figure:
    """Return a blank figure with an annotation."""
    fig = go.Figure()
    fig.update_layout(
        height=CHART_HEIGHT,
        paper_bgcolor=PAPER_BG,
        plot_bgcolor=CHART_BG,
        font={"color": TEXT_COLOR},
        xaxis={"visible": False},
        yaxis={"visible": False},
        annotations=[{
            "text": message,
            "xref": "paper", "yref": "paper",
            "x": 0.5, "y": 0.5,
            "showarrow": False,
            "font": {"size": 14, "color": "#7a90b0"},
        }],
    )
    return fig


# ── Stats strip ────────────────────────────────────────────────────────────────

def summarize(filtered: pd.DataFrame, metric: str) -> dict:
    """Point count, first→last change and latest value for the visible range."""
    if filtered.empty:
        return {"points": 0, "change_pct": None, "latest": None}

    first = float(filtered[metric].iloc[0])
    latest = float(filtered[metric].iloc[-1])
    change = (latest - first) / first * 100 if first else None
    return {"points": len(filtered), "change_pct": change, "latest": latest}


def build_stats(filtered: pd.DataFrame, metric: str) -> html.Div:
    stats = summarize(filtered, metric)
    change = "—" if stats["change_pct"] is None else f"{stats['change_pct']:+.1f}%"
    latest = "—" if stats["latest"] is None else format_magnitude(stats["latest"])

    return html.Div(className="stats-grid", children=[
        html.Div(className="stat-chip", children=[
            html.Span(f"{stats['points']:,}", className="stat-val"),
            html.Span("points",              className="stat-lbl"),
        ]),
        html.Div(className="stat-chip", children=[
            html.Span(change,                className="stat-val"),
            html.Span("change",              className="stat-lbl"),
        ]),
        html.Div(className="stat-chip", children=[
            html.Span(latest,                className="stat-val"),
            html.Span("latest",              className="stat-lbl"),
        ]),
    ])


def build_readout(focus: Focus | None, metric: str) -> str:
    """Text under the chart for the hovered observation."""
    if focus is None:
        return ""
    return f"{format_date(focus.date)} · {METRIC_LABELS[metric]}: {focus.label} USD"


# ── Layout ─────────────────────────────────────────────────────────────────────

def build_chart_panel() -> html.Div:
    """
    Chart, stats strip and hover readout. Figures arrive through callbacks.

    The spinner only tracks the stats strip, which just the full redraw writes;
    hover patches to the figure must not hide the graph mid-move.
    """
    return html.Div([
        dcc.Loading(
            type="circle",
            color=FOCUS_COLOR,
            target_components={"chart-stats": "children"},
            children=[
                html.Div(id="chart-stats", className="chart-stats"),
                dcc.Graph(
                    id="coin-chart",
                    config={"displayModeBar": False},
                    clear_on_unhover=True,
                ),
            ],
        ),
        html.Div(id="chart-readout", className="chart-readout"),
    ])


# ── Callbacks ──────────────────────────────────────────────────────────────────
# Imported by app.py, reads the shared dataset and slider scale from data.state

from dash import Patch, callback, no_update, Input, Output, State  # noqa: E402


def controller_for(coin: str, metric: str, slider_value) -> ChartController:
    """Build a controller from the current control values (slider offsets → dates)."""
    import data.state as _state

    selection = Selection(coin=coin, metric=metric)
    if _state.date_scale is not None and slider_value:
        selection.start = _state.date_scale.invert(slider_value[0])
        selection.end = _state.date_scale.invert(slider_value[1])

    return ChartController(_state.dataset, selection)


def _hover_date(hover_data) -> pd.Timestamp | None:
    """
    Pull the pointer's date out of a dcc.Graph hoverData payload.
    Plotly has already inverted the pixel position and, with hovermode="x",
    snapped it to a drawn point, so this is usually an exact observation date.
    """
    if not hover_data or not hover_data.get("points"):
        return None
    x0 = pd.to_datetime(hover_data["points"][0].get("x"), errors="coerce")
    return None if pd.isna(x0) else x0


@callback(
    Output("coin-chart", "figure"),
    Output("chart-stats", "children"),
    Output("chart-readout", "children"),
    Input("coin-select", "value"),
    Input("metric-select", "value"),
    Input("date-slider", "value"),
)
def update_chart(coin: str, metric: str, slider_value):
    """Redraw the chart whenever the coin, metric or date range changes."""
    controller = controller_for(coin, metric, slider_value)
    fig = controller.redraw()
    return fig, build_stats(controller.filtered, metric), ""


@callback(
    Output("coin-chart", "figure", allow_duplicate=True),
    Output("chart-readout", "children", allow_duplicate=True),
    Input("coin-chart", "hoverData"),
    State("coin-select", "value"),
    State("metric-select", "value"),
    State("date-slider", "value"),
    prevent_initial_call=True,
)
def update_focus(hover_data, coin: str, metric: str, slider_value):
    """Snap the focus marker and readout to the observation nearest the pointer."""
    x0 = _hover_date(hover_data)
    patched = Patch()

    controller = controller_for(coin, metric, slider_value)
    controller.derive()
    focus = controller.hover(x0) if x0 is not None else None

    if focus is None:
        if controller.filtered.empty:
            return no_update, ""
        patched["layout"]["shapes"] = []
        patched["layout"]["annotations"] = []
        return patched, ""

    overlay = focus_overlay(focus, controller.x_domain, controller.y_domain)
    patched["layout"]["shapes"] = overlay["shapes"]
    patched["layout"]["annotations"] = overlay["annotations"]
    return patched, build_readout(focus, metric)

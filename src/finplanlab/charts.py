"""
Chart functions for visualizing FinPlanLab projections and loans.

All chart functions return (figure, tidy_dataframe_used) for consistency.
"""

from __future__ import annotations

import pandas as pd

from .core.amortization import AmortizationResult, build_yearly_amortization
from .core.kinds import Bucket
from .core.results import ProjectionResult

# Plotly imports with graceful fallback
try:
    import plotly.express as px
    import plotly.graph_objects as go

    PLOTLY_AVAILABLE = True
except ImportError:
    PLOTLY_AVAILABLE = False


def _check_plotly() -> None:
    """Check if Plotly is available and raise helpful error if not."""
    if not PLOTLY_AVAILABLE:
        raise ImportError(
            "Plotly is required for chart functions. Install with:\n"
            "pip install plotly kaleido\n"
            "or\n"
            "pip install 'finplanlab[viz]'"
        )


def bucket_balances_over_time(result: ProjectionResult) -> tuple[go.Figure, pd.DataFrame]:
    """
    Stacked area of closing balances per bucket.

    **Use Cases:**
    - See which buckets carry the plan and when they are drawn down
    - Spot the years the floating corpus is exhausted

    **Args:**
        result: Output of :func:`finplanlab.core.timeline.project_timeline`

    **Returns:**
        Tuple of (plotly_figure, tidy_dataframe_used) with year, bucket, balance columns

    **Example:**
        ```python
        fig, data = bucket_balances_over_time(project_timeline(state, 2026))
        fig.show()
        ```
    """
    _check_plotly()

    tidy = pd.DataFrame(
        [
            {"year": row.year, "bucket": bucket.value, "balance": row.closing.get(bucket, 0.0)}
            for row in result
            for bucket in Bucket
        ],
        columns=["year", "bucket", "balance"],
    )
    fig = px.area(
        tidy,
        x="year",
        y="balance",
        color="bucket",
        title="Bucket Balances Over Time",
        labels={"balance": "Closing balance", "year": "Year"},
    )
    fig.update_layout(hovermode="x unified", legend_title="Bucket")
    return fig, tidy


def goal_achievement_heatmap(result: ProjectionResult) -> tuple[go.Figure, pd.DataFrame]:
    """
    Heat map of achievement % per goal and year (years with demand only).

    Args:
        result: Projection result

    Returns:
        Tuple of (plotly_figure, goal x year pivot used)
    """
    _check_plotly()

    goals = result.goal_frame()
    goals = goals[goals["required"] > 0]
    pivot = goals.pivot_table(
        index="goal_id", columns="year", values="achievement_pct", aggfunc="mean"
    )
    fig = go.Figure(
        data=go.Heatmap(
            z=pivot.values,
            x=[str(c) for c in pivot.columns],
            y=list(pivot.index),
            zmin=0,
            zmax=100,
            colorscale="RdYlGn",
            colorbar={"title": "Achieved %"},
        )
    )
    fig.update_layout(title="Goal Achievement by Year", xaxis_title="Year", yaxis_title="Goal")
    return fig, pivot


def cashflow_bars(result: ProjectionResult) -> tuple[go.Figure, pd.DataFrame]:
    """
    Yearly inflow against its uses: expenses, debt service, contributions, goals.

    Args:
        result: Projection result

    Returns:
        Tuple of (plotly_figure, tidy_dataframe_used)
    """
    _check_plotly()

    df = result.to_frame()
    components = ["expenses", "debt_service", "committed", "funded_total"]
    tidy = (
        df.reset_index()[["year", *components]]
        .melt(id_vars="year", var_name="component", value_name="amount")
        if not df.empty
        else pd.DataFrame(columns=["year", "component", "amount"])
    )

    fig = px.bar(
        tidy,
        x="year",
        y="amount",
        color="component",
        title="Where the Money Goes",
        labels={"amount": "Amount", "year": "Year"},
    )
    if not df.empty:
        fig.add_trace(
            go.Scatter(
                x=df.index,
                y=df["inflow"],
                mode="lines",
                name="inflow",
                line={"color": "black", "width": 2},
            )
        )
    fig.update_layout(barmode="stack", hovermode="x unified", legend_title="Component")
    return fig, tidy


def loan_amortization(
    result: AmortizationResult, title: str = "Loan Amortization"
) -> tuple[go.Figure, pd.DataFrame]:
    """
    Yearly interest/principal bars with the closing balance as a line.

    Args:
        result: Output of :func:`build_amortization_schedule`
        title: Chart title

    Returns:
        Tuple of (plotly_figure, yearly dataframe used)
    """
    _check_plotly()

    yearly = pd.DataFrame(
        [vars(row) for row in build_yearly_amortization(result.schedule)],
        columns=[
            "year_index",
            "year",
            "opening_balance",
            "interest",
            "emi",
            "principal",
            "extra_payment",
            "closing_balance",
        ],
    )

    fig = go.Figure()
    fig.add_trace(go.Bar(x=yearly["year"], y=yearly["principal"], name="Principal"))
    fig.add_trace(go.Bar(x=yearly["year"], y=yearly["interest"], name="Interest"))
    fig.add_trace(go.Bar(x=yearly["year"], y=yearly["extra_payment"], name="Prepayment"))
    fig.add_trace(
        go.Scatter(
            x=yearly["year"],
            y=yearly["closing_balance"],
            mode="lines+markers",
            name="Balance",
            yaxis="y2",
        )
    )
    fig.update_layout(
        title=title,
        barmode="stack",
        xaxis_title="Year",
        yaxis={"title": "Paid"},
        yaxis2={"title": "Balance", "overlaying": "y", "side": "right"},
        hovermode="x unified",
    )
    return fig, yearly


def save_chart(fig: go.Figure, filename: str, format: str = "html") -> None:
    """
    Save chart to file.

    Args:
        fig: Plotly figure
        filename: Output filename
        format: Output format ('html', 'png', 'pdf', 'svg')
    """
    _check_plotly()

    if format == "html":
        fig.write_html(filename)
    elif format in ("png", "pdf", "svg"):
        fig.write_image(filename, format=format)
    else:
        raise ValueError(f"Unsupported format: {format}")

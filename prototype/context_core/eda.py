from __future__ import annotations

from typing import List, Optional, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .records import Category


EDA_FEATURES = ("danceability", "valence", "duration_ms")

CATEGORY_COLORS = {
    Category.NIGHT.value: "rgb(72, 61, 139)",
    Category.WORK.value: "rgb(32, 201, 151)",
    Category.LOUNGE.value: "rgb(255, 159, 64)",
}


def _present(df: pd.DataFrame, features: Sequence[str]) -> List[str]:
    missing = [f for f in features if f not in df.columns]
    if missing:
        raise KeyError(f"Features not in table: {', '.join(missing)}")
    return list(features)


def category_counts(df: pd.DataFrame) -> pd.Series:
    counts = df["category"].astype(str).value_counts()
    return counts.reindex(Category.labels(), fill_value=0)


def summarize_by_category(df: pd.DataFrame, features: Sequence[str] = EDA_FEATURES) -> pd.DataFrame:
    """
    Descriptive statistics of each feature within each category.

    Returns a frame indexed by (category, feature) with count, mean, std,
    min, median and max columns, categories in declaration order.
    """
    features = _present(df, features)
    categories = pd.Categorical(df["category"].astype(str), categories=Category.labels())
    grouped = df[features].groupby(categories, observed=False)
    summary = grouped.agg(["count", "mean", "std", "min", "median", "max"])
    summary = summary.stack(level=0, future_stack=True)
    summary.index = summary.index.set_names(["category", "feature"])
    return summary


def feature_correlations(df: pd.DataFrame, features: Sequence[str] = EDA_FEATURES) -> pd.DataFrame:
    return df[_present(df, features)].corr()


def distribution_figure(df: pd.DataFrame, feature: str, nbins: int = 20) -> go.Figure:
    fig = px.histogram(
        df,
        x=feature,
        color="category",
        barmode="overlay",
        nbins=nbins,
        opacity=0.6,
        category_orders={"category": Category.labels()},
        color_discrete_map=CATEGORY_COLORS,
    )
    fig.update_layout(
        title=f"{feature.replace('_', ' ').title()} by Category",
        font=dict(size=12),
        height=400,
    )
    return fig


def box_figure(df: pd.DataFrame, feature: str) -> go.Figure:
    fig = px.box(
        df,
        x="category",
        y=feature,
        color="category",
        points="all",
        category_orders={"category": Category.labels()},
        color_discrete_map=CATEGORY_COLORS,
    )
    fig.update_layout(showlegend=False, title=feature.replace("_", " ").title(), height=400)
    return fig


def scatter_figure(
    df: pd.DataFrame,
    x: str,
    y: str,
    hover: Optional[Sequence[str]] = ("name", "primary_artist"),
) -> go.Figure:
    hover_data = [c for c in (hover or []) if c in df.columns]
    fig = px.scatter(
        df,
        x=x,
        y=y,
        color="category",
        hover_data=hover_data,
        category_orders={"category": Category.labels()},
        color_discrete_map=CATEGORY_COLORS,
    )
    fig.update_layout(
        title=f"{x.replace('_', ' ').title()} vs {y.replace('_', ' ').title()}",
        font=dict(size=12),
        height=450,
    )
    return fig

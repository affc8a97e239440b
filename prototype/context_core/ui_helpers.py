from __future__ import annotations

from typing import Dict, List, Optional

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from sklearn.tree import export_text

from .evaluation import EvaluationResult
from .trainer import ModelResult, TrainedModel


def tree_text(model: TrainedModel, max_depth: int = 10) -> str:
    """Text rendering of a fitted decision tree's splits."""
    return export_text(model.estimator, feature_names=model.feature_names, max_depth=max_depth)


def confusion_matrix_figure(evaluation: EvaluationResult, title: str = "Confusion Matrix") -> go.Figure:
    """Heatmap with actual categories on the y axis and predictions on the x axis"""
    fig = go.Figure(data=go.Heatmap(
        z=evaluation.confusion,
        x=evaluation.labels,
        y=evaluation.labels,
        text=evaluation.confusion,
        texttemplate="%{text}",
        colorscale="Greens",
        showscale=False,
    ))
    fig.update_layout(
        title=title,
        xaxis_title="Predicted",
        yaxis=dict(title="Actual", autorange="reversed"),
        font=dict(size=12),
        height=400,
    )
    return fig


def importance_figure(importances: Dict[str, float], title: str = "Feature Importance") -> go.Figure:
    names = list(importances.keys())[::-1]
    scores = list(importances.values())[::-1]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=scores,
        y=[n.replace("_", " ").title() for n in names],
        orientation="h",
        marker_color="rgb(32, 201, 151)",
    ))
    fig.update_layout(
        title=title,
        xaxis_title="Importance",
        showlegend=False,
        font=dict(size=12),
        height=max(300, 40 * len(names) + 120),
    )
    return fig


def cv_accuracy_figure(model: TrainedModel) -> go.Figure:
    """Mean cross-validated accuracy for every searched candidate"""
    results = model.cv_results
    param = next(iter(model.best_params))
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=results[f"param_{param}"].astype(int),
        y=results["mean_test_score"],
        mode="lines+markers",
        line_color="rgb(32, 201, 151)",
    ))
    fig.update_layout(
        title=f"Cross-validated Accuracy by {param.replace('_', ' ').title()}",
        xaxis_title=param,
        yaxis_title="Accuracy",
        height=350,
    )
    return fig


def render_class_statistics(evaluation: EvaluationResult) -> None:
    frame = evaluation.per_class_frame()
    st.dataframe(frame.style.format({
        "sensitivity": "{:.3f}",
        "specificity": "{:.3f}",
        "balanced_accuracy": "{:.3f}",
    }))


def render_model_result(result: ModelResult, show_tree: bool = False) -> None:
    model, evaluation = result.model, result.evaluation
    title = model.name.replace("_", " ").title()

    st.subheader(title)
    col1, col2, col3 = st.columns(3)
    with col1:
        st.metric("Test Accuracy", f"{evaluation.accuracy:.3f}")
    with col2:
        st.metric("CV Accuracy", f"{model.cv_accuracy:.3f}")
    with col3:
        st.metric("Selected", ", ".join(f"{k}={v}" for k, v in model.best_params.items()))

    st.plotly_chart(cv_accuracy_figure(model), use_container_width=True)

    if show_tree:
        with st.expander("🌳 Tree structure", expanded=False):
            st.code(tree_text(model), language="text")

    cols = st.columns(2)
    with cols[0]:
        st.plotly_chart(confusion_matrix_figure(evaluation, f"{title} Confusion Matrix"), use_container_width=True)
    with cols[1]:
        if result.importances:
            st.plotly_chart(importance_figure(result.importances, f"{title} Feature Importance"), use_container_width=True)
        else:
            st.caption("No predictor received a non-zero importance")

    render_class_statistics(evaluation)


def render_comparison(results: List[ModelResult]) -> None:
    rows = []
    for result in results:
        rows.append({
            "model": result.model.name.replace("_", " ").title(),
            "cv_accuracy": result.model.cv_accuracy,
            "test_accuracy": result.evaluation.accuracy,
            "top_feature": next(iter(result.importances), None),
        })
    st.dataframe(pd.DataFrame(rows).set_index("model"))


def render_track_table(df: pd.DataFrame, category: Optional[str] = None) -> None:
    if category:
        df = df[df["category"].astype(str) == category]
    st.dataframe(df, use_container_width=True)
    st.caption(f"{len(df):,} tracks")

from __future__ import annotations

from pathlib import Path

import pandas as pd
import streamlit as st

from context_core.config import Settings
from context_core.dataset import assemble, load_dataset, save_dataset
from context_core.eda import (
    EDA_FEATURES,
    box_figure,
    category_counts,
    distribution_figure,
    feature_correlations,
    scatter_figure,
    summarize_by_category,
)
from context_core.errors import ContextPipelineError
from context_core.spotify_client import SpotifyClient
from context_core.trainer import TrainerConfig, train_and_evaluate
from context_core.ui_helpers import render_comparison, render_model_result, render_track_table


st.set_page_config(page_title="Playlist Context Classifier", layout="wide")


@st.cache_resource(show_spinner=False)
def get_settings() -> Settings:
    return Settings.from_env()


@st.cache_data(show_spinner=True)
def get_dataset(_settings: Settings, dataset_path: str, refresh: bool) -> pd.DataFrame:
    path = Path(dataset_path)
    if path.exists() and not refresh:
        return load_dataset(path)
    client = SpotifyClient(_settings)
    df = assemble(_settings.require_playlists(), client)
    save_dataset(df, path)
    return df


@st.cache_resource(show_spinner=False)
def get_report(df: pd.DataFrame, seed: int, config: TrainerConfig):
    return train_and_evaluate(df, seed, config)


def render_eda(df: pd.DataFrame) -> None:
    features = [f for f in EDA_FEATURES if f in df.columns]

    st.header("Exploration")
    st.bar_chart(category_counts(df))
    st.dataframe(summarize_by_category(df, features).style.format("{:.3f}"))

    for feature in features:
        cols = st.columns(2)
        with cols[0]:
            st.plotly_chart(distribution_figure(df, feature), use_container_width=True)
        with cols[1]:
            st.plotly_chart(box_figure(df, feature), use_container_width=True)

    if len(features) >= 2:
        st.plotly_chart(scatter_figure(df, features[0], features[1]), use_container_width=True)
        with st.expander("Feature correlations", expanded=False):
            st.dataframe(feature_correlations(df, features).style.format("{:.2f}"))


def main():
    st.title("Playlist Context Classifier")
    settings = get_settings()

    st.sidebar.header("Data")
    dataset_path = st.sidebar.text_input("Dataset CSV", value=str(settings.output_dir / "tracks.csv"))
    refresh = st.sidebar.checkbox("Fetch fresh data from Spotify", value=False)

    st.sidebar.header("Training")
    seed = int(st.sidebar.number_input("Random seed", min_value=0, value=settings.seed))
    cv_repeats = st.sidebar.slider("Tree CV repeats", 1, 10, 10)
    config = TrainerConfig(cv_repeats=cv_repeats)

    try:
        df = get_dataset(settings, dataset_path, refresh)
    except ContextPipelineError as exc:
        st.error(f"Could not build the dataset: {exc}")
        return

    with st.expander("🎵 Tracks", expanded=False):
        category = st.selectbox("Category", ["all"] + [str(c) for c in category_counts(df).index])
        render_track_table(df, None if category == "all" else category)

    render_eda(df)

    st.header("Classification")
    try:
        with st.spinner("Fitting decision tree and random forest..."):
            report = get_report(df, seed, config)
    except ContextPipelineError as exc:
        st.error(f"Training failed: {exc}")
        return

    st.caption(f"{report.split.n_train} training rows, {report.split.n_test} test rows")
    render_comparison(report.results())
    render_model_result(report.tree, show_tree=True)
    render_model_result(report.forest)


if __name__ == "__main__":
    main()

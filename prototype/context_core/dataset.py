from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Mapping, Protocol, Sequence, Union

import pandas as pd

from .errors import IncompleteJoin
from .records import SERVICE_FIELDS, AudioFeatureRecord, Category, TrackRecord


TRACK_COLUMNS = ["name", "id", "popularity", "primary_artist", "category"]
DROPPED_COLUMNS = list(SERVICE_FIELDS)

logger = logging.getLogger(__name__)


class TrackSource(Protocol):
    def fetch_playlist_tracks(self, playlist_id: str, category: Category) -> List[TrackRecord]: ...

    def fetch_audio_features(self, track_ids: Sequence[str]) -> List[AudioFeatureRecord]: ...


def _tracks_frame(tracks: List[TrackRecord]) -> pd.DataFrame:
    return pd.DataFrame([t.as_row() for t in tracks], columns=TRACK_COLUMNS)


def _features_frame(features: List[AudioFeatureRecord]) -> pd.DataFrame:
    rows = [f.as_row() for f in features]
    if not rows:
        return pd.DataFrame(columns=["id"])
    return pd.DataFrame(rows)


def assemble(categories: Mapping[Union[Category, str], str], client: TrackSource) -> pd.DataFrame:
    """
    Merge playlist tracks and their audio features into one labeled table.

    Args:
        categories: category label -> playlist id, in the order rows should appear
        client: anything exposing fetch_playlist_tracks / fetch_audio_features

    Returns:
        One row per playlist track: track columns followed by audio features,
        service columns dropped.

    Raises:
        IncompleteJoin: if any track has no feature record or a null feature value
    """
    tracks: List[TrackRecord] = []
    features: List[AudioFeatureRecord] = []
    missing: List[str] = []

    for label, playlist_id in categories.items():
        category = Category.parse(label)
        category_tracks = client.fetch_playlist_tracks(playlist_id, category)
        track_ids = [t.id for t in category_tracks]
        category_features = client.fetch_audio_features(track_ids)

        returned = {f.id for f in category_features}
        missing_here = [tid for tid in track_ids if tid not in returned]
        if missing_here:
            logger.warning("%s: %d tracks without audio features", category.value, len(missing_here))
        missing.extend(missing_here)

        logger.info("%s: %d tracks from playlist %s", category.value, len(category_tracks), playlist_id)
        tracks.extend(category_tracks)
        features.extend(category_features)

    if missing:
        raise IncompleteJoin(
            f"{len(missing)} track(s) have no audio feature record: {', '.join(missing)}",
            missing_ids=missing,
        )

    tracks_df = _tracks_frame(tracks)
    # a track listed in two playlists is fetched once per listing
    features_df = _features_frame(features).drop_duplicates(subset="id", keep="first")
    overlapping = [c for c in features_df.columns if c in TRACK_COLUMNS and c != "id"]
    features_df = features_df.drop(columns=overlapping)

    merged = tracks_df.merge(features_df, on="id", how="left", validate="many_to_one")
    if len(merged) != len(tracks):
        raise IncompleteJoin(f"Join produced {len(merged)} rows for {len(tracks)} tracks")

    merged = merged.drop(columns=[c for c in DROPPED_COLUMNS if c in merged.columns])

    null_columns = [c for c in merged.columns if merged[c].isna().any()]
    if null_columns:
        column = null_columns[0]
        ids = merged.loc[merged[column].isna(), "id"].tolist()
        raise IncompleteJoin(f"Column '{column}' has {len(ids)} null value(s)", missing_ids=ids, column=column)

    merged["category"] = pd.Categorical(merged["category"], categories=Category.labels())
    return merged


def save_dataset(df: pd.DataFrame, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return path


def load_dataset(path: Union[str, Path]) -> pd.DataFrame:
    df = pd.read_csv(
        path,
        dtype={"id": str, "name": str, "primary_artist": str},
        float_precision="round_trip",
    )
    labels = [Category.parse(v).value for v in df["category"]]
    df["category"] = pd.Categorical(labels, categories=Category.labels())
    return df

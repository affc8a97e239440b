import pandas as pd
import pytest

from context_core.dataset import assemble, load_dataset, save_dataset
from context_core.errors import IncompleteJoin, SchemaError

from .conftest import PLAYLISTS, FakeSpotify, playlist_item


def test_thirty_track_scenario(small_table):
    assert len(small_table) == 30
    assert set(small_table.columns) == {
        "name", "id", "primary_artist", "category",
        "popularity", "danceability", "valence", "duration",
    }
    assert list(small_table["category"].cat.categories) == ["night", "work", "lounge"]
    assert small_table["category"].value_counts().to_dict() == {"night": 10, "work": 10, "lounge": 10}
    assert not small_table.isna().any().any()


def test_rows_follow_declared_category_order(small_table, synthetic_catalog):
    playlists, _ = synthetic_catalog
    expected_ids = [item["track"]["id"] for pid in PLAYLISTS.values() for item in playlists[pid]]

    assert small_table["id"].tolist() == expected_ids
    assert small_table["category"].astype(str).tolist() == ["night"] * 10 + ["work"] * 10 + ["lounge"] * 10


def test_features_are_requested_per_category(fake_spotify):
    assemble(PLAYLISTS, fake_spotify)

    assert fake_spotify.playlist_calls == ["pl_night", "pl_work", "pl_lounge"]
    assert len(fake_spotify.feature_calls) == 3
    for ids, prefix in zip(fake_spotify.feature_calls, ["night_", "work_", "lounge_"]):
        assert len(ids) == 10
        assert all(i.startswith(prefix) for i in ids)


def test_assemble_is_idempotent(fake_spotify):
    first = assemble(PLAYLISTS, fake_spotify)
    second = assemble(PLAYLISTS, fake_spotify)

    pd.testing.assert_frame_equal(first, second)


def test_feature_values_are_carried_over_unchanged(small_table, synthetic_catalog):
    _, features = synthetic_catalog

    for row in small_table.itertuples(index=False):
        source = features[row.id]
        assert row.danceability == source["danceability"]
        assert row.valence == source["valence"]
        assert row.duration == source["duration"]


def test_primary_artist_is_first_credited(small_table):
    assert not small_table["primary_artist"].eq("Featured Artist").any()


def test_missing_feature_record_raises_incomplete_join(synthetic_catalog):
    playlists, features = synthetic_catalog
    features = dict(features)
    del features["work_004"]
    client = FakeSpotify(playlists, features)

    with pytest.raises(IncompleteJoin) as excinfo:
        assemble(PLAYLISTS, client)

    assert excinfo.value.missing_ids == ["work_004"]
    assert excinfo.value.stage == "assemble"


def test_null_feature_value_raises_incomplete_join(synthetic_catalog):
    playlists, features = synthetic_catalog
    features = dict(features)
    features["lounge_002"] = {**features["lounge_002"], "valence": None}

    with pytest.raises(IncompleteJoin) as excinfo:
        assemble(PLAYLISTS, FakeSpotify(playlists, features))

    assert excinfo.value.column == "valence"
    assert excinfo.value.missing_ids == ["lounge_002"]


def test_track_listed_in_two_playlists_stays_two_rows(synthetic_catalog):
    playlists, features = synthetic_catalog
    playlists = dict(playlists)
    playlists["pl_lounge"] = playlists["pl_lounge"] + [playlist_item("night_000", artists=("night artist 0",))]

    table = assemble(PLAYLISTS, FakeSpotify(playlists, features))

    assert len(table) == 31
    repeated = table[table["id"] == "night_000"]
    assert repeated["category"].astype(str).tolist() == ["night", "lounge"]
    assert repeated["danceability"].nunique() == 1


def test_unknown_category_label_is_rejected(fake_spotify):
    with pytest.raises(SchemaError):
        assemble({"party": "pl_night"}, fake_spotify)


def test_saved_table_reloads_with_categories(small_table, tmp_path):
    path = save_dataset(small_table, tmp_path / "out" / "tracks.csv")
    reloaded = load_dataset(path)

    assert list(reloaded.columns) == list(small_table.columns)
    assert reloaded["id"].tolist() == small_table["id"].tolist()
    assert list(reloaded["category"].cat.categories) == ["night", "work", "lounge"]
    pd.testing.assert_series_equal(reloaded["valence"], small_table["valence"])

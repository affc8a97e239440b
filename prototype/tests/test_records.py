import pytest

from context_core.errors import FetchError, SchemaError
from context_core.records import AudioFeatureRecord, Category, TrackRecord

from .conftest import playlist_item


def test_category_parse_is_checked():
    assert Category.parse(" Night") is Category.NIGHT
    assert Category.parse(Category.WORK) is Category.WORK
    with pytest.raises(SchemaError):
        Category.parse("party")


def test_category_labels_keep_declaration_order():
    assert Category.labels() == ["night", "work", "lounge"]


def test_track_record_keeps_only_primary_artist():
    item = playlist_item("t1", name="Nocturne", popularity=64, artists=("Main", "Guest", "Other"))
    record = TrackRecord.from_playlist_item(item, Category.NIGHT)

    assert record == TrackRecord("Nocturne", "t1", 64, "Main", Category.NIGHT)
    assert record.as_row()["category"] == "night"


@pytest.mark.parametrize("item", [
    {"track": None},
    playlist_item(None),
    playlist_item("t1", artists=()),
    playlist_item("t1", popularity=101),
    playlist_item("t1", popularity=None),
])
def test_track_record_rejects_malformed_items(item):
    with pytest.raises(FetchError):
        TrackRecord.from_playlist_item(item, Category.WORK)


def test_audio_feature_record_keeps_numeric_and_service_fields():
    record = AudioFeatureRecord.from_api({
        "id": "t1",
        "danceability": 0.7,
        "key": 5,
        "type": "audio_features",
        "track_href": "https://api.spotify.com/v1/tracks/t1",
    })

    assert record.id == "t1"
    assert record.features["danceability"] == 0.7
    assert record.features["type"] == "audio_features"
    assert record.as_row()["id"] == "t1"


def test_audio_feature_record_rejects_text_features():
    with pytest.raises(FetchError):
        AudioFeatureRecord.from_api({"id": "t1", "energy": "loud"})
    with pytest.raises(FetchError):
        AudioFeatureRecord.from_api({"danceability": 0.5})

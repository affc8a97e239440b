# tests/conftest.py
import numpy as np
import pandas as pd
import pytest
import requests

from context_core.dataset import assemble
from context_core.records import AudioFeatureRecord, Category, TrackRecord


PLAYLISTS = {
    Category.NIGHT: "pl_night",
    Category.WORK: "pl_work",
    Category.LOUNGE: "pl_lounge",
}


def playlist_item(track_id, name=None, popularity=50, artists=("Artist",)):
    """Shape of one entry in a Spotify playlist ``items`` list."""
    return {
        "track": {
            "id": track_id,
            "name": name or f"Song {track_id}",
            "popularity": popularity,
            "artists": [{"name": a} for a in artists],
        }
    }


class FakeSpotify:
    """
    In-memory stand-in for SpotifyClient.

    ``playlists`` maps playlist id -> raw playlist items, ``features`` maps
    track id -> audio feature payload. Every call is recorded.
    """

    def __init__(self, playlists, features):
        self.playlists = playlists
        self.features = features
        self.playlist_calls = []
        self.feature_calls = []

    def fetch_playlist_tracks(self, playlist_id, category):
        self.playlist_calls.append(playlist_id)
        return [TrackRecord.from_playlist_item(item, category) for item in self.playlists[playlist_id]]

    def fetch_audio_features(self, track_ids):
        self.feature_calls.append(list(track_ids))
        return [AudioFeatureRecord.from_api(self.features[t]) for t in track_ids if t in self.features]


def _catalog(per_category, seed=0, spread=0.05):
    """Three well separated clusters of tracks, one per category."""
    rng = np.random.default_rng(seed)
    centers = {
        Category.NIGHT: (0.25, 0.2, 260.0),
        Category.WORK: (0.5, 0.5, 200.0),
        Category.LOUNGE: (0.8, 0.8, 150.0),
    }
    playlists, features = {}, {}
    for category, playlist_id in PLAYLISTS.items():
        dance, valence, duration = centers[category]
        items = []
        for i in range(per_category):
            track_id = f"{category.value}_{i:03d}"
            items.append(playlist_item(
                track_id,
                popularity=int(rng.integers(0, 101)),
                artists=(f"{category.value} artist {i % 4}", "Featured Artist"),
            ))
            features[track_id] = {
                "id": track_id,
                "danceability": float(np.clip(dance + rng.normal(0, spread), 0, 1)),
                "valence": float(np.clip(valence + rng.normal(0, spread), 0, 1)),
                "duration": float(duration + rng.normal(0, 10)),
                "type": "audio_features",
                "uri": f"spotify:track:{track_id}",
            }
        playlists[playlist_id] = items
    return playlists, features


@pytest.fixture
def synthetic_catalog():
    """10 tracks per category: the 30 row scenario."""
    return _catalog(per_category=10)


@pytest.fixture
def fake_spotify(synthetic_catalog):
    playlists, features = synthetic_catalog
    return FakeSpotify(playlists, features)


@pytest.fixture
def small_table(fake_spotify):
    return assemble(PLAYLISTS, fake_spotify)


@pytest.fixture(scope="session")
def training_table():
    """40 tracks per category, large enough for 10-fold stratified CV."""
    playlists, features = _catalog(per_category=40, seed=7)
    return assemble(PLAYLISTS, FakeSpotify(playlists, features))


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error")


class FakeSession:
    """
    Usage:
      FakeSession(get=lambda url, params: FakeResponse(...))
    """

    def __init__(self, get=None, token_response=None):
        self._get = get
        self.token_response = token_response or FakeResponse(
            payload={"access_token": "tok", "expires_in": 3600}
        )
        self.posts = []
        self.gets = []

    def post(self, url, **kwargs):
        self.posts.append((url, kwargs))
        return self.token_response

    def get(self, url, headers=None, params=None, timeout=None):
        self.gets.append((url, params, headers))
        return self._get(url, params)


@pytest.fixture
def stub_session():
    return FakeSession

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterable, List, Optional

import requests

from .config import Settings
from .errors import AuthError, FetchError
from .records import AudioFeatureRecord, Category, TrackRecord


SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_URL = "https://api.spotify.com/v1"
PLAYLIST_PAGE_FIELDS = "items(track(id,name,popularity,artists(name))),next"

logger = logging.getLogger(__name__)


class SpotifyClient:
    """Client-credentials Spotify Web API client for playlists and audio features."""

    feature_batch_size = 100
    playlist_page_size = 100

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._access_token: Optional[str] = None
        self._token_expiry: float = 0.0

    def _ensure_token(self) -> None:
        if self._access_token and time.time() < self._token_expiry - 30:
            return
        client_id, client_secret = self._settings.client_id, self._settings.client_secret
        if not client_id or not client_secret:
            raise AuthError("Missing SPOTIFY_CLIENT_ID or SPOTIFY_CLIENT_SECRET in settings.")
        try:
            resp = self._session.post(
                SPOTIFY_TOKEN_URL,
                data={"grant_type": "client_credentials"},
                auth=(client_id, client_secret),
                timeout=10,
            )
            resp.raise_for_status()
            data = resp.json()
            self._access_token = data["access_token"]
        except (requests.RequestException, ValueError, KeyError) as exc:
            raise AuthError(f"Token request failed: {exc}") from exc
        self._token_expiry = time.time() + int(data.get("expires_in", 3600))
        logger.debug("Obtained Spotify token valid for %ss", data.get("expires_in", 3600))

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self._ensure_token()
        headers = {"Authorization": f"Bearer {self._access_token}"}
        try:
            resp = self._session.get(url, headers=headers, params=params, timeout=15)
            if resp.status_code == 429:
                retry_after = int(resp.headers.get("Retry-After", "1"))
                time.sleep(retry_after)
                resp = self._session.get(url, headers=headers, params=params, timeout=15)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        if not isinstance(data, dict):
            raise FetchError(f"GET {url} returned {type(data).__name__}, expected an object")
        return data

    def fetch_playlist_items(self, playlist_id: str) -> List[dict]:
        """Return every item of a playlist, following the ``next`` links in order."""
        items: List[dict] = []
        url: Optional[str] = f"{SPOTIFY_API_URL}/playlists/{playlist_id}/tracks"
        params: Optional[Dict[str, Any]] = {"limit": self.playlist_page_size, "fields": PLAYLIST_PAGE_FIELDS}
        while url:
            page = self._get(url, params)
            page_items = page.get("items")
            if not isinstance(page_items, list):
                raise FetchError(f"Playlist {playlist_id} page has no item list")
            items.extend(page_items)
            # next already carries the query string
            url, params = page.get("next"), None
        logger.debug("Playlist %s: %d items", playlist_id, len(items))
        return items

    def fetch_playlist_tracks(self, playlist_id: str, category: Category) -> List[TrackRecord]:
        return [
            TrackRecord.from_playlist_item(item, category)
            for item in self.fetch_playlist_items(playlist_id)
        ]

    def fetch_audio_features(self, track_ids: Iterable[str]) -> List[AudioFeatureRecord]:
        """
        Fetch audio features for ``track_ids``.

        Unknown ids come back as ``null`` from the API and are left out here;
        the assembler decides what a missing record means.
        """
        ids = [t for t in track_ids if t]
        records: List[AudioFeatureRecord] = []
        for i in range(0, len(ids), self.feature_batch_size):
            batch = ids[i:i + self.feature_batch_size]
            data = self._get(f"{SPOTIFY_API_URL}/audio-features", {"ids": ",".join(batch)})
            payloads = data.get("audio_features")
            if not isinstance(payloads, list):
                raise FetchError("Audio feature response has no 'audio_features' list")
            records.extend(AudioFeatureRecord.from_api(p) for p in payloads if p)
        return records

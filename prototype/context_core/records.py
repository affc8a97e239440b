from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

from .errors import FetchError, SchemaError


# Service fields returned next to the audio features; unrelated to the sound itself
SERVICE_FIELDS = ("type", "uri", "track_href", "analysis_url")


class Category(str, Enum):
    """Listening context a playlist was curated for."""

    NIGHT = "night"
    WORK = "work"
    LOUNGE = "lounge"

    @classmethod
    def parse(cls, value: Union[str, "Category"]) -> "Category":
        if isinstance(value, cls):
            return value
        label = str(value).strip().lower()
        try:
            return cls(label)
        except ValueError:
            raise SchemaError(
                f"Unknown category label {value!r}; expected one of {cls.labels()}"
            ) from None

    @classmethod
    def labels(cls) -> List[str]:
        return [c.value for c in cls]


@dataclass(frozen=True)
class TrackRecord:
    name: str
    id: str
    popularity: int
    primary_artist: str
    category: Category

    @classmethod
    def from_playlist_item(cls, item: Dict[str, Any], category: Category) -> "TrackRecord":
        """
        Build a record from one entry of a playlist's ``items`` list.

        Only the first credited artist is kept. Raises FetchError when the
        payload lacks the fields the assembler depends on.
        """
        track = item.get("track") if isinstance(item, dict) else None
        if not track or not track.get("id"):
            raise FetchError(f"Playlist item without a track id in category '{category.value}': {item!r}")

        artists = track.get("artists") or []
        if not artists or not artists[0].get("name"):
            raise FetchError(f"Track {track['id']} has no credited artist")

        popularity = track.get("popularity")
        if not isinstance(popularity, int) or not 0 <= popularity <= 100:
            raise FetchError(f"Track {track['id']} has invalid popularity {popularity!r}")

        return cls(
            name=str(track.get("name") or ""),
            id=str(track["id"]),
            popularity=popularity,
            primary_artist=str(artists[0]["name"]),
            category=category,
        )

    def as_row(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "id": self.id,
            "popularity": self.popularity,
            "primary_artist": self.primary_artist,
            "category": self.category.value,
        }


@dataclass(frozen=True)
class AudioFeatureRecord:
    id: str
    features: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "AudioFeatureRecord":
        if not isinstance(payload, dict) or not payload.get("id"):
            raise FetchError(f"Audio feature payload without id: {payload!r}")
        features: Dict[str, Any] = {}
        for key, value in payload.items():
            if key == "id":
                continue
            if key in SERVICE_FIELDS or value is None:
                # nulls are kept so the assembler can report the column
                features[key] = value
            elif isinstance(value, bool) or not isinstance(value, (int, float)):
                raise FetchError(f"Non-numeric audio feature '{key}'={value!r} for track {payload['id']}")
            else:
                features[key] = value
        return cls(id=str(payload["id"]), features=features)

    def as_row(self) -> Dict[str, Any]:
        return {"id": self.id, **self.features}

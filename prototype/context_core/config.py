from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from dotenv import dotenv_values

from .errors import SchemaError
from .records import Category


PROJECT_ROOT = Path(__file__).resolve().parents[2]
DEFAULT_ENV_FILE = PROJECT_ROOT / ".env"
DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "prototype" / "artifacts"

PLAYLIST_ENV_KEYS = {
    Category.NIGHT: "NIGHT_PLAYLIST_ID",
    Category.WORK: "WORK_PLAYLIST_ID",
    Category.LOUNGE: "LOUNGE_PLAYLIST_ID",
}


@dataclass
class Settings:
    """Everything a run needs, passed explicitly instead of read from globals."""

    client_id: str = ""
    client_secret: str = ""
    playlists: Dict[Category, str] = field(default_factory=dict)
    seed: int = 42
    output_dir: Path = DEFAULT_OUTPUT_DIR

    @classmethod
    def from_env(
        cls,
        env_file: Optional[Union[str, Path]] = DEFAULT_ENV_FILE,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """
        Build settings from a .env file layered under an environment mapping.

        Values in ``environ`` (``os.environ`` when omitted) win over the file.
        The process environment itself is never modified.
        """
        values: Dict[str, Optional[str]] = {}
        if env_file is not None and Path(env_file).exists():
            values.update(dotenv_values(env_file))
        values.update(os.environ if environ is None else environ)

        playlists = {
            category: values[key]
            for category, key in PLAYLIST_ENV_KEYS.items()
            if values.get(key)
        }
        return cls(
            client_id=values.get("SPOTIFY_CLIENT_ID") or "",
            client_secret=values.get("SPOTIFY_CLIENT_SECRET") or "",
            playlists=playlists,
            seed=int(values.get("RANDOM_SEED") or 42),
            output_dir=Path(values.get("OUTPUT_DIR") or DEFAULT_OUTPUT_DIR),
        )

    def require_playlists(self) -> Dict[Category, str]:
        missing = [PLAYLIST_ENV_KEYS[c] for c in Category if c not in self.playlists]
        if missing:
            raise SchemaError(f"Missing playlist ids: {', '.join(missing)}")
        # declaration order of Category, independent of how they were supplied
        return {c: self.playlists[c] for c in Category}

"""
Pytest configuration and fixtures for listening pattern tests.

Provides an in-memory event store, Spotify-shaped payloads and play factories.
"""

import datetime as dt
from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from listening_patterns.models.db import Base
from listening_patterns.models.listening import HistoryEntry, RecentPlay


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across sessions."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session bound to the in-memory store."""
    session = sessionmaker(bind=engine)()
    yield session
    session.close()


def utc(*args) -> dt.datetime:
    return dt.datetime(*args, tzinfo=dt.timezone.utc)


def make_entry(played_at: dt.datetime, track_id: str = "t1", **kwargs) -> HistoryEntry:
    return HistoryEntry(track_id=track_id, played_at=played_at, **kwargs)


def make_recent_play(
    played_at: dt.datetime, track_id: str = "t1", duration_ms: int = 180_000
) -> RecentPlay:
    return RecentPlay(
        id=track_id,
        name=f"Track {track_id}",
        artists=["Artist"],
        album_name="Album",
        album_image_url=None,
        preview_url=None,
        spotify_url=f"https://open.spotify.com/track/{track_id}",
        duration_ms=duration_ms,
        played_at=played_at,
    )


def spotify_item(track_id: str, played_at: str, duration_ms: int = 200_000) -> dict[str, Any]:
    """One item of Spotify's recently-played response."""
    return {
        "track": {
            "id": track_id,
            "name": f"Song {track_id}",
            "duration_ms": duration_ms,
            "preview_url": None,
            "artists": [{"id": "a1", "name": "Radiohead"}, {"id": "a2", "name": "Bjork"}],
            "album": {
                "name": "OK Computer",
                "images": [
                    {"url": "https://i.scdn.co/image/large"},
                    {"url": "https://i.scdn.co/image/medium"},
                ],
            },
            "external_urls": {"spotify": f"https://open.spotify.com/track/{track_id}"},
        },
        "played_at": played_at,
    }


@pytest.fixture
def raw_plays() -> list[dict[str, Any]]:
    """Flat raw plays as a caller would hand them to ingestion."""
    return [
        {
            "id": "t1",
            "name": "Creep",
            "artists": ["Radiohead"],
            "album_name": "Pablo Honey",
            "played_at": utc(2025, 1, 1, 10, 0, 0),
        },
        {
            "id": "t2",
            "name": "Yesterday",
            "artists": ["The Beatles"],
            "album_name": "Help!",
            "played_at": utc(2025, 1, 1, 11, 0, 0),
        },
        {
            "id": "t1",
            "name": "Creep",
            "artists": ["Radiohead"],
            "album_name": "Pablo Honey",
            "played_at": utc(2025, 1, 2, 12, 0, 0),
        },
    ]

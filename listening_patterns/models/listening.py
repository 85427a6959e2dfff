"""Domain models for listening history records"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

@dataclass
class PlayRecord:
    """Canonical shape of one play, produced at the ingestion boundary"""
    track_id: str
    played_at: datetime
    track_name: Optional[str] = None
    artists: List[str] = field(default_factory=list)
    album_name: Optional[str] = None
    album_image_url: Optional[str] = None
    preview_url: Optional[str] = None
    track_url: Optional[str] = None
    duration_ms: Optional[int] = None

@dataclass
class HistoryEntry:
    """Read-only view of a stored play"""
    track_id: str
    played_at: datetime
    track_name: Optional[str] = None
    artists: List[str] = field(default_factory=list)
    album_name: Optional[str] = None
    album_image_url: Optional[str] = None
    preview_url: Optional[str] = None
    track_url: Optional[str] = None
    duration_ms: Optional[int] = None

    @property
    def artist_names(self) -> str:
        return ", ".join(self.artists)

@dataclass
class RecentPlay:
    """A recently played item as returned by the Spotify client"""
    id: str
    name: Optional[str]
    artists: List[str]
    album_name: Optional[str]
    album_image_url: Optional[str]
    preview_url: Optional[str]
    spotify_url: Optional[str]
    duration_ms: int
    played_at: Optional[datetime]

@dataclass
class TopTrack:
    """One entry of a user's top tracks for a time range"""
    id: str
    name: Optional[str]
    artists: List[str]
    album_image_url: Optional[str]
    spotify_url: Optional[str]
    rank: int

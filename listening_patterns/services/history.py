"""Play event storage: idempotent ingestion and history reads"""
import logging
import datetime
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func, insert
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from listening_patterns.models.db import ListeningPlay, PLAY_UNIQUE_COLUMNS
from listening_patterns.models.listening import HistoryEntry, PlayRecord

logger = logging.getLogger(__name__)

_MISSING = object()

# Largest value a 32-bit signed INTEGER column holds
MAX_DURATION_MS = 2**31 - 1


def read_field(raw: Any, *names: str) -> Any:
    """Read the first present field from a mapping or an attribute object, else None."""
    for name in names:
        if isinstance(raw, Mapping):
            value = raw.get(name, _MISSING)
        else:
            value = getattr(raw, name, _MISSING)
        if value is not _MISSING and value is not None:
            return value
    return None


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def parse_played_at(value: Any) -> Optional[datetime.datetime]:
    """
    Parse a played-at value into a UTC datetime.

    Accepts datetime objects, ISO-8601 strings (with 'Z' or an offset) and
    epoch milliseconds. Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime.datetime):
        return as_utc(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.datetime.fromtimestamp(value / 1000, datetime.timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            return as_utc(datetime.datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def _optional_str(value: Any) -> Optional[str]:
    """Text fields accept strings and plain numbers; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value
    return None


def _artist_names(value: Any) -> List[str]:
    """Flatten a string, list of names or list of artist objects into names."""
    if value is None or isinstance(value, (Mapping, bytes)):
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    names = []
    try:
        for artist in value:
            name = _optional_str(artist if isinstance(artist, str) else read_field(artist, 'name'))
            if name:
                names.append(name)
    except TypeError:
        return []
    return names


def _album_image(album: Any) -> Optional[str]:
    images = read_field(album, 'images')
    if isinstance(images, list):
        for image in images:
            url = _optional_str(read_field(image, 'url'))
            if url:
                return url
    return None


def parse_duration_ms(value: Any, maximum: int = MAX_DURATION_MS) -> Optional[int]:
    """Non-negative int, or None when missing, unparseable or above maximum."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = max(0, int(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return number if number <= maximum else None


def normalize_play(raw: Any) -> Optional[PlayRecord]:
    """
    Convert one raw play into a PlayRecord.

    Raw plays may be flat records (mapping or attribute object) or Spotify
    recently-played items where the track sits under a 'track' key. Returns
    None when the play has no usable timestamp or no track id.
    """
    played_at = parse_played_at(read_field(raw, 'played_at'))
    if played_at is None:
        return None

    track = read_field(raw, 'track')
    source = track if track is not None else raw

    track_id = _optional_str(read_field(source, 'id', 'track_id'))
    if not track_id:
        return None

    album = read_field(source, 'album')
    external_urls = read_field(source, 'external_urls')

    return PlayRecord(
        track_id=track_id,
        played_at=played_at,
        track_name=_optional_str(read_field(source, 'name', 'track_name')),
        artists=_artist_names(read_field(source, 'artists')),
        album_name=_optional_str(read_field(source, 'album_name')) or _optional_str(read_field(album, 'name')),
        album_image_url=_optional_str(read_field(source, 'album_image_url')) or _album_image(album),
        preview_url=_optional_str(read_field(source, 'preview_url')),
        track_url=(_optional_str(read_field(source, 'spotify_url', 'track_url'))
                   or _optional_str(read_field(external_urls, 'spotify'))),
        duration_ms=parse_duration_ms(read_field(source, 'duration_ms')),
    )


class ListeningHistory:
    """Ingests and reads one user's play events"""

    def __init__(self, session: Session, user_id: Optional[str]):
        self.session = session
        self.user_id = user_id

    def _has_user(self) -> bool:
        return bool(self.user_id and str(self.user_id).strip())

    def _rows(self, plays: Iterable[Any]) -> List[Dict[str, Any]]:
        now = datetime.datetime.now(datetime.UTC)
        rows = []
        for raw in plays or []:
            record = normalize_play(raw)
            if record is None:
                logger.debug(f"Dropping play without timestamp or track id: {raw!r}")
                continue
            rows.append({
                'user_id': self.user_id,
                'track_id': record.track_id,
                'track_name': record.track_name,
                'artists': record.artists,
                'album_name': record.album_name,
                'album_image_url': record.album_image_url,
                'preview_url': record.preview_url,
                'track_url': record.track_url,
                'duration_ms': record.duration_ms,
                'played_at': record.played_at,
                'created_at': now,
                'updated_at': now,
            })
        return rows

    def _insert_ignoring_duplicates(self, rows: List[Dict[str, Any]]):
        """Build a single insert that skips rows colliding on the play unique key."""
        dialect = self.session.get_bind().dialect.name
        table = ListeningPlay.__table__
        if dialect == 'postgresql':
            return postgresql.insert(table).values(rows).on_conflict_do_nothing(
                index_elements=list(PLAY_UNIQUE_COLUMNS)
            )
        if dialect == 'sqlite':
            return sqlite.insert(table).values(rows).on_conflict_do_nothing(
                index_elements=list(PLAY_UNIQUE_COLUMNS)
            )
        if dialect in ('mysql', 'mariadb'):
            return insert(table).values(rows).prefix_with('IGNORE')
        raise NotImplementedError(f"Conflict-ignoring insert is not supported for dialect '{dialect}'")

    def ingest(self, plays: Iterable[Any]) -> int:
        """
        Store plays for this user, skipping ones already recorded.

        Existing rows with the same (user_id, track_id, played_at) keep their
        original metadata. Plays without a timestamp or track id are dropped.

        Returns:
            Number of new rows written
        """
        if not self._has_user():
            logger.warning("Skipping ingestion: no user id")
            return 0

        rows = self._rows(plays)
        if not rows:
            return 0

        try:
            result = self.session.execute(self._insert_ignoring_duplicates(rows))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error ingesting {len(rows)} plays for user {self.user_id}: {e}")
            raise

        inserted = max(result.rowcount or 0, 0)
        logger.info(f"Ingested {inserted} new of {len(rows)} plays for user {self.user_id}")
        return inserted

    def count(self) -> int:
        """Number of distinct tracks this user has played"""
        if not self._has_user():
            return 0
        try:
            return self.session.query(
                func.count(func.distinct(ListeningPlay.track_id))
            ).filter(ListeningPlay.user_id == self.user_id).scalar() or 0
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error counting plays for user {self.user_id}: {e}")
            raise

    def recent_entries(self, limit: int) -> List[HistoryEntry]:
        """Most recent plays for this user, newest first"""
        try:
            records = (
                self.session.query(ListeningPlay)
                .filter(ListeningPlay.user_id == self.user_id)
                .order_by(ListeningPlay.played_at.desc(), ListeningPlay.id.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error reading history for user {self.user_id}: {e}")
            raise
        return [self._to_entry(record) for record in records]

    @staticmethod
    def _to_entry(record: ListeningPlay) -> HistoryEntry:
        artists = record.artists
        return HistoryEntry(
            track_id=record.track_id,
            played_at=as_utc(record.played_at),
            track_name=record.track_name,
            artists=list(artists) if isinstance(artists, list) else _artist_names(artists),
            album_name=record.album_name,
            album_image_url=record.album_image_url,
            preview_url=record.preview_url,
            track_url=record.track_url,
            duration_ms=record.duration_ms,
        )

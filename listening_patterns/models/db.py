"""SQLAlchemy database models for storing listening history"""
import datetime

from sqlalchemy import Column, Integer, String, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()

PLAY_UNIQUE_CONSTRAINT = 'uq_listening_plays_user_track_played_at'
PLAY_UNIQUE_COLUMNS = ('user_id', 'track_id', 'played_at')


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


class ListeningPlay(Base):
    """
    One track play by one user at one instant.
    Rows are append-only; (user_id, track_id, played_at) is unique.
    """
    __tablename__ = 'listening_plays'
    __table_args__ = (
        UniqueConstraint(*PLAY_UNIQUE_COLUMNS, name=PLAY_UNIQUE_CONSTRAINT),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    track_id = Column(String, nullable=False)
    track_name = Column(String, nullable=True)
    artists = Column(JSON, nullable=True)
    album_name = Column(String, nullable=True)
    album_image_url = Column(String, nullable=True)
    preview_url = Column(String, nullable=True)
    track_url = Column(String, nullable=True)
    duration_ms = Column(Integer, nullable=True)
    # Always written as UTC
    played_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow)

"""
SQLAlchemy ORM Models for the season calendar

Each table holds one kind of document: season shards of the schedule,
the navigation position, the user's channel settings and countdown starts.
"""
from datetime import datetime, timezone
from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all ORM models"""
    pass


class SeasonDocumentRow(Base):
    """Schedule entries of one season, stored as a single JSON document"""
    __tablename__ = "season_documents"

    season_number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    entries: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<SeasonDocumentRow(season_number={self.season_number}, entries={len(self.entries or [])})>"


class NavigationDocumentRow(Base):
    """Current day and page of a user's calendar"""
    __tablename__ = "navigation_documents"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    current_day: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    current_page: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return (
            f"<NavigationDocumentRow(user_id={self.user_id}, "
            f"day={self.current_day}, page={self.current_page})>"
        )


class SettingsDocumentRow(Base):
    """Channel suffixes keyed by stringified channel index"""
    __tablename__ = "settings_documents"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    channel_suffixes: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    def __repr__(self) -> str:
        return f"<SettingsDocumentRow(user_id={self.user_id}, suffixes={len(self.channel_suffixes or {})})>"


class CountdownDocumentRow(Base):
    """Start of the current cycle of a countdown timer"""
    __tablename__ = "countdown_documents"

    key: Mapped[str] = mapped_column(String, primary_key=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<CountdownDocumentRow(key={self.key}, started_at={self.started_at})>"

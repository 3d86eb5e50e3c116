"""SQLAlchemy ORM models for persistent ranch data.

This module mirrors the dataclasses in ranchtrade/models/components.py. Timestamps
are stored as epoch milliseconds (BigInteger) so trade windows compare exactly
with the values returned over the API.
"""
from __future__ import annotations

from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, Mapped, mapped_column

Base = declarative_base()


class Ranch(Base):
    __tablename__ = "ranches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    creation_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    trait: Mapped[str] = mapped_column(String(20), nullable=False)
    medals: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class Bufficorn(Base):
    __tablename__ = "bufficorns"
    __table_args__ = (
        UniqueConstraint("ranch", "creation_index", name="uq_bufficorn_ranch_index"),
        Index("ix_bufficorns_ranch", "ranch"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    ranch: Mapped[str] = mapped_column(ForeignKey("ranches.name", ondelete="CASCADE"), nullable=False)
    creation_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Stats (aligned with the Trait enum)
    vigor: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    speed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    coolness: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    coat: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    intelligence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    medals: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class Player(Base):
    __tablename__ = "players"
    __table_args__ = (
        Index("ix_players_points", "points"),
    )

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    ranch: Mapped[str] = mapped_column(ForeignKey("ranches.name", ondelete="CASCADE"), nullable=False)
    selected_bufficorn: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    token: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    creation_index: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
    medals: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)


class Trade(Base):
    __tablename__ = "trades"
    __table_args__ = (
        Index("ix_trades_pair_timestamp", "from_username", "to_username", "timestamp"),
        Index("ix_trades_from", "from_username"),
        Index("ix_trades_to", "to_username"),
        Index("ix_trades_timestamp", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    from_username: Mapped[str] = mapped_column(String(100), nullable=False)
    to_username: Mapped[str] = mapped_column(String(100), nullable=False)
    trait: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    ends: Mapped[int] = mapped_column(BigInteger, nullable=False)
    bufficorn: Mapped[str] = mapped_column(String(100), nullable=False)

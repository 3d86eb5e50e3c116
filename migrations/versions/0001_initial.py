"""Initial ranch schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 10:00:00

Creates the tables backing ranchtrade/models/database.py:
- ranches
- bufficorns (unique per ranch + creation index)
- players (keyed by the pre-generated claim key)
- trades (timestamps as epoch milliseconds)
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "ranches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("creation_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("trait", sa.String(length=20), nullable=False),
        sa.Column("medals", sa.JSON(), nullable=False),
        sa.UniqueConstraint("name", name="uq_ranches_name"),
    )

    op.create_table(
        "bufficorns",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("ranch", sa.String(length=100), sa.ForeignKey("ranches.name", ondelete="CASCADE"), nullable=False),
        sa.Column("creation_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("vigor", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("speed", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("coolness", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("coat", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("intelligence", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("medals", sa.JSON(), nullable=False),
        sa.UniqueConstraint("name", name="uq_bufficorns_name"),
        sa.UniqueConstraint("ranch", "creation_index", name="uq_bufficorn_ranch_index"),
    )
    op.create_index("ix_bufficorns_ranch", "bufficorns", ["ranch"])

    op.create_table(
        "players",
        sa.Column("key", sa.String(length=64), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("ranch", sa.String(length=100), sa.ForeignKey("ranches.name", ondelete="CASCADE"), nullable=False),
        sa.Column("selected_bufficorn", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("token", sa.String(length=1024), nullable=True),
        sa.Column("creation_index", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.BigInteger(), nullable=False),
        sa.Column("medals", sa.JSON(), nullable=False),
    )
    op.create_index("ix_players_username", "players", ["username"], unique=True)
    op.create_index("ix_players_points", "players", ["points"])

    op.create_table(
        "trades",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("from_username", sa.String(length=100), nullable=False),
        sa.Column("to_username", sa.String(length=100), nullable=False),
        sa.Column("trait", sa.String(length=20), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("ends", sa.BigInteger(), nullable=False),
        sa.Column("bufficorn", sa.String(length=100), nullable=False),
    )
    op.create_index("ix_trades_pair_timestamp", "trades", ["from_username", "to_username", "timestamp"])
    op.create_index("ix_trades_from", "trades", ["from_username"])
    op.create_index("ix_trades_to", "trades", ["to_username"])
    op.create_index("ix_trades_timestamp", "trades", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_trades_timestamp", table_name="trades")
    op.drop_index("ix_trades_to", table_name="trades")
    op.drop_index("ix_trades_from", table_name="trades")
    op.drop_index("ix_trades_pair_timestamp", table_name="trades")
    op.drop_table("trades")

    op.drop_index("ix_players_points", table_name="players")
    op.drop_index("ix_players_username", table_name="players")
    op.drop_table("players")

    op.drop_index("ix_bufficorns_ranch", table_name="bufficorns")
    op.drop_table("bufficorns")

    op.drop_table("ranches")

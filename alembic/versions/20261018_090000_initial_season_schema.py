"""Initial season rating schema

Revision ID: 3e1a7c52b9d4
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers, used by Alembic.
revision: str = "3e1a7c52b9d4"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _deleted_column() -> sa.Column:
    return sa.Column("deleted", sa.Boolean(), nullable=False, server_default=sa.text("false"))


def _created_at_column() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(),
        nullable=True,
        server_default=sa.text("CURRENT_TIMESTAMP"),
    )


def upgrade() -> None:
    op.create_table(
        "players",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=10), nullable=False, server_default="player"),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("image", sa.String(length=500), nullable=True),
        _deleted_column(),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role IN ('player', 'judge')", name="ck_players_role"),
    )

    op.create_table(
        "seasons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start", sa.BigInteger(), nullable=False),
        sa.Column("end", sa.BigInteger(), nullable=False),
        _deleted_column(),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_seasons_range", "seasons", ["start", "end"], unique=False)

    op.create_table(
        "tournaments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("date", sa.BigInteger(), nullable=False),
        sa.Column("winner_id", sa.Integer(), nullable=False),
        _deleted_column(),
        _created_at_column(),
        sa.ForeignKeyConstraint(["winner_id"], ["players.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_tournaments_date", "tournaments", ["date"], unique=False)
    op.create_index("idx_tournaments_winner", "tournaments", ["winner_id"], unique=False)

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("date", sa.BigInteger(), nullable=False),
        sa.Column("tournament_id", sa.Integer(), nullable=True),
        sa.Column("winner_id", sa.Integer(), nullable=False),
        sa.Column("loser_id", sa.Integer(), nullable=False),
        _deleted_column(),
        _created_at_column(),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
        sa.ForeignKeyConstraint(["winner_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["loser_id"], ["players.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_matches_date", "matches", ["date"], unique=False)
    op.create_index("idx_matches_winner", "matches", ["winner_id"], unique=False)
    op.create_index("idx_matches_loser", "matches", ["loser_id"], unique=False)
    op.create_index("idx_matches_tournament", "matches", ["tournament_id"], unique=False)

    op.create_table(
        "elo_snapshots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("player_id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=True),
        sa.Column("tournament_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(length=20), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["player_id"], ["players.id"]),
        sa.ForeignKeyConstraint(["season_id"], ["seasons.id"]),
        sa.ForeignKeyConstraint(["match_id"], ["matches.id"]),
        sa.ForeignKeyConstraint(["tournament_id"], ["tournaments.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "reason IN ('season_start', 'match_win', 'match_loss', 'tournament_bonus')",
            name="ck_elo_snapshots_reason",
        ),
    )
    op.create_index(
        "idx_elo_snapshots_player_season",
        "elo_snapshots",
        ["player_id", "season_id", "timestamp"],
        unique=False,
    )
    op.create_index("idx_elo_snapshots_season", "elo_snapshots", ["season_id", "timestamp"], unique=False)
    op.create_index("idx_elo_snapshots_match", "elo_snapshots", ["match_id"], unique=False)

    op.create_table(
        "replay_log",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("season_id", sa.Integer(), nullable=False),
        sa.Column("from_timestamp", sa.BigInteger(), nullable=True),
        sa.Column("success", sa.Boolean(), nullable=False),
        sa.Column("players_processed", sa.Integer(), nullable=True),
        sa.Column("matches_processed", sa.Integer(), nullable=True),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("duration_seconds", sa.Numeric(precision=10, scale=3), nullable=True),
        _created_at_column(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "idx_replay_log_season_date", "replay_log", ["season_id", "created_at"], unique=False
    )


def downgrade() -> None:
    op.drop_index("idx_replay_log_season_date", table_name="replay_log")
    op.drop_table("replay_log")

    op.drop_index("idx_elo_snapshots_match", table_name="elo_snapshots")
    op.drop_index("idx_elo_snapshots_season", table_name="elo_snapshots")
    op.drop_index("idx_elo_snapshots_player_season", table_name="elo_snapshots")
    op.drop_table("elo_snapshots")

    op.drop_index("idx_matches_tournament", table_name="matches")
    op.drop_index("idx_matches_loser", table_name="matches")
    op.drop_index("idx_matches_winner", table_name="matches")
    op.drop_index("idx_matches_date", table_name="matches")
    op.drop_table("matches")

    op.drop_index("idx_tournaments_winner", table_name="tournaments")
    op.drop_index("idx_tournaments_date", table_name="tournaments")
    op.drop_table("tournaments")

    op.drop_index("idx_seasons_range", table_name="seasons")
    op.drop_table("seasons")

    op.drop_table("players")

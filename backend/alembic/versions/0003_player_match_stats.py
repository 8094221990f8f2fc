"""per-player match statistics projection

Revision ID: 0003_player_match_stats
Revises: 0002_set_initial_serving_team
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0003_player_match_stats"
down_revision = "0002_set_initial_serving_team"
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "player_match_stats",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "match_id",
            sa.String(),
            sa.ForeignKey("match.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "player_id",
            sa.String(),
            sa.ForeignKey("player.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("actions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scoring_actions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("penalties", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "by_type",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "match_id", "player_id", name="uq_player_match_stats_match_id_player_id"
        ),
    )


def downgrade():
    op.drop_table("player_match_stats")

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _json():
    return sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "team",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("division", sa.String(length=120), nullable=True),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_team_owner_id_name", "team", ["owner_id", "name"])

    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "team_id",
            sa.String(),
            sa.ForeignKey("team.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(length=150), nullable=False),
        sa.Column("number", sa.Integer(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("team_id", "number", name="uq_player_team_id_number"),
    )

    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "team_a_id",
            sa.String(),
            sa.ForeignKey("team.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "team_b_id",
            sa.String(),
            sa.ForeignKey("team.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.CheckConstraint("team_a_id <> team_b_id", name="ck_match_distinct_teams"),
    )

    op.create_table(
        "set",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "match_id",
            sa.String(),
            sa.ForeignKey("match.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("key", sa.Integer(), nullable=False),
        sa.Column("points_a", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("points_b", sa.Integer(), nullable=False, server_default="0"),
        sa.UniqueConstraint("match_id", "key", name="uq_set_match_id_key"),
    )

    op.create_table(
        "set_starting_rotation",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "set_id",
            sa.String(),
            sa.ForeignKey("set.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "team_id",
            sa.String(),
            sa.ForeignKey("team.id", ondelete="CASCADE"),
            nullable=False,
        ),
        *[
            sa.Column(f"position{slot}_id", sa.String(), sa.ForeignKey("player.id"), nullable=False)
            for slot in range(1, 7)
        ],
        sa.Column("libero_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "set_id", "team_id", name="uq_set_starting_rotation_set_id_team_id"
        ),
    )

    op.create_table(
        "match_action",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "match_id",
            sa.String(),
            sa.ForeignKey("match.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "set_id",
            sa.String(),
            sa.ForeignKey("set.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("team_id", sa.String(), sa.ForeignKey("team.id"), nullable=False),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("action_type", sa.String(length=40), nullable=False),
        sa.Column("outcome", sa.String(length=40), nullable=False),
        sa.Column("point_delta", sa.Integer(), nullable=False),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("rally", sa.Integer(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadata", _json(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("set_id", "sequence", name="uq_match_action_set_id_sequence"),
        sa.CheckConstraint(
            "point_delta IN (-1, 0, 1)", name="ck_match_action_point_delta"
        ),
    )
    op.create_index(
        "ix_match_action_match_id_player_id",
        "match_action",
        ["match_id", "player_id"],
    )


def downgrade():
    op.drop_index("ix_match_action_match_id_player_id", table_name="match_action")
    op.drop_table("match_action")
    op.drop_table("set_starting_rotation")
    op.drop_table("set")
    op.drop_table("match")
    op.drop_table("player")
    op.drop_index("ix_team_owner_id_name", table_name="team")
    op.drop_table("team")

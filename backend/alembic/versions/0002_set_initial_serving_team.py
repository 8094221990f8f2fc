"""record which team serves first in a set

Revision ID: 0002_set_initial_serving_team
Revises: 0001_initial
"""

from alembic import op
import sqlalchemy as sa

revision = "0002_set_initial_serving_team"
down_revision = "0001_initial"
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table("set") as batch:
        batch.add_column(sa.Column("initial_serving_team_id", sa.String(), nullable=True))
        batch.create_foreign_key(
            "fk_set_initial_serving_team_id_team",
            "team",
            ["initial_serving_team_id"],
            ["id"],
            ondelete="SET NULL",
        )


def downgrade():
    with op.batch_alter_table("set") as batch:
        batch.drop_constraint("fk_set_initial_serving_team_id_team", type_="foreignkey")
        batch.drop_column("initial_serving_team_id")

from sqlalchemy.orm import relationship
from sqlalchemy import (
    CheckConstraint,
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base


class Team(Base):
    __tablename__ = "team"
    id = Column(String, primary_key=True)
    name = Column(String(150), nullable=False)
    division = Column(String(120), nullable=True)
    owner_id = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    players = relationship(
        "Player",
        cascade="all, delete-orphan",
        order_by="Player.number",
        back_populates="team",
    )

    __table_args__ = (Index("ix_team_owner_id_name", "owner_id", "name"),)


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    team_id = Column(String, ForeignKey("team.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(150), nullable=False)
    number = Column(Integer, nullable=False)
    role = Column(String(20), nullable=True)  # libero | setter | middle | opposite | outside
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    team = relationship("Team", back_populates="players")

    __table_args__ = (
        UniqueConstraint("team_id", "number", name="uq_player_team_id_number"),
    )


class Match(Base):
    __tablename__ = "match"
    id = Column(String, primary_key=True)
    team_a_id = Column(String, ForeignKey("team.id", ondelete="CASCADE"), nullable=False)
    team_b_id = Column(String, ForeignKey("team.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    sets = relationship(
        "MatchSet",
        cascade="all, delete-orphan",
        order_by="MatchSet.key",
        back_populates="match",
    )

    __table_args__ = (
        CheckConstraint("team_a_id <> team_b_id", name="ck_match_distinct_teams"),
    )

    def has_team(self, team_id: str) -> bool:
        return team_id in (self.team_a_id, self.team_b_id)


class MatchSet(Base):
    __tablename__ = "set"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id", ondelete="CASCADE"), nullable=False)
    key = Column(Integer, nullable=False)
    # Cached fold of the set's ledger; rewritten by every append/delete.
    points_a = Column(Integer, nullable=False, default=0)
    points_b = Column(Integer, nullable=False, default=0)
    initial_serving_team_id = Column(
        String, ForeignKey("team.id", ondelete="SET NULL"), nullable=True
    )

    match = relationship("Match", back_populates="sets")

    __table_args__ = (UniqueConstraint("match_id", "key", name="uq_set_match_id_key"),)


class StartingRotation(Base):
    __tablename__ = "set_starting_rotation"
    id = Column(String, primary_key=True)
    set_id = Column(String, ForeignKey("set.id", ondelete="CASCADE"), nullable=False)
    team_id = Column(String, ForeignKey("team.id", ondelete="CASCADE"), nullable=False)
    position1_id = Column(String, ForeignKey("player.id"), nullable=False)
    position2_id = Column(String, ForeignKey("player.id"), nullable=False)
    position3_id = Column(String, ForeignKey("player.id"), nullable=False)
    position4_id = Column(String, ForeignKey("player.id"), nullable=False)
    position5_id = Column(String, ForeignKey("player.id"), nullable=False)
    position6_id = Column(String, ForeignKey("player.id"), nullable=False)
    libero_id = Column(String, ForeignKey("player.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("set_id", "team_id", name="uq_set_starting_rotation_set_id_team_id"),
    )

    @property
    def positions(self) -> list[str]:
        return [
            self.position1_id,
            self.position2_id,
            self.position3_id,
            self.position4_id,
            self.position5_id,
            self.position6_id,
        ]


class MatchAction(Base):
    __tablename__ = "match_action"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id", ondelete="CASCADE"), nullable=False)
    set_id = Column(String, ForeignKey("set.id", ondelete="CASCADE"), nullable=False)
    team_id = Column(String, ForeignKey("team.id"), nullable=False)
    player_id = Column(String, ForeignKey("player.id"), nullable=False)
    action_type = Column(String(40), nullable=False)
    outcome = Column(String(40), nullable=False)
    point_delta = Column(Integer, nullable=False)
    sequence = Column(Integer, nullable=False)
    rally = Column(Integer, nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    meta = Column("metadata", JSON().with_variant(JSONB, "postgresql"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("set_id", "sequence", name="uq_match_action_set_id_sequence"),
        CheckConstraint("point_delta IN (-1, 0, 1)", name="ck_match_action_point_delta"),
        Index("ix_match_action_match_id_player_id", "match_id", "player_id"),
    )


class PlayerMatchStats(Base):
    __tablename__ = "player_match_stats"
    id = Column(String, primary_key=True)
    match_id = Column(String, ForeignKey("match.id", ondelete="CASCADE"), nullable=False)
    player_id = Column(String, ForeignKey("player.id", ondelete="CASCADE"), nullable=False)
    actions = Column(Integer, nullable=False, default=0)
    scoring_actions = Column(Integer, nullable=False, default=0)
    penalties = Column(Integer, nullable=False, default=0)
    by_type = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "match_id", "player_id", name="uq_player_match_stats_match_id_player_id"
        ),
    )

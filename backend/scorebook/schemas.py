from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .time_utils import require_utc


def _strip_required(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValueError(f"{field_name} must not be empty")
    return trimmed


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    division: Optional[str] = Field(default=None, max_length=120)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _strip_required(value, "name")


class TeamOut(BaseModel):
    id: str
    name: str
    division: Optional[str] = None


class PlayerCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    number: int = Field(..., ge=0, le=99)
    role: Optional[Literal["libero", "setter", "middle", "opposite", "outside"]] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _strip_required(value, "name")


class PlayerOut(BaseModel):
    id: str
    teamId: str
    name: str
    number: int
    role: Optional[str] = None


class MatchCreate(BaseModel):
    teamAId: str
    teamBId: str

    model_config = ConfigDict(extra="forbid")


class SetOut(BaseModel):
    id: str
    key: int
    pointsA: int
    pointsB: int
    initialServingTeamId: Optional[str] = None


class MatchOut(BaseModel):
    id: str
    teamAId: str
    teamBId: str
    sets: List[SetOut] = []


class ScoreOut(BaseModel):
    pointsA: int
    pointsB: int


class ActionCreate(BaseModel):
    """Payload for appending an action to a set's ledger.

    ``actionType``, ``outcome`` and ``pointDelta`` are checked against the
    ledger rules by the service layer so that rejections surface as 400.
    """

    setId: str
    teamId: str
    playerId: str
    actionType: str
    outcome: str
    pointDelta: int
    occurredAt: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("occurredAt")
    def _normalize_occurred_at(cls, v: datetime | None) -> datetime | None:
        return require_utc(v, field_name="occurredAt")


class ActionOut(BaseModel):
    id: str
    matchId: str
    setId: str
    teamId: str
    playerId: str
    actionType: str
    outcome: str
    pointDelta: int
    sequence: int
    rally: int
    occurredAt: datetime
    metadata: Optional[Dict[str, Any]] = None


class ActionRecordedOut(BaseModel):
    action: ActionOut
    score: ScoreOut


class ActionDeletedOut(BaseModel):
    id: str
    matchId: str
    setId: str
    score: ScoreOut


class StartingRotationIn(BaseModel):
    positions: List[str]
    liberoId: str

    model_config = ConfigDict(extra="forbid")


class StartingRotationOut(BaseModel):
    setId: str
    teamId: str
    positions: List[str]
    liberoId: str


class InitialServerIn(BaseModel):
    teamId: str

    model_config = ConfigDict(extra="forbid")


class TeamRotationOut(BaseModel):
    teamId: str
    positions: List[Optional[str]]
    serverId: Optional[str] = None
    liberoId: Optional[str] = None
    rotations: int


class RotationStateOut(BaseModel):
    setId: str
    matchId: str
    teamA: TeamRotationOut
    teamB: TeamRotationOut
    servingTeamId: str
    initialServingTeamId: str


class PlayerStatsOut(BaseModel):
    matchId: str
    playerId: str
    actions: int
    scoringActions: int
    penalties: int
    byType: Dict[str, Dict[str, Any]]
    updatedAt: Optional[datetime] = None


class CategoryTotalsOut(BaseModel):
    attempts: int
    scored: int
    errors: int
    successPct: float
    errorPct: float
    ratings: Optional[Dict[str, int]] = None


class TypeTotalsOut(BaseModel):
    attempts: int
    scored: int
    errors: int


class PlayerTotalsOut(BaseModel):
    playerId: str
    teamId: Optional[str] = None
    name: Optional[str] = None
    number: Optional[int] = None
    total: int
    scored: int
    errors: int
    categories: Dict[str, CategoryTotalsOut]
    byType: Dict[str, TypeTotalsOut]


class MatchTotalsOut(BaseModel):
    matchId: str
    players: List[PlayerTotalsOut]

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail
from ..models import Player, Team
from ..schemas import MatchOut, PlayerCreate, PlayerOut, TeamCreate, TeamOut
from ..services import matches as directory
from .auth import get_current_owner
from .matches import to_match_out

router = APIRouter(
    prefix="/teams",
    tags=["teams"],
    responses={404: {"model": ProblemDetail}},
)


def _to_team_out(team: Team) -> TeamOut:
    return TeamOut(id=team.id, name=team.name, division=team.division)


def _to_player_out(player: Player) -> PlayerOut:
    return PlayerOut(
        id=player.id,
        teamId=player.team_id,
        name=player.name,
        number=player.number,
        role=player.role,
    )


@router.post("", response_model=TeamOut, status_code=status.HTTP_201_CREATED)
async def create_team(
    body: TeamCreate,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> TeamOut:
    team = await directory.create_team(session, owner_id, body.name, body.division)
    return _to_team_out(team)


@router.get("", response_model=list[TeamOut])
async def list_teams(
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> list[TeamOut]:
    rows = await directory.list_teams(session, owner_id)
    return [_to_team_out(team) for team in rows]


@router.get("/{team_id}", response_model=TeamOut)
async def get_team(team_id: str, session: AsyncSession = Depends(get_session)) -> TeamOut:
    return _to_team_out(await directory.get_team(session, team_id))


@router.post(
    "/{team_id}/players", response_model=PlayerOut, status_code=status.HTTP_201_CREATED
)
async def add_player(
    team_id: str,
    body: PlayerCreate,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> PlayerOut:
    team = await directory.get_team(session, team_id)
    directory.ensure_owner(team, owner_id)
    player = await directory.add_player(
        session, team_id, body.name, body.number, body.role
    )
    return _to_player_out(player)


@router.get("/{team_id}/players", response_model=list[PlayerOut])
async def list_players(
    team_id: str, session: AsyncSession = Depends(get_session)
) -> list[PlayerOut]:
    await directory.get_team(session, team_id)
    rows = await directory.list_players(session, team_id)
    return [_to_player_out(player) for player in rows]


@router.get("/{team_id}/matches", response_model=list[MatchOut])
async def list_team_matches(
    team_id: str, session: AsyncSession = Depends(get_session)
) -> list[MatchOut]:
    await directory.get_team(session, team_id)
    rows = await directory.list_matches_for_team(session, team_id)
    return [to_match_out(match) for match in rows]

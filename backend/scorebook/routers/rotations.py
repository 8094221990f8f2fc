from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import ProblemDetail
from ..models import StartingRotation
from ..schemas import (
    InitialServerIn,
    RotationStateOut,
    SetOut,
    StartingRotationIn,
    StartingRotationOut,
)
from ..services import matches as directory
from ..services import rotations as rotation_service
from .auth import get_current_owner

router = APIRouter(
    prefix="/sets",
    tags=["rotations"],
    responses={400: {"model": ProblemDetail}, 404: {"model": ProblemDetail}},
)


def _to_rotation_out(row: StartingRotation) -> StartingRotationOut:
    return StartingRotationOut(
        setId=row.set_id,
        teamId=row.team_id,
        positions=row.positions,
        liberoId=row.libero_id,
    )


@router.put("/{set_id}/rotations/{team_id}", response_model=StartingRotationOut)
async def set_starting_rotation(
    set_id: str,
    team_id: str,
    body: StartingRotationIn,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> StartingRotationOut:
    team = await directory.get_team(session, team_id)
    directory.ensure_owner(team, owner_id)
    row = await rotation_service.set_starting_rotation(
        session, set_id, team_id, body.positions, body.liberoId
    )
    return _to_rotation_out(row)


@router.get("/{set_id}/rotations/{team_id}", response_model=StartingRotationOut)
async def get_starting_rotation(
    set_id: str, team_id: str, session: AsyncSession = Depends(get_session)
) -> StartingRotationOut:
    row = await rotation_service.get_starting_rotation(session, set_id, team_id)
    return _to_rotation_out(row)


@router.delete("/{set_id}/rotations/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_starting_rotation(
    set_id: str,
    team_id: str,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> Response:
    team = await directory.get_team(session, team_id)
    directory.ensure_owner(team, owner_id)
    await rotation_service.delete_starting_rotation(session, set_id, team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{set_id}/initial-server", response_model=SetOut)
async def set_initial_server(
    set_id: str,
    body: InitialServerIn,
    session: AsyncSession = Depends(get_session),
    owner_id: str = Depends(get_current_owner),
) -> SetOut:
    match_set = await directory.get_set(session, set_id)
    match = await directory.get_match(session, match_set.match_id)
    await directory.ensure_match_owner(session, match, owner_id)
    match_set = await rotation_service.set_initial_server(session, set_id, body.teamId)
    return SetOut(
        id=match_set.id,
        key=match_set.key,
        pointsA=match_set.points_a or 0,
        pointsB=match_set.points_b or 0,
        initialServingTeamId=match_set.initial_serving_team_id,
    )


@router.get("/{set_id}/rotation-state", response_model=RotationStateOut)
async def get_rotation_state(
    set_id: str, session: AsyncSession = Depends(get_session)
) -> RotationStateOut:
    return RotationStateOut(**await rotation_service.get_rotation_state(session, set_id))

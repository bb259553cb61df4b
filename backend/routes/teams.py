"""
Team Collaboration Routes

Owners and team admins manage members; invitations are accepted by token
from the emailed link. Invitation acceptance is declared before the
`/{team_id}` routes so the literal path wins.
"""
from fastapi import APIRouter, Depends, Request
import logging

from middleware import require_auth
from models.team import (
    CreateTeamRequest,
    UpdateTeamRequest,
    InviteMemberRequest,
    UpdateMemberRoleRequest,
)
from services.team_service import team_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/teams", tags=["Teams"])


@router.post("/invite/{token}")
async def accept_invitation(token: str, request: Request, current_user: dict = Depends(require_auth)):
    team = await team_service.accept_invitation(token, current_user, request)
    return {"success": True, "message": "Successfully joined the team", "team": team}


@router.post("/", status_code=201)
async def create_team(data: CreateTeamRequest, request: Request, current_user: dict = Depends(require_auth)):
    team = await team_service.create_team(current_user["user_id"], data.name, data.description, request)
    return {"success": True, "message": "Team created successfully", "team": team}


@router.get("/")
async def list_teams(current_user: dict = Depends(require_auth)):
    teams = await team_service.list_user_teams(current_user["user_id"])
    return {"success": True, "message": "Teams fetched successfully", "teams": teams}


@router.post("/{team_id}/invite")
async def invite_member(team_id: str, data: InviteMemberRequest, current_user: dict = Depends(require_auth)):
    invitation = await team_service.invite_member(team_id, current_user, data.email, data.role)
    return {
        "success": True,
        "message": "Invitation sent successfully",
        "invitation": invitation.model_dump(exclude={"token"}),
    }


@router.post("/{team_id}/leave")
async def leave_team(team_id: str, request: Request, current_user: dict = Depends(require_auth)):
    await team_service.leave_team(team_id, current_user["user_id"], request)
    return {"success": True, "message": "Left team successfully"}


@router.delete("/{team_id}/members/{member_id}")
async def remove_member(team_id: str, member_id: str, current_user: dict = Depends(require_auth)):
    await team_service.remove_member(team_id, current_user["user_id"], member_id)
    return {"success": True, "message": "Member removed successfully"}


@router.patch("/{team_id}/members/{member_id}")
async def update_member_role(
    team_id: str,
    member_id: str,
    data: UpdateMemberRoleRequest,
    current_user: dict = Depends(require_auth),
):
    await team_service.update_member_role(team_id, current_user["user_id"], member_id, data.role)
    return {"success": True, "message": "Member role updated successfully"}


@router.patch("/{team_id}")
async def update_team(team_id: str, data: UpdateTeamRequest, current_user: dict = Depends(require_auth)):
    team = await team_service.update_team(team_id, current_user["user_id"], data.name, data.description)
    return {"success": True, "message": "Team updated successfully", "team": team}


@router.delete("/{team_id}")
async def delete_team(team_id: str, request: Request, current_user: dict = Depends(require_auth)):
    await team_service.delete_team(team_id, current_user["user_id"], request)
    return {"success": True, "message": "Team deleted successfully"}

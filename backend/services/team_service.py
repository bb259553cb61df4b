"""Team Service

Team membership and the invitation lifecycle. Members and pending
invitations are embedded on the team document; each user also keeps a
`teams` list of `{team_id, role, joined_at}`.

Invitation states: pending -> accepted (membership pushed, invitation
pulled) or expired (rejected on accept, purged by the daily job).
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
import asyncio
import logging

from database import database
from auth import generate_secure_token
from errors import ValidationError, NotFoundError, PermissionDeniedError
from models.team import Team, TeamMember, TeamInvitation, MemberRole
from models.user import TeamRole
from models.billing import ActivityAction
from services.activity_service import activity_service
from services.email_service import email_service
from utils.dates import utcnow, parse_dt
from utils.public_app_url import frontend_link

logger = logging.getLogger(__name__)

MEMBER_FIELDS = {"_id": 0, "user_id": 1, "full_name": 1, "email": 1, "avatar": 1}


def invitation_link(token: str) -> str:
    return frontend_link(f"dashboard/teams/invite/{token}")


def find_member(team: Dict[str, Any], user_id: str) -> Optional[Dict[str, Any]]:
    return next((m for m in team.get("members", []) if m["user_id"] == user_id), None)


def can_manage_members(team: Dict[str, Any], user_id: str) -> bool:
    """Owner or an admin member."""
    member = find_member(team, user_id)
    if not member:
        return False
    return member["role"] == MemberRole.ADMIN.value or team["owner_id"] == user_id


class TeamService:
    """Service for teams and invitations."""

    def _get_db(self):
        return database.get_db()

    async def _get_team(self, team_id: str) -> Dict[str, Any]:
        db = self._get_db()
        team = await db.teams.find_one({"team_id": team_id}, {"_id": 0})
        if not team:
            raise NotFoundError("Team not found")
        return team

    async def _resolve_members(self, team: Dict[str, Any]) -> Dict[str, Any]:
        db = self._get_db()
        user_ids = [m["user_id"] for m in team.get("members", [])]
        users = await db.users.find({"user_id": {"$in": user_ids}}, MEMBER_FIELDS).to_list(len(user_ids) or 1)
        by_id = {u["user_id"]: u for u in users}
        team["members"] = [
            {**m, "user": by_id.get(m["user_id"])} for m in team.get("members", [])
        ]
        return team

    # =========================================================================
    # Team CRUD
    # =========================================================================

    async def create_team(self, owner_id: str, name: Optional[str], description: Optional[str] = None, request=None) -> Dict[str, Any]:
        if not name:
            raise ValidationError("Team name is required")

        db = self._get_db()
        now = utcnow()
        team = Team(
            name=name,
            description=description,
            owner_id=owner_id,
            members=[TeamMember(user_id=owner_id, role=MemberRole.ADMIN, joined_at=now)],
        )
        doc = team.model_dump(mode="python")
        await db.teams.insert_one(doc)
        doc.pop("_id", None)

        await db.users.update_one(
            {"user_id": owner_id},
            {"$push": {"teams": {"team_id": team.team_id, "role": TeamRole.OWNER.value, "joined_at": now}}}
        )

        await activity_service.log(owner_id, ActivityAction.TEAM, f"Created team {name}", request)
        logger.info(f"Team created: {team.team_id} by {owner_id}")
        return doc

    async def list_user_teams(self, user_id: str) -> List[Dict[str, Any]]:
        """Teams of a user with the user's own role and resolved members."""
        db = self._get_db()
        user = await db.users.find_one({"user_id": user_id}, {"_id": 0, "teams": 1})
        memberships = (user or {}).get("teams", [])
        team_ids = [m["team_id"] for m in memberships]
        if not team_ids:
            return []

        teams = await db.teams.find({"team_id": {"$in": team_ids}}, {"_id": 0}).to_list(len(team_ids))
        by_id = {t["team_id"]: t for t in teams}

        result = []
        for membership in memberships:
            team = by_id.get(membership["team_id"])
            if not team:
                continue
            result.append({
                "team": await self._resolve_members(team),
                "role": membership["role"],
                "joined_at": membership.get("joined_at"),
            })
        return result

    async def update_team(self, team_id: str, user_id: str, name: Optional[str], description: Optional[str]) -> Dict[str, Any]:
        team = await self._get_team(team_id)
        if team["owner_id"] != user_id:
            raise PermissionDeniedError("Only team owner can update the team")

        updates: Dict[str, Any] = {"updated_at": utcnow()}
        if name:
            updates["name"] = name
        if description is not None:
            updates["description"] = description

        db = self._get_db()
        await db.teams.update_one({"team_id": team_id}, {"$set": updates})
        team.update(updates)
        return team

    async def delete_team(self, team_id: str, user_id: str, request=None):
        team = await self._get_team(team_id)
        if team["owner_id"] != user_id:
            raise PermissionDeniedError("Only team owner can delete the team")

        db = self._get_db()
        await db.users.update_many(
            {"teams.team_id": team_id},
            {"$pull": {"teams": {"team_id": team_id}}}
        )
        # Designs shared with this team fall back to their remaining targets
        await db.designs.update_many(
            {"shared_with": team_id},
            {"$pull": {"shared_with": team_id}}
        )
        await db.teams.delete_one({"team_id": team_id})

        await activity_service.log(user_id, ActivityAction.TEAM, f"Deleted team {team['name']}", request)
        logger.info(f"Team deleted: {team_id}")

    # =========================================================================
    # Invitations
    # =========================================================================

    async def invite_member(
        self,
        team_id: str,
        inviter: Dict[str, Any],
        email: str,
        role: MemberRole = MemberRole.MEMBER,
    ) -> TeamInvitation:
        team = await self._get_team(team_id)
        if not can_manage_members(team, inviter["user_id"]):
            raise PermissionDeniedError("Not authorized to invite members")

        email = email.strip().lower()
        db = self._get_db()

        invited_user = await db.users.find_one({"email": email}, {"_id": 0, "user_id": 1})
        if invited_user and find_member(team, invited_user["user_id"]):
            raise ValidationError("User is already a member of this team")

        if any(inv["email"] == email for inv in team.get("invitations", [])):
            raise ValidationError("Invitation already sent to this email")

        invitation = TeamInvitation(
            email=email,
            role=MemberRole(role),
            token=generate_secure_token(32),
        )
        await db.teams.update_one(
            {"team_id": team_id},
            {
                "$push": {"invitations": invitation.model_dump()},
                "$set": {"updated_at": utcnow()},
            }
        )

        asyncio.create_task(email_service.send_team_invitation_email(
            recipient=email,
            team_name=team["name"],
            inviter_name=inviter.get("full_name", ""),
            role=invitation.role,
            invite_link=invitation_link(invitation.token),
        ))

        logger.info(f"Invitation to {team_id} created for {email}")
        return invitation

    async def accept_invitation(self, token: str, user: Dict[str, Any], request=None) -> Dict[str, Any]:
        db = self._get_db()
        team = await db.teams.find_one({"invitations.token": token}, {"_id": 0})
        if not team:
            raise NotFoundError("Invalid invitation token")

        invitation = next((inv for inv in team.get("invitations", []) if inv["token"] == token), None)
        if not invitation:
            raise NotFoundError("Invitation not found")

        expires_at = parse_dt(invitation.get("expires_at"))
        if expires_at is None or expires_at < datetime.now(timezone.utc):
            raise ValidationError("Invitation has expired")

        if invitation["email"].lower() != user["email"].lower():
            raise PermissionDeniedError("Invitation is for a different email")

        now = utcnow()
        if find_member(team, user["user_id"]):
            # Already joined through another path; just consume the invitation
            await db.teams.update_one(
                {"team_id": team["team_id"]},
                {"$pull": {"invitations": {"token": token}}}
            )
        else:
            member = TeamMember(user_id=user["user_id"], role=invitation["role"], joined_at=now)
            await db.teams.update_one(
                {"team_id": team["team_id"]},
                {
                    "$push": {"members": member.model_dump()},
                    "$pull": {"invitations": {"token": token}},
                    "$set": {"updated_at": now},
                }
            )
            await db.users.update_one(
                {"user_id": user["user_id"]},
                {"$push": {"teams": {"team_id": team["team_id"], "role": invitation["role"], "joined_at": now}}}
            )

        await activity_service.log(user["user_id"], ActivityAction.TEAM, f"Joined team {team['name']}", request)
        return await self._get_team(team["team_id"])

    async def purge_expired_invitations(self) -> int:
        """Pull every invitation whose expiry has passed. Returns teams touched."""
        db = self._get_db()
        now = utcnow()
        result = await db.teams.update_many(
            {"invitations.expires_at": {"$lt": now}},
            {"$pull": {"invitations": {"expires_at": {"$lt": now}}}}
        )
        return result.modified_count

    # =========================================================================
    # Members
    # =========================================================================

    async def remove_member(self, team_id: str, user_id: str, member_id: str):
        team = await self._get_team(team_id)
        if not can_manage_members(team, user_id):
            raise PermissionDeniedError("Not authorized to remove members")
        if team["owner_id"] == member_id:
            raise ValidationError("Cannot remove team owner")

        db = self._get_db()
        await db.teams.update_one(
            {"team_id": team_id},
            {"$pull": {"members": {"user_id": member_id}}, "$set": {"updated_at": utcnow()}}
        )
        await db.users.update_one(
            {"user_id": member_id},
            {"$pull": {"teams": {"team_id": team_id}}}
        )
        logger.info(f"Member {member_id} removed from {team_id} by {user_id}")

    async def update_member_role(self, team_id: str, user_id: str, member_id: str, role: MemberRole):
        team = await self._get_team(team_id)
        if team["owner_id"] != user_id:
            raise PermissionDeniedError("Only team owner can update roles")
        if not find_member(team, member_id):
            raise NotFoundError("Member not found")

        role = MemberRole(role).value
        db = self._get_db()
        await db.teams.update_one(
            {"team_id": team_id, "members.user_id": member_id},
            {"$set": {"members.$.role": role, "updated_at": utcnow()}}
        )
        # The owner's own user-side record stays "owner"
        if member_id != team["owner_id"]:
            await db.users.update_one(
                {"user_id": member_id, "teams.team_id": team_id},
                {"$set": {"teams.$.role": role}}
            )

    async def leave_team(self, team_id: str, user_id: str, request=None):
        team = await self._get_team(team_id)
        if team["owner_id"] == user_id:
            raise ValidationError("Team owner cannot leave the team. Please delete the team instead.")
        if not find_member(team, user_id):
            raise ValidationError("You are not a member of this team")

        db = self._get_db()
        await db.teams.update_one(
            {"team_id": team_id},
            {"$pull": {"members": {"user_id": user_id}}, "$set": {"updated_at": utcnow()}}
        )
        await db.users.update_one(
            {"user_id": user_id},
            {"$pull": {"teams": {"team_id": team_id}}}
        )
        await activity_service.log(user_id, ActivityAction.TEAM, f"Left team {team['name']}", request)

    async def is_member(self, team_id: str, user_id: str) -> bool:
        team = await self._get_team(team_id)
        return find_member(team, user_id) is not None


team_service = TeamService()

"""
Promote a registered user to admin (first admin bootstrap / recovery).

Admins can change roles from the admin panel; this script exists for when
there is no admin yet.

Usage (from backend/):
  python -m scripts.promote_admin admin@example.com
  python -m scripts.promote_admin --email admin@example.com
"""

import asyncio
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from database import get_db_context
from models import UserRole
from utils.dates import utcnow
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def promote_user(db, email: str) -> bool:
    """
    Set role=admin for the user with this email (case-insensitive).
    Returns True if the user is now an admin, False if not found.
    """
    email_lower = (email or "").strip().lower()
    if not email_lower:
        logger.error("Email is required")
        return False

    user = await db.users.find_one({"email": email_lower}, {"_id": 0, "user_id": 1, "role": 1})
    if not user:
        logger.warning("No user found with email: %s", email_lower)
        return False
    if user.get("role") == UserRole.ADMIN.value:
        logger.info("User %s is already an admin; no change.", email_lower)
        return True

    await db.users.update_one(
        {"user_id": user["user_id"]},
        {"$set": {"role": UserRole.ADMIN.value, "updated_at": utcnow()}}
    )
    logger.info("Promoted to admin: %s (user_id=%s)", email_lower, user["user_id"])
    return True


async def run(email: str) -> bool:
    async with get_db_context() as db:
        return await promote_user(db, email)


def main():
    parser = argparse.ArgumentParser(description="Promote a user to admin by email")
    parser.add_argument("email", nargs="?", help="User email")
    parser.add_argument("--email", dest="email_flag", help="User email (alternative)")
    args = parser.parse_args()
    email = args.email or args.email_flag
    if not email:
        parser.error("Provide email as positional argument or --email")
        return 1
    ok = asyncio.run(run(email))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())

"""
Shared job runner for scheduled background jobs.
Each run_* returns a dict with "message" and "count".
"""
import logging

logger = logging.getLogger(__name__)


async def run_premium_expiry_sweep():
    try:
        from services.usage_service import usage_service
        count = await usage_service.expire_subscriptions()
        logger.info(f"Premium expiry sweep completed: {count} subscriptions expired")
        return {"message": f"Subscriptions expired: {count}", "count": count}
    except Exception as e:
        logger.error(f"Premium expiry sweep failed: {e}")
        raise


async def run_invitation_purge():
    try:
        from services.team_service import team_service
        count = await team_service.purge_expired_invitations()
        logger.info(f"Invitation purge completed: {count} teams cleaned")
        return {"message": f"Teams with expired invitations cleaned: {count}", "count": count}
    except Exception as e:
        logger.error(f"Invitation purge failed: {e}")
        raise

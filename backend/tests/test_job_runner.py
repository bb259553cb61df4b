"""Scheduled maintenance jobs return a message and count."""
import pytest
from unittest.mock import AsyncMock, patch

from job_runner import run_premium_expiry_sweep, run_invitation_purge


@pytest.mark.asyncio
async def test_premium_expiry_sweep_reports_count():
    with patch("services.usage_service.usage_service.expire_subscriptions", new_callable=AsyncMock, return_value=4):
        result = await run_premium_expiry_sweep()
    assert result == {"message": "Subscriptions expired: 4", "count": 4}


@pytest.mark.asyncio
async def test_invitation_purge_propagates_failure():
    with patch(
        "services.team_service.team_service.purge_expired_invitations",
        new_callable=AsyncMock,
        side_effect=RuntimeError("db down"),
    ):
        with pytest.raises(RuntimeError):
            await run_invitation_purge()

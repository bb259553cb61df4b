"""
Account flows: registration conflicts, refresh rotation, email
verification, password reset and social link validation.
"""
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock, patch

from auth import hash_token, create_refresh_token
from errors import ValidationError, AuthenticationError, ConflictError, RateLimitError
from models.user import UserCreate
from services.user_service import user_service, validate_social_links
from utils.rate_limiter import rate_limiter


def _db():
    db = MagicMock()
    db.users.find_one = AsyncMock(return_value=None)
    db.users.update_one = AsyncMock(return_value=MagicMock(modified_count=1, matched_count=1))
    db.users.insert_one = AsyncMock()
    db.activity_logs.insert_one = AsyncMock()
    return db


def _registration(**overrides):
    data = {
        "full_name": "Asha Rao",
        "email": "asha@example.com",
        "phone": "9876543210",
        "gender": "female",
        "password": "Str0ngPass",
    }
    data.update(overrides)
    return UserCreate(**data)


@pytest.mark.asyncio
async def test_register_duplicate_email_conflicts():
    db = _db()
    db.users.find_one = AsyncMock(return_value={"user_id": "USR-EXISTING"})
    with patch("services.user_service.database.get_db", return_value=db):
        with pytest.raises(ConflictError) as exc_info:
            await user_service.register(_registration())
    assert exc_info.value.status_code == 409
    db.users.insert_one.assert_not_called()


@pytest.mark.asyncio
async def test_register_weak_password_rejected():
    with pytest.raises(ValidationError):
        await user_service.register(_registration(password="weakpass"))


@pytest.mark.asyncio
async def test_register_stores_hash_not_password():
    db = _db()
    with patch("services.user_service.database.get_db", return_value=db):
        with patch("services.user_service.email_service.send_welcome_email", new_callable=AsyncMock):
            user = await user_service.register(_registration(email="Asha@Example.com"))
    stored = db.users.insert_one.call_args[0][0]
    assert stored["email"] == "asha@example.com"
    assert stored["password_hash"] != "Str0ngPass"
    assert "password" not in stored
    assert user["user_id"].startswith("USR-")


@pytest.mark.asyncio
async def test_refresh_rejects_reused_token():
    token = create_refresh_token("USR-1")
    db = _db()
    db.users.find_one = AsyncMock(return_value={"user_id": "USR-1", "email": "a@example.com", "refresh_token_hash": "rotated"})
    with patch("services.user_service.database.get_db", return_value=db):
        with pytest.raises(AuthenticationError):
            await user_service.refresh(token)


@pytest.mark.asyncio
async def test_refresh_rotates_stored_hash():
    token = create_refresh_token("USR-1")
    db = _db()
    db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1", "email": "a@example.com", "refresh_token_hash": hash_token(token),
    })
    with patch("services.user_service.database.get_db", return_value=db):
        _, access, new_refresh = await user_service.refresh(token)
    assert access
    stored_hash = db.users.update_one.call_args[0][1]["$set"]["refresh_token_hash"]
    assert stored_hash == hash_token(new_refresh)


@pytest.mark.asyncio
async def test_verify_code_expired():
    db = _db()
    db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1",
        "verification_code_hash": hash_token("123456"),
        "verification_code_expires_at": datetime.now(timezone.utc) - timedelta(seconds=1),
    })
    with patch("services.user_service.database.get_db", return_value=db):
        with pytest.raises(ValidationError) as exc_info:
            await user_service.verify_code("USR-1", "123456")
    assert exc_info.value.message == "OTP has expired"


@pytest.mark.asyncio
async def test_verify_code_marks_user_verified():
    db = _db()
    db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1",
        "verification_code_hash": hash_token("123456"),
        "verification_code_expires_at": datetime.now(timezone.utc) + timedelta(minutes=2),
    })
    with patch("services.user_service.database.get_db", return_value=db):
        user = await user_service.verify_code("USR-1", "123456")
    assert user["is_verified"] is True
    assert db.users.update_one.call_args[0][1]["$set"]["verification_code_hash"] is None


@pytest.mark.asyncio
async def test_wrong_code_counts_an_attempt():
    db = _db()
    db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1",
        "verification_code_hash": hash_token("123456"),
        "verification_code_expires_at": datetime.now(timezone.utc) + timedelta(minutes=2),
        "verification_attempts": 2,
    })
    with patch("services.user_service.database.get_db", return_value=db):
        with pytest.raises(ValidationError) as exc_info:
            await user_service.verify_code("USR-1", "000000")
    assert exc_info.value.message == "Invalid OTP"
    assert db.users.update_one.call_args[0][1] == {"$inc": {"verification_attempts": 1}}


@pytest.mark.asyncio
async def test_correct_code_refused_after_five_misses():
    db = _db()
    db.users.find_one = AsyncMock(return_value={
        "user_id": "USR-1",
        "verification_code_hash": hash_token("123456"),
        "verification_code_expires_at": datetime.now(timezone.utc) + timedelta(minutes=2),
        "verification_attempts": 5,
    })
    with patch("services.user_service.database.get_db", return_value=db):
        with pytest.raises(RateLimitError) as exc_info:
            await user_service.verify_code("USR-1", "123456")
    assert exc_info.value.status_code == 429
    db.users.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_new_code_clears_attempts():
    rate_limiter.reset()
    db = _db()
    user = {"user_id": "USR-1", "email": "a@example.com", "full_name": "Asha Rao", "is_verified": False}
    with patch("services.user_service.database.get_db", return_value=db):
        with patch("services.user_service.email_service.send_verification_code_email", new_callable=AsyncMock):
            await user_service.send_verification_code(user)
    assert db.users.update_one.call_args[0][1]["$set"]["verification_attempts"] == 0
    rate_limiter.reset()


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_is_silent():
    rate_limiter.reset()
    db = _db()
    with patch("services.user_service.database.get_db", return_value=db):
        with patch("services.user_service.email_service.send_password_reset_email", new_callable=AsyncMock) as send:
            await user_service.forgot_password("nobody@example.com")
    send.assert_not_called()
    db.users.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_forgot_password_is_rate_limited():
    rate_limiter.reset()
    db = _db()
    with patch("services.user_service.database.get_db", return_value=db):
        for _ in range(3):
            await user_service.forgot_password("spam@example.com")
        with pytest.raises(RateLimitError) as exc_info:
            await user_service.forgot_password("spam@example.com")
    assert exc_info.value.status_code == 429
    assert "Too many requests" in exc_info.value.message
    rate_limiter.reset()


@pytest.mark.asyncio
async def test_reset_password_with_invalid_token():
    db = _db()
    with patch("services.user_service.database.get_db", return_value=db):
        with pytest.raises(ValidationError) as exc_info:
            await user_service.reset_password("bad-token", "Str0ngPass")
    assert exc_info.value.message == "Reset password token is invalid or has expired"


def test_social_links_accept_platform_domains():
    links = validate_social_links({
        "github": "https://github.com/asha",
        "youtube": "https://www.youtube.com/@asha",
        "website": "https://asha.design",
        "twitter": "",
    })
    assert links["github"] == "https://github.com/asha"
    assert links["twitter"] == ""


def test_social_links_reject_wrong_domain_or_scheme():
    with pytest.raises(ValidationError):
        validate_social_links({"github": "https://gitlab.com/asha"})
    with pytest.raises(ValidationError):
        validate_social_links({"instagram": "http://instagram.com/asha"})
    with pytest.raises(ValidationError):
        validate_social_links({"github": "github.com/asha"})

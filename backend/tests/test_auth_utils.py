"""Password hashing, JWT round trips and token helpers."""
from datetime import timedelta

from auth import (
    hash_password,
    verify_password,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    generate_secure_token,
    generate_verification_code,
    hash_token,
    validate_password_strength,
)


def test_password_hash_verifies_only_original():
    hashed = hash_password("Str0ngPass")
    assert hashed != "Str0ngPass"
    assert verify_password("Str0ngPass", hashed)
    assert not verify_password("str0ngpass", hashed)


def test_access_token_carries_claims():
    token = create_access_token({"sub": "USR-1", "email": "a@example.com", "full_name": "Asha"})
    payload = decode_access_token(token)
    assert payload["sub"] == "USR-1"
    assert payload["email"] == "a@example.com"
    assert payload["type"] == "access"


def test_expired_access_token_rejected():
    token = create_access_token({"sub": "USR-1"}, expires_delta=timedelta(seconds=-5))
    assert decode_access_token(token) is None


def test_access_and_refresh_tokens_not_interchangeable():
    refresh = create_refresh_token("USR-1")
    access = create_access_token({"sub": "USR-1"})
    assert decode_refresh_token(refresh)["sub"] == "USR-1"
    assert decode_access_token(refresh) is None
    assert decode_refresh_token(access) is None


def test_verification_code_is_six_digits():
    for _ in range(50):
        code = generate_verification_code()
        assert len(code) == 6
        assert code.isdigit()
        assert code[0] != "0"


def test_secure_token_and_hash():
    token = generate_secure_token(32)
    assert len(token) == 64
    assert generate_secure_token(32) != token
    assert len(hash_token(token)) == 64
    assert hash_token(token) == hash_token(token)


def test_password_strength_rules():
    assert validate_password_strength("short1A") == (False, "Password must be at least 8 characters")
    assert validate_password_strength("alllowercase1")[0] is False
    assert validate_password_strength("ALLUPPERCASE1")[0] is False
    assert validate_password_strength("NoDigitsHere")[0] is False
    assert validate_password_strength("Valid123")[0] is True

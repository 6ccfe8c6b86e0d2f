"""
Unit tests for password hashing, tokens and login codes.
"""

from datetime import timedelta

from jose import jwt

from macsync.core.clock import utcnow
from macsync.core.config import get_settings
from macsync.core.security import (
    ACCESS_TOKEN,
    ONBOARDING_TOKEN,
    hash_password,
    verify_password,
    create_access_token,
    create_onboarding_token,
    decode_token,
    generate_verification_code,
    hash_verification_code,
    generate_qr_code_data,
)

settings = get_settings()


def test_password_round_trip():
    hashed = hash_password("correct horse")
    assert hashed != "correct horse"
    assert verify_password("correct horse", hashed)
    assert not verify_password("wrong horse", hashed)


def test_verify_password_without_hash():
    assert not verify_password("anything", None)
    assert not verify_password("anything", "not-a-bcrypt-hash")


def test_long_passwords_are_accepted():
    password = "x" * 100
    assert verify_password(password, hash_password(password))


def test_access_token_claims():
    payload = decode_token(create_access_token(7, "a@mcmaster.ca"), ACCESS_TOKEN)
    assert payload["sub"] == "7"
    assert payload["email"] == "a@mcmaster.ca"


def test_token_kinds_are_not_interchangeable():
    onboarding = create_onboarding_token("new@mcmaster.ca")
    assert decode_token(onboarding, ONBOARDING_TOKEN)["email"] == "new@mcmaster.ca"
    assert decode_token(onboarding, ACCESS_TOKEN) is None
    assert decode_token(create_access_token(1, "a@mcmaster.ca"), ONBOARDING_TOKEN) is None


def test_expired_token_rejected():
    token = jwt.encode(
        {"sub": "1", "email": "a@mcmaster.ca", "type": ACCESS_TOKEN, "exp": utcnow() - timedelta(minutes=1)},
        settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
    )
    assert decode_token(token, ACCESS_TOKEN) is None


def test_token_signed_with_other_key_rejected():
    token = jwt.encode(
        {"sub": "1", "email": "a@mcmaster.ca", "type": ACCESS_TOKEN, "exp": utcnow() + timedelta(minutes=5)},
        "some-other-key",
        algorithm=settings.ALGORITHM,
    )
    assert decode_token(token, ACCESS_TOKEN) is None


def test_verification_codes():
    code = generate_verification_code()
    assert len(code) == 6 and code.isdigit()
    assert hash_verification_code(code) == hash_verification_code(code)
    assert hash_verification_code("000001") != hash_verification_code("000002")


def test_qr_codes_are_unique():
    codes = {generate_qr_code_data() for _ in range(50)}
    assert len(codes) == 50
    assert all(code.startswith("MST-") for code in codes)

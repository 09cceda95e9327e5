import medibook.utils
from medibook.utils import decode_jwt_token

from conftest import create_jwt_token


def test_decode_accepts_token_signed_with_the_shared_secret():
    claims = decode_jwt_token(create_jwt_token({"sub": "patient-1", "role": "patient"}))
    assert claims["sub"] == "patient-1"
    assert claims["role"] == "patient"


def test_decode_rejects_expired_and_garbage_tokens():
    assert decode_jwt_token(create_jwt_token({"sub": "patient-1"}, expires_minutes=-5)) is None
    assert decode_jwt_token("not-a-token") is None


def test_package_does_not_issue_tokens():
    assert not hasattr(medibook.utils, "create_jwt_token")

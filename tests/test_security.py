import jwt

from doctors_portal.core.security import ALGORITHM, create_access_token, decode_access_token


def test_token_roundtrip_carries_email():
    payload = decode_access_token(create_access_token("a@x.com"))

    assert payload is not None
    assert payload.email == "a@x.com"
    assert payload.exp - payload.iat == 24 * 3600


def test_expired_token_is_rejected():
    assert decode_access_token(create_access_token("a@x.com", expires_hours=-1)) is None


def test_token_signed_with_other_secret_is_rejected():
    token = jwt.encode({"email": "a@x.com"}, "someone-elses-secret", algorithm=ALGORITHM)
    assert decode_access_token(token) is None

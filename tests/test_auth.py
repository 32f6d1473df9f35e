import base64
import json

import jwt
import pytest

from auth import decode_token

SECRET = "auth-test-secret-0123456789abcdef0123"


def _segment(data):
    return base64.urlsafe_b64encode(json.dumps(data).encode()).rstrip(b"=").decode()


def test_decode_hs256_token():
    token = jwt.encode({"sub": "admin-1"}, SECRET, algorithm="HS256")
    assert decode_token(token, secret=SECRET, jwks_url="")["sub"] == "admin-1"


def test_hs256_without_secret_is_rejected():
    token = jwt.encode({"sub": "admin-1"}, SECRET, algorithm="HS256")
    with pytest.raises(jwt.InvalidTokenError, match="JWT_SECRET"):
        decode_token(token, secret="", jwks_url="")


def test_expired_token():
    token = jwt.encode({"sub": "admin-1", "exp": 1}, SECRET, algorithm="HS256")
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_token(token, secret=SECRET, jwks_url="")


def test_asymmetric_token_needs_jwks_url():
    token = ".".join([_segment({"alg": "RS256", "typ": "JWT"}), _segment({"sub": "admin-1"}), "c2ln"])
    with pytest.raises(jwt.InvalidTokenError, match="JWT_JWKS_URL"):
        decode_token(token, secret=SECRET, jwks_url="")

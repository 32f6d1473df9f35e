"""
FastAPI JWT authentication for the certificate API.

The middleware in app_server.py guards every /api/* route (except the public
ones) and validates the bearer token with decode_token().

Environment variables (set in .env):
    JWT_SECRET    –  shared secret for HS256-signed tokens
    JWT_JWKS_URL  –  JWKS endpoint, required when tokens are signed with an
                     asymmetric algorithm (RS256, ES256, ...)
"""

from __future__ import annotations

import os
from typing import Optional

import jwt

# Lazy-initialised JWKS client (only used for asymmetric tokens)
_jwks_client: Optional[jwt.PyJWKClient] = None
_jwks_url: str = ""


def _get_jwks_client(jwks_url: str) -> Optional[jwt.PyJWKClient]:
    global _jwks_client, _jwks_url
    if not jwks_url:
        return None
    if _jwks_client is None or _jwks_url != jwks_url:
        _jwks_client = jwt.PyJWKClient(jwks_url, cache_keys=True)
        _jwks_url = jwks_url
    return _jwks_client


def decode_token(token: str, secret: str | None = None, jwks_url: str | None = None) -> dict:
    """
    Decode and validate a bearer JWT whether it is HS256 or asymmetrically
    signed.  Raises jwt.InvalidTokenError (or a subclass) on failure.
    """
    secret = os.environ.get("JWT_SECRET", "") if secret is None else secret
    jwks_url = os.environ.get("JWT_JWKS_URL", "").strip() if jwks_url is None else jwks_url

    header = jwt.get_unverified_header(token)
    alg = header.get("alg", "HS256")

    if alg == "HS256":
        if not secret:
            raise jwt.InvalidTokenError(
                "JWT_SECRET is not set; cannot validate HS256 token."
            )
        return jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )

    client = _get_jwks_client(jwks_url)
    if client is None:
        raise jwt.InvalidTokenError(
            f"Token uses {alg} but JWT_JWKS_URL is not set; "
            "cannot fetch JWKS to verify asymmetric token."
        )
    signing_key = client.get_signing_key_from_jwt(token)
    return jwt.decode(
        token,
        signing_key.key,
        algorithms=[alg],
        options={"verify_aud": False},
    )


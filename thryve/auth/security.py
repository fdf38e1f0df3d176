# -*- coding: utf-8 -*-
"""Auth: password hashing, session tokens and request guards.

Session tokens are compact HS256 JWTs issued by Thryve only (`iss` is checked on
every request). They travel as a bearer header from API clients or as the
`thryve_token` cookie from the web app. The internal dispatch path uses a
separate shared secret, never a user token.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from ..config import settings
from .storage import display_name, get_user_by_id

TOKEN_COOKIE_NAME = "thryve_token"
TOKEN_ISSUER = "thryve"

_HASH_SCHEME = "pbkdf2_sha256"
_HASH_ITERATIONS = 200_000
_JWT_HEADER = {"alg": "HS256", "typ": "JWT"}


def _b64e(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64d(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


def _pbkdf2(password: str, salt: bytes, iterations: int) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)


def hash_password(password: str) -> str:
    """Encode as `pbkdf2_sha256$<iterations>$<salt>$<digest>`."""
    salt = os.urandom(16)
    digest = _pbkdf2(password, salt, _HASH_ITERATIONS)
    return "$".join((_HASH_SCHEME, str(_HASH_ITERATIONS), _b64e(salt), _b64e(digest)))


def verify_password(password: str, password_hash: str) -> bool:
    parts = (password_hash or "").split("$")
    if len(parts) != 4 or parts[0] != _HASH_SCHEME:
        return False
    try:
        iterations = int(parts[1])
        salt, expected = _b64d(parts[2]), _b64d(parts[3])
    except ValueError:
        return False
    return hmac.compare_digest(_pbkdf2(password, salt, iterations), expected)


def _signature(signing_input: str) -> str:
    return _b64e(hmac.new(settings.jwt_secret.encode("utf-8"), signing_input.encode("utf-8"), hashlib.sha256).digest())


def _segment(obj: Dict[str, Any]) -> str:
    return _b64e(json.dumps(obj, separators=(",", ":")).encode("utf-8"))


def create_access_token(user: Dict[str, Any]) -> str:
    """Session token for a user row. `name` is carried for display only."""
    issued = datetime.now(timezone.utc)
    claims = {
        "iss": TOKEN_ISSUER,
        "sub": user["id"],
        "email": user["email"],
        "name": display_name(user),
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(days=int(settings.token_ttl_days))).timestamp()),
    }
    signing_input = f"{_segment(_JWT_HEADER)}.{_segment(claims)}"
    return f"{signing_input}.{_signature(signing_input)}"


def decode_token(token: str) -> Dict[str, Any]:
    """Verified claims of a session token; raises 401 otherwise."""
    head, _, sig = token.rpartition(".")
    if head.count(".") != 1 or not hmac.compare_digest(_signature(head).encode("ascii"), sig.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid token")
    try:
        claims = json.loads(_b64d(head.split(".", 1)[1]))
    except (ValueError, UnicodeDecodeError) as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc
    if not isinstance(claims, dict) or claims.get("iss") != TOKEN_ISSUER or not claims.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid token")
    if int(claims.get("exp") or 0) < int(datetime.now(timezone.utc).timestamp()):
        raise HTTPException(status_code=401, detail="Token expired")
    return claims


def get_token_from_request(request: Request) -> Optional[str]:
    scheme, _, credentials = (request.headers.get("authorization") or "").partition(" ")
    if scheme.lower() == "bearer":
        return credentials.strip() or None
    return request.cookies.get(TOKEN_COOKIE_NAME) or None


def get_current_user_from_request(request: Request) -> Dict[str, Any]:
    # Set by the auth middleware on gated paths.
    user = getattr(request.state, "user", None)
    if user:
        return user

    token = get_token_from_request(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")
    claims = decode_token(token)
    user = get_user_by_id(str(claims["sub"]))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    request.state.user = user
    return user


def get_current_user(user: Dict[str, Any] = Depends(get_current_user_from_request)) -> Dict[str, Any]:
    return user


def verify_dispatch_token(request: Request) -> None:
    """Guard for the internal dispatcher path (system caller, not a user)."""
    expected = settings.dispatch_token
    if not expected:
        raise HTTPException(status_code=404, detail="Not found")
    provided = request.headers.get("x-dispatch-token") or ""
    if not hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Invalid dispatch token")

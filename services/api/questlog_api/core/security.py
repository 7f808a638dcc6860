from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from questlog_api.core.config import Settings


def _verification_secrets(settings: Settings) -> list[str]:
    # Primary first; previous secrets stay valid for verification during rotation.
    out: list[str] = []
    for raw in [settings.auth_jwt_secret, *settings.auth_jwt_previous_secrets.split(",")]:
        secret = str(raw or "").strip()
        if secret and secret not in out:
            out.append(secret)
    return out


def create_access_token(*, subject: str, is_guest: bool) -> str:
    settings = Settings()
    now = datetime.now(UTC)
    payload: dict[str, Any] = {
        "iss": settings.auth_jwt_issuer,
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(
            (now + timedelta(minutes=settings.auth_jwt_exp_minutes)).timestamp()
        ),
        "guest": bool(is_guest),
    }
    return jwt.encode(payload, settings.auth_jwt_secret, algorithm="HS256")


def decode_token(token: str) -> dict[str, Any]:
    settings = Settings()
    last_error: jwt.InvalidTokenError | None = None
    for secret in _verification_secrets(settings):
        try:
            return jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                issuer=settings.auth_jwt_issuer,
            )
        except jwt.InvalidSignatureError as exc:
            last_error = exc
    raise last_error or jwt.InvalidTokenError("no signing secret configured")

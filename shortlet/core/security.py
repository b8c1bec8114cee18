from __future__ import annotations

from dataclasses import dataclass

from jose import JWTError, jwt

from shortlet.core.config import get_settings


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str
    token: str
    role: str = "user"
    name: str | None = None

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]


def decode_access_token(token: str) -> dict:
    """Decode a backend-issued access token.

    The signature is only checked when JWT_SECRET is configured; the backend
    re-authenticates every forwarded request either way.
    """
    settings = get_settings()
    if settings.jwt_secret:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.algorithm])
    return jwt.get_unverified_claims(token)


def _full_name(payload: dict) -> str | None:
    parts = [payload.get("firstName"), payload.get("lastName")]
    return " ".join(str(part) for part in parts if part) or None


def user_from_token(token: str) -> CurrentUser:
    try:
        payload = decode_access_token(token)
    except JWTError as exc:
        raise ValueError("Invalid access token") from exc

    user_id = payload.get("id") or payload.get("userId") or payload.get("_id") or payload.get("sub")
    email = payload.get("email")
    if not user_id or not email:
        raise ValueError("Access token is missing user id or email")
    return CurrentUser(
        id=str(user_id),
        email=str(email),
        token=token,
        role=str(payload.get("role") or "user"),
        name=payload.get("name") or _full_name(payload),
    )

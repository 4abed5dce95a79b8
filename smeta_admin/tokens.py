from __future__ import annotations

import time
from typing import Any

import jwt


class InvalidTokenError(ValueError):
    pass


def decode_claims(token: str) -> dict[str, Any]:
    """Read the JWT payload without checking the signature.

    The client only needs the expiry to decide whether a stored credential is
    worth presenting; the backend remains the authority on validity.
    """
    try:
        claims = jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.PyJWTError as exc:
        raise InvalidTokenError(f"Malformed access token: {exc}") from exc

    if not isinstance(claims, dict):
        raise InvalidTokenError("Malformed access token: payload is not an object")
    return claims


def is_token_expired(
    token: str | None,
    now: float | None = None,
    leeway: float = 0,
) -> bool:
    if not token:
        return True

    try:
        claims = decode_claims(token)
    except InvalidTokenError:
        return True

    exp = claims.get("exp")
    if not isinstance(exp, (int, float)) or isinstance(exp, bool):
        return True

    current = time.time() if now is None else now
    return exp < current + leeway

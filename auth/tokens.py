"""
auth/tokens.py -- JWT, cookie, and password-hashing utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       the subject (user id as a string), a jti naming the server-side
       session row, and an expiry. A valid signature alone is not enough to
       be logged in -- auth/sessions.py also requires the jti's row to be
       active. Verification returns None on any failure.

  Passwords: hash_password() / verify_password() wrap bcrypt. They are a
       stand-alone utility (CLI: `python main.py hash-password`). Register and
       login do NOT call them: stored passwords are compared by exact
       equality, and switching that over is a data migration, not a flag.

  SECRET_KEY: sourced from core.config.get_settings(), which validates it.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

from datetime import datetime, timezone

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

_ALGORITHM = "HS256"

# bcrypt only reads the first 72 bytes of its input.
_BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    Raises ValueError if the UTF-8 encoding exceeds 72 bytes. The API's
    64-character cap does not guarantee that: 64 non-ASCII characters can
    encode to more, and bcrypt would otherwise ignore the excess.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        raise ValueError(f"Password is longer than {_BCRYPT_MAX_BYTES} bytes when UTF-8 encoded.")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str | None, hashed: str | None) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    Missing input, over-long input or a malformed hash is a mismatch, never
    an exception.
    """
    if plain is None or hashed is None:
        return False
    encoded = plain.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def create_access_token(user_id: int, jti: str, expires_at: datetime) -> str:
    """Encode a signed JWT bound to one session row.

    Args:
        user_id:    Subject id. Stored as the "sub" claim in string form.
        jti:        Session row identifier; revocation works through it.
        expires_at: Absolute expiry, kept in step with the session row.
    """
    payload = {
        "sub": str(user_id),
        "jti": jti,
        "iat": datetime.now(timezone.utc),
        "exp": expires_at,
    }
    return jwt.encode(payload, get_settings().secret_key, algorithm=_ALGORITHM)


def decode_access_token(token: str | None) -> dict | None:
    """Decode and verify a JWT. Returns the payload dict or None on any failure."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, get_settings().secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if "sub" not in payload or "jti" not in payload:
        return None
    return payload


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str) -> None:
    """Write the session token as an httpOnly cookie on the response.

    httponly=True: JS cannot read the cookie.
    samesite="lax": not sent on cross-site POST.
    secure: only sent over HTTPS when SECURE_COOKIES=true.
    max_age: matches the session lifetime so both expire together.
    """
    settings = get_settings()
    response.set_cookie(
        settings.token_name,
        value=token,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        max_age=settings.token_expire_seconds,
    )


def clear_auth_cookie(response) -> None:
    response.delete_cookie(get_settings().token_name)

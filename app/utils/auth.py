"""
Token utilities for API bearer tokens held in the browser session.
Tokens are issued and verified by the marketplace API; this module only reads
their unverified claims to drop tokens that have already expired.
"""

from datetime import datetime, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt


class TokenPayload:
    """Unverified JWT claims relevant to the session."""

    def __init__(self, subject: Optional[str], exp: Optional[datetime], claims: Dict[str, Any]):
        self.subject = subject
        self.exp = exp
        self.claims = claims

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TokenPayload":
        """Create TokenPayload from a claims dictionary."""
        exp = data.get("exp")
        subject = data.get("sub") or data.get("user_id") or data.get("agent_id") or data.get("admin_id")
        return cls(
            subject=str(subject) if subject is not None else None,
            exp=datetime.fromtimestamp(exp, tz=timezone.utc) if isinstance(exp, (int, float)) else None,
            claims=data
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.exp is None:
            return False
        return self.exp <= (now or datetime.now(timezone.utc))


def read_token_claims(token: str) -> Optional[TokenPayload]:
    """
    Decode a JWT without verifying its signature.

    Args:
        token: Bearer token string

    Returns:
        TokenPayload, or None when the token is not a decodable JWT
    """
    if not token:
        return None
    try:
        return TokenPayload.from_dict(jwt.get_unverified_claims(token))
    except JWTError:
        return None


def is_token_expired(token: Optional[str], now: Optional[datetime] = None) -> bool:
    """
    Check whether a token is known to be expired.

    Opaque tokens and tokens without an `exp` claim are treated as live;
    the API decides on the next call.

    Args:
        token: Bearer token string
        now: Reference time, defaults to the current UTC time

    Returns:
        True if the `exp` claim has passed or the token is empty
    """
    if not token:
        return True
    payload = read_token_claims(token)
    if payload is None:
        return False
    return payload.is_expired(now)

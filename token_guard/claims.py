"""
JWT claim decoding.

Tokens are only inspected for their timestamps. Signatures are verified
by the server that receives them, not here.
"""

import math
from typing import Any, Dict, Optional

import jwt

from .errors import TokenFormatError


def decode_claims(token: str) -> Dict[str, Any]:
    """Decode the payload of a JWT without verifying it."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as e:
        raise TokenFormatError(f"Undecodable token: {e}") from e
    if not isinstance(claims, dict):
        raise TokenFormatError("Token payload is not a JSON object")
    return claims


def claim_millis(claims: Dict[str, Any], name: str, required: bool = True) -> Optional[int]:
    """Read a NumericDate claim (seconds) as epoch milliseconds."""
    value = claims.get(name)
    if value is None:
        if required:
            raise TokenFormatError(f"Token is missing the '{name}' claim", {"claim": name})
        return None
    # bool is an int subclass but never a valid timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TokenFormatError(f"Claim '{name}' is not a number", {"claim": name})
    millis = value * 1000
    if isinstance(millis, float) and not math.isfinite(millis):
        raise TokenFormatError(f"Claim '{name}' is out of range", {"claim": name})
    return int(round(millis))

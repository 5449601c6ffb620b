"""Bearer token validation (ES256).

Access tokens are minted by the platform's identity service.  This
service only verifies them, so in production it needs nothing but the
issuer's public key (JWT_PUBLIC_KEY_FILE, PEM).

Without a configured key an ephemeral EC key pair is generated on import
and `create_access_token` can mint tokens against it; dev and the test
suite rely on that.

Claims: sub (user UUID), role (student|instructor|admin), premium (bool),
plus the standard iss, aud, exp, iat, jti.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import load_pem_public_key

from progress_service.core.config import SETTINGS

ALGORITHM = "ES256"
ISSUER = "identity-service"
AUDIENCE = "progress-service"
ACCESS_TOKEN_TTL_MIN = 15

if SETTINGS.jwt_public_key_file:
    _private_key: ec.EllipticCurvePrivateKey | None = None
    _public_key = load_pem_public_key(Path(SETTINGS.jwt_public_key_file).read_bytes())
else:
    _private_key = ec.generate_private_key(ec.SECP256R1())
    _public_key = _private_key.public_key()


def create_access_token(
    *,
    sub: str,
    role: str = "student",
    premium: bool = False,
    ttl_minutes: int = ACCESS_TOKEN_TTL_MIN,
) -> str:
    """Sign a token with the local dev key.  Not available when verifying only."""
    if _private_key is None:
        raise RuntimeError("No signing key: tokens are issued by the identity service")
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "role": role,
        "premium": premium,
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and standard claims; return the payload.

    The algorithm is pinned so alg=none and HS/ES confusion are rejected.
    Raises jwt.ExpiredSignatureError or jwt.InvalidTokenError.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )

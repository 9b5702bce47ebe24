from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass
from typing import Any

import jwt

from .config_types import ClientConfig
from .errors import SigningError

DEFAULT_ISSUER = "cli"


@dataclass(frozen=True)
class SignedToken:
    subject: str
    issued_at: int
    expires_at: int
    not_before: int
    issuer: str
    unique_id: str

    def claims(self) -> dict[str, Any]:
        return {
            "sub": self.subject,
            "iat": self.issued_at,
            "exp": self.expires_at,
            "iss": self.issuer,
            "nbf": self.not_before,
            "jti": self.unique_id,
        }


def sign(cfg: ClientConfig, now: int | None = None, *, issuer_hint: str | None = None) -> SignedToken:
    """Build the claims for a single request.

    The window is centred on ``now``: issued and valid from ``now - leeway``,
    expiring at ``now + leeway``. ``issuer_hint`` is usually the path of the
    web request that triggered the API call; outside of one it falls back to
    ``"cli"``.
    """
    if now is None:
        now = int(time.time())
    # jti is only unique per key and second.
    jti = hashlib.md5(f"{cfg.public_key}{now}".encode("utf-8")).hexdigest()
    return SignedToken(
        subject=cfg.public_key,
        issued_at=now - cfg.leeway,
        expires_at=now + cfg.leeway,
        not_before=now - cfg.leeway,
        issuer=issuer_hint or DEFAULT_ISSUER,
        unique_id=jti,
    )


def encode(token: SignedToken, cfg: ClientConfig) -> str:
    try:
        return jwt.encode(token.claims(), cfg.private_key, algorithm=cfg.algorithm)
    except (jwt.PyJWTError, NotImplementedError, ValueError, TypeError) as e:
        raise SigningError(f"cannot sign token with {cfg.algorithm}: {e}") from e


def bearer_header(cfg: ClientConfig, *, now: int | None = None, issuer_hint: str | None = None) -> str:
    return "Bearer " + encode(sign(cfg, now, issuer_hint=issuer_hint), cfg)

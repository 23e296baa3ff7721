"""
shellies_lib/auth.py

SHA-256 digest authentication.

A device that requires authentication answers a request with error code 401
whose message is a JSON-encoded challenge:

    {"auth_type": "digest", "nonce": ..., "nc": ..., "realm": ..., "algorithm": "SHA-256"}

The client answers by attaching an ``auth`` object to the retried request.
"""

from __future__ import annotations

import hashlib
import json
import random
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from .errors import AuthProtocolError

AUTH_USERNAME = "admin"
AUTH_TYPE = "digest"
AUTH_ALGORITHM = "SHA-256"
UNAUTHORIZED_CODE = 401

_DUMMY_METHOD = "dummy_method"
_DUMMY_URI = "dummy_uri"


def _hash(*parts: Any) -> str:
    return hashlib.sha256(":".join(str(p) for p in parts).encode("utf-8")).hexdigest()


@dataclass(frozen=True, slots=True)
class AuthChallenge:
    realm: str
    nonce: int | str
    nc: int = 1
    auth_type: str = AUTH_TYPE
    algorithm: str = AUTH_ALGORITHM

    @classmethod
    def parse(cls, message: str | Mapping[str, Any]) -> "AuthChallenge":
        """
        Parse and validate the challenge carried by a 401 error.

        Raises:
            AuthProtocolError: malformed JSON, missing fields, or an
            unsupported auth type / hash algorithm.
        """
        if isinstance(message, Mapping):
            data = message
        else:
            try:
                data = json.loads(message)
            except (TypeError, ValueError) as exc:
                raise AuthProtocolError(f"Malformed authentication challenge: {exc}") from exc
        if not isinstance(data, Mapping):
            raise AuthProtocolError("Malformed authentication challenge: expected a JSON object")

        auth_type = data.get("auth_type")
        if auth_type != AUTH_TYPE:
            raise AuthProtocolError(f'Unsupported authentication type "{auth_type}"')
        algorithm = data.get("algorithm")
        if algorithm != AUTH_ALGORITHM:
            raise AuthProtocolError(f'Unsupported hash algorithm "{algorithm}"')

        realm = data.get("realm")
        nonce = data.get("nonce")
        if realm is None or nonce is None:
            raise AuthProtocolError("Malformed authentication challenge: realm and nonce are required")

        nc = data.get("nc")
        try:
            nc = int(nc) if nc else 1
        except (TypeError, ValueError) as exc:
            raise AuthProtocolError(f"Malformed authentication challenge: bad nonce count {nc!r}") from exc
        return cls(
            realm=str(realm),
            nonce=nonce,
            nc=nc,
            auth_type=auth_type,
            algorithm=algorithm,
        )


def generate_cnonce() -> int:
    return round(random.random() * 1_000_000)


def build_ha1(realm: str, password: str, *, username: str = AUTH_USERNAME) -> str:
    return _hash(username, realm, password)


def create_auth_response(
    challenge: AuthChallenge,
    password: str,
    *,
    cnonce: Optional[int] = None,
) -> dict[str, Any]:
    """Return the ``auth`` object to attach to a request."""
    if cnonce is None:
        cnonce = generate_cnonce()
    ha1 = build_ha1(challenge.realm, password)
    ha2 = _hash(_DUMMY_METHOD, _DUMMY_URI)
    response = _hash(ha1, challenge.nonce, challenge.nc or 1, cnonce, "auth", ha2)
    return {
        "realm": challenge.realm,
        "username": AUTH_USERNAME,
        "nonce": challenge.nonce,
        "cnonce": cnonce,
        "response": response,
        "algorithm": AUTH_ALGORITHM,
    }

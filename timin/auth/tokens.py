"""
Stateless signed session tokens.

Format is ``base64url(header).base64url(payload).base64url(HMAC-SHA256)``,
i.e. an HS256 JWT. Signing goes through itsdangerous' Signer with the raw
key (no key derivation) so the signature is a plain HMAC over
``header.payload``.

There is no session table. A token is valid until its ``exp`` passes or the
signing key changes.
"""

from __future__ import annotations

import hashlib
import json
import time
from typing import Any, Callable, Dict, Optional

from itsdangerous import BadData, Signer
from itsdangerous.encoding import base64_decode, base64_encode

from ..utils.config import TOKEN_TTL_SECONDS

HEADER = {"alg": "HS256", "typ": "JWT"}


def _encode_segment(data: Dict[str, Any]) -> str:
    return base64_encode(json.dumps(data, separators=(",", ":"))).decode("ascii")


def _decode_segment(segment: str) -> Any:
    return json.loads(base64_decode(segment).decode("utf-8"))


class TokenService:
    """Issue and verify session tokens."""

    def __init__(
        self,
        signing_key: str,
        ttl_seconds: int = TOKEN_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._signer = Signer(
            signing_key,
            sep=".",
            key_derivation="none",
            digest_method=hashlib.sha256,
        )

    def _now(self) -> int:
        return int(self._clock())

    def issue(self, claims: Dict[str, Any], ttl_seconds: Optional[int] = None) -> str:
        """Sign claims; iat/exp are always set here and override any passed in."""
        now = self._now()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        payload = {**claims, "iat": now, "exp": now + ttl}
        data = f"{_encode_segment(HEADER)}.{_encode_segment(payload)}"
        return self._signer.sign(data).decode("ascii")

    def verify(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Return the claims, or None if the token is malformed, badly signed
        or expired.
        """
        if not token or not isinstance(token, str):
            return None
        if token.count(".") != 2:
            return None
        try:
            data = self._signer.unsign(token).decode("ascii")
            header_segment, payload_segment = data.split(".")
            header = _decode_segment(header_segment)
            payload = _decode_segment(payload_segment)
        except (BadData, ValueError, UnicodeError):
            return None
        if not isinstance(header, dict) or header.get("alg") != HEADER["alg"]:
            return None
        if not isinstance(payload, dict):
            return None
        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool) or self._now() > exp:
            return None
        return payload

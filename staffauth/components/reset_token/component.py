"""Reset token codec.

A reset token is a compact JWS (HS256, keyed by the install secret)
carrying three claims:

    sub     the account email, lowercased
    exp_ms  expiry as a Unix timestamp in milliseconds
    vsig    hex HMAC-SHA256 over "exp_ms|email|verifier", keyed by the
            install secret

The outer signature seals the token: any alteration, or a rotated install
secret, makes it MALFORMED. ``vsig`` binds the token to the password
verifier stored at issue time, so it stops matching as soon as the
password changes. Nothing is persisted.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import re
from typing import Any

from jose import jwt
from jose.exceptions import JWTError

from .models import (
    ExtractTokenInput,
    IssueTokenInput,
    IssueTokenOutput,
    TokenCheckOutput,
    TokenClaims,
    TokenStatus,
    VerifyTokenInput,
)
from .ports import ResetTokenCodecPort

ALGORITHM = "HS256"

_B64URL_SEGMENT = re.compile(r"^[A-Za-z0-9_-]+$")
_HEX_SHA256 = re.compile(r"^[0-9a-f]{64}$")


def _is_canonical_segment(segment: str) -> bool:
    # Reject segments whose unused trailing bits differ from the canonical
    # encoding; otherwise two spellings would decode to the same bytes.
    if not _B64URL_SEGMENT.match(segment):
        return False
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError):
        return False
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii") == segment


def verifier_signature(install_secret: str, expires_at_ms: int, email: str, verifier: str) -> str:
    message = f"{expires_at_ms}|{email}|{verifier}".encode()
    return hmac.new(install_secret.encode(), message, hashlib.sha256).hexdigest()


class SignedResetTokenCodec:
    """JWS-sealed reset tokens bound to the current password verifier."""

    def issue(self, email: str, expires_at_ms: int, install_secret: str, verifier: str) -> str:
        subject = email.strip().lower()
        claims = {
            "sub": subject,
            "exp_ms": int(expires_at_ms),
            "vsig": verifier_signature(install_secret, int(expires_at_ms), subject, verifier),
        }
        token: str = jwt.encode(claims, install_secret, algorithm=ALGORITHM)
        return token

    def _unseal(self, token: str, install_secret: str) -> dict[str, Any] | None:
        if not token or not isinstance(token, str):
            return None
        segments = token.split(".")
        if len(segments) != 3 or not all(_is_canonical_segment(s) for s in segments):
            return None
        try:
            payload = jwt.decode(token, install_secret, algorithms=[ALGORITHM])
        except JWTError:
            return None

        email = payload.get("sub")
        expires_at_ms = payload.get("exp_ms")
        vsig = payload.get("vsig")
        if not isinstance(email, str) or not email:
            return None
        if not isinstance(expires_at_ms, int) or isinstance(expires_at_ms, bool):
            return None
        if not isinstance(vsig, str) or not _HEX_SHA256.match(vsig):
            return None
        return payload

    def extract(self, token: str, install_secret: str) -> TokenCheckOutput:
        payload = self._unseal(token, install_secret)
        if payload is None:
            return TokenCheckOutput.rejected(TokenStatus.MALFORMED)
        claims = TokenClaims(email=payload["sub"], expires_at_ms=payload["exp_ms"])
        return TokenCheckOutput(status=TokenStatus.VALID, claims=claims)

    def verify(
        self, token: str, install_secret: str, verifier: str, now_ms: int
    ) -> TokenCheckOutput:
        payload = self._unseal(token, install_secret)
        if payload is None:
            return TokenCheckOutput.rejected(TokenStatus.MALFORMED)

        claims = TokenClaims(email=payload["sub"], expires_at_ms=payload["exp_ms"])

        # Inclusive: a token is still good at exactly its expiry instant
        if now_ms > claims.expires_at_ms:
            return TokenCheckOutput.rejected(TokenStatus.EXPIRED, claims)

        expected = verifier_signature(
            install_secret, claims.expires_at_ms, claims.email, verifier
        )
        if not hmac.compare_digest(expected, payload["vsig"]):
            return TokenCheckOutput.rejected(TokenStatus.VERIFIER_MISMATCH, claims)

        return TokenCheckOutput(status=TokenStatus.VALID, claims=claims)


_default_codec = SignedResetTokenCodec()


def run_issue(inp: IssueTokenInput, codec: ResetTokenCodecPort | None = None) -> IssueTokenOutput:
    codec = codec or _default_codec
    return IssueTokenOutput(
        token=codec.issue(inp.email, inp.expires_at_ms, inp.install_secret, inp.verifier)
    )


def run_extract(
    inp: ExtractTokenInput, codec: ResetTokenCodecPort | None = None
) -> TokenCheckOutput:
    codec = codec or _default_codec
    return codec.extract(inp.token, inp.install_secret)


def run_verify(inp: VerifyTokenInput, codec: ResetTokenCodecPort | None = None) -> TokenCheckOutput:
    codec = codec or _default_codec
    return codec.verify(inp.token, inp.install_secret, inp.verifier, inp.now_ms)


def run(
    inp: IssueTokenInput | ExtractTokenInput | VerifyTokenInput,
    *,
    codec: ResetTokenCodecPort | None = None,
) -> IssueTokenOutput | TokenCheckOutput:
    if isinstance(inp, IssueTokenInput):
        return run_issue(inp, codec)
    elif isinstance(inp, ExtractTokenInput):
        return run_extract(inp, codec)
    elif isinstance(inp, VerifyTokenInput):
        return run_verify(inp, codec)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")

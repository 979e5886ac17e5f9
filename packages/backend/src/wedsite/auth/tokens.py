"""Bearer token signing and verification.

Wire format: "<base64url(claim JSON)>.<base64url(HMAC-SHA256 signature)>",
unpadded base64url, the signature computed over the encoded payload
string. Tokens are stateless and never stored server-side.

- Access token: 15 minutes, authorizes individual requests
- Refresh token: 7 days, only mints new pairs

There is no revocation list; a leaked token is bounded by its TTL.
Verification failures are returned as AuthFailure values, never raised.
"""

import base64
import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Union

from wedsite.auth.identity import AuthFailure, Identity, Role

ACCESS_TOKEN_TTL_MS = 15 * 60 * 1000
REFRESH_TOKEN_TTL_MS = 7 * 24 * 60 * 60 * 1000


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


TOKEN_TTL_MS = {
    TokenType.ACCESS: ACCESS_TOKEN_TTL_MS,
    TokenType.REFRESH: REFRESH_TOKEN_TTL_MS,
}

MALFORMED = AuthFailure(401, "Invalid token format", "TOKEN_INVALID")
INVALID_SIGNATURE = AuthFailure(401, "Invalid token signature", "TOKEN_INVALID")
INVALID_PAYLOAD = AuthFailure(401, "Invalid token payload", "TOKEN_INVALID")
WRONG_TOKEN_TYPE = AuthFailure(401, "Invalid token type", "TOKEN_INVALID")
EXPIRED = AuthFailure(401, "Token expired", "TOKEN_EXPIRED")


def now_ms() -> int:
    return int(time.time() * 1000)


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


@dataclass(frozen=True)
class Claim:
    """The signed token payload."""

    subject: str
    role: Role
    issued_at: int  # epoch millis
    token_type: TokenType = TokenType.ACCESS
    wedding_ids: tuple[str, ...] = field(default=())
    must_change_password: bool = False

    def to_payload(self) -> dict:
        payload = {
            "sub": self.subject,
            "role": self.role.value,
            "issuedAt": self.issued_at,
            "tokenType": self.token_type.value,
        }
        if self.wedding_ids:
            payload["weddingIds"] = list(self.wedding_ids)
        if self.must_change_password:
            payload["mustChangePassword"] = True
        return payload

    @classmethod
    def from_payload(cls, payload: dict) -> "Claim":
        """Decode a payload, including shapes issued by earlier versions.

        - current:  {sub, role, issuedAt, tokenType}
        - typed:    {sub, type: "super" | "wedding", weddingIds?, ...}
        - legacy:   {username, isMaster, issuedAt, tokenType?}

        Raises ValueError/KeyError/TypeError on anything else.
        """
        if not isinstance(payload, dict):
            raise ValueError("payload is not an object")

        if "role" in payload:
            subject, role = payload["sub"], Role(payload["role"])
        elif payload.get("type") == "super":
            subject, role = payload["sub"], Role.SUPER
        elif payload.get("type") == "wedding":
            subject, role = payload["sub"], Role.WEDDING_CLIENT
        elif "username" in payload:
            subject = payload["username"]
            role = Role.MASTER if payload.get("isMaster") else Role.LEGACY
        else:
            raise ValueError("unknown payload shape")

        if not isinstance(subject, str) or not subject:
            raise ValueError("subject must be a non-empty string")

        issued_at = payload["issuedAt"]
        if isinstance(issued_at, bool) or not isinstance(issued_at, (int, float)):
            raise TypeError("issuedAt must be a number")

        # Tokens minted before the type field existed are access tokens.
        token_type = TokenType(payload.get("tokenType") or TokenType.ACCESS.value)

        wedding_ids = payload.get("weddingIds") or []
        if not isinstance(wedding_ids, list):
            raise TypeError("weddingIds must be a list")

        return cls(
            subject=subject,
            role=role,
            issued_at=int(issued_at),
            token_type=token_type,
            wedding_ids=tuple(str(w) for w in wedding_ids),
            must_change_password=bool(payload.get("mustChangePassword", False)),
        )

    def to_identity(self) -> Identity:
        return Identity(
            subject=self.subject,
            role=self.role,
            must_change_password=self.must_change_password,
            wedding_ids=self.wedding_ids,
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    expires_in: int = ACCESS_TOKEN_TTL_MS // 1000  # seconds


class TokenCodec:
    """Signs and verifies bearer tokens with a server-held secret."""

    def __init__(self, secret: str, clock: Callable[[], int] = now_ms):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret.encode("utf-8")
        self._clock = clock

    def _signature(self, encoded_payload: str) -> str:
        digest = hmac.new(
            self._secret,
            encoded_payload.encode("utf-8"),
            hashlib.sha256,
        ).digest()
        return _b64encode(digest)

    def sign(self, claim: Claim) -> str:
        """Serialize and sign a claim. Deterministic for a given claim."""
        serialized = json.dumps(claim.to_payload(), separators=(",", ":"))
        encoded = _b64encode(serialized.encode("utf-8"))
        return f"{encoded}.{self._signature(encoded)}"

    def verify(
        self,
        token: str,
        expected_type: TokenType = TokenType.ACCESS,
    ) -> Union[Claim, AuthFailure]:
        """Verify a token and return its claim, or the reason it was rejected."""
        parts = token.split(".")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            return MALFORMED

        encoded, provided = parts
        expected = self._signature(encoded)
        if not hmac.compare_digest(
            expected.encode("utf-8"), provided.encode("utf-8")
        ):
            return INVALID_SIGNATURE

        try:
            claim = Claim.from_payload(json.loads(_b64decode(encoded)))
        except (ValueError, KeyError, TypeError):
            return INVALID_PAYLOAD

        if claim.token_type != expected_type:
            return WRONG_TOKEN_TYPE

        if self._clock() - claim.issued_at > TOKEN_TTL_MS[claim.token_type]:
            return EXPIRED

        return claim

    def issue_pair(
        self,
        subject: str,
        role: Role,
        *,
        wedding_ids: tuple[str, ...] = (),
        must_change_password: bool = False,
        issued_at: Optional[int] = None,
    ) -> TokenPair:
        """Mint an access + refresh pair for one subject."""
        issued_at = self._clock() if issued_at is None else issued_at
        subject = subject.strip().lower()
        claims = {
            token_type: Claim(
                subject=subject,
                role=role,
                issued_at=issued_at,
                token_type=token_type,
                wedding_ids=tuple(wedding_ids),
                must_change_password=must_change_password,
            )
            for token_type in TokenType
        }
        return TokenPair(
            access_token=self.sign(claims[TokenType.ACCESS]),
            refresh_token=self.sign(claims[TokenType.REFRESH]),
        )

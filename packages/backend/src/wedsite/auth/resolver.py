"""Identity resolver — turns credentials into a signed token pair.

Learn: A username can exist in more than one namespace (e.g. a super
admin and a legacy admin both called "anna"). The provider order is the
tie-break, so the same credentials always resolve to the same identity.
A wrong password on a super-admin account stops the chain there; later
namespaces are not tried. Callers never learn which step failed: unknown
user and wrong password produce the same response.
"""

from dataclasses import dataclass
from typing import Sequence, Union

import structlog

from wedsite.auth.identity import AuthFailure, Identity
from wedsite.auth.providers import IdentityProvider
from wedsite.auth.store import normalize_username
from wedsite.auth.tokens import TokenCodec, TokenPair, TokenType

logger = structlog.get_logger()

MISSING_CREDENTIALS = AuthFailure(
    400, "Username and password are required", "VALIDATION_ERROR"
)
INVALID_CREDENTIALS = AuthFailure(401, "Invalid username or password", "AUTH_ERROR")


@dataclass(frozen=True)
class LoginResult:
    identity: Identity
    tokens: TokenPair


class IdentityResolver:
    def __init__(self, providers: Sequence[IdentityProvider], codec: TokenCodec):
        self.providers = list(providers)
        self.codec = codec

    def _issue(self, identity: Identity) -> LoginResult:
        tokens = self.codec.issue_pair(
            identity.subject,
            identity.role,
            wedding_ids=identity.wedding_ids,
            must_change_password=identity.must_change_password,
        )
        return LoginResult(identity=identity, tokens=tokens)

    async def login(
        self, username: str, password: str
    ) -> Union[LoginResult, AuthFailure]:
        """Walk the provider chain; the first match gets a token pair."""
        if not username or not password:
            return MISSING_CREDENTIALS

        username = normalize_username(username)
        for provider in self.providers:
            identity = await provider.try_authenticate(username, password)
            if isinstance(identity, AuthFailure):
                if provider.authoritative:
                    logger.info(
                        "auth.login_failed", username=username, provider=provider.name
                    )
                    return INVALID_CREDENTIALS
                continue
            if identity is not None:
                logger.info(
                    "auth.login_succeeded",
                    username=identity.subject,
                    role=identity.role.value,
                    provider=provider.name,
                )
                return self._issue(identity)

        logger.info("auth.login_failed", username=username)
        return INVALID_CREDENTIALS

    def refresh(self, refresh_token: str) -> Union[LoginResult, AuthFailure]:
        """Mint a fresh pair from a valid refresh token.

        The account is not looked up again: a deleted or demoted account
        keeps its refresh capability until the refresh token expires.
        """
        if not refresh_token:
            return AuthFailure(400, "Refresh token is required", "VALIDATION_ERROR")

        claim = self.codec.verify(refresh_token, expected_type=TokenType.REFRESH)
        if isinstance(claim, AuthFailure):
            logger.info("auth.refresh_rejected", reason=claim.error)
            return claim

        return self._issue(claim.to_identity())

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .config import EXPIRY_BUFFER_MS
from .errors import SpotifyError, SpotifyErrorKind
from .oauth import SpotifyOAuth, TokenGrant

logger = logging.getLogger(__name__)


@dataclass
class CredentialState:
    """In-memory Spotify credentials for the single logged-in user."""

    access_token: str | None = None
    refresh_token: str | None = None
    token_expiry: int | None = None  # epoch milliseconds


class SpotifySession:
    """Owns the credential state and its lifecycle.

    One instance per application; it is constructed by ``create_app`` and
    handed to routes as a dependency. Nothing is persisted.
    """

    def __init__(
        self, oauth: SpotifyOAuth, *, clock: Callable[[], float] = time.time
    ) -> None:
        self.oauth = oauth
        self.state = CredentialState()
        self._clock = clock
        self._refresh_lock = asyncio.Lock()

    def now_ms(self) -> int:
        return int(self._clock() * 1000)

    def commit_tokens(self, grant: TokenGrant) -> None:
        """Replace the whole credential state with a fresh grant."""
        self.state = CredentialState(
            access_token=grant.access_token,
            refresh_token=grant.refresh_token,
            token_expiry=self.now_ms() + grant.expires_in * 1000,
        )
        logger.info(
            "🎵 SPOTIFY TOKENS COMMITTED",
            extra={
                "meta": {
                    "has_refresh_token": bool(grant.refresh_token),
                    "expires_in": grant.expires_in,
                }
            },
        )

    def clear(self) -> None:
        self.state = CredentialState()
        logger.info("🎵 SPOTIFY TOKENS CLEARED")

    def is_authenticated(self) -> bool:
        s = self.state
        return bool(
            s.access_token
            and s.token_expiry is not None
            and s.token_expiry > self.now_ms()
        )

    async def refresh_access_token(self) -> str:
        """Refresh the access token and return it.

        Concurrent callers share a single refresh: whoever waited on the
        lock and finds the token already replaced reuses the new one.
        """
        if not self.state.refresh_token:
            raise SpotifyError(SpotifyErrorKind.NO_REFRESH_TOKEN)

        stale_token = self.state.access_token
        async with self._refresh_lock:
            if self.state.access_token and self.state.access_token != stale_token:
                logger.debug("Token already refreshed by a concurrent caller")
                return self.state.access_token

            refresh_token = self.state.refresh_token
            if not refresh_token:
                raise SpotifyError(SpotifyErrorKind.NO_REFRESH_TOKEN)

            try:
                grant = await self.oauth.refresh_access_token(refresh_token)
            except SpotifyError as e:
                logger.error(
                    "🎵 SPOTIFY REFRESH FAILED",
                    extra={"meta": {"kind": e.kind.value, "detail": e.detail}},
                )
                raise

            self.state.access_token = grant.access_token
            self.state.token_expiry = self.now_ms() + grant.expires_in * 1000
            # Providers may omit rotation; the old refresh token stays valid
            if grant.refresh_token:
                self.state.refresh_token = grant.refresh_token

            logger.info(
                "🎵 SPOTIFY ACCESS TOKEN REFRESHED",
                extra={
                    "meta": {
                        "expires_in": grant.expires_in,
                        "refresh_token_rotated": bool(grant.refresh_token),
                    }
                },
            )
            return grant.access_token

    async def ensure_valid_token(self) -> str:
        """Return a usable access token, refreshing inside the safety buffer."""
        if not self.state.access_token:
            raise SpotifyError(SpotifyErrorKind.NOT_AUTHENTICATED)

        expiry = self.state.token_expiry
        # No expiry recorded means no proactive check
        if expiry is not None and self.now_ms() > expiry - EXPIRY_BUFFER_MS:
            logger.info(
                "Token expired, refreshing...",
                extra={"meta": {"ms_until_expiry": expiry - self.now_ms()}},
            )
            return await self.refresh_access_token()
        return self.state.access_token

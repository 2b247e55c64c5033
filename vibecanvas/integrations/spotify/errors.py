from __future__ import annotations

from enum import Enum


class SpotifyErrorKind(str, Enum):
    NOT_AUTHENTICATED = "not_authenticated"
    REAUTHENTICATION_REQUIRED = "reauthentication_required"
    TOKEN_EXCHANGE_FAILED = "token_exchange_failed"
    TOKEN_REFRESH_FAILED = "token_refresh_failed"
    NO_REFRESH_TOKEN = "no_refresh_token"
    RATE_LIMITED = "rate_limited"
    UPSTREAM_FETCH_FAILED = "upstream_fetch_failed"


# Kinds the user can only recover from by logging in again
LOGIN_REQUIRED_KINDS = frozenset(
    {
        SpotifyErrorKind.NOT_AUTHENTICATED,
        SpotifyErrorKind.REAUTHENTICATION_REQUIRED,
        SpotifyErrorKind.NO_REFRESH_TOKEN,
        SpotifyErrorKind.TOKEN_REFRESH_FAILED,
    }
)

_DEFAULT_MESSAGES = {
    SpotifyErrorKind.NOT_AUTHENTICATED: "No access token available. Please authenticate first.",
    SpotifyErrorKind.REAUTHENTICATION_REQUIRED: "Authentication failed. Please re-authenticate.",
    SpotifyErrorKind.TOKEN_EXCHANGE_FAILED: "Failed to get access tokens",
    SpotifyErrorKind.TOKEN_REFRESH_FAILED: "Failed to refresh access token",
    SpotifyErrorKind.NO_REFRESH_TOKEN: "No refresh token available",
    SpotifyErrorKind.RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    SpotifyErrorKind.UPSTREAM_FETCH_FAILED: "Failed to fetch current track",
}


class SpotifyError(RuntimeError):
    """Tagged failure from the token and track client.

    ``message`` is safe to show a user. ``detail`` holds upstream
    diagnostics (status, body excerpt) and is meant for logs only.
    """

    def __init__(
        self,
        kind: SpotifyErrorKind,
        message: str | None = None,
        *,
        detail: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        self.detail = detail
        self.retry_after = retry_after
        super().__init__(self.message)

    @property
    def requires_login(self) -> bool:
        return self.kind in LOGIN_REQUIRED_KINDS

    def __repr__(self) -> str:
        return f"SpotifyError(kind={self.kind.value!r}, message={self.message!r})"

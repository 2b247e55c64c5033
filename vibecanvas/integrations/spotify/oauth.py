from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode

import httpx

from .config import AUTHORIZE_URL, TOKEN_URL, get_spotify_scopes
from .errors import SpotifyError, SpotifyErrorKind

logger = logging.getLogger(__name__)

# Fallback lifetime when the token endpoint omits expires_in
DEFAULT_EXPIRES_IN = 3600


def log_spotify_oauth(operation: str, details: dict | None = None, level: str = "info"):
    """Structured OAuth logging; never pass raw token values in ``details``."""
    log_data = {"operation": operation, "component": "spotify_oauth", **(details or {})}
    log = getattr(logger, level, logger.info)
    log(f"🔐 SPOTIFY OAUTH {operation.upper()}", extra={"meta": log_data})


@dataclass
class TokenGrant:
    """Tokens returned by the provider's token endpoint."""

    access_token: str
    refresh_token: str | None
    expires_in: int  # seconds


class SpotifyOAuth:
    """Authorization-code flow against the Spotify accounts service."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        http: httpx.AsyncClient,
    ) -> None:
        self.client_id = (client_id or "").strip()
        self.client_secret = (client_secret or "").strip()
        self.redirect_uri = (redirect_uri or "").strip()
        self.scopes = " ".join(get_spotify_scopes())
        self._http = http

    def build_authorization_url(self) -> str:
        """Build the provider login URL; missing config yields empty fields."""
        if not self.client_id or not self.redirect_uri:
            log_spotify_oauth(
                "authorize_url_incomplete",
                {
                    "client_id_configured": bool(self.client_id),
                    "redirect_uri_configured": bool(self.redirect_uri),
                },
                level="warning",
            )
        params = {
            "response_type": "code",
            "client_id": self.client_id,
            "scope": self.scopes,
            "redirect_uri": self.redirect_uri,
            "show_dialog": "true",
        }
        return f"{AUTHORIZE_URL}?{urlencode(params, quote_via=quote)}"

    async def exchange_code_for_tokens(self, code: str) -> TokenGrant:
        """Exchange an authorization code for access and refresh tokens."""
        log_spotify_oauth("exchange_code_start", {"code_length": len(code or "")})
        data = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        payload = await self._post_token(data, SpotifyErrorKind.TOKEN_EXCHANGE_FAILED)
        grant = TokenGrant(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token"),
            expires_in=_expires_in(payload),
        )
        log_spotify_oauth(
            "exchange_code_complete",
            {
                "has_refresh_token": bool(grant.refresh_token),
                "expires_in": grant.expires_in,
            },
        )
        return grant

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new access token.

        ``refresh_token`` on the result is None when the provider did not
        rotate it; callers must keep the old one in that case.
        """
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
        }
        payload = await self._post_token(data, SpotifyErrorKind.TOKEN_REFRESH_FAILED)
        return TokenGrant(
            access_token=payload["access_token"],
            refresh_token=payload.get("refresh_token") or None,
            expires_in=_expires_in(payload),
        )

    async def _post_token(
        self, data: dict[str, str], failure: SpotifyErrorKind
    ) -> dict[str, Any]:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        grant_type = data["grant_type"]
        try:
            response = await self._http.post(TOKEN_URL, data=data, headers=headers)
        except httpx.HTTPError as e:
            log_spotify_oauth(
                "token_request_error",
                {"grant_type": grant_type, "error": str(e), "error_type": type(e).__name__},
                level="error",
            )
            raise SpotifyError(failure, detail=str(e)) from e

        if not response.is_success:
            detail = f"{response.status_code} {response.text[:500]}"
            log_spotify_oauth(
                "token_request_rejected",
                {"grant_type": grant_type, "status_code": response.status_code, "body": response.text[:500]},
                level="error",
            )
            raise SpotifyError(failure, detail=detail)

        try:
            payload = response.json()
        except ValueError as e:
            log_spotify_oauth(
                "token_response_undecodable",
                {"grant_type": grant_type, "error": str(e)},
                level="error",
            )
            raise SpotifyError(failure, detail="invalid JSON from token endpoint") from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            log_spotify_oauth(
                "token_response_missing_access_token",
                {"grant_type": grant_type},
                level="error",
            )
            raise SpotifyError(failure, detail="token response without access_token")
        return payload


def _expires_in(payload: dict[str, Any]) -> int:
    try:
        return int(payload.get("expires_in", DEFAULT_EXPIRES_IN))
    except (TypeError, ValueError):
        return DEFAULT_EXPIRES_IN

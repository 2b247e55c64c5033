from __future__ import annotations

import logging
from time import perf_counter

import httpx

from .config import API_BASE, CURRENTLY_PLAYING_PATH
from .errors import SpotifyError, SpotifyErrorKind
from .session import SpotifySession
from .snapshot import TrackSnapshot, normalize_currently_playing

logger = logging.getLogger(__name__)

# One refresh-and-retry after a 401, never more
MAX_AUTH_RETRIES = 1


def log_spotify_operation(operation: str, details: dict | None = None, level: str = "info"):
    """Structured Spotify Web API logging."""
    log_data = {"operation": operation, **(details or {})}
    log = getattr(logger, level, logger.info)
    log(f"🎵 SPOTIFY {operation.upper()}", extra={"meta": log_data})


def _retry_after(response: httpx.Response) -> int | None:
    try:
        return int(response.headers.get("Retry-After", ""))
    except ValueError:
        return None


class SpotifyClient:
    """Reads playback state on behalf of the session's user."""

    api_base = API_BASE

    def __init__(self, session: SpotifySession, http: httpx.AsyncClient) -> None:
        self.session = session
        self._http = http

    async def _fetch_currently_playing(self, access_token: str) -> httpx.Response:
        url = f"{self.api_base}{CURRENTLY_PLAYING_PATH}"
        t0 = perf_counter()
        try:
            r = await self._http.get(
                url, headers={"Authorization": f"Bearer {access_token}"}
            )
        except httpx.HTTPError as e:
            log_spotify_operation(
                "currently_playing_transport_error",
                {"error": str(e), "error_type": type(e).__name__},
                level="error",
            )
            raise SpotifyError(
                SpotifyErrorKind.UPSTREAM_FETCH_FAILED, detail=str(e)
            ) from e
        log_spotify_operation(
            "currently_playing_response",
            {
                "status_code": r.status_code,
                "response_time_ms": round((perf_counter() - t0) * 1000, 2),
            },
            level="debug",
        )
        return r

    async def get_currently_playing(self) -> TrackSnapshot:
        """Fetch and normalize what the user is playing right now.

        A 401 triggers exactly one refresh followed by one retry. A refresh
        failure, or a second 401, ends in REAUTHENTICATION_REQUIRED.
        """
        access_token = await self.session.ensure_valid_token()

        attempt = 0
        while True:
            r = await self._fetch_currently_playing(access_token)

            if r.status_code == 401:
                if attempt >= MAX_AUTH_RETRIES:
                    log_spotify_operation(
                        "unauthorized_after_refresh", {"attempt": attempt}, level="error"
                    )
                    raise SpotifyError(
                        SpotifyErrorKind.REAUTHENTICATION_REQUIRED,
                        detail="401 after token refresh",
                    )
                attempt += 1
                log_spotify_operation("unauthorized_refreshing", level="warning")
                try:
                    access_token = await self.session.refresh_access_token()
                except SpotifyError as e:
                    raise SpotifyError(
                        SpotifyErrorKind.REAUTHENTICATION_REQUIRED,
                        detail=f"refresh after 401 failed: {e.kind.value}",
                    ) from e
                continue

            if r.status_code == 429:
                retry_after = _retry_after(r)
                log_spotify_operation(
                    "rate_limited", {"retry_after": retry_after}, level="warning"
                )
                raise SpotifyError(
                    SpotifyErrorKind.RATE_LIMITED,
                    detail="429 from currently-playing",
                    retry_after=retry_after,
                )

            if r.status_code == 204 or (r.is_success and not r.content):
                log_spotify_operation("currently_playing_no_content", level="debug")
                return TrackSnapshot.not_playing()

            if not r.is_success:
                detail = f"{r.status_code} {r.text[:500]}"
                log_spotify_operation(
                    "currently_playing_error",
                    {"status_code": r.status_code, "body": r.text[:500]},
                    level="error",
                )
                raise SpotifyError(SpotifyErrorKind.UPSTREAM_FETCH_FAILED, detail=detail)

            try:
                payload = r.json()
            except ValueError as e:
                log_spotify_operation(
                    "currently_playing_bad_json", {"error": str(e)}, level="error"
                )
                raise SpotifyError(
                    SpotifyErrorKind.UPSTREAM_FETCH_FAILED, detail="invalid JSON"
                ) from e

            # pydantic's ValidationError is a ValueError
            try:
                return normalize_currently_playing(payload)
            except (TypeError, AttributeError, ValueError) as e:
                log_spotify_operation(
                    "currently_playing_malformed",
                    {"error": str(e)[:500], "error_type": type(e).__name__},
                    level="error",
                )
                raise SpotifyError(
                    SpotifyErrorKind.UPSTREAM_FETCH_FAILED, detail="malformed payload"
                ) from e

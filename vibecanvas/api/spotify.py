from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse

from ..integrations.spotify.client import SpotifyClient
from ..integrations.spotify.errors import SpotifyError
from ..integrations.spotify.session import SpotifySession
from ..integrations.spotify.snapshot import format_time

logger = logging.getLogger(__name__)
router = APIRouter()

CURRENT_TRACK_ERROR = "Failed to fetch current track"


def get_spotify_session(request: Request) -> SpotifySession:
    return request.app.state.spotify


def get_spotify_client(request: Request) -> SpotifyClient:
    return request.app.state.spotify_client


@router.get("/login")
async def spotify_login(
    session: SpotifySession = Depends(get_spotify_session),
) -> RedirectResponse:
    """Send the browser to the Spotify consent screen."""
    return RedirectResponse(session.oauth.build_authorization_url(), status_code=302)


@router.get("/callback")
async def spotify_callback(
    code: str | None = None,
    error: str | None = None,
    session: SpotifySession = Depends(get_spotify_session),
):
    """Complete the login: exchange the code and commit the tokens."""
    if not code:
        if error:
            logger.warning("🎵 SPOTIFY CALLBACK: provider returned error=%s", error)
        return PlainTextResponse("Authorization code not found", status_code=400)

    try:
        grant = await session.oauth.exchange_code_for_tokens(code)
    except SpotifyError as e:
        logger.error(
            "🎵 SPOTIFY CALLBACK: token exchange failed",
            extra={"meta": {"kind": e.kind.value, "detail": e.detail}},
        )
        return PlainTextResponse("Authentication failed", status_code=500)

    session.commit_tokens(grant)
    return RedirectResponse("/", status_code=302)


@router.get("/api/current-track")
async def current_track(client: SpotifyClient = Depends(get_spotify_client)):
    try:
        snapshot = await client.get_currently_playing()
    except SpotifyError as e:
        logger.error(
            "Error fetching current track",
            extra={
                "meta": {
                    "kind": e.kind.value,
                    "detail": e.detail,
                    "retry_after": e.retry_after,
                }
            },
        )
        return JSONResponse(
            {
                "error": CURRENT_TRACK_ERROR,
                "kind": e.kind.value,
                "reauthenticate": e.requires_login,
            },
            status_code=500,
        )

    if snapshot.track is not None:
        logger.info(
            "Now playing %s by %s (%s / %s)",
            snapshot.track.name,
            ", ".join(snapshot.track.artists),
            format_time(snapshot.track.progress),
            format_time(snapshot.track.duration),
        )
    return snapshot.to_wire()


@router.get("/api/auth-status")
async def auth_status(session: SpotifySession = Depends(get_spotify_session)) -> dict:
    return {"authenticated": session.is_authenticated()}


@router.post("/api/logout")
async def logout(session: SpotifySession = Depends(get_spotify_session)) -> dict:
    """Forget the server-side credentials; the next poll reports unauthenticated."""
    session.clear()
    return {"authenticated": False}

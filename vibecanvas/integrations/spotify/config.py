from __future__ import annotations

AUTHORIZE_URL = "https://accounts.spotify.com/authorize"
TOKEN_URL = "https://accounts.spotify.com/api/token"
API_BASE = "https://api.spotify.com/v1"
CURRENTLY_PLAYING_PATH = "/me/player/currently-playing"

# Read-only playback scopes; nothing here controls playback
SCOPES = ("user-read-playback-state", "user-read-currently-playing")

# Refresh proactively this long before the provider's stated expiry
EXPIRY_BUFFER_MS = 300_000


def get_spotify_scopes() -> list[str]:
    """Return the fixed scope set requested at login.

    - user-read-playback-state: read device and play state
    - user-read-currently-playing: read the currently playing item
    """
    return list(SCOPES)

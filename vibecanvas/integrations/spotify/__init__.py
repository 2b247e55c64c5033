"""Spotify integration: OAuth token lifecycle and playback snapshots."""

from .client import SpotifyClient
from .errors import SpotifyError, SpotifyErrorKind
from .oauth import SpotifyOAuth, TokenGrant
from .session import CredentialState, SpotifySession
from .snapshot import TrackSnapshot, format_time, normalize_currently_playing

__all__ = [
    "CredentialState",
    "SpotifyClient",
    "SpotifyError",
    "SpotifyErrorKind",
    "SpotifyOAuth",
    "SpotifySession",
    "TokenGrant",
    "TrackSnapshot",
    "format_time",
    "normalize_currently_playing",
]

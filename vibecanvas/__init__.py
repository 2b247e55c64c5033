"""VibeCanvas: show the currently playing Spotify track in the browser."""

__version__ = "0.1.0"

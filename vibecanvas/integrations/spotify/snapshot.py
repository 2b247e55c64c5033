"""Display-ready playback snapshots.

The upstream "currently playing" payload is deeply nested and sparsely
populated (ads, local files, private sessions). Everything the page renders
directly gets a placeholder here so the browser never sees ``null`` in a
field it prints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

NOT_PLAYING_MESSAGE = "No track currently playing"

UNKNOWN_TRACK = "Unknown Track"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
UNKNOWN_DEVICE = "Unknown Device"
UNKNOWN_DEVICE_TYPE = "Unknown"


class AlbumImage(BaseModel):
    url: str
    width: int | None = None
    height: int | None = None


class Album(BaseModel):
    name: str = UNKNOWN_ALBUM
    images: list[AlbumImage] = Field(default_factory=list)


class Track(BaseModel):
    name: str = UNKNOWN_TRACK
    artists: list[str] = Field(default_factory=lambda: [UNKNOWN_ARTIST], min_length=1)
    album: Album = Field(default_factory=Album)
    duration: int = 0  # ms
    progress: int = 0  # ms
    external_urls: dict[str, str] = Field(default_factory=dict)


class Device(BaseModel):
    name: str = UNKNOWN_DEVICE
    type: str = UNKNOWN_DEVICE_TYPE


class TrackSnapshot(BaseModel):
    """Either a loaded track (possibly paused) or a "not playing" message."""

    model_config = ConfigDict(populate_by_name=True)

    is_playing: bool = Field(default=False, alias="isPlaying")
    track: Track | None = None
    device: Device | None = None
    message: str | None = None

    @model_validator(mode="after")
    def _track_xor_message(self) -> TrackSnapshot:
        if (self.track is None) == (self.message is None):
            raise ValueError("snapshot must carry exactly one of track or message")
        return self

    @classmethod
    def not_playing(cls, message: str = NOT_PLAYING_MESSAGE) -> TrackSnapshot:
        return cls(is_playing=False, message=message)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _artist_names(item: dict[str, Any]) -> list[str]:
    names = [
        a["name"]
        for a in item.get("artists") or []
        if isinstance(a, dict) and a.get("name")
    ]
    return names or [UNKNOWN_ARTIST]


def _album_images(album: dict[str, Any]) -> list[AlbumImage]:
    images = []
    for img in album.get("images") or []:
        if isinstance(img, dict) and img.get("url"):
            images.append(
                AlbumImage(url=img["url"], width=img.get("width"), height=img.get("height"))
            )
    return images


def normalize_currently_playing(payload: dict[str, Any] | None) -> TrackSnapshot:
    """Translate the upstream playback payload into a ``TrackSnapshot``.

    Only an empty payload maps to the "not playing" snapshot. A payload with
    a null ``item`` (ads, private sessions) still yields a placeholder track
    and keeps the upstream ``is_playing`` flag.
    """
    if not payload or not isinstance(payload, dict):
        return TrackSnapshot.not_playing()

    item = payload.get("item")
    if not isinstance(item, dict):
        item = {}

    album = item.get("album") or {}
    device = payload.get("device") or {}

    track = Track(
        name=item.get("name") or UNKNOWN_TRACK,
        artists=_artist_names(item),
        album=Album(
            name=album.get("name") or UNKNOWN_ALBUM,
            images=_album_images(album),
        ),
        duration=item.get("duration_ms") or 0,
        progress=payload.get("progress_ms") or 0,
        external_urls=item.get("external_urls") or {},
    )
    return TrackSnapshot(
        is_playing=bool(payload.get("is_playing")),
        track=track,
        device=Device(
            name=device.get("name") or UNKNOWN_DEVICE,
            type=device.get("type") or UNKNOWN_DEVICE_TYPE,
        ),
    )


def format_time(milliseconds: int | float | None) -> str:
    """Format a millisecond offset as ``m:ss``; minutes never roll into hours."""
    if not milliseconds or milliseconds < 0:
        return "0:00"
    total_seconds = int(milliseconds // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"

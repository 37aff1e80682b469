from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class YouTubeClient:
    """
    Shared handle to an authenticated YouTube API client.

    Created once at startup and handed to every background task. It only
    carries the credentials: each call builds its own discovery service from
    them, so the handle itself is never mutated.
    """
    credentials: Any


@dataclass(frozen=True)
class Channel:
    """Owner of a playlist."""
    id: str
    name: str
    avatar_url: str

    @property
    def url(self) -> str:
        return f"https://youtube.com/channel/{self.id}"


@dataclass(frozen=True)
class PlaylistInfo:
    """Title and owner of a YouTube playlist."""
    id: str
    title: str
    channel: Channel


@dataclass(frozen=True)
class PlaylistVideo:
    """One entry of a playlist page."""
    id: str
    title: str
    thumbnail_url: str


@dataclass(frozen=True)
class PlaylistPage:
    """
    One page of playlist items.

    A `next_cursor` of None means this is the last page.
    """
    videos: Tuple[PlaylistVideo, ...] = ()
    next_cursor: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return self.next_cursor is None


class DownloadStatus(Enum):
    """Global download progress shared by every download task."""
    IDLE = "idle"
    PENDING = "pending"
    DOWNLOADING = "downloading"
    FINISHED = "finished"
    FAILED = "failed"


@dataclass(frozen=True)
class BulkDownloadReport:
    """Per-item outcome of a batch download."""
    outcomes: Mapping[str, bool] = field(default_factory=dict)
    skipped: Tuple[str, ...] = ()

    @property
    def succeeded(self) -> Tuple[str, ...]:
        return tuple(item_id for item_id, ok in self.outcomes.items() if ok)

    @property
    def failed(self) -> Tuple[str, ...]:
        return tuple(item_id for item_id, ok in self.outcomes.items() if not ok)

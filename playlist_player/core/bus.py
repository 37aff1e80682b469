"""
One-way channels carrying results from background tasks to the consumer.
"""
import logging
import queue
import threading
from pathlib import Path
from typing import Generic, Optional, TypeVar

from playlist_player.domain.models import DownloadStatus, PlaylistInfo, PlaylistPage, YouTubeClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Channel(Generic[T]):
    """
    Unbounded multi-producer / single-consumer channel.

    Producers never block and never fail: sending on a closed channel is
    dropped and reported through the return value only. The consumer never
    blocks either.
    """

    def __init__(self, name: str):
        self.name = name
        self._queue: "queue.SimpleQueue[T]" = queue.SimpleQueue()
        self._closed = threading.Event()

    def send(self, value: T) -> bool:
        if self.closed:
            logger.debug(f"Channel '{self.name}' closed, dropping {value!r}.")
            return False
        self._queue.put(value)
        return True

    def try_receive(self) -> Optional[T]:
        """Returns the oldest queued value, or None when the channel is empty."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def __len__(self) -> int:
        return self._queue.qsize()


class MessageBus:
    """The five channels read by the consumer once per tick."""

    def __init__(self):
        self.client: Channel[YouTubeClient] = Channel("client")
        self.playlist_info: Channel[PlaylistInfo] = Channel("playlist_info")
        self.playlist_page: Channel[PlaylistPage] = Channel("playlist_page")
        self.downloaded_path: Channel[Path] = Channel("downloaded_path")
        self.download_status: Channel[DownloadStatus] = Channel("download_status")

    @property
    def channels(self):
        return (
            self.client,
            self.playlist_info,
            self.playlist_page,
            self.downloaded_path,
            self.download_status,
        )

    def close(self) -> None:
        for channel in self.channels:
            channel.close()

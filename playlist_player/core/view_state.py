from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from playlist_player.core.bus import MessageBus
from playlist_player.core.status import apply_status
from playlist_player.domain.models import DownloadStatus, PlaylistInfo, PlaylistPage, YouTubeClient


@dataclass
class ViewState:
    """
    What the front end displays, merged from the bus once per tick.

    Only the consumer thread touches this object.
    """
    client: Optional[YouTubeClient] = None
    playlist_id: str = ""
    playlist_info: Optional[PlaylistInfo] = None
    page: Optional[PlaylistPage] = None
    download_status: DownloadStatus = DownloadStatus.IDLE
    downloaded_path: Optional[Path] = None
    downloaded: Dict[str, Path] = field(default_factory=dict)
    # Cursors of the pages before the displayed one; the last is the current page's
    cursor_trail: List[Optional[str]] = field(default_factory=lambda: [None])

    def poll(self, bus: MessageBus) -> bool:
        """
        Reads at most one message from each channel.

        Returns:
            True if anything changed.
        """
        changed = False

        client = bus.client.try_receive()
        if client is not None:
            self.client = client
            changed = True

        playlist_info = bus.playlist_info.try_receive()
        if playlist_info is not None:
            self.playlist_info = playlist_info
            changed = True

        page = bus.playlist_page.try_receive()
        if page is not None:
            self.page = page
            changed = True

        status = bus.download_status.try_receive()
        if status is not None:
            self.download_status = apply_status(status)
            changed = True

        path = bus.downloaded_path.try_receive()
        if path is not None:
            self.downloaded_path = path
            self.downloaded[Path(path).stem] = path
            changed = True

        return changed

    # --- Pagination ---

    @property
    def current_cursor(self) -> Optional[str]:
        return self.cursor_trail[-1]

    def start_playlist(self, playlist_id: str) -> None:
        """Switches to another playlist, back on its first page."""
        if playlist_id != self.playlist_id:
            self.playlist_id = playlist_id
            self.cursor_trail = [None]

    def advance(self) -> Optional[str]:
        """Moves to the next page; returns its cursor, or None on the last page."""
        if self.page is None or self.page.is_last:
            return None
        self.cursor_trail.append(self.page.next_cursor)
        return self.page.next_cursor

    def go_back(self) -> bool:
        """Moves to the previous page; False when already on the first one."""
        if len(self.cursor_trail) <= 1:
            return False
        self.cursor_trail.pop()
        return True

"""
Entry point for user-triggered background work.

Every request spawns a detached task on a thread pool and returns at once.
Results only travel back through the MessageBus; the returned TaskHandle can
be ignored.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional

from playlist_player import auth, youtube_api
from playlist_player.core.bus import MessageBus
from playlist_player.core.downloads import DownloadManager, Reservation
from playlist_player.domain.models import BulkDownloadReport, DownloadStatus, YouTubeClient

logger = logging.getLogger(__name__)


class TaskHandle:
    """Detached handle on a background task."""

    def __init__(self, name: str, future: Future):
        self.name = name
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        return self._future.result(timeout=timeout)

    def __repr__(self) -> str:
        state = "done" if self.done() else "running"
        return f"<TaskHandle {self.name} {state}>"


class Orchestrator:
    def __init__(
        self,
        bus: MessageBus,
        downloads: DownloadManager,
        max_workers: int = 16,
        page_size: Optional[int] = None,
        report_bulk_failures: bool = False,
        create_client: Optional[Callable] = None,
    ):
        self.bus = bus
        self.downloads = downloads
        self.page_size = page_size
        self.report_bulk_failures = report_bulk_failures
        self._create_client = create_client or auth.create_client
        self._client: Optional[YouTubeClient] = None
        self._cancel_event = threading.Event()
        # Downloads get their own pool so transfers never hold up client-init or fetches
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="Task")
        self._download_executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="Download"
        )

    def _spawn(
        self, name: str, fn: Callable, *args, executor: Optional[ThreadPoolExecutor] = None
    ) -> Optional[TaskHandle]:
        def run():
            try:
                return fn(*args)
            except Exception as e:
                logger.error(f"Task '{name}' crashed: {e}", exc_info=True)
                return None

        logger.debug(f"Spawning task '{name}'.")
        try:
            return TaskHandle(name, (executor or self._executor).submit(run))
        except RuntimeError as e:
            # Executor already shut down
            logger.warning(f"Could not start task '{name}': {e}")
            return None

    # --- Client bootstrap ---

    def request_client_init(
        self, token_file: str = "token.json", client_secrets_file: str = "client_secret.json"
    ) -> Optional[TaskHandle]:
        """Authenticates in the background and sends the client once ready."""
        bus = self.bus
        create_client = self._create_client

        def init_client():
            result = create_client(token_file, client_secrets_file)
            if result.is_right():
                bus.client.send(result.value)
            return result

        return self._spawn("client-init", init_client)

    def attach_client(self, client: YouTubeClient) -> None:
        self._client = client

    @property
    def client(self) -> Optional[YouTubeClient]:
        return self._client

    # --- Playlist browsing ---

    def request_playlist_fetch(self, playlist_id: str, cursor: Optional[str] = None) -> Optional[TaskHandle]:
        """Fetches playlist info then one page of videos, starting at cursor."""
        client = self._client
        if client is None:
            logger.warning("Playlist fetch requested before the client is ready.")
            return None
        if not playlist_id:
            logger.warning("Playlist fetch requested without a playlist id.")
            return None

        bus = self.bus
        page_size = self.page_size

        def fetch_playlist():
            info = youtube_api.fetch_playlist_info(client, playlist_id)
            if info.is_right():
                bus.playlist_info.send(info.value)

            page = youtube_api.fetch_video_page(client, playlist_id, cursor, page_size)
            if page.is_right():
                bus.playlist_page.send(page.value)
            return info, page

        return self._spawn(f"fetch-{playlist_id}", fetch_playlist)

    # --- Downloads ---

    def request_download(self, item_id: str) -> Optional[TaskHandle]:
        """
        Downloads one video unless it is on disk or already downloading.

        A video already on disk is reported on the downloaded_path channel
        immediately, without spawning a task.
        """
        reservation = self.downloads.reserve(item_id)
        if reservation is Reservation.DOWNLOADED:
            logger.info(f"Video '{item_id}' already downloaded.")
            self.bus.downloaded_path.send(self.downloads.media_path(item_id))
            return None
        if reservation is Reservation.IN_FLIGHT:
            logger.info(f"Video '{item_id}' is already downloading.")
            return None

        handle = self._spawn(
            f"download-{item_id}",
            self.downloads.download_one,
            item_id,
            self.bus,
            self._cancel_event,
            executor=self._download_executor,
        )
        if handle is None:
            self.downloads.release(item_id)
        return handle

    def request_bulk_download(self, item_ids: Iterable[str]) -> Optional[TaskHandle]:
        """
        Downloads every video not yet on disk as one concurrent batch.

        The handle's result is a BulkDownloadReport.
        """
        self.bus.download_status.send(DownloadStatus.PENDING)

        reserved, skipped = [], []
        for item_id in dict.fromkeys(item_ids):
            if self.downloads.reserve(item_id) is Reservation.RESERVED:
                reserved.append(item_id)
            else:
                skipped.append(item_id)
        logger.info(f"Bulk download: {len(reserved)} to fetch, {len(skipped)} skipped.")

        downloads = self.downloads
        bus = self.bus
        report_failures = self.report_bulk_failures
        cancel_event = self._cancel_event

        def download_all() -> BulkDownloadReport:
            return downloads.download_batch(reserved, bus, report_failures, cancel_event, skipped)

        handle = self._spawn("bulk-download", download_all, executor=self._download_executor)
        if handle is None:
            for item_id in reserved:
                downloads.release(item_id)
        return handle

    # --- Lifecycle ---

    def shutdown(self, cancel: bool = False, wait: bool = False) -> None:
        """
        Stops accepting work. With cancel, pending downloads give up and
        running transfers are interrupted.
        """
        if cancel:
            self._cancel_event.set()
        self._executor.shutdown(wait=wait)
        self._download_executor.shutdown(wait=wait)
        self.bus.close()

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from playlist_player.core.bus import MessageBus
from playlist_player.domain.models import BulkDownloadReport, DownloadStatus
from playlist_player.domain.ports import MediaTransfer

logger = logging.getLogger(__name__)


class Reservation(Enum):
    RESERVED = "reserved"
    IN_FLIGHT = "in_flight"
    DOWNLOADED = "downloaded"


class DownloadManager:
    """
    Guarantees at most one running download per video id.

    Ids are reserved in an in-memory set under a lock before any task is
    spawned; the file at `media_path(id)` is the durable "already downloaded"
    marker once it holds data.
    """

    def __init__(self, transfer: MediaTransfer, media_dir: Path, extension: str = "mp4"):
        self._transfer = transfer
        self.media_dir = Path(media_dir)
        self.extension = extension
        self._in_flight = set()
        self._lock = threading.Lock()

    def media_path(self, item_id: str) -> Path:
        return self.media_dir / f"{item_id}.{self.extension}"

    def is_downloaded(self, item_id: str) -> bool:
        path = self.media_path(item_id)
        # A zero-length file is only a placeholder
        return path.is_file() and path.stat().st_size > 0

    def in_flight(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._in_flight

    def reserve(self, item_id: str) -> Reservation:
        """Atomically checks the in-flight set and the disk, then claims the id."""
        with self._lock:
            if item_id in self._in_flight:
                return Reservation.IN_FLIGHT
            if self.is_downloaded(item_id):
                return Reservation.DOWNLOADED
            self._in_flight.add(item_id)
            return Reservation.RESERVED

    def release(self, item_id: str) -> None:
        with self._lock:
            self._in_flight.discard(item_id)

    def _prepare(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"")

    def _run_transfer(self, item_id: str, cancel_event: Optional[threading.Event]) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            logger.info(f"Download of '{item_id}' cancelled before it started.")
            return False
        try:
            result = self._transfer.transfer(item_id, self.media_path(item_id), cancel_event)
        except Exception as e:
            logger.error(f"Download of '{item_id}' failed: {e}", exc_info=True)
            return False
        if result.is_left():
            error, _ = result.monoid
            logger.error(f"Download of '{item_id}' failed: {error.message}")
            return False
        return True

    def download_one(
        self,
        item_id: str,
        bus: MessageBus,
        cancel_event: Optional[threading.Event] = None,
    ) -> bool:
        """
        Task body for one reserved id.

        Sends PENDING, DOWNLOADING, then the path and FINISHED on success or
        FAILED on failure. The placeholder is left behind on failure.
        """
        path = self.media_path(item_id)
        try:
            bus.download_status.send(DownloadStatus.PENDING)
            try:
                self._prepare(path)
            except OSError as e:
                logger.error(f"Could not create placeholder '{path}': {e}")
                bus.download_status.send(DownloadStatus.FAILED)
                return False

            bus.download_status.send(DownloadStatus.DOWNLOADING)
            if self._run_transfer(item_id, cancel_event):
                bus.downloaded_path.send(path)
                bus.download_status.send(DownloadStatus.FINISHED)
                return True

            bus.download_status.send(DownloadStatus.FAILED)
            return False
        finally:
            self.release(item_id)

    def _download_quietly(self, item_id: str, cancel_event: Optional[threading.Event]) -> bool:
        try:
            self._prepare(self.media_path(item_id))
            return self._run_transfer(item_id, cancel_event)
        except OSError as e:
            logger.error(f"Could not create placeholder for '{item_id}': {e}")
            return False
        finally:
            self.release(item_id)

    def download_batch(
        self,
        item_ids: Iterable[str],
        bus: MessageBus,
        report_failures: bool = False,
        cancel_event: Optional[threading.Event] = None,
        skipped: Iterable[str] = (),
    ) -> BulkDownloadReport:
        """
        Task body for a batch of reserved ids, downloaded concurrently.

        Sends DOWNLOADING once, then FINISHED once every transfer is over.
        Individual failures are only logged unless `report_failures` is set,
        in which case a single failed item turns FINISHED into FAILED.
        """
        item_ids = list(item_ids)
        bus.download_status.send(DownloadStatus.DOWNLOADING)
        logger.info(f"Starting batch download of {len(item_ids)} videos.")

        outcomes = {}
        if item_ids:
            with ThreadPoolExecutor(
                max_workers=len(item_ids), thread_name_prefix="BatchDownload"
            ) as executor:
                results = executor.map(
                    lambda item_id: self._download_quietly(item_id, cancel_event), item_ids
                )
                outcomes = dict(zip(item_ids, results))

        report = BulkDownloadReport(outcomes=outcomes, skipped=tuple(skipped))
        logger.info(
            f"Batch download over: {len(report.succeeded)} succeeded, "
            f"{len(report.failed)} failed, {len(report.skipped)} skipped."
        )

        if report_failures and report.failed:
            bus.download_status.send(DownloadStatus.FAILED)
        else:
            bus.download_status.send(DownloadStatus.FINISHED)
        return report

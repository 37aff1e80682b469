import logging
import threading
import yt_dlp
from pathlib import Path
from typing import Optional
from pymonad.either import Left, Right, Either
from yt_dlp.utils import DownloadCancelled

from playlist_player.domain.ports import MediaTransfer
from playlist_player.domain.errors import DownloaderError

logger = logging.getLogger(__name__)

WATCH_URL = "https://www.youtube.com/watch?v={}"

# Lowest quality single file carrying both video and audio, in the requested container if offered
DEFAULT_FORMAT = "worst[ext=mp4][vcodec!=none][acodec!=none]/worst[vcodec!=none][acodec!=none]"


class YTDLPAdapter(MediaTransfer):
    def __init__(self, video_format: str = DEFAULT_FORMAT, extension: str = "mp4"):
        self._video_format = video_format
        self._extension = extension

    def _cancel_hook(self, item_id: str, cancel_event: threading.Event):
        def hook(progress):
            if cancel_event.is_set():
                raise DownloadCancelled(f"Download of '{item_id}' cancelled.")
        return hook

    def _get_ydl_opts(
        self, item_id: str, destination: Path, cancel_event: Optional[threading.Event] = None
    ):
        """Creates the options for a single-video download to an exact path."""
        opts = {
            'format': self._video_format,
            'outtmpl': str(destination),
            # A format needing a merge still ends up in the configured container
            'merge_output_format': self._extension,
            # The placeholder left at destination must be replaced
            'overwrites': True,
            'noplaylist': True,
            'quiet': True,
            'no_warnings': True,
            'noprogress': True,
        }
        if cancel_event is not None:
            opts['progress_hooks'] = [self._cancel_hook(item_id, cancel_event)]
        return opts

    def transfer(
        self, item_id: str, destination: Path, cancel_event: Optional[threading.Event] = None
    ) -> Either[DownloaderError, Path]:
        """
        Downloads the video with the given id to destination.
        """
        url = WATCH_URL.format(item_id)
        logger.info(f"Starting transfer of '{url}' to '{destination}'.")

        try:
            with yt_dlp.YoutubeDL(self._get_ydl_opts(item_id, destination, cancel_event)) as ydl:
                result_code = ydl.download([url])

            if result_code == 0:
                logger.info(f"Video '{item_id}' downloaded successfully.")
                return Right(destination)
            else:
                error_message = f"Error downloading video '{item_id}'."
                logger.error(f"Failed to download video '{item_id}' with exit code {result_code}")
                return Left(DownloaderError(error_message))

        except DownloadCancelled as e:
            logger.info(f"Transfer of '{item_id}' interrupted: {e}")
            return Left(DownloaderError(f"Download of '{item_id}' cancelled."))
        except Exception as e:
            error_message = f"An unexpected error occurred: {e}"
            logger.error(f"Error during download of '{item_id}': {e}", exc_info=True)
            return Left(DownloaderError(error_message))

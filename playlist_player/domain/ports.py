import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from pymonad.either import Either

from .errors import DownloaderError


class MediaTransfer(ABC):
    """
    Port defining the contract for a media transfer service.
    """

    @abstractmethod
    def transfer(
        self, item_id: str, destination: Path, cancel_event: Optional[threading.Event] = None
    ) -> Either[DownloaderError, Path]:
        """
        Resolves the media source for a video id and writes its bytes to destination.

        A running transfer stops with a Left once cancel_event is set.

        Returns:
            Either: A Right(destination) or a Left(DownloaderError).
        """
        pass

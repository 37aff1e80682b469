import threading
from collections import defaultdict
from pathlib import Path

import pytest
from pymonad.either import Left, Right

from playlist_player.core.bus import MessageBus
from playlist_player.core.downloads import DownloadManager
from playlist_player.domain.errors import DownloaderError
from playlist_player.domain.ports import MediaTransfer


class FakeTransfer(MediaTransfer):
    """
    Synthetic transfer writing a few bytes to the destination.

    When a gate is given, every transfer waits for it, so tests can keep
    downloads in flight while triggering more requests. A waiting transfer
    gives up as soon as its cancel event is set.
    """

    def __init__(self, fail_ids=(), gate=None, raise_ids=()):
        self.fail_ids = set(fail_ids)
        self.raise_ids = set(raise_ids)
        self.gate = gate
        self.calls = []
        self.cancelled = []
        self.started = threading.Event()
        self.finished = threading.Event()
        self.max_active = defaultdict(int)
        self._active = defaultdict(int)
        self._lock = threading.Lock()

    def _wait_for_gate(self, cancel_event):
        for _ in range(500):
            if self.gate.wait(timeout=0.01):
                return True
            if cancel_event is not None and cancel_event.is_set():
                return False
        return True

    def transfer(self, item_id: str, destination: Path, cancel_event=None):
        with self._lock:
            self.calls.append(item_id)
            self._active[item_id] += 1
            self.max_active[item_id] = max(self.max_active[item_id], self._active[item_id])
        self.started.set()
        try:
            if self.gate is not None and not self._wait_for_gate(cancel_event):
                with self._lock:
                    self.cancelled.append(item_id)
                return Left(DownloaderError(f"Download of '{item_id}' cancelled."))
            if item_id in self.raise_ids:
                raise RuntimeError(f"boom {item_id}")
            if item_id in self.fail_ids:
                return Left(DownloaderError(f"Error downloading video '{item_id}'."))
            destination.write_bytes(b"video-bytes")
            return Right(destination)
        finally:
            with self._lock:
                self._active[item_id] -= 1
            self.finished.set()


def drain(channel):
    values = []
    value = channel.try_receive()
    while value is not None:
        values.append(value)
        value = channel.try_receive()
    return values


@pytest.fixture
def bus():
    return MessageBus()


@pytest.fixture
def transfer():
    return FakeTransfer()


@pytest.fixture
def media_dir(tmp_path):
    return tmp_path / "youtube"


@pytest.fixture
def manager(transfer, media_dir):
    return DownloadManager(transfer, media_dir, "mp4")

import threading
import time
from unittest.mock import MagicMock

import pytest
from pymonad.either import Left, Right

from playlist_player.core.downloads import DownloadManager
from playlist_player.core.orchestrator import Orchestrator
from playlist_player.core.view_state import ViewState
from playlist_player.domain.errors import AuthenticationError, YouTubeApiError
from playlist_player.domain.models import (
    Channel,
    DownloadStatus,
    PlaylistInfo,
    PlaylistPage,
    PlaylistVideo,
    YouTubeClient,
)

from tests.conftest import FakeTransfer, drain

INFO = PlaylistInfo(id="PL123", title="Mix", channel=Channel(id="C1", name="Artist", avatar_url="http://a"))


@pytest.fixture
def orchestrator(bus, manager):
    orchestrator = Orchestrator(bus, manager, max_workers=8)
    yield orchestrator
    orchestrator.shutdown(wait=True)


def _playlist_service(pages):
    """Discovery resource mock serving one playlist, its channel and the given pages."""
    service = MagicMock()
    service.playlists().list().execute.return_value = {
        "items": [{"snippet": {"title": "Mix", "channelId": "C1"}}]
    }
    service.channels().list().execute.return_value = {
        "items": [{"snippet": {"title": "Artist", "thumbnails": {"default": {"url": "http://avatar"}}}}]
    }
    service.playlistItems().list.side_effect = lambda **params: MagicMock(
        execute=MagicMock(return_value=pages[params.get("pageToken")])
    )
    return service


def _item(video_id, title):
    return {
        "contentDetails": {"videoId": video_id},
        "snippet": {"title": title, "thumbnails": {"default": {"url": f"http://thumb/{video_id}"}}},
    }


# --- Client bootstrap ---


def test_client_init_sends_client_on_success(bus, manager):
    client = YouTubeClient(MagicMock())
    create_client = MagicMock(return_value=Right(client))
    orchestrator = Orchestrator(bus, manager, create_client=create_client)

    result = orchestrator.request_client_init("tok.json", "secret.json").result(timeout=5)

    assert result.is_right()
    assert bus.client.try_receive() is client
    create_client.assert_called_once_with("tok.json", "secret.json")
    orchestrator.shutdown(wait=True)


def test_client_init_failure_sends_nothing(bus, manager):
    error = AuthenticationError("File 'client_secret.json' not found.")
    orchestrator = Orchestrator(bus, manager, create_client=MagicMock(return_value=Left(error)))

    result = orchestrator.request_client_init().result(timeout=5)

    assert result.is_left()
    assert result.monoid[0] == error
    assert bus.client.try_receive() is None
    orchestrator.shutdown(wait=True)


# --- Playlist browsing ---


def test_playlist_fetch_requires_a_client(orchestrator, bus):
    assert orchestrator.request_playlist_fetch("PL123") is None
    assert bus.playlist_info.try_receive() is None


def test_playlist_fetch_requires_an_id(orchestrator):
    orchestrator.attach_client(YouTubeClient(MagicMock()))

    assert orchestrator.request_playlist_fetch("") is None


def test_playlist_scenario_first_then_final_page(orchestrator, bus, mocker):
    """
    Given playlist 'PL123' with one full page and an empty final page,
    When the consumer fetches the first page, then the page at 'tok2',
    Then it shows the title, channel and 2 videos, then an empty last page.
    """
    pages = {
        None: {"items": [_item("v1", "One"), _item("v2", "Two")], "nextPageToken": "tok2"},
        "tok2": {"items": []},
    }
    service = _playlist_service(pages)
    mocker.patch("playlist_player.youtube_api.build", return_value=service)
    orchestrator.attach_client(YouTubeClient(MagicMock()))
    view = ViewState()
    view.start_playlist("PL123")

    orchestrator.request_playlist_fetch(view.playlist_id, view.current_cursor).result(timeout=5)
    view.poll(bus)

    assert view.playlist_info.title == "Mix"
    assert view.playlist_info.channel.id == "C1"
    assert view.playlist_info.channel.name == "Artist"
    assert [video.id for video in view.page.videos] == ["v1", "v2"]
    assert view.page.next_cursor == "tok2"

    cursor = view.advance()
    orchestrator.request_playlist_fetch(view.playlist_id, cursor).result(timeout=5)
    view.poll(bus)

    assert view.page.videos == ()
    assert view.page.is_last
    assert view.advance() is None
    # The second request carried the cursor of the first page
    calls = service.playlistItems().list.call_args_list
    assert "pageToken" not in calls[0].kwargs
    assert calls[1].kwargs["pageToken"] == "tok2"


def test_failed_info_fetch_keeps_previous_info(orchestrator, bus, mocker):
    """
    Given a consumer already showing a playlist,
    When the next info fetch fails,
    Then the displayed info is left untouched.
    """
    page = PlaylistPage(videos=(PlaylistVideo("v3", "Three", "http://t3"),), next_cursor=None)
    mocker.patch(
        "playlist_player.youtube_api.fetch_playlist_info",
        return_value=Left(YouTubeApiError("API error during playlist retrieval: quota")),
    )
    mocker.patch("playlist_player.youtube_api.fetch_video_page", return_value=Right(page))
    orchestrator.attach_client(YouTubeClient(MagicMock()))
    view = ViewState(playlist_info=INFO)

    orchestrator.request_playlist_fetch("PL123").result(timeout=5)
    view.poll(bus)

    assert view.playlist_info is INFO
    assert view.page == page


def test_failed_page_fetch_keeps_previous_page(orchestrator, bus, mocker):
    previous = PlaylistPage(videos=(PlaylistVideo("v1", "One", "http://t1"),), next_cursor="tok2")
    mocker.patch("playlist_player.youtube_api.fetch_playlist_info", return_value=Right(INFO))
    mocker.patch(
        "playlist_player.youtube_api.fetch_video_page",
        return_value=Left(YouTubeApiError("No items returned for playlist 'PL123'.")),
    )
    orchestrator.attach_client(YouTubeClient(MagicMock()))
    view = ViewState(page=previous)

    orchestrator.request_playlist_fetch("PL123", "tok2").result(timeout=5)
    view.poll(bus)

    assert view.playlist_info == INFO
    assert view.page is previous


def test_page_size_is_passed_to_the_fetcher(bus, manager, mocker):
    fetch_page = mocker.patch(
        "playlist_player.youtube_api.fetch_video_page", return_value=Right(PlaylistPage())
    )
    mocker.patch("playlist_player.youtube_api.fetch_playlist_info", return_value=Right(INFO))
    orchestrator = Orchestrator(bus, manager, page_size=25)
    client = YouTubeClient(MagicMock())
    orchestrator.attach_client(client)

    orchestrator.request_playlist_fetch("PL123", "tok7").result(timeout=5)

    fetch_page.assert_called_once_with(client, "PL123", "tok7", 25)
    orchestrator.shutdown(wait=True)


# --- Single downloads ---


def test_download_scenario_statuses_and_path(orchestrator, bus, media_dir):
    """
    Given no local file for 'v1',
    When a download is requested,
    Then PENDING, DOWNLOADING, FINISHED are observed in order and the path is delivered.
    """
    view = ViewState()

    assert orchestrator.request_download("v1").result(timeout=5) is True

    observed = []
    while len(bus.download_status):
        view.poll(bus)
        observed.append(view.download_status)
    # FINISHED is observed once and stored as IDLE
    assert observed == [DownloadStatus.PENDING, DownloadStatus.DOWNLOADING, DownloadStatus.IDLE]
    assert view.downloaded_path == media_dir / "v1.mp4"


def test_repeated_download_reuses_existing_file(orchestrator, bus, media_dir, transfer):
    orchestrator.request_download("v1").result(timeout=5)
    drain(bus.downloaded_path)
    drain(bus.download_status)

    assert orchestrator.request_download("v1") is None

    # Reported at once, without a task or a status change
    assert bus.downloaded_path.try_receive() == media_dir / "v1.mp4"
    assert bus.download_status.try_receive() is None
    assert transfer.calls == ["v1"]


def test_concurrent_requests_start_one_download_per_id(bus, media_dir):
    """
    Given many threads requesting the same videos at the same time,
    When transfers are slow,
    Then each video is transferred by exactly one task.
    """
    gate = threading.Event()
    transfer = FakeTransfer(gate=gate)
    orchestrator = Orchestrator(bus, DownloadManager(transfer, media_dir), max_workers=8)
    handles = []
    handles_lock = threading.Lock()
    barrier = threading.Barrier(12)

    def trigger(item_id):
        barrier.wait()
        handle = orchestrator.request_download(item_id)
        with handles_lock:
            handles.append((item_id, handle))

    threads = [threading.Thread(target=trigger, args=(f"v{n % 3}",)) for n in range(12)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    spawned = [item_id for item_id, handle in handles if handle is not None]
    assert sorted(spawned) == ["v0", "v1", "v2"]

    # A request arriving while the transfer is running is a no-op too
    assert orchestrator.request_download("v0") is None

    gate.set()
    for _, handle in handles:
        if handle is not None:
            handle.result(timeout=5)

    assert sorted(transfer.calls) == ["v0", "v1", "v2"]
    assert all(count == 1 for count in transfer.max_active.values())
    orchestrator.shutdown(wait=True)


def test_failed_download_can_be_retried(bus, media_dir):
    transfer = FakeTransfer(fail_ids={"v1"})
    orchestrator = Orchestrator(bus, DownloadManager(transfer, media_dir))

    assert orchestrator.request_download("v1").result(timeout=5) is False
    transfer.fail_ids.clear()
    assert orchestrator.request_download("v1").result(timeout=5) is True

    assert transfer.calls == ["v1", "v1"]
    orchestrator.shutdown(wait=True)


# --- Bulk downloads ---


def test_bulk_download_skips_existing_files(orchestrator, bus, media_dir, transfer):
    media_dir.mkdir(parents=True)
    (media_dir / "v1.mp4").write_bytes(b"data")

    report = orchestrator.request_bulk_download(["v1", "v2", "v3", "v2"]).result(timeout=5)

    assert sorted(transfer.calls) == ["v2", "v3"]
    assert report.skipped == ("v1",)
    assert set(report.succeeded) == {"v2", "v3"}
    assert drain(bus.download_status) == [
        DownloadStatus.PENDING,
        DownloadStatus.DOWNLOADING,
        DownloadStatus.FINISHED,
    ]


def test_bulk_download_hides_failures_by_default(bus, media_dir):
    orchestrator = Orchestrator(bus, DownloadManager(FakeTransfer(fail_ids={"v2"}), media_dir))

    report = orchestrator.request_bulk_download(["v1", "v2"]).result(timeout=5)

    assert drain(bus.download_status)[-1] is DownloadStatus.FINISHED
    assert report.failed == ("v2",)
    orchestrator.shutdown(wait=True)


def test_bulk_download_can_report_failures(bus, media_dir):
    orchestrator = Orchestrator(
        bus, DownloadManager(FakeTransfer(fail_ids={"v2"}), media_dir), report_bulk_failures=True
    )

    orchestrator.request_bulk_download(["v1", "v2"]).result(timeout=5)

    assert drain(bus.download_status)[-1] is DownloadStatus.FAILED
    orchestrator.shutdown(wait=True)


def test_bulk_download_skips_ids_already_in_flight(bus, media_dir):
    gate = threading.Event()
    transfer = FakeTransfer(gate=gate)
    orchestrator = Orchestrator(bus, DownloadManager(transfer, media_dir))
    single = orchestrator.request_download("v1")
    assert transfer.started.wait(timeout=5)

    bulk = orchestrator.request_bulk_download(["v1", "v2"])
    gate.set()
    report = bulk.result(timeout=5)
    single.result(timeout=5)

    assert report.skipped == ("v1",)
    assert sorted(transfer.calls) == ["v1", "v2"]
    orchestrator.shutdown(wait=True)


# --- Lifecycle ---


def test_requests_after_shutdown_spawn_nothing(bus, manager):
    orchestrator = Orchestrator(bus, manager)
    orchestrator.shutdown()

    assert orchestrator.request_download("v1") is None
    assert not manager.in_flight("v1")
    assert orchestrator.request_bulk_download(["v2"]) is None
    assert not manager.in_flight("v2")




def _wait_for_calls(transfer, count):
    for _ in range(250):
        if len(transfer.calls) >= count:
            return True
        time.sleep(0.02)
    return False


def test_shutdown_with_cancel_stops_queued_and_running_transfers(bus, media_dir):
    gate = threading.Event()
    transfer = FakeTransfer(gate=gate)
    orchestrator = Orchestrator(bus, DownloadManager(transfer, media_dir), max_workers=1)
    first = orchestrator.request_download("v1")
    assert transfer.started.wait(timeout=5)
    # Queued behind v1 on the single download worker
    second = orchestrator.request_download("v2")

    orchestrator.shutdown(cancel=True)

    assert first.result(timeout=2) is False
    assert second.result(timeout=2) is False
    assert transfer.calls == ["v1"]
    assert transfer.cancelled == ["v1"]
    assert (media_dir / "v1.mp4").stat().st_size == 0


def test_cancelled_bulk_download_reports_items_as_failed(bus, media_dir):
    """
    Given a batch whose transfers are all running,
    When the orchestrator shuts down with cancel,
    Then the batch returns promptly and lists every item as failed.
    """
    gate = threading.Event()
    transfer = FakeTransfer(gate=gate)
    manager = DownloadManager(transfer, media_dir)
    orchestrator = Orchestrator(bus, manager)
    bulk = orchestrator.request_bulk_download(["v1", "v2"])
    assert _wait_for_calls(transfer, 2)

    orchestrator.shutdown(cancel=True)
    report = bulk.result(timeout=2)

    assert set(report.failed) == {"v1", "v2"}
    assert report.succeeded == ()
    assert sorted(transfer.cancelled) == ["v1", "v2"]
    assert not manager.is_downloaded("v1")
    assert not manager.is_downloaded("v2")


def test_playlist_fetch_is_not_held_up_by_running_downloads(bus, media_dir, mocker):
    """
    Given as many running downloads as download workers,
    When a playlist fetch is requested,
    Then it completes while the downloads are still in flight.
    """
    gate = threading.Event()
    transfer = FakeTransfer(gate=gate)
    orchestrator = Orchestrator(bus, DownloadManager(transfer, media_dir), max_workers=2)
    orchestrator.request_download("v1")
    orchestrator.request_download("v2")
    assert _wait_for_calls(transfer, 2)

    mocker.patch(
        "playlist_player.youtube_api.build",
        return_value=_playlist_service({None: {"items": [_item("v3", "Three")]}}),
    )
    orchestrator.attach_client(YouTubeClient(MagicMock()))
    info, page = orchestrator.request_playlist_fetch("PL123").result(timeout=2)

    assert not gate.is_set()
    assert info.is_right()
    assert [video.id for video in page.value.videos] == ["v3"]
    gate.set()
    orchestrator.shutdown(wait=True)

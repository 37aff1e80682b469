import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional

import typer
from pymonad.either import Either
from rich.console import Console
from rich.table import Table
from toolz import pipe

from playlist_player.adapters.ytdlp_adapter import YTDLPAdapter
from playlist_player.config import PlayerConfig, load_config
from playlist_player.core.bus import MessageBus
from playlist_player.core.downloads import DownloadManager
from playlist_player.core.orchestrator import Orchestrator, TaskHandle
from playlist_player.core.view_state import ViewState
from playlist_player.domain.errors import AppError, AuthenticationError
from playlist_player.domain.models import DownloadStatus, PlaylistVideo, YouTubeClient
from playlist_player.i18n import get_default_lang, get_message, set_lang
from playlist_player.logger_config import setup_logger

# Initialization
console = Console()
logger = logging.getLogger(__name__)

app = typer.Typer(
    name="playlist-player",
    help="Browse YouTube playlists and download videos for local playback.",
    add_completion=False,
)

# --- State and Callbacks ---

state = {"lang": get_default_lang(), "config": PlayerConfig()}
set_lang(state["lang"])


@app.callback()
def main_callback(
    lang: Optional[str] = typer.Option(
        None, "--lang", help=get_message("help_lang"), show_default=False
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help=get_message("help_config"), dir_okay=False
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help=get_message("help_verbose")),
):
    """Browse YouTube playlists from the command line."""
    setup_logger(logging.DEBUG if verbose else logging.WARNING)
    if lang:
        set_lang(lang)
        state["lang"] = lang
        logger.info(f"Language explicitly set to: {lang}")

    state["config"] = pipe(
        load_config(config_file),
        lambda e: e.map(_log_config),
        lambda e: _unwrap_or_exit(e, "config_error"),
    )


# --- Helper Functions ---


def _handle_error(error: AppError) -> None:
    """Displays a formatted error message and exits the application."""
    console.print(f"[bold red]Error:[/bold red] {error.message}")
    raise typer.Exit(code=1)


def _unwrap_or_exit(result: Either[AppError, Any], message_key: str) -> Any:
    if result.is_right():
        return result.value
    error, _ = result.monoid
    _handle_error(type(error)(get_message(message_key, error=error.message)))


def _log_config(config: PlayerConfig) -> PlayerConfig:
    logger.debug(f"Using configuration: {config}")
    return config


def _build_runtime(media_dir: Optional[Path]):
    config: PlayerConfig = state["config"].with_overrides(media_dir=media_dir)
    bus = MessageBus()
    downloads = DownloadManager(
        YTDLPAdapter(config.video_format, config.extension), config.media_dir, config.extension
    )
    orchestrator = Orchestrator(
        bus,
        downloads,
        max_workers=config.max_workers,
        page_size=config.page_size,
        report_bulk_failures=config.report_bulk_failures,
    )
    return config, bus, orchestrator, ViewState()


def _pump(
    view: ViewState,
    bus: MessageBus,
    until: Callable[[], bool],
    poll_interval: float,
    timeout: Optional[float] = None,
    on_change: Optional[Callable[[], None]] = None,
) -> bool:
    """Polls the bus once per tick until `until()` holds. False on timeout."""
    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        if view.poll(bus) and on_change:
            on_change()
        if until():
            return True
        if deadline is not None and time.monotonic() >= deadline:
            return False
        time.sleep(poll_interval)


def _drained(bus: MessageBus) -> bool:
    return all(len(channel) == 0 for channel in bus.channels)


def _status_text(status: DownloadStatus) -> str:
    return {
        DownloadStatus.PENDING: get_message("status_pending"),
        DownloadStatus.DOWNLOADING: get_message("status_downloading"),
        DownloadStatus.FAILED: get_message("status_failed"),
    }.get(status, "")


def _wait_for_task(handle: TaskHandle, view: ViewState, bus: MessageBus, config: PlayerConfig,
                   timeout: Optional[float] = None) -> bool:
    with console.status(_status_text(view.download_status) or "...") as status:
        return _pump(
            view,
            bus,
            until=lambda: handle.done() and _drained(bus),
            poll_interval=config.poll_interval,
            timeout=timeout,
            on_change=lambda: status.update(_status_text(view.download_status) or "..."),
        )


def _connect(orchestrator: Orchestrator, view: ViewState, bus: MessageBus,
             config: PlayerConfig) -> YouTubeClient:
    """Runs the OAuth bootstrap in the background and waits for the client."""
    console.print(f"🔐 {get_message('auth_attempt')}")
    handle = orchestrator.request_client_init(config.token_file, config.client_secrets_file)
    if handle is None:
        _handle_error(AuthenticationError(get_message("auth_error", error="no worker available")))

    _pump(view, bus, until=lambda: view.client is not None or handle.done(),
          poll_interval=config.poll_interval)
    view.poll(bus)

    if view.client is None:
        result = handle.result()
        if result is None:
            _handle_error(AuthenticationError(get_message("auth_error", error="unexpected failure")))
        _unwrap_or_exit(result, "auth_error")

    orchestrator.attach_client(view.client)
    console.print(f"[bold green]✓ {get_message('auth_success')}[/bold green]")
    return view.client


def _load_page(orchestrator: Orchestrator, view: ViewState, bus: MessageBus,
               config: PlayerConfig) -> bool:
    """Fetches the playlist header and the page at the current cursor."""
    handle = orchestrator.request_playlist_fetch(view.playlist_id, view.current_cursor)
    if handle is None:
        return False

    with console.status(get_message("fetching_playlist", playlist_id=view.playlist_id)):
        _pump(view, bus, until=lambda: handle.done(), poll_interval=config.poll_interval)
    view.poll(bus)

    result = handle.result()
    if result is None or result[1].is_left():
        console.print(f"[yellow]{get_message('playlist_not_loaded', playlist_id=view.playlist_id)}[/yellow]")
        return False
    return True


def _render(view: ViewState, downloads: DownloadManager) -> None:
    info = view.playlist_info
    if info is not None:
        console.print(f"\n[bold]{info.title}[/bold]")
        console.print(get_message("playlist_by", name=info.channel.name, url=info.channel.url))

    status_text = _status_text(view.download_status)
    if status_text:
        console.print(f"[cyan]{status_text}[/cyan]")

    if view.page is None:
        return
    if not view.page.videos:
        console.print(f"[yellow]{get_message('empty_page')}[/yellow]")
        return

    table = Table(
        title=get_message("page_info", page=len(view.cursor_trail), count=len(view.page.videos))
    )
    table.add_column(get_message("column_index"), justify="right")
    table.add_column(get_message("column_title"))
    table.add_column(get_message("column_id"), style="dim")
    table.add_column(get_message("column_local"), justify="center")
    for index, video in enumerate(view.page.videos, start=1):
        if downloads.is_downloaded(video.id):
            local = "[green]✓[/green]"
        elif downloads.in_flight(video.id):
            local = "[cyan]…[/cyan]"
        else:
            local = ""
        table.add_row(str(index), video.title, video.id, local)
    console.print(table)
    if view.page.is_last:
        console.print(f"[dim]{get_message('last_page')}[/dim]")


def _pick_video(view: ViewState, argument: str) -> Optional[PlaylistVideo]:
    videos = view.page.videos if view.page else ()
    try:
        index = int(argument)
    except ValueError:
        index = 0
    if not 1 <= index <= len(videos):
        console.print(f"[red]{get_message('invalid_index', value=argument)}[/red]")
        return None
    return videos[index - 1]


def _download_video(orchestrator: Orchestrator, view: ViewState, bus: MessageBus,
                    config: PlayerConfig, video_id: str,
                    timeout: Optional[float] = None) -> Optional[Path]:
    handle = orchestrator.request_download(video_id)
    if handle is None:
        view.poll(bus)
        path = view.downloaded.get(video_id)
        if path is None:
            console.print(f"[yellow]{get_message('already_downloading', video_id=video_id)}[/yellow]")
        else:
            console.print(f"[bold green]✓ {get_message('download_done', path=path)}[/bold green]")
        return path

    if not _wait_for_task(handle, view, bus, config, timeout):
        console.print(f"[red]{get_message('timeout', seconds=timeout)}[/red]")
        return None

    path = view.downloaded.get(video_id)
    if path is None:
        console.print(f"[bold red]✗ {get_message('status_failed')}[/bold red]")
        return None
    console.print(f"[bold green]✓ {get_message('download_done', path=path)}[/bold green]")
    return path


def _download_all(orchestrator: Orchestrator, view: ViewState, bus: MessageBus,
                  config: PlayerConfig, video_ids: list,
                  timeout: Optional[float] = None):
    handle = orchestrator.request_bulk_download(video_ids)
    if handle is None:
        return None
    if not _wait_for_task(handle, view, bus, config, timeout):
        console.print(f"[red]{get_message('timeout', seconds=timeout)}[/red]")
        return None

    report = handle.result()
    if report is None:
        return None
    console.print(
        get_message(
            "bulk_report",
            ok=len(report.succeeded),
            failed=len(report.failed),
            skipped=len(report.skipped),
        )
    )
    if orchestrator.report_bulk_failures:
        for video_id in report.failed:
            console.print(f"  - [bold red]✗[/bold red] {get_message('bulk_failed_item', video_id=video_id)}")
    return report


# --- CLI Commands ---


@app.command(name="browse")
def browse(
    playlist_id: str = typer.Argument(..., help=get_message("help_playlist_id")),
    media_dir: Optional[Path] = typer.Option(
        None, "--media-dir", "-m", help=get_message("help_media_dir"), file_okay=False
    ),
):
    """Browses a playlist page by page and plays its videos."""
    logger.info(f"Command 'browse' initiated for playlist: {playlist_id}")
    config, bus, orchestrator, view = _build_runtime(media_dir)

    try:
        _connect(orchestrator, view, bus, config)
        view.start_playlist(playlist_id)
        _load_page(orchestrator, view, bus, config)

        while True:
            _render(view, orchestrator.downloads)
            command, _, argument = typer.prompt(get_message("browse_prompt")).strip().partition(" ")
            command = command.lower()

            if command == "q":
                break
            elif command == "n":
                if view.advance() is None:
                    console.print(get_message("last_page"))
                elif not _load_page(orchestrator, view, bus, config):
                    view.go_back()
            elif command == "p":
                if view.go_back():
                    _load_page(orchestrator, view, bus, config)
                else:
                    console.print(get_message("first_page"))
            elif command == "r":
                _load_page(orchestrator, view, bus, config)
            elif command in ("w", "d"):
                video = _pick_video(view, argument.strip())
                if video is None:
                    continue
                path = _download_video(orchestrator, view, bus, config, video.id)
                if path is not None and command == "w":
                    console.print(get_message("opening_player", path=path))
                    typer.launch(str(path))
            elif command == "a":
                if view.page is not None:
                    _download_all(orchestrator, view, bus, config, [v.id for v in view.page.videos])
            else:
                console.print(f"[red]{get_message('unknown_command', command=command)}[/red]")
    finally:
        orchestrator.shutdown(cancel=True)

    console.print(get_message("goodbye"))


@app.command(name="download")
def download_videos(
    video_ids: list[str] = typer.Argument(..., help=get_message("help_video_ids")),
    media_dir: Optional[Path] = typer.Option(
        None, "--media-dir", "-m", help=get_message("help_media_dir"), file_okay=False
    ),
    report_failures: Optional[bool] = typer.Option(
        None, "--report-failures/--silent-failures", help=get_message("help_report_failures"),
        show_default=False,
    ),
    timeout: float = typer.Option(600.0, "--timeout", "-t", help=get_message("help_timeout")),
):
    """Downloads videos by id, one at a time or as a batch."""
    logger.info(f"Command 'download' initiated for: {', '.join(video_ids)}")
    config, bus, orchestrator, view = _build_runtime(media_dir)
    if report_failures is not None:
        orchestrator.report_bulk_failures = report_failures

    try:
        if len(video_ids) == 1:
            path = _download_video(orchestrator, view, bus, config, video_ids[0], timeout)
            if path is None:
                raise typer.Exit(code=1)
        else:
            report = _download_all(orchestrator, view, bus, config, video_ids, timeout)
            if report is None or (orchestrator.report_bulk_failures and report.failed):
                raise typer.Exit(code=1)
            for video_id in report.succeeded + report.skipped:
                if orchestrator.downloads.is_downloaded(video_id):
                    console.print(f"  - {orchestrator.downloads.media_path(video_id)}")
    finally:
        orchestrator.shutdown(cancel=True)


if __name__ == "__main__":
    app()

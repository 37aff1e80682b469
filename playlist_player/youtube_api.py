import logging
from typing import Any, Optional
from pymonad.either import Either, Left, Right
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .domain.errors import YouTubeApiError
from .domain.models import Channel, PlaylistInfo, PlaylistPage, PlaylistVideo, YouTubeClient

logger = logging.getLogger(__name__)


def _dig(data: Any, *keys: str) -> Optional[Any]:
    """Follows nested keys, returning None as soon as one is missing."""
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
        if data is None:
            return None
    return data


def _first_item(response: dict) -> Optional[dict]:
    items = response.get("items") or []
    return items[0] if items else None


def _service(client: YouTubeClient):
    return build("youtube", "v3", credentials=client.credentials, cache_discovery=False)


def _api_error(action: str, e: Exception) -> YouTubeApiError:
    if isinstance(e, HttpError):
        return YouTubeApiError(f"API error during {action}: {e.content.decode('utf-8')}")
    return YouTubeApiError(f"An unexpected error occurred during {action}: {e}")


def fetch_channel(client: YouTubeClient, channel_id: str) -> Either[YouTubeApiError, Channel]:
    """
    Retrieves the name and avatar of a YouTube channel.

    Args:
        client: The shared YouTube client handle.
        channel_id: The ID of the channel.

    Returns:
        Either: A Right(Channel) on success, or a Left(YouTubeApiError).
    """
    try:
        youtube = _service(client)
        logger.info(f"Fetching channel '{channel_id}'.")
        response = youtube.channels().list(
            part="snippet,contentDetails",
            id=channel_id
        ).execute()
    except Exception as e:
        error = _api_error("channel retrieval", e)
        logger.error(f"Failed to fetch channel '{channel_id}': {error.message}")
        return Left(error)

    item = _first_item(response)
    name = _dig(item, "snippet", "title")
    avatar_url = _dig(item, "snippet", "thumbnails", "default", "url")
    if name is None or avatar_url is None:
        logger.error(f"Channel '{channel_id}' not found or incomplete.")
        return Left(YouTubeApiError(f"Channel '{channel_id}' not found or incomplete."))

    return Right(Channel(id=channel_id, name=name, avatar_url=avatar_url))


def fetch_playlist_info(client: YouTubeClient, playlist_id: str) -> Either[YouTubeApiError, PlaylistInfo]:
    """
    Retrieves the title of a playlist and the channel that owns it.

    Two dependent calls are made (playlist, then its channel). If either
    fails or misses a required field, no PlaylistInfo is produced.

    Args:
        client: The shared YouTube client handle.
        playlist_id: The ID of the playlist.

    Returns:
        Either: A Right(PlaylistInfo) on success, or a Left(YouTubeApiError).
    """
    try:
        youtube = _service(client)
        logger.info(f"Fetching playlist '{playlist_id}'.")
        response = youtube.playlists().list(
            part="snippet",
            id=playlist_id
        ).execute()
    except Exception as e:
        error = _api_error("playlist retrieval", e)
        logger.error(f"Failed to fetch playlist '{playlist_id}': {error.message}")
        return Left(error)

    snippet = _dig(_first_item(response), "snippet")
    title = _dig(snippet, "title")
    channel_id = _dig(snippet, "channelId")
    if title is None or channel_id is None:
        logger.error(f"Playlist '{playlist_id}' not found or incomplete.")
        return Left(YouTubeApiError(f"Playlist '{playlist_id}' not found or incomplete."))

    info = fetch_channel(client, channel_id).map(
        lambda channel: PlaylistInfo(id=playlist_id, title=title, channel=channel)
    )
    if info.is_right():
        logger.info(f"Playlist '{playlist_id}' retrieved successfully.")
    return info


def _to_video(item: dict) -> Optional[PlaylistVideo]:
    video_id = _dig(item, "contentDetails", "videoId")
    title = _dig(item, "snippet", "title")
    thumbnail_url = _dig(item, "snippet", "thumbnails", "default", "url")
    if video_id is None or title is None or thumbnail_url is None:
        return None
    return PlaylistVideo(id=video_id, title=title, thumbnail_url=thumbnail_url)


def fetch_video_page(
    client: YouTubeClient,
    playlist_id: str,
    cursor: Optional[str] = None,
    max_results: Optional[int] = None,
) -> Either[YouTubeApiError, PlaylistPage]:
    """
    Retrieves one page of videos of a playlist.

    Items missing an id, a title or a thumbnail (deleted or private videos)
    are dropped from the page instead of failing it.

    Args:
        client: The shared YouTube client handle.
        playlist_id: The ID of the playlist.
        cursor: The page token returned by the previous page, None for the first page.
        max_results: Page size, the API default when None.

    Returns:
        Either: A Right(PlaylistPage) on success, or a Left(YouTubeApiError).
    """
    params = {"part": "snippet,contentDetails", "playlistId": playlist_id}
    if cursor:
        params["pageToken"] = cursor
    if max_results:
        params["maxResults"] = max_results

    try:
        youtube = _service(client)
        logger.info(f"Fetching page of playlist '{playlist_id}' (cursor: {cursor}).")
        response = youtube.playlistItems().list(**params).execute()
    except Exception as e:
        error = _api_error("playlist items retrieval", e)
        logger.error(f"Failed to fetch videos of playlist '{playlist_id}': {error.message}")
        return Left(error)

    items = response.get("items")
    if not isinstance(items, list):
        logger.error(f"No items returned for playlist '{playlist_id}'.")
        return Left(YouTubeApiError(f"No items returned for playlist '{playlist_id}'."))

    videos = []
    for item in items:
        video = _to_video(item)
        if video is None:
            logger.debug(f"Skipping incomplete item in playlist '{playlist_id}': {item.get('id')}")
            continue
        videos.append(video)

    page = PlaylistPage(videos=tuple(videos), next_cursor=response.get("nextPageToken"))
    logger.info(
        f"Retrieved {len(page.videos)} videos of playlist '{playlist_id}' "
        f"({len(items) - len(page.videos)} skipped)."
    )
    return Right(page)

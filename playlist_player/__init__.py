"""Browse YouTube playlists page by page and fetch videos for local playback."""

__version__ = "0.1.0"

# playlist_player/domain/errors.py
from dataclasses import dataclass


@dataclass(frozen=True)
class AppError:
    """Base class for application errors."""
    message: str


@dataclass(frozen=True)
class AuthenticationError(AppError):
    """Error raised while obtaining Google credentials."""
    pass


@dataclass(frozen=True)
class YouTubeApiError(AppError):
    """Error while talking to the YouTube Data API."""
    pass


@dataclass(frozen=True)
class DownloaderError(AppError):
    """Error during a media transfer."""
    pass


@dataclass(frozen=True)
class ConfigError(AppError):
    """Invalid or unreadable configuration file."""
    pass

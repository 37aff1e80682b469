from playlist_player.domain.models import DownloadStatus


def apply_status(read: DownloadStatus) -> DownloadStatus:
    """
    Value the consumer stores after reading a status from the bus.

    FINISHED is only reported once: it is stored as IDLE.
    """
    if read is DownloadStatus.FINISHED:
        return DownloadStatus.IDLE
    return read

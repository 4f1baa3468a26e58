from .model import SubmissionRequest
from .qbittorrent import QBittorrentClient

__all__ = ["QBittorrentClient", "SubmissionRequest"]

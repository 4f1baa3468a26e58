"""
Download module: hands magnet links to the torrent daemon.

Usage:
    from anime_monitor.core.download import QBittorrentClient

    async with QBittorrentClient(
        base_url="http://localhost:8080",
        username="admin",
        password="<password>",
    ) as client:
        await client.authenticate()
        await client.submit(magnet_link, "/downloads/show")
"""

from .api import QBittorrentClient, SubmissionRequest

__all__ = ["QBittorrentClient", "SubmissionRequest"]

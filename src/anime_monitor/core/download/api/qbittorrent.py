from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import aiohttp

from anime_monitor.logger import logger

from ...errors import AuthError, SubmissionError, TransportError
from .model import (
    ADD_TORRENT_ENDPOINT,
    LOGIN_ENDPOINT,
    LOGIN_SUCCESS_MARKER,
    APIResponse,
    SubmissionRequest,
)

if TYPE_CHECKING:
    from loguru import Logger


class QBittorrentClient:
    """Speaks the qBittorrent Web API v2.

    The login cookie lives in the client's cookie jar. It is discarded at the
    start of every ``authenticate()`` call, so a session never outlives one
    acquisition cycle; only the connection pool is reused.
    No request is retried here.
    """

    def __init__(
        self,
        base_url: str,
        username: str,
        password: str,
        request_timeout: float = 15.0,
        user_agent: str = "anime-monitor/1.0 aiohttp",
        log: Logger | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.headers = {"User-Agent": user_agent}
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self._log = log or logger.bind(component="qbittorrent")

    async def __aenter__(self) -> "QBittorrentClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            # unsafe=True: qBittorrent is usually addressed by IP, whose cookies
            # the default jar drops
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=self._timeout,
                cookie_jar=aiohttp.CookieJar(unsafe=True),
                trust_env=True,
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _post(self, url: str, data: dict) -> APIResponse:
        """POST a form and return status + body. Network failures raise TransportError."""
        session = self._get_session()
        try:
            async with session.post(url, data=data) as response:
                body = await response.text()
                return APIResponse(status=response.status, body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

    def _reset_session(self) -> None:
        if self._session is not None and not self._session.closed:
            self._session.cookie_jar.clear()

    async def authenticate(self) -> None:
        """Log in with the configured credentials.

        Raises:
            AuthError: on a non-200 status, a 200 without the success marker,
                or a network failure (status_code is None then).
        """
        self._reset_session()
        url = f"{self.base_url}{LOGIN_ENDPOINT}"
        self._log.info("Authenticating with qBittorrent...")

        try:
            resp = await self._post(
                url, {"username": self.username, "password": self.password}
            )
        except TransportError as e:
            raise AuthError("qBittorrent login failed", None, e.reason) from e

        if not resp.ok or LOGIN_SUCCESS_MARKER.lower() not in resp.body.lower():
            raise AuthError("qBittorrent login failed", resp.status, resp.body)

        self._log.info("Logged in to qBittorrent")

    async def submit(self, magnet_link: str, save_path: str) -> None:
        """Add ``magnet_link`` unpaused, saving into ``save_path``.

        The directory is created locally first if missing.

        Raises:
            SubmissionError: on a non-200 status or if the directory cannot be made.
            TransportError: if the request never got a response.
        """
        try:
            Path(save_path).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SubmissionError(
                f"Cannot create save directory {save_path}", None, str(e)
            ) from e

        request = SubmissionRequest(magnet_link=magnet_link, save_path=save_path)
        url = f"{self.base_url}{ADD_TORRENT_ENDPOINT}"
        resp = await self._post(url, request.to_form())

        if not resp.ok:
            raise SubmissionError("qBittorrent rejected torrent", resp.status, resp.body)

        self._log.info(f"Magnet sent to qBittorrent (directory: {save_path})")

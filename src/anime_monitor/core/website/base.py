import asyncio
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from ..errors import TransportError


class EpisodeLocator(ABC):
    """
    Abstract base class for sites that publish numbered episodes.

    ``None`` from either lookup means "not released yet" and is expected
    to happen many times before an episode shows up.
    """

    def __init__(self, request_timeout: float = 15.0, user_agent: str = ""):
        self._timeout = aiohttp.ClientTimeout(total=request_timeout)
        self._headers = {"User-Agent": user_agent} if user_agent else {}
        self._session: Optional[aiohttp.ClientSession] = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers,
                timeout=self._timeout,
                trust_env=True,
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def fetch_page(self, url: str) -> str:
        """GET ``url`` and return its text.

        Raises:
            TransportError: on network failure or a non-2xx status.
        """
        session = self._get_session()
        try:
            async with session.get(url) as response:
                response.raise_for_status()
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

    @abstractmethod
    async def find_episode_page(self, episode: int) -> Optional[str]:
        """Locate the page of ``episode``.

        Returns:
            The page URL, or None if the episode is not listed yet
        """

    @abstractmethod
    async def extract_magnet(self, page_url: str) -> Optional[str]:
        """Extract the magnet link from an episode page.

        Returns:
            The magnet URI, or None if the page has none yet
        """

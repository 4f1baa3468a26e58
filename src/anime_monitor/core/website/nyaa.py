from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ...logger import logger
from .base import EpisodeLocator

if TYPE_CHECKING:
    from loguru import Logger


class NyaaWebsite(EpisodeLocator):
    """Finds episodes in a nyaa.si style torrent listing.

    ``title_pattern`` is a regex template formatted with ``ep``, for
    example ``r"\\[SubsPlease\\] Show - {ep:02d} \\(1080p\\)"``.
    """

    _ROW_SELECTOR = "table.torrent-list tbody tr"
    _TITLE_SELECTOR = "td:nth-of-type(2) a[href^='/view/']:not(.comments)"
    _MAGNET_RE = re.compile(r"^magnet:\?xt=urn:btih:")

    def __init__(
        self,
        search_url: str,
        title_pattern: str,
        request_timeout: float = 15.0,
        user_agent: str = "",
        log: Logger | None = None,
    ):
        super().__init__(request_timeout=request_timeout, user_agent=user_agent)
        self.search_url = search_url
        self.title_pattern = title_pattern
        self._log = log or logger.bind(component="nyaa")

    def _title_matcher(self, episode: int):
        raw = self.title_pattern.format(ep=episode)
        try:
            pattern = re.compile(raw)
        except re.error:
            self._log.warning(f"Invalid title pattern {raw!r}, using plain text match")
            return lambda title: raw in title
        return lambda title: pattern.search(title) is not None

    def find_in_listing(self, html: str, episode: int) -> Optional[str]:
        """Return the absolute URL of the first row whose title matches ``episode``."""
        matches = self._title_matcher(episode)
        soup = BeautifulSoup(html, "lxml")

        for row in soup.select(self._ROW_SELECTOR):
            tag = row.select_one(self._TITLE_SELECTOR)
            if not tag:
                continue
            title = tag.get_text(strip=True)
            if matches(title):
                self._log.info(f"Found: {title}")
                return urljoin(self.search_url, tag["href"])
        return None

    def magnet_in_page(self, html: str) -> Optional[str]:
        soup = BeautifulSoup(html, "lxml")
        tag = soup.find("a", href=self._MAGNET_RE)
        if not tag:
            return None
        href = tag["href"].strip()
        return href or None

    async def find_episode_page(self, episode: int) -> Optional[str]:
        self._log.info(f"Looking for episode {episode:02d}")
        html = await self.fetch_page(self.search_url)
        return self.find_in_listing(html, episode)

    async def extract_magnet(self, page_url: str) -> Optional[str]:
        self._log.info(f"Opening: {page_url}")
        html = await self.fetch_page(page_url)
        return self.magnet_in_page(html)

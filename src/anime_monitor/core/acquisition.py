"""
Acquisition loop.

Drives one episode at a time through
LOCATING -> SUBMITTING -> PERSISTING, falling back to WAITING whenever the
episode is not available yet or anything fails, and retrying the same
episode after the check interval until it succeeds.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Optional

from ..logger import logger
from .errors import AcquisitionError, PersistenceError

if TYPE_CHECKING:
    from loguru import Logger

    from .download.api.qbittorrent import QBittorrentClient
    from .state import EpisodeStateStore
    from .website.base import EpisodeLocator


class AcquisitionState(StrEnum):
    IDLE = "idle"
    LOCATING = "locating"
    SUBMITTING = "submitting"
    PERSISTING = "persisting"
    WAITING = "waiting"


class AcquisitionLoop:
    def __init__(
        self,
        locator: EpisodeLocator,
        client: QBittorrentClient,
        store: EpisodeStateStore,
        save_path: str,
        check_interval: float = 300.0,
        stop_event: Optional[asyncio.Event] = None,
        log: Logger | None = None,
    ):
        self._locator = locator
        self._client = client
        self._store = store
        self.save_path = save_path
        self.check_interval = check_interval
        self._stop_event = stop_event
        self._log = log or logger.bind(component="monitor")
        self._state = AcquisitionState.IDLE

        self._episode = store.load()

    @property
    def episode(self) -> int:
        """Next episode to acquire."""
        return self._episode

    @property
    def state(self) -> AcquisitionState:
        return self._state

    def _transition(self, new_state: AcquisitionState) -> None:
        self._log.debug(f"Episode {self._episode}: {self._state} -> {new_state}")
        self._state = new_state

    def _stopped(self) -> bool:
        return self._stop_event is not None and self._stop_event.is_set()

    async def run_cycle(self) -> bool:
        """Try once to acquire the current episode.

        Returns:
            True if the magnet was submitted and the cursor advanced,
            False if the episode is not available yet.

        Raises:
            AcquisitionError: if authentication or submission fails. The cursor
                is left unchanged so the whole cycle can be retried.
        """
        episode = self._episode

        self._transition(AcquisitionState.LOCATING)
        page_url = await self._locator.find_episode_page(episode)
        if not page_url:
            self._log.info(f"Episode {episode:02d} not published yet")
            return False

        magnet = await self._locator.extract_magnet(page_url)
        if not magnet or not magnet.strip():
            self._log.warning(f"Magnet link not found on episode page: {page_url}")
            return False

        self._transition(AcquisitionState.SUBMITTING)
        self._log.info(f"Sending episode {episode:02d} to qBittorrent: {magnet}")
        await self._client.authenticate()
        await self._client.submit(magnet, self.save_path)

        self._transition(AcquisitionState.PERSISTING)
        self._episode = episode + 1
        try:
            self._store.save(self._episode)
        except PersistenceError as e:
            # Submission already happened; a restart re-submits this episode
            self._log.error(
                f"Episode {episode:02d} submitted but cursor was not saved: {e}"
            )

        self._transition(AcquisitionState.IDLE)
        return True

    async def _wait(self) -> bool:
        """Sleep for the check interval.

        Returns:
            False if the stop event was set before the interval elapsed.
        """
        self._log.info(
            f"Retrying in {self.check_interval / 60:.1f} minutes..."
        )
        if self._stop_event is None:
            await asyncio.sleep(self.check_interval)
            return True

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=self.check_interval)
        except asyncio.TimeoutError:
            return True
        return False

    async def acquire_next(self) -> Optional[int]:
        """Retry the current episode until it is submitted.

        Returns:
            The acquired episode number, or None if stopped before success.
        """
        while not self._stopped():
            episode = self._episode
            try:
                if await self.run_cycle():
                    self._log.info(f"Episode {episode:02d} acquired.")
                    return episode
            except AcquisitionError as e:
                self._log.error(f"Cycle for episode {episode:02d} failed: {e}")
            except Exception:
                self._log.exception(f"Unexpected error in cycle for episode {episode:02d}")

            self._transition(AcquisitionState.WAITING)
            if not await self._wait():
                break

        self._log.info("Stop requested, leaving acquisition loop.")
        self._transition(AcquisitionState.IDLE)
        return None

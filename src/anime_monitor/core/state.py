"""
Episode cursor persistence.

The cursor file is a single JSON object, ``{"proximo_episodio": <int>}``.
Writes go to a temporary file in the same directory which is fsynced and
then atomically renamed over the canonical path, so a reader only ever
sees the previous or the new value.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..logger import logger
from .errors import PersistenceError

if TYPE_CHECKING:
    from loguru import Logger

CURSOR_KEY = "proximo_episodio"
FIRST_EPISODE = 1


class EpisodeStateStore:
    def __init__(self, path: str | Path, log: Logger | None = None):
        self.path = Path(path)
        self._log = log or logger.bind(component="state")

    def load(self) -> int:
        """Read the next episode to acquire.

        Never raises: a missing, unreadable or malformed file yields episode 1.
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            self._log.info(
                f"Episode file {self.path} not found. Starting from episode {FIRST_EPISODE}."
            )
            return FIRST_EPISODE
        except (ValueError, RecursionError):
            self._log.warning(
                f"Episode file {self.path} is corrupt. Starting from episode {FIRST_EPISODE}."
            )
            return FIRST_EPISODE
        except OSError as e:
            self._log.error(
                f"Failed to read episode file {self.path}: {e}. "
                f"Starting from episode {FIRST_EPISODE}."
            )
            return FIRST_EPISODE

        value = data.get(CURSOR_KEY) if isinstance(data, dict) else None
        # bool is an int subclass, but true/false is not an episode number
        if not isinstance(value, int) or isinstance(value, bool):
            self._log.warning(
                f"Episode file {self.path} has no valid '{CURSOR_KEY}'. "
                f"Starting from episode {FIRST_EPISODE}."
            )
            return FIRST_EPISODE

        episode = max(value, FIRST_EPISODE)
        self._log.info(f"Next episode loaded: {episode}")
        return episode

    def save(self, episode: int) -> None:
        """Durably replace the stored cursor with ``episode``.

        Raises:
            PersistenceError: if any step fails. The previous file is untouched.
        """
        if not isinstance(episode, int) or isinstance(episode, bool) or episode < 1:
            raise PersistenceError(str(self.path), f"invalid episode number {episode!r}")

        directory = self.path.parent
        tmp_path: str | None = None
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=".episode_", suffix=".json", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump({CURSOR_KEY: episode}, f, ensure_ascii=False)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            self._fsync_directory(directory)
        except OSError as e:
            self._log.error(f"Failed to save episode file {self.path}: {e}")
            raise PersistenceError(str(self.path), str(e)) from e
        finally:
            if tmp_path is not None:
                self._discard(tmp_path)

        self._log.info(f"Next episode saved: {episode}")

    def _discard(self, tmp_path: str) -> None:
        try:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
        except OSError as e:
            self._log.warning(f"Could not remove temporary file {tmp_path}: {e}")

    def _fsync_directory(self, directory: Path) -> None:
        """Flush the rename itself; not every platform can open a directory."""
        if not hasattr(os, "O_DIRECTORY"):
            return
        try:
            dir_fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
        except OSError as e:
            self._log.debug(f"Skip directory fsync for {directory}: {e}")
            return
        try:
            os.fsync(dir_fd)
        except OSError as e:
            self._log.debug(f"Directory fsync failed for {directory}: {e}")
        finally:
            os.close(dir_fd)

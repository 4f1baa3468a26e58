"""Faults raised by the acquisition core.

"Episode not released yet" is not an error: locators return ``None`` for it.
"""

from typing import Optional


class AcquisitionError(Exception):
    """Base class for recoverable faults during an acquisition cycle."""


class TransportError(AcquisitionError):
    """A request never produced an HTTP response (connection, DNS, timeout)."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Request to {url} failed: {reason}")


class RemoteAPIError(AcquisitionError):
    """The torrent daemon answered, but not with success."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        self.status_code = status_code
        self.body = body
        super().__init__(f"{message}: {status_code} - {body}")


class AuthError(RemoteAPIError):
    """Login was rejected or could not be performed."""


class SubmissionError(RemoteAPIError):
    """The add-torrent request was rejected or could not be prepared."""


class PersistenceError(AcquisitionError):
    """The episode cursor could not be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to persist cursor to {path}: {reason}")

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

# Body qBittorrent answers a successful /auth/login with, compared case-insensitively
LOGIN_SUCCESS_MARKER = "Ok."

LOGIN_ENDPOINT = "/api/v2/auth/login"
ADD_TORRENT_ENDPOINT = "/api/v2/torrents/add"


@dataclass(frozen=True)
class SubmissionRequest:
    magnet_link: str
    save_path: str
    paused: bool = False

    def to_form(self) -> Dict[str, str]:
        return {
            "urls": self.magnet_link,
            "paused": "true" if self.paused else "false",
            "savepath": self.save_path,
        }


@dataclass(frozen=True)
class APIResponse:
    status: int
    body: str

    @property
    def ok(self) -> bool:
        return self.status == 200

from .base import EpisodeLocator
from .nyaa import NyaaWebsite

__all__ = [
    "EpisodeLocator",
    "NyaaWebsite",
]

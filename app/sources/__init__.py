"""
External metadata sources

Each client returns a SourcePage of decoded records or raises
SourceUnavailable / SourceProtocolError. No retries happen here.
"""

from .base import SourcePage, RejectedRecord
from .anilist import AniListClient
from .kitsu import KitsuClient
from .jikan import JikanClient
from .schedule_oracle import ScheduleOracle, ScheduleGuess

__all__ = [
    "SourcePage",
    "RejectedRecord",
    "AniListClient",
    "KitsuClient",
    "JikanClient",
    "ScheduleOracle",
    "ScheduleGuess",
]

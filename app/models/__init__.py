"""
Models package

One file per table; junction tables live together in relationships.py:
    from models.titles import Title
    from models.relationships import TitleGenre
"""

from .titles import Title
from .animedetails import AnimeDetails
from .mangadetails import MangaDetails
from .genre import Genre
from .studio import Studio
from .author import Author
from .contenttag import ContentTag
from .person import Person
from .character import Character
from .relationships import (
    TitleGenre,
    TitleStudio,
    TitleAuthor,
    TitleContentTag,
    TitlePerson,
    TitleCharacter,
    CharacterVoiceActor,
)
from .cachemetric import CachePerformanceMetric
from .synclog import SyncLog

__all__ = [
    "Title",
    "AnimeDetails",
    "MangaDetails",
    "Genre",
    "Studio",
    "Author",
    "ContentTag",
    "Person",
    "Character",
    "TitleGenre",
    "TitleStudio",
    "TitleAuthor",
    "TitleContentTag",
    "TitlePerson",
    "TitleCharacter",
    "CharacterVoiceActor",
    "CachePerformanceMetric",
    "SyncLog",
]

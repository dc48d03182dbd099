"""
Relationship resolvers: ensure taxonomy entities exist and link them to titles.

ensure_* return EnsureResult(ids, created); link_* return the number of
junction rows actually inserted.
"""

from dataclasses import dataclass, field
from typing import List

from constants import LINK_ADDITIVE, SOURCE_ANILIST
from models.author import Author
from models.character import Character
from models.contenttag import ContentTag
from models.genre import Genre
from models.person import Person
from models.relationships import (
    CharacterVoiceActor,
    TitleAuthor,
    TitleCharacter,
    TitleContentTag,
    TitleGenre,
    TitlePerson,
    TitleStudio,
)
from models.studio import Studio
from repositories.relationship_repository import RelationshipRepository
from repositories.taxonomy_repository import TaxonomyRepository
from utils import slugify


@dataclass
class EnsureResult:
    ids: List[int] = field(default_factory=list)
    created: int = 0


def _named_rows(names):
    return [{"name": name, "slug": slugify(name)} for name in names if name]


def ensure_genres(names):
    ids, created = TaxonomyRepository.ensure(Genre, _named_rows(names))
    return EnsureResult(ids, created)


def ensure_studios(names):
    ids, created = TaxonomyRepository.ensure(Studio, _named_rows(names))
    return EnsureResult(ids, created)


def ensure_authors(names):
    ids, created = TaxonomyRepository.ensure(Author, _named_rows(names))
    return EnsureResult(ids, created)


def ensure_tags(tags):
    """tags: TagRef list, or plain names (Kitsu categories)"""
    rows = []
    for tag in tags:
        if isinstance(tag, str):
            rows.append({"name": tag, "slug": slugify(tag)})
        else:
            rows.append(
                {"name": tag.name, "slug": slugify(tag.name), "description": tag.description, "category": tag.category}
            )
    ids, created = TaxonomyRepository.ensure(ContentTag, rows)
    return EnsureResult(ids, created)


def ensure_people(staff):
    rows = [
        {
            "anilist_id": person.anilist_id,
            "name": person.name,
            "name_native": person.name_native,
            "slug": slugify(person.name),
            "image_url": person.image_url,
            "language": person.language,
        }
        for person in staff
    ]
    ids, created = TaxonomyRepository.ensure(Person, rows, key="anilist_id")
    return EnsureResult(ids, created)


def ensure_characters(characters):
    rows = [
        {
            "anilist_id": character.anilist_id,
            "name": character.name,
            "name_native": character.name_native,
            "slug": slugify(character.name),
            "image_url": character.image_url,
        }
        for character in characters
    ]
    ids, created = TaxonomyRepository.ensure(Character, rows, key="anilist_id")
    return EnsureResult(ids, created)


def link_genres(title_id, genre_ids, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    rows = [{"genre_id": genre_id} for genre_id in genre_ids]
    return RelationshipRepository.link(TitleGenre, title_id, rows, mode, source)


def link_studios(title_id, studio_ids, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    rows = [{"studio_id": studio_id} for studio_id in studio_ids]
    return RelationshipRepository.link(TitleStudio, title_id, rows, mode, source)


def link_authors(title_id, author_ids, roles=None, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    roles = roles or {}
    rows = [{"author_id": author_id, "role": roles.get(author_id)} for author_id in author_ids]
    return RelationshipRepository.link(TitleAuthor, title_id, rows, mode, source)


def link_tags(title_id, tag_ids, tags=None, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    """tags, when given, is the TagRef list tag_ids was ensured from (same order)"""
    rows = []
    for index, tag_id in enumerate(tag_ids):
        tag = tags[index] if tags and index < len(tags) and not isinstance(tags[index], str) else None
        rows.append(
            {
                "tag_id": tag_id,
                "rank": tag.rank if tag else None,
                "is_spoiler": tag.is_spoiler if tag else False,
            }
        )
    return RelationshipRepository.link(TitleContentTag, title_id, rows, mode, source)


def link_people(title_id, person_roles, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    """person_roles: (person_id, role) pairs"""
    rows = [{"person_id": person_id, "role": role or ""} for person_id, role in person_roles]
    return RelationshipRepository.link(TitlePerson, title_id, rows, mode, source)


def link_characters(title_id, character_roles, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    """character_roles: (character_id, role) pairs"""
    rows = [
        {"character_id": character_id, "role": role, "is_main": role == "MAIN"}
        for character_id, role in character_roles
    ]
    return RelationshipRepository.link(TitleCharacter, title_id, rows, mode, source)


def link_voice_actors(title_id, pairs, mode=LINK_ADDITIVE, source=SOURCE_ANILIST):
    """pairs: (character_id, person_id, language) triples"""
    rows = [
        {"character_id": character_id, "person_id": person_id, "language": language}
        for character_id, person_id, language in pairs
    ]
    return RelationshipRepository.link(CharacterVoiceActor, title_id, rows, mode, source)

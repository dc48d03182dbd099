"""
Repository for Title database operations

Writes are flushed into the caller's session; the sync service owns the
commit so one item is one transaction.
"""

import logging
from sqlalchemy import and_, case, func, or_, select, update
from db import db, dialect_insert
from models.titles import Title
from models.animedetails import AnimeDetails
from models.mangadetails import MangaDetails
from models.genre import Genre
from models.relationships import TitleGenre

logger = logging.getLogger("main")


class TitlesRepository:
    """Repository for Title database operations"""

    @staticmethod
    def get_by_id(id):
        """Get Title by primary key ID"""
        return db.session.get(Title, id)

    @staticmethod
    def get_id_by_external_id(key, value):
        """Resolve a title id from one of anilist_id / mal_id / kitsu_id"""
        column = getattr(Title, key)
        return db.session.execute(select(Title.id).where(column == value)).scalar()

    @staticmethod
    def find_for_kitsu(kitsu_id, canonical_title, content_type):
        """Existing title matched by kitsu_id first, then exact title among titles not yet bound to Kitsu"""
        return db.session.execute(
            select(Title.id)
            .where(
                Title.content_type == content_type,
                or_(Title.kitsu_id == kitsu_id, and_(Title.kitsu_id.is_(None), Title.title == canonical_title)),
            )
            .order_by(case((Title.kitsu_id == kitsu_id, 0), else_=1))
            .limit(1)
        ).scalar()

    @staticmethod
    def upsert_sparse(key, fields, allowed_fields):
        """
        Insert a title keyed by an external id, or update an existing one.

        New rows get every non-null field. Existing rows only get the
        non-null fields named in allowed_fields, so a thinner source never
        blanks a richer value. Returns (title_id, inserted).
        """
        key_value = fields.get(key)
        if key_value is None:
            raise ValueError(f"Missing external id '{key}'")

        title_id = TitlesRepository.get_id_by_external_id(key, key_value)
        if title_id is None:
            values = {k: v for k, v in fields.items() if v is not None}
            stmt = (
                dialect_insert(Title)
                .values(**values)
                .on_conflict_do_nothing(index_elements=[key])
                .returning(Title.id)
            )
            title_id = db.session.execute(stmt).scalar()
            if title_id is not None:
                return title_id, True
            # Lost an insert race: the row exists now
            title_id = TitlesRepository.get_id_by_external_id(key, key_value)

        TitlesRepository.update_fields(title_id, fields, allowed_fields)
        return title_id, False

    @staticmethod
    def update_fields(title_id, fields, allowed_fields):
        changes = {k: v for k, v in fields.items() if k in allowed_fields and v is not None}
        if changes:
            db.session.execute(update(Title).where(Title.id == title_id).values(**changes))
        return changes

    @staticmethod
    def get_ranked(content_type, order_by, limit, filters=None):
        """Titles of one content type ordered by a column, with optional filters"""
        query = Title.query.filter(Title.content_type == content_type)

        filters = filters or {}
        if filters.get("search"):
            text = f"%{filters['search']}%"
            query = query.filter(
                or_(Title.title.ilike(text), Title.title_english.ilike(text), Title.title_japanese.ilike(text))
            )
        if filters.get("year"):
            query = query.filter(Title.year == filters["year"])
        if filters.get("genre"):
            genre_ids = select(TitleGenre.title_id).join(Genre, Genre.id == TitleGenre.genre_id).where(
                or_(Genre.name == filters["genre"], Genre.slug == filters["genre"])
            )
            query = query.filter(Title.id.in_(genre_ids))

        details = AnimeDetails if content_type == "anime" else MangaDetails
        if filters.get("status") or filters.get("type") or filters.get("season"):
            query = query.join(details, details.title_id == Title.id)
            if filters.get("status"):
                query = query.filter(details.status == filters["status"])
            if filters.get("type"):
                query = query.filter(details.type == filters["type"])
            if filters.get("season") and details is AnimeDetails:
                query = query.filter(AnimeDetails.season == filters["season"])

        sort_field = getattr(Title, order_by, Title.score)
        if filters.get("order") == "asc":
            query = query.order_by(sort_field.asc().nullslast(), Title.id)
        else:
            query = query.order_by(sort_field.desc().nullslast(), Title.id)
        return query.limit(limit).all()

    @staticmethod
    def get_genre_names(title_ids):
        """Map title id -> sorted genre names, one query for the whole list"""
        names = {title_id: [] for title_id in title_ids}
        if not title_ids:
            return names
        rows = db.session.execute(
            select(TitleGenre.title_id, Genre.name)
            .join(Genre, Genre.id == TitleGenre.genre_id)
            .where(TitleGenre.title_id.in_(title_ids))
            .distinct()
        ).all()
        for title_id, name in rows:
            names[title_id].append(name)
        for title_id in names:
            names[title_id].sort()
        return names

    @staticmethod
    def last_updated():
        return db.session.execute(select(func.max(Title.updated_at))).scalar()

    @staticmethod
    def count(content_type=None):
        """Count total Title records"""
        query = Title.query
        if content_type:
            query = query.filter(Title.content_type == content_type)
        return query.count()

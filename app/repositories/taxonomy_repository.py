"""
Repository for shared taxonomy entities (genres, studios, authors, tags, people, characters)
"""

import logging
from sqlalchemy import func, select
from db import db, dialect_insert

logger = logging.getLogger("main")


class TaxonomyRepository:
    """Get-or-create on a unique key, safe against concurrent creators"""

    @staticmethod
    def find_id(model, key, value):
        column = getattr(model, key)
        return db.session.execute(select(model.id).where(column == value)).scalar()

    @staticmethod
    def ensure(model, rows, key="name"):
        """
        Ensure one entity exists per row, keyed by rows[i][key].

        Returns (ids, created) with ids in input order, duplicates collapsed.
        A conflicting insert from another writer is treated as "already
        exists" and the id is re-read.
        """
        ids = []
        created = 0
        seen = set()
        for row in rows:
            value = row.get(key)
            if value is None or value == "" or value in seen:
                continue
            seen.add(value)

            entity_id = TaxonomyRepository.find_id(model, key, value)
            if entity_id is None:
                stmt = (
                    dialect_insert(model)
                    .values(**row)
                    .on_conflict_do_nothing(index_elements=[key])
                    .returning(model.id)
                )
                entity_id = db.session.execute(stmt).scalar()
                if entity_id is not None:
                    created += 1
                else:
                    logger.debug(f"{model.__tablename__}: concurrent insert for {value}, re-reading id")
                    entity_id = TaxonomyRepository.find_id(model, key, value)
            ids.append(entity_id)
        return ids, created

    @staticmethod
    def get_names(model, ids):
        if not ids:
            return []
        return [r[0] for r in db.session.execute(select(model.name).where(model.id.in_(ids))).all()]

    @staticmethod
    def genre_usage(content_type=None):
        """(name, slug, title_count) for every genre, most used first"""
        from models.genre import Genre
        from models.relationships import TitleGenre
        from models.titles import Title

        count = func.count(func.distinct(TitleGenre.title_id))
        query = (
            select(Genre.name, Genre.slug, count)
            .join(TitleGenre, TitleGenre.genre_id == Genre.id, isouter=True)
            .join(Title, Title.id == TitleGenre.title_id, isouter=True)
            .group_by(Genre.id, Genre.name, Genre.slug)
            .order_by(count.desc(), Genre.name)
        )
        if content_type:
            query = query.where(Title.content_type == content_type)
        return db.session.execute(query).all()

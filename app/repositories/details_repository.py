"""
Repository for AnimeDetails / MangaDetails
"""

from sqlalchemy import select
from db import db, dialect_insert


class DetailsRepository:
    """Replace-by-title_id upserts for the 1:1 detail tables"""

    @staticmethod
    def exists(model, title_id):
        return db.session.execute(select(model.title_id).where(model.title_id == title_id)).first() is not None

    @staticmethod
    def upsert(model, title_id, fields):
        """Write the detail row for a title. Returns True when a new row was inserted."""
        inserted = not DetailsRepository.exists(model, title_id)
        stmt = dialect_insert(model).values(title_id=title_id, **fields)
        if fields:
            stmt = stmt.on_conflict_do_update(index_elements=["title_id"], set_=fields)
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=["title_id"])
        db.session.execute(stmt)
        return inserted

    @staticmethod
    def get(model, title_id):
        return db.session.get(model, title_id)

"""
Repository for Title junction rows
"""

from sqlalchemy import delete
from db import db, dialect_insert
from constants import LINK_REPLACE


class RelationshipRepository:
    """Replace or additive linking, always scoped to one contributing source"""

    @staticmethod
    def link(model, title_id, rows, mode, source):
        """
        Link rows (junction column values minus title_id/source) to a title.

        replace: drop this source's existing rows for the title first.
        additive: insert-if-absent only.
        Returns how many rows were actually inserted.
        """
        if mode == LINK_REPLACE:
            db.session.execute(delete(model).where(model.title_id == title_id, model.source == source))

        created = 0
        for row in rows:
            stmt = (
                dialect_insert(model)
                .values(title_id=title_id, source=source, **row)
                .on_conflict_do_nothing()
                .returning(model.title_id)
            )
            if db.session.execute(stmt).first() is not None:
                created += 1
        return created

    @staticmethod
    def count_for_title(model, title_id, source=None):
        query = model.query.filter(model.title_id == title_id)
        if source:
            query = query.filter(model.source == source)
        return query.count()

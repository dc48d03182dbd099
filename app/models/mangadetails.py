"""
Model: MangaDetails
"""

from db import db


class MangaDetails(db.Model):
    __tablename__ = "manga_details"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    chapters = db.Column(db.Integer)
    volumes = db.Column(db.Integer)
    published_from = db.Column(db.String(10))
    published_to = db.Column(db.String(10))
    status = db.Column(db.String(32), index=True)
    type = db.Column(db.String(16))
    next_chapter_date = db.Column(db.String(32))
    next_chapter_number = db.Column(db.Integer)
    last_sync_check = db.Column(db.DateTime)

    def to_dict(self):
        return {
            "chapters": self.chapters,
            "volumes": self.volumes,
            "published_from": self.published_from,
            "published_to": self.published_to,
            "status": self.status,
            "type": self.type,
            "next_chapter_date": self.next_chapter_date,
            "next_chapter_number": self.next_chapter_number,
        }

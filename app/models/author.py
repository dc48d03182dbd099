"""
Model: Author
"""

from db import db, now_utc


class Author(db.Model):
    __tablename__ = "authors"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    slug = db.Column(db.String(280), index=True)
    created_at = db.Column(db.DateTime, default=now_utc)

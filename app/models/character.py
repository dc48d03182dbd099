"""
Model: Character
"""

from db import db, now_utc


class Character(db.Model):
    __tablename__ = "characters"

    id = db.Column(db.Integer, primary_key=True)
    anilist_id = db.Column(db.Integer, unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    name_native = db.Column(db.String(255))
    slug = db.Column(db.String(280), index=True)
    image_url = db.Column(db.String(1024))
    created_at = db.Column(db.DateTime, default=now_utc)

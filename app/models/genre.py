"""
Model: Genre
"""

from db import db, now_utc


class Genre(db.Model):
    __tablename__ = "genres"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    slug = db.Column(db.String(120), index=True)
    type = db.Column(db.String(10), default="both")  # anime | manga | both
    created_at = db.Column(db.DateTime, default=now_utc)

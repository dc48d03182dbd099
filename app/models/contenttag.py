"""
Model: ContentTag
AniList tags and Kitsu categories
"""

from db import db, now_utc


class ContentTag(db.Model):
    __tablename__ = "content_tags"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False)
    slug = db.Column(db.String(140), index=True)
    description = db.Column(db.Text)
    category = db.Column(db.String(120))
    created_at = db.Column(db.DateTime, default=now_utc)

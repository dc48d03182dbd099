"""
Model: Studio
"""

from db import db, now_utc


class Studio(db.Model):
    __tablename__ = "studios"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    slug = db.Column(db.String(280), index=True)
    created_at = db.Column(db.DateTime, default=now_utc)

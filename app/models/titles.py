"""
Model: Title
One row per anime or manga work, whichever source created it
"""

from db import db, now_utc


class Title(db.Model):
    __tablename__ = "titles"

    id = db.Column(db.Integer, primary_key=True)
    content_type = db.Column(db.String(10), nullable=False, index=True)  # anime | manga

    # External identities, each unique per source
    anilist_id = db.Column(db.Integer, unique=True, index=True)
    mal_id = db.Column(db.Integer, unique=True, index=True)
    kitsu_id = db.Column(db.Integer, unique=True, index=True)

    title = db.Column(db.String(500), nullable=False, index=True)
    title_english = db.Column(db.String(500))
    title_japanese = db.Column(db.String(500))
    synopsis = db.Column(db.Text)
    image_url = db.Column(db.String(1024))
    banner_image = db.Column(db.String(1024))
    color_theme = db.Column(db.String(16))
    year = db.Column(db.Integer)

    # Ratings (0-10 scale for score, raw 0-100 for anilist_score)
    score = db.Column(db.Float)
    anilist_score = db.Column(db.Integer)
    popularity = db.Column(db.Integer, default=0)
    favorites = db.Column(db.Integer, default=0)
    members = db.Column(db.Integer, default=0)
    rank = db.Column(db.Integer)

    # === KITSU ===
    kitsu_rating = db.Column(db.Float)
    kitsu_user_count = db.Column(db.Integer)
    kitsu_favorites_count = db.Column(db.Integer)
    kitsu_popularity_rank = db.Column(db.Integer)
    kitsu_rating_rank = db.Column(db.Integer)

    last_anilist_update = db.Column(db.DateTime)
    last_kitsu_update = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=now_utc)
    updated_at = db.Column(db.DateTime, default=now_utc, onupdate=now_utc)

    anime_details = db.relationship("AnimeDetails", uselist=False, backref="title_row", cascade="all, delete-orphan")
    manga_details = db.relationship("MangaDetails", uselist=False, backref="title_row", cascade="all, delete-orphan")

    __table_args__ = (
        db.Index("idx_titles_type_popularity", "content_type", "popularity"),
        db.Index("idx_titles_type_score", "content_type", "score"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "content_type": self.content_type,
            "anilist_id": self.anilist_id,
            "mal_id": self.mal_id,
            "kitsu_id": self.kitsu_id,
            "title": self.title,
            "title_english": self.title_english,
            "title_japanese": self.title_japanese,
            "synopsis": self.synopsis,
            "image_url": self.image_url,
            "banner_image": self.banner_image,
            "color_theme": self.color_theme,
            "year": self.year,
            "score": self.score,
            "anilist_score": self.anilist_score,
            "popularity": self.popularity,
            "favorites": self.favorites,
            "members": self.members,
            "rank": self.rank,
            "kitsu_rating": self.kitsu_rating,
            "kitsu_user_count": self.kitsu_user_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

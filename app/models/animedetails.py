"""
Model: AnimeDetails
1:1 extension of Title keyed by the title's own id
"""

from db import db


class AnimeDetails(db.Model):
    __tablename__ = "anime_details"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    episodes = db.Column(db.Integer)
    aired_from = db.Column(db.String(10))  # YYYY-MM-DD
    aired_to = db.Column(db.String(10))
    season = db.Column(db.String(10))
    status = db.Column(db.String(32), index=True)
    type = db.Column(db.String(16))
    trailer_url = db.Column(db.String(255))
    trailer_id = db.Column(db.String(64))
    trailer_site = db.Column(db.String(32))

    # Countdown
    next_episode_date = db.Column(db.String(32))  # ISO-8601 UTC
    next_episode_number = db.Column(db.Integer)
    schedule_confidence = db.Column(db.Float)
    last_sync_check = db.Column(db.DateTime)

    def to_dict(self):
        return {
            "episodes": self.episodes,
            "aired_from": self.aired_from,
            "aired_to": self.aired_to,
            "season": self.season,
            "status": self.status,
            "type": self.type,
            "trailer_url": self.trailer_url,
            "next_episode_date": self.next_episode_date,
            "next_episode_number": self.next_episode_number,
            "schedule_confidence": self.schedule_confidence,
        }

"""
Models: Title junction tables

Every link row carries the source that contributed it, so one source can
replace its own snapshot without touching rows another source added.
"""

from db import db


class TitleGenre(db.Model):
    __tablename__ = "title_genres"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    genre_id = db.Column(db.Integer, db.ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True)
    source = db.Column(db.String(16), primary_key=True, default="anilist")


class TitleStudio(db.Model):
    __tablename__ = "title_studios"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    studio_id = db.Column(db.Integer, db.ForeignKey("studios.id", ondelete="CASCADE"), primary_key=True)
    source = db.Column(db.String(16), primary_key=True, default="anilist")


class TitleAuthor(db.Model):
    __tablename__ = "title_authors"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    author_id = db.Column(db.Integer, db.ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True)
    source = db.Column(db.String(16), primary_key=True, default="anilist")
    role = db.Column(db.String(64))


class TitleContentTag(db.Model):
    __tablename__ = "title_content_tags"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    tag_id = db.Column(db.Integer, db.ForeignKey("content_tags.id", ondelete="CASCADE"), primary_key=True)
    source = db.Column(db.String(16), primary_key=True, default="anilist")
    rank = db.Column(db.Integer)
    is_spoiler = db.Column(db.Boolean, default=False)


class TitlePerson(db.Model):
    __tablename__ = "title_people"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), primary_key=True)
    role = db.Column(db.String(128), primary_key=True, default="")
    source = db.Column(db.String(16), primary_key=True, default="anilist")


class TitleCharacter(db.Model):
    __tablename__ = "title_content_characters"

    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    character_id = db.Column(db.Integer, db.ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True)
    source = db.Column(db.String(16), primary_key=True, default="anilist")
    role = db.Column(db.String(32))  # MAIN | SUPPORTING | BACKGROUND
    is_main = db.Column(db.Boolean, default=False)


class CharacterVoiceActor(db.Model):
    __tablename__ = "character_voice_actors"

    character_id = db.Column(db.Integer, db.ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True)
    person_id = db.Column(db.Integer, db.ForeignKey("people.id", ondelete="CASCADE"), primary_key=True)
    title_id = db.Column(db.Integer, db.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)
    source = db.Column(db.String(16), primary_key=True, default="anilist")
    language = db.Column(db.String(32))

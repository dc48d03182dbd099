"""Initial content schema: titles, details, taxonomy, junctions, cache metrics, sync logs

Revision ID: a1c4e7f20b31
Revises:

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "a1c4e7f20b31"
down_revision = None
branch_labels = None
depends_on = None


def _title_fk():
    return sa.Column("title_id", sa.Integer(), sa.ForeignKey("titles.id", ondelete="CASCADE"), primary_key=True)


def _source_pk():
    return sa.Column("source", sa.String(length=16), primary_key=True, server_default="anilist")


def upgrade():
    op.create_table(
        "titles",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("content_type", sa.String(length=10), nullable=False),
        sa.Column("anilist_id", sa.Integer(), nullable=True),
        sa.Column("mal_id", sa.Integer(), nullable=True),
        sa.Column("kitsu_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("title_english", sa.String(length=500), nullable=True),
        sa.Column("title_japanese", sa.String(length=500), nullable=True),
        sa.Column("synopsis", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("banner_image", sa.String(length=1024), nullable=True),
        sa.Column("color_theme", sa.String(length=16), nullable=True),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("anilist_score", sa.Integer(), nullable=True),
        sa.Column("popularity", sa.Integer(), nullable=True),
        sa.Column("favorites", sa.Integer(), nullable=True),
        sa.Column("members", sa.Integer(), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("kitsu_rating", sa.Float(), nullable=True),
        sa.Column("kitsu_user_count", sa.Integer(), nullable=True),
        sa.Column("kitsu_favorites_count", sa.Integer(), nullable=True),
        sa.Column("kitsu_popularity_rank", sa.Integer(), nullable=True),
        sa.Column("kitsu_rating_rank", sa.Integer(), nullable=True),
        sa.Column("last_anilist_update", sa.DateTime(), nullable=True),
        sa.Column("last_kitsu_update", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    with op.batch_alter_table("titles", schema=None) as batch_op:
        batch_op.create_index("ix_titles_content_type", ["content_type"], unique=False)
        batch_op.create_index("ix_titles_anilist_id", ["anilist_id"], unique=True)
        batch_op.create_index("ix_titles_mal_id", ["mal_id"], unique=True)
        batch_op.create_index("ix_titles_kitsu_id", ["kitsu_id"], unique=True)
        batch_op.create_index("ix_titles_title", ["title"], unique=False)
        batch_op.create_index("idx_titles_type_popularity", ["content_type", "popularity"], unique=False)
        batch_op.create_index("idx_titles_type_score", ["content_type", "score"], unique=False)

    op.create_table(
        "anime_details",
        _title_fk(),
        sa.Column("episodes", sa.Integer(), nullable=True),
        sa.Column("aired_from", sa.String(length=10), nullable=True),
        sa.Column("aired_to", sa.String(length=10), nullable=True),
        sa.Column("season", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=True),
        sa.Column("trailer_url", sa.String(length=255), nullable=True),
        sa.Column("trailer_id", sa.String(length=64), nullable=True),
        sa.Column("trailer_site", sa.String(length=32), nullable=True),
        sa.Column("next_episode_date", sa.String(length=32), nullable=True),
        sa.Column("next_episode_number", sa.Integer(), nullable=True),
        sa.Column("schedule_confidence", sa.Float(), nullable=True),
        sa.Column("last_sync_check", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_anime_details_status", "anime_details", ["status"], unique=False)

    op.create_table(
        "manga_details",
        _title_fk(),
        sa.Column("chapters", sa.Integer(), nullable=True),
        sa.Column("volumes", sa.Integer(), nullable=True),
        sa.Column("published_from", sa.String(length=10), nullable=True),
        sa.Column("published_to", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("type", sa.String(length=16), nullable=True),
        sa.Column("next_chapter_date", sa.String(length=32), nullable=True),
        sa.Column("next_chapter_number", sa.Integer(), nullable=True),
        sa.Column("last_sync_check", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_manga_details_status", "manga_details", ["status"], unique=False)

    op.create_table(
        "genres",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("slug", sa.String(length=120), nullable=True),
        sa.Column("type", sa.String(length=10), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_genres_slug", "genres", ["slug"], unique=False)

    for table in ("studios", "authors"):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(length=255), nullable=False, unique=True),
            sa.Column("slug", sa.String(length=280), nullable=True),
            sa.Column("created_at", sa.DateTime(), nullable=True),
        )
        op.create_index(f"ix_{table}_slug", table, ["slug"], unique=False)

    op.create_table(
        "content_tags",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("slug", sa.String(length=140), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=120), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_content_tags_slug", "content_tags", ["slug"], unique=False)

    op.create_table(
        "people",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("anilist_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("name_native", sa.String(length=255), nullable=True),
        sa.Column("slug", sa.String(length=280), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("language", sa.String(length=32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_people_slug", "people", ["slug"], unique=False)

    op.create_table(
        "characters",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("anilist_id", sa.Integer(), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("name_native", sa.String(length=255), nullable=True),
        sa.Column("slug", sa.String(length=280), nullable=True),
        sa.Column("image_url", sa.String(length=1024), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_characters_slug", "characters", ["slug"], unique=False)

    op.create_table(
        "title_genres",
        _title_fk(),
        sa.Column("genre_id", sa.Integer(), sa.ForeignKey("genres.id", ondelete="CASCADE"), primary_key=True),
        _source_pk(),
    )
    op.create_table(
        "title_studios",
        _title_fk(),
        sa.Column("studio_id", sa.Integer(), sa.ForeignKey("studios.id", ondelete="CASCADE"), primary_key=True),
        _source_pk(),
    )
    op.create_table(
        "title_authors",
        _title_fk(),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("authors.id", ondelete="CASCADE"), primary_key=True),
        _source_pk(),
        sa.Column("role", sa.String(length=64), nullable=True),
    )
    op.create_table(
        "title_content_tags",
        _title_fk(),
        sa.Column("tag_id", sa.Integer(), sa.ForeignKey("content_tags.id", ondelete="CASCADE"), primary_key=True),
        _source_pk(),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("is_spoiler", sa.Boolean(), nullable=True),
    )
    op.create_table(
        "title_people",
        _title_fk(),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("people.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("role", sa.String(length=128), primary_key=True, server_default=""),
        _source_pk(),
    )
    op.create_table(
        "title_content_characters",
        _title_fk(),
        sa.Column("character_id", sa.Integer(), sa.ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True),
        _source_pk(),
        sa.Column("role", sa.String(length=32), nullable=True),
        sa.Column("is_main", sa.Boolean(), nullable=True),
    )
    op.create_table(
        "character_voice_actors",
        sa.Column("character_id", sa.Integer(), sa.ForeignKey("characters.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("person_id", sa.Integer(), sa.ForeignKey("people.id", ondelete="CASCADE"), primary_key=True),
        _title_fk(),
        _source_pk(),
        sa.Column("language", sa.String(length=32), nullable=True),
    )

    op.create_table(
        "cache_performance_metrics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("metric_type", sa.String(length=16), nullable=False),
        sa.Column("metric_value", sa.Float(), nullable=True),
        sa.Column("cache_key", sa.String(length=512), nullable=True),
        sa.Column("metadata_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    with op.batch_alter_table("cache_performance_metrics", schema=None) as batch_op:
        batch_op.create_index("ix_cache_performance_metrics_created_at", ["created_at"], unique=False)
        batch_op.create_index("idx_cache_metrics_type_created", ["metric_type", "created_at"], unique=False)

    op.create_table(
        "sync_logs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("job_name", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("details", sa.JSON(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_sync_logs_job_name", "sync_logs", ["job_name"], unique=False)


def downgrade():
    for table in (
        "sync_logs",
        "cache_performance_metrics",
        "character_voice_actors",
        "title_content_characters",
        "title_people",
        "title_content_tags",
        "title_authors",
        "title_studios",
        "title_genres",
        "characters",
        "people",
        "content_tags",
        "authors",
        "studios",
        "genres",
        "manga_details",
        "anime_details",
        "titles",
    ):
        op.drop_table(table)

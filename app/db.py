from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy import inspect
from sqlalchemy.dialects import postgresql, sqlite
from flask_migrate import Migrate
from alembic.runtime.migration import MigrationContext
from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic import command
import logging
from constants import ALEMBIC_DIR, ALEMBIC_CONF
from utils import now_utc

# Retrieve main logger
logger = logging.getLogger("main")

db = SQLAlchemy()
migrate = Migrate()


# Alembic functions
def get_alembic_cfg():
    cfg = Config(ALEMBIC_CONF)
    cfg.set_main_option("script_location", ALEMBIC_DIR)
    return cfg


def get_current_db_version():
    with db.engine.connect() as connection:
        context = MigrationContext.configure(connection)
        current_rev = context.get_current_revision()
        return current_rev or "0"


def is_migration_needed():
    alembic_cfg = get_alembic_cfg()
    script = ScriptDirectory.from_config(alembic_cfg)
    latest_revision = script.get_current_head()
    current_revision = get_current_db_version()
    if current_revision != latest_revision:
        logger.info(f"Database migration needed, from {current_revision} to {latest_revision}")
        return True
    else:
        logger.info(f"Database version is up to date ({current_revision})")
        return False


def dialect_insert(model):
    """
    INSERT construct for the bound dialect so callers can chain
    on_conflict_do_nothing / on_conflict_do_update / returning.
    """
    if db.engine.dialect.name == "postgresql":
        return postgresql.insert(model)
    return sqlite.insert(model)


def init_db(app):
    with app.app_context():
        # Ensure foreign keys are enforced on SQLite connections
        @event.listens_for(db.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            import sqlite3
            if not isinstance(dbapi_connection, sqlite3.Connection):
                return

            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.execute("PRAGMA busy_timeout=30000;")
            cursor.close()

        # Register models on the metadata before create_all
        import models  # noqa: F401

        inspector = inspect(db.engine)
        if not inspector.has_table("titles"):
            logger.info("Initializing database tables...")
            db.create_all()
            if not app.config.get("TESTING"):
                command.stamp(get_alembic_cfg(), "head")
                logger.info("Database created and stamped to the latest migration version.")
        else:
            # Ensure new tables are created even if DB exists
            db.create_all()
            if not app.config.get("TESTING"):
                is_migration_needed()

from __future__ import annotations

from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import event, text
from sqlalchemy.exc import OperationalError
from sqlmodel import SQLModel, create_engine

# Table models must be imported so they are registered on the metadata.
from . import events, memberships  # noqa: F401


def make_engine(db_path: str):
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def alembic_config(engine) -> Config:
    cfg = Config(str(Path(__file__).resolve().parent.parent / "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", str(engine.url))
    return cfg


def init_db(engine) -> None:
    """Create tables on first run and verify the schema revision."""

    db_path = Path(engine.url.database)
    first_run = not db_path.exists()

    cfg = alembic_config(engine)
    if first_run:
        SQLModel.metadata.create_all(engine)
        command.stamp(cfg, "head")

    script = ScriptDirectory.from_config(cfg)
    head = script.get_current_head()
    with engine.connect() as conn:
        try:
            row = conn.execute(text("SELECT version_num FROM alembic_version")).first()
        except OperationalError as exc:
            raise RuntimeError(
                "Database schema is missing Alembic version information. "
                "Run 'alembic upgrade head' before starting the server."
            ) from exc
    if not row or row[0] != head:
        raise RuntimeError(
            "Database schema is out of date. Run 'alembic upgrade head' "
            "before starting the server."
        )

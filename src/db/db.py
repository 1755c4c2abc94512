from __future__ import annotations

from pathlib import Path

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from config import config
from db.models import Base


def create_db_engine(database_url: str | None = None, echo: bool = False) -> Engine:
    url = make_url(database_url or config().database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, echo=echo)


def init_db(database_url: str | None = None, *, reset: bool = False, echo: bool = False) -> sessionmaker[Session]:
    """Create the schema and return a session factory bound to it."""
    engine = create_db_engine(database_url, echo=echo)
    if reset:
        Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    return sessionmaker(engine, expire_on_commit=False)

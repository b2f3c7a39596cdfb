# backend/tradeguard/db/init_db.py
from sqlalchemy.engine import Engine

from tradeguard.db.base import Base
from tradeguard.db.session import engine as default_engine

# Models must be imported so the metadata knows their tables
from tradeguard import models  # noqa: F401


def init_db(engine: Engine | None = None) -> None:
    Base.metadata.create_all(bind=engine or default_engine)
